"""
Unit tests for deliver_list / deliver_detail on transient ORM objects.
"""
import unittest
from datetime import datetime, timezone

from tipster.core.errors import PremiumRequiredError
from tipster.models import Coupon, Prediction
from tipster.paywall.delivery import deliver_detail, deliver_list, redact

MATCH_DATE = datetime(2026, 10, 20, 19, 0, tzinfo=timezone.utc)


def _prediction(pid: int, is_premium: bool) -> Prediction:
    return Prediction(
        id=pid,
        league_name="Süper Lig",
        home_team="Galatasaray",
        away_team="Fenerbahçe",
        match_date=MATCH_DATE,
        prediction_type="MS1",
        prediction_text="Home win",
        odds=1.85,
        confidence=70,
        analysis=f"analysis {pid}",
        is_premium=is_premium,
        result_status="PENDING",
    )


class TestDeliverList(unittest.TestCase):
    def test_normal_user_gets_every_item_with_premium_redacted(self):
        items = [_prediction(1, False), _prediction(2, True)]
        out = deliver_list(items, "NORMAL")
        self.assertEqual([d["id"] for d in out], [1, 2])
        self.assertEqual(out[0]["analysis"], "analysis 1")
        self.assertFalse(out[0]["redacted"])
        self.assertIsNone(out[1]["analysis"])
        self.assertTrue(out[1]["redacted"])
        # Non-sensitive fields survive redaction
        self.assertEqual(out[1]["prediction_type"], "MS1")
        self.assertEqual(out[1]["odds"], 1.85)

    def test_premium_user_sees_everything(self):
        out = deliver_list([_prediction(2, True)], "PREMIUM")
        self.assertEqual(out[0]["analysis"], "analysis 2")

    def test_premium_coupon_redacts_description_and_nested_analysis(self):
        coupon = Coupon(id=7, title="Weekend", description="why", is_premium=True, result_status="PENDING")
        coupon.predictions = [_prediction(1, False), _prediction(2, False)]
        out = deliver_list([coupon], None)[0]
        self.assertIsNone(out["description"])
        self.assertEqual([p["analysis"] for p in out["predictions"]], [None, None])
        self.assertEqual(out["title"], "Weekend")

    def test_free_coupon_still_gates_premium_picks(self):
        coupon = Coupon(id=8, title="Free", description="open", is_premium=False, result_status="PENDING")
        coupon.predictions = [_prediction(1, False), _prediction(2, True)]
        out = deliver_detail(coupon, "NORMAL")
        self.assertEqual(out["description"], "open")
        self.assertEqual([p["analysis"] for p in out["predictions"]], ["analysis 1", None])


class TestDeliverDetail(unittest.TestCase):
    def test_unentitled_detail_raises_premium_required(self):
        with self.assertRaises(PremiumRequiredError) as ctx:
            deliver_detail(_prediction(3, True), "NORMAL")
        body = ctx.exception.to_dict()
        self.assertEqual(body["error"], "PREMIUM_REQUIRED")
        self.assertTrue(body["premium_required"])
        self.assertEqual(ctx.exception.status_code, 403)

    def test_anonymous_detail_of_free_item(self):
        out = deliver_detail(_prediction(4, False), None)
        self.assertEqual(out["analysis"], "analysis 4")

    def test_admin_detail_of_premium_item(self):
        out = deliver_detail(_prediction(5, True), "ADMIN")
        self.assertEqual(out["analysis"], "analysis 5")


class TestRedact(unittest.TestCase):
    def test_missing_fields_are_ignored(self):
        data = {"title": "x"}
        self.assertEqual(redact(data, ("analysis", "predictions.analysis")), {"title": "x"})


if __name__ == "__main__":
    unittest.main()
