"""
Unit tests for decide_access: pure logic, no DB.
"""
import unittest

from tipster.paywall.access import decide_access
from tipster.paywall.models import AccessContext, AccessOutcome, ContentType, ContentView


class TestDecideAccess(unittest.TestCase):
    def _decide(self, role, is_premium, view, content_type=ContentType.PREDICTION):
        return decide_access(
            AccessContext(
                requester_role=role,
                item_is_premium=is_premium,
                view=view,
                content_type=content_type,
            )
        )

    def test_free_items_always_allowed(self):
        for role in (None, "NORMAL", "PREMIUM", "ADMIN"):
            for view in ContentView:
                decision = self._decide(role, False, view)
                self.assertEqual(decision.outcome, AccessOutcome.ALLOW)
                self.assertEqual(decision.redact_fields, ())

    def test_entitled_roles_see_premium_items(self):
        for role in ("PREMIUM", "ADMIN"):
            for view in ContentView:
                self.assertEqual(self._decide(role, True, view).outcome, AccessOutcome.ALLOW)

    def test_list_view_redacts_for_unentitled(self):
        for role in (None, "NORMAL"):
            decision = self._decide(role, True, ContentView.LIST)
            self.assertEqual(decision.outcome, AccessOutcome.ALLOW_REDACTED)
            self.assertEqual(decision.redact_fields, ("analysis",))
            self.assertTrue(decision.allowed)

    def test_detail_view_denies_for_unentitled(self):
        for role in (None, "NORMAL"):
            decision = self._decide(role, True, ContentView.DETAIL)
            self.assertEqual(decision.outcome, AccessOutcome.DENY)
            self.assertFalse(decision.allowed)

    def test_coupon_redaction_reaches_nested_predictions(self):
        decision = self._decide("NORMAL", True, ContentView.LIST, ContentType.COUPON)
        self.assertEqual(decision.redact_fields, ("description", "predictions.analysis"))

    def test_unknown_role_is_treated_as_unentitled(self):
        self.assertEqual(self._decide("GUEST", True, ContentView.DETAIL).outcome, AccessOutcome.DENY)


if __name__ == "__main__":
    unittest.main()
