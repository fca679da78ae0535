"""
Execution: turn ORM content into response dicts according to decide_access.
deliver_list redacts, deliver_detail raises PremiumRequiredError on DENY.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from tipster.core.errors import PremiumRequiredError
from tipster.models.content import Coupon, Prediction
from tipster.paywall.access import decide_access
from tipster.paywall.models import AccessContext, AccessOutcome, ContentType, ContentView
from tipster.utils.metrics import premium_denied_total

logger = logging.getLogger(__name__)


def prediction_to_dict(p: Prediction) -> dict[str, Any]:
    return {
        "id": p.id,
        "league_name": p.league_name,
        "home_team": p.home_team,
        "away_team": p.away_team,
        "match_date": p.match_date.isoformat() if p.match_date else None,
        "prediction_type": p.prediction_type,
        "prediction_text": p.prediction_text,
        "odds": p.odds,
        "confidence": p.confidence,
        "analysis": p.analysis,
        "is_premium": bool(p.is_premium),
        "result_status": p.result_status,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


def coupon_to_dict(c: Coupon) -> dict[str, Any]:
    return {
        "id": c.id,
        "title": c.title,
        "description": c.description,
        "is_premium": bool(c.is_premium),
        "result_status": c.result_status,
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "predictions": [prediction_to_dict(p) for p in c.predictions],
    }


def deliver_list(items: Iterable[Prediction | Coupon], role: str | None) -> list[dict[str, Any]]:
    """Every item is returned; premium ones are redacted for non-entitled requesters."""
    return [_deliver(item, role, ContentView.LIST) for item in items]


def deliver_detail(item: Prediction | Coupon, role: str | None) -> dict[str, Any]:
    return _deliver(item, role, ContentView.DETAIL)


def redact(data: dict[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Null the given fields in place. "a.b" nulls b in every element of list a."""
    for field in fields:
        head, _, rest = field.partition(".")
        if not rest:
            if head in data:
                data[head] = None
            continue
        for child in data.get(head) or []:
            redact(child, (rest,))
    return data


def _deliver(item: Prediction | Coupon, role: str | None, view: ContentView) -> dict[str, Any]:
    content_type = _content_type(item)
    decision = decide_access(
        AccessContext(
            requester_role=role,
            item_is_premium=bool(item.is_premium),
            view=view,
            content_type=content_type,
        )
    )
    if not decision.allowed:
        premium_denied_total.labels(content_type=content_type.value).inc()
        logger.info("premium_content_denied", extra={"role": role})
        raise PremiumRequiredError(
            "This content is available to premium members only",
            content_type=content_type.value,
            content_id=item.id,
        )

    if content_type == ContentType.PREDICTION:
        data = prediction_to_dict(item)
    else:
        data = coupon_to_dict(item)
        # Premium picks inside a free coupon are still gated individually
        data["predictions"] = [
            _gate_nested(p, raw, role) for p, raw in zip(item.predictions, data["predictions"])
        ]

    if decision.outcome == AccessOutcome.ALLOW_REDACTED:
        redact(data, decision.redact_fields)
    data["redacted"] = decision.outcome == AccessOutcome.ALLOW_REDACTED
    return data


def _gate_nested(p: Prediction, data: dict[str, Any], role: str | None) -> dict[str, Any]:
    decision = decide_access(
        AccessContext(requester_role=role, item_is_premium=bool(p.is_premium), view=ContentView.LIST)
    )
    if decision.outcome == AccessOutcome.ALLOW_REDACTED:
        redact(data, decision.redact_fields)
    return data


def _content_type(item: Prediction | Coupon) -> ContentType:
    if isinstance(item, Coupon):
        return ContentType.COUPON
    return ContentType.PREDICTION
