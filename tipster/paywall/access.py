"""
Decision only: decide_access(ctx) -> AccessDecision.
Pure function, no I/O. Lists redact premium fields, detail views deny.
"""
from __future__ import annotations

from tipster.models.user import UserRole
from tipster.paywall.models import (
    AccessContext,
    AccessDecision,
    AccessOutcome,
    ContentType,
    ContentView,
)

# Free-text fields that carry the paid value of an item
REDACT_FIELDS: dict[ContentType, tuple[str, ...]] = {
    ContentType.PREDICTION: ("analysis",),
    ContentType.COUPON: ("description", "predictions.analysis"),
}

_ENTITLED_ROLES = frozenset({UserRole.ADMIN.value, UserRole.PREMIUM.value})


def decide_access(ctx: AccessContext) -> AccessDecision:
    """
    Decide what a requester gets for one content item.

    - free item -> ALLOW
    - premium item, ADMIN or PREMIUM requester -> ALLOW
    - premium item, NORMAL or anonymous requester -> ALLOW_REDACTED in lists, DENY in detail

    The role must already be reconciled; an expired PREMIUM is downgraded before it gets here.
    """
    if not ctx.item_is_premium:
        return AccessDecision(outcome=AccessOutcome.ALLOW)

    if ctx.requester_role in _ENTITLED_ROLES:
        return AccessDecision(outcome=AccessOutcome.ALLOW)

    if ctx.view == ContentView.DETAIL:
        return AccessDecision(outcome=AccessOutcome.DENY)

    return AccessDecision(
        outcome=AccessOutcome.ALLOW_REDACTED,
        redact_fields=REDACT_FIELDS[ctx.content_type],
    )
