"""
Access gate for premium content.
Decision (access) and execution (delivery) are split; the contract is AccessContext.
"""
from tipster.paywall.access import decide_access
from tipster.paywall.delivery import deliver_detail, deliver_list, redact
from tipster.paywall.models import (
    AccessContext,
    AccessDecision,
    AccessOutcome,
    ContentType,
    ContentView,
)

__all__ = [
    "AccessContext",
    "AccessDecision",
    "AccessOutcome",
    "ContentType",
    "ContentView",
    "decide_access",
    "deliver_detail",
    "deliver_list",
    "redact",
]
