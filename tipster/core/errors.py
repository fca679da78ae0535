"""
Error taxonomy for the premium subsystem.

Business outcomes (validation, not found, forbidden, conflict, premium required)
are raised by services and surfaced to the caller as-is; StorageFailure wraps
durable-layer errors after the unit of work has been rolled back.
"""


class PremiumError(Exception):
    """Base exception for premium lifecycle, payment and access failures."""

    error_code = "PREMIUM_ERROR"
    status_code = 400

    def __init__(self, message: str, **details):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        d: dict = {"error": self.error_code, "message": self.message}
        d.update({k: v for k, v in self.details.items() if v is not None})
        return d


class ValidationError(PremiumError):
    """Malformed or out-of-range input (amount <= 0, unknown package, bad days)."""

    error_code = "VALIDATION_FAILED"
    status_code = 400


class NotFoundError(PremiumError):
    error_code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(PremiumError):
    """Ownership mismatch, e.g. attaching evidence to another user's payment."""

    error_code = "FORBIDDEN"
    status_code = 403


class ConflictError(PremiumError):
    """Duplicate PENDING request or re-resolving an already resolved payment."""

    error_code = "CONFLICT"
    status_code = 409


class StorageFailure(PremiumError):
    error_code = "STORAGE_FAILURE"
    status_code = 503


class PremiumRequiredError(PremiumError):
    """
    Detail view of premium content requested without entitlement.
    Distinct from ForbiddenError so clients can offer the upgrade flow.
    """

    error_code = "PREMIUM_REQUIRED"
    status_code = 403

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["premium_required"] = True
        return d
