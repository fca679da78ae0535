from tipster.models.user import User, UserRole
from tipster.models.payment import Payment, PaymentStatus, PackageType
from tipster.models.site_settings import SiteSettings
from tipster.models.audit_log import AuditLog
from tipster.models.content import Coupon, Prediction, coupon_predictions

__all__ = [
    "User", "UserRole", "Payment", "PaymentStatus", "PackageType", "SiteSettings",
    "AuditLog", "Coupon", "Prediction", "coupon_predictions",
]
