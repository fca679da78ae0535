"""
Application configuration.
All settings are loaded from environment variables (or .env).
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: database_url and jwt_secret_key have no defaults - they MUST be set.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma-separated origins. Empty = default list in tipster.main.
    cors_origins: str = ""
    # Trusted proxy IPs (comma-separated). Used for X-Forwarded-For in production.
    trusted_proxy_ips: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"

    # ===========================================
    # AUTH (bearer JWT)
    # ===========================================
    jwt_secret_key: str  # Required, no default
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Login rate limit (brute-force protection)
    login_rate_limit_attempts: int = 5  # per IP
    login_rate_limit_email_attempts: int = 10  # per account
    login_rate_limit_window_seconds: int = 900  # 15 min

    # ===========================================
    # PREMIUM PACKAGES (defaults when site settings row is empty)
    # ===========================================
    premium_monthly_days: int = 30
    premium_yearly_days: int = 365
    premium_monthly_price: float = 50.0
    premium_yearly_price: float = 500.0

    # ===========================================
    # SCHEDULER
    # ===========================================
    scheduler_timezone: str = "Europe/Istanbul"
    # Lead times (days) for the advance-warning passes
    expiry_warning_days_long: int = 7
    expiry_warning_days_short: int = 1
    sweep_time_limit_seconds: int = 600

    # ===========================================
    # RECEIPTS (payment evidence)
    # ===========================================
    receipt_upload_dir: str = "uploads/receipts"
    receipt_max_size_mb: int = 5
    allowed_receipt_extensions: str = ".jpg,.jpeg,.png,.webp"

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("allowed_receipt_extensions")
    @classmethod
    def parse_extensions(cls, v: str) -> str:
        return v.lower().strip()

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure the signing secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("jwt_secret_key must be at least 16 characters")
        if v in ("changeme", "secret", "password", "admin"):
            raise ValueError("jwt_secret_key is too weak, please change it")
        return v

    @field_validator("premium_monthly_days", "premium_yearly_days")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("premium package duration must be a positive number of days")
        return v

    @property
    def allowed_receipt_extensions_set(self) -> set[str]:
        return {ext.strip() for ext in self.allowed_receipt_extensions.split(",") if ext.strip()}

    @property
    def trusted_proxy_ips_set(self) -> set[str]:
        return {ip.strip() for ip in self.trusted_proxy_ips.split(",") if ip.strip()}

    @property
    def receipt_max_size_bytes(self) -> int:
        return self.receipt_max_size_mb * 1024 * 1024

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
