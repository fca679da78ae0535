"""
Login throttling in Redis.

Two fixed-window counters per attempt: one keyed on the caller IP, one keyed
on the account email. An attempt is refused once either is over its limit.
"""
import logging

import redis
from starlette.requests import Request

from tipster.core.config import settings

logger = logging.getLogger("auth")


def get_client_ip(request: Request) -> str:
    """Client IP; X-Forwarded-For is honoured only behind a trusted proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and settings.app_env == "production":
        trusted = settings.trusted_proxy_ips_set
        if trusted and request.client and request.client.host in trusted:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


def _client() -> redis.Redis:
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


def _limits(client_ip: str, email: str | None) -> list[tuple[str, int]]:
    limits = [(f"login_attempts:ip:{client_ip}", settings.login_rate_limit_attempts)]
    account = (email or "").strip().lower()
    if account:
        limits.append((f"login_attempts:email:{account}", settings.login_rate_limit_email_attempts))
    return limits


def check_login_rate_limit(client_ip: str, email: str | None = None) -> bool:
    """
    True if the attempt may proceed, False once either counter is over its limit.
    Every call counts against both counters.
    """
    try:
        client = _client()
        allowed = True
        for key, limit in _limits(client_ip, email):
            current = client.incr(key)
            if current == 1:
                client.expire(key, settings.login_rate_limit_window_seconds)
            if current > limit:
                logger.warning("login_rate_limited", extra={"key": key, "attempts": current})
                allowed = False
        return allowed
    except redis.RedisError as e:
        logger.warning("login_rate_limit_redis_error", extra={"error": str(e)})
        return True  # fail open while Redis is down


def reset_login_attempts(client_ip: str, email: str | None = None) -> None:
    """Clear both counters after a successful login."""
    try:
        _client().delete(*[key for key, _ in _limits(client_ip, email)])
    except redis.RedisError as e:
        logger.warning("login_rate_limit_redis_error", extra={"error": str(e)})
