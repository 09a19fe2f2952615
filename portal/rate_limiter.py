"""Throttling for login code requests and verification attempts.

Uses Valkey counters with a sliding window TTL - each attempt resets the
expiry, so hammering extends the lockout. Counters are keyed by the
submitted email or client IP and never by lookup result, so throttling
behaves identically for known and unknown accounts.
"""

from enum import Enum

from clients.valkey_client import ValkeyClient
from portal.config import PortalConfig
from portal.exceptions import RateLimitedError


class Bucket(Enum):
    """Independent throttle counters."""

    REQUEST_EMAIL = "request_email"
    REQUEST_IP = "request_ip"
    VERIFY_EMAIL = "verify_email"


class RateLimiter:
    """Rate limiting for the login flow using Valkey."""

    KEY_PREFIX = "ratelimit:portal:"

    def __init__(self, valkey: ValkeyClient, config: PortalConfig):
        self._valkey = valkey
        self._config = config
        self._window_seconds = config.rate_limit_window_minutes * 60
        self._limits = {
            Bucket.REQUEST_EMAIL: config.request_attempts_per_email,
            Bucket.REQUEST_IP: config.request_attempts_per_ip,
            Bucket.VERIFY_EMAIL: config.verify_attempts_per_email,
        }

    def _key(self, bucket: Bucket, subject: str) -> str:
        """Generate rate limit key (subject normalized to lowercase)."""
        return f"{self.KEY_PREFIX}{bucket.value}:{subject.lower()}"

    def check(self, bucket: Bucket, subject: str | None) -> None:
        """Count an attempt and raise if over the bucket's limit.

        A missing subject (e.g. unknown client IP) is not counted.

        Raises:
            RateLimitedError: If rate limit exceeded.
        """
        if not self._config.rate_limit_enabled or not subject:
            return

        key = self._key(bucket, subject)
        count = self._valkey.hit(key, self._window_seconds)

        if count > self._limits[bucket]:
            ttl = self._valkey.ttl(key)
            raise RateLimitedError(retry_after_seconds=max(ttl, 1))

    def check_request(self, email: str, ip_address: str | None) -> None:
        """Throttle a code request by IP first, then by email."""
        self.check(Bucket.REQUEST_IP, ip_address)
        self.check(Bucket.REQUEST_EMAIL, email)

    def check_verify(self, email: str) -> None:
        """Throttle a verification attempt by email."""
        self.check(Bucket.VERIFY_EMAIL, email)

    def reset(self, email: str) -> None:
        """Clear per-email counters after a successful login."""
        if not self._config.rate_limit_enabled:
            return
        self._valkey.delete(self._key(Bucket.REQUEST_EMAIL, email))
        self._valkey.delete(self._key(Bucket.VERIFY_EMAIL, email))

    def get_remaining_attempts(self, bucket: Bucket, subject: str) -> int:
        """Get remaining attempts before the bucket locks."""
        current = self._valkey.get(self._key(bucket, subject))
        if current is None:
            return self._limits[bucket]
        return max(self._limits[bucket] - int(current), 0)
