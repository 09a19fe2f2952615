"""Passwordless one-time-code login for the client portal."""

from portal.exceptions import (
    PortalAuthError,
    ValidationFailedError,
    InvalidCodeError,
    RateLimitedError,
    CodeCreationError,
    CodeDeliveryError,
)
from portal.types import (
    ClientUser,
    Company,
    LoginCode,
    CodeRequest,
    CodeVerification,
    CodeRequestResult,
    SessionUser,
    ClientSession,
)
from portal.config import PortalConfig
from portal.outcomes import VerificationOutcome, classify_failure
from portal.database import PortalDatabase
from portal.rate_limiter import RateLimiter, Bucket
from portal.security_logger import SecurityLogger, SecurityEvent
from portal.notifier import LoginCodeNotifier, render_code_email
from portal.issuer import CodeIssuer, IssuedCode, generate_code, normalize_email
from portal.session import build_session
from portal.verifier import CodeVerifier
from portal.service import PortalAuthService, ACKNOWLEDGMENT
