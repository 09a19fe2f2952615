"""HTTP routes for client portal login."""

import ipaddress
import logging

import psycopg2
import redis
from fastapi import APIRouter, Request

from api.base import (
    CodeRequestResponse,
    CodeVerificationResponse,
    ErrorMessages,
    error_response,
)
from portal.exceptions import (
    CodeCreationError,
    CodeDeliveryError,
    InvalidCodeError,
    RateLimitedError,
    ValidationFailedError,
)
from portal.service import PortalAuthService
from portal.types import CodeRequest, CodeVerification

logger = logging.getLogger(__name__)

# Database and Valkey failures, answered inside the middleware stack.
_INFRASTRUCTURE_ERRORS = (psycopg2.Error, redis.RedisError)


def _get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def _rate_limited(e: RateLimitedError):
    return error_response(
        429,
        ErrorMessages.RATE_LIMITED.format(seconds=e.retry_after_seconds),
        headers={"Retry-After": str(e.retry_after_seconds)},
    )


def _infrastructure_failure(action: str):
    logger.exception(f"Infrastructure failure during login {action}")
    return error_response(500, ErrorMessages.INTERNAL_ERROR)


def create_portal_router(portal_service: PortalAuthService) -> APIRouter:
    """Create the /send-magic-link router with injected service.

    Handlers are plain `def` so the blocking database and email calls run in
    the threadpool instead of the event loop.
    """
    router = APIRouter(tags=["portal-auth"])

    @router.post("/request", response_model=CodeRequestResponse)
    def request_code(request: Request, body: CodeRequest):
        """Request a login code.

        The response is the same whether or not the email belongs to an account.
        """
        try:
            result = portal_service.request_code(
                email=body.email,
                ip_address=_get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except ValidationFailedError:
            return error_response(400, ErrorMessages.EMAIL_REQUIRED)
        except RateLimitedError as e:
            return _rate_limited(e)
        except CodeCreationError:
            return error_response(500, ErrorMessages.SESSION_CREATE_FAILED)
        except CodeDeliveryError:
            return error_response(500, ErrorMessages.EMAIL_SEND_FAILED)
        except _INFRASTRUCTURE_ERRORS:
            return _infrastructure_failure("request")

        return CodeRequestResponse(message=result.message)

    @router.post("/verify", response_model=CodeVerificationResponse)
    def verify_code(request: Request, body: CodeVerification):
        """Verify a login code and return the client session."""
        try:
            session = portal_service.verify_code(
                email=body.email,
                code=body.otp,
                ip_address=_get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except ValidationFailedError:
            return error_response(400, ErrorMessages.EMAIL_AND_CODE_REQUIRED)
        except RateLimitedError as e:
            return _rate_limited(e)
        except InvalidCodeError:
            return error_response(401, ErrorMessages.INVALID_CODE)
        except _INFRASTRUCTURE_ERRORS:
            return _infrastructure_failure("verify")

        return CodeVerificationResponse(session=session)

    @router.post("/{action}")
    def unknown_action(action: str):
        logger.info(f"Unknown login action: {action}")
        return error_response(400, ErrorMessages.UNKNOWN_ACTION)

    return router
