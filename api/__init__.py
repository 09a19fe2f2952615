"""API modules for HTTP interface."""

from api.base import (
    ErrorBody,
    CodeRequestResponse,
    CodeVerificationResponse,
    error_response,
    ErrorMessages,
)
