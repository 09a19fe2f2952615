"""Response shapes and error messages for the portal login endpoints."""

from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from portal.types import ClientSession


class ErrorBody(BaseModel):
    """Error response body. The message is safe to show to end users."""

    error: str = Field(..., description="Human-readable error message")


class CodeRequestResponse(BaseModel):
    """Response to a code request. Identical for known and unknown accounts."""

    success: bool = True
    message: str


class CodeVerificationResponse(BaseModel):
    """Response to a successful verification."""

    success: bool = True
    session: ClientSession


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create an error response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorBody(error=message).model_dump(mode="json"),
        headers=headers,
    )


class ErrorMessages:
    """
    User-facing error messages.

    Identity-ambiguous failures share one message per operation; see
    INVALID_CODE. Infrastructure failures have their own generic messages so
    operators can tell them apart.
    """

    # Validation
    EMAIL_REQUIRED = "Email krävs"
    EMAIL_AND_CODE_REQUIRED = "E-post och kod krävs"
    INVALID_REQUEST = "Ogiltig förfrågan"
    UNKNOWN_ACTION = "Okänd åtgärd"

    # Authentication
    INVALID_CODE = "Ogiltig eller utgången kod"
    RATE_LIMITED = "För många försök. Vänta {seconds} sekunder och försök igen."

    # Infrastructure
    SESSION_CREATE_FAILED = "Kunde inte skapa session"
    EMAIL_SEND_FAILED = "Kunde inte skicka e-post"
    INTERNAL_ERROR = "Ett fel uppstod"
    NOT_FOUND = "Hittades inte"
