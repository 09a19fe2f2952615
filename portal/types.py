"""Pydantic models for the client portal login domain."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ClientUser(BaseModel):
    """A person entitled to portal access. Managed by staff tooling."""

    id: UUID
    email: str
    name: str
    company_id: UUID
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class Company(BaseModel):
    """The organization a client user belongs to."""

    id: UUID
    name: str


class LoginCode(BaseModel):
    """A single-use numeric code awaiting verification."""

    id: UUID
    client_user_id: UUID
    otp_code: str = Field(..., description="Zero-padded numeric code")
    created_at: datetime
    expires_at: datetime
    verified: bool  # Required - fail closed, no default


class CodeRequest(BaseModel):
    """Request payload for a login code.

    Fields are optional so that missing values reach the handler and get the
    portal's own validation message instead of a framework 422.
    """

    email: str | None = None


class CodeVerification(BaseModel):
    """Request payload for code verification."""

    email: str | None = None
    otp: str | None = None


class CodeRequestResult(BaseModel):
    """Acknowledgment of a code request. Identical for known and unknown emails."""

    accepted: bool
    message: str


class SessionUser(BaseModel):
    """User projection embedded in a client session."""

    id: str
    name: str
    email: str
    company_id: str
    company_name: str


class ClientSession(BaseModel):
    """Authenticated identity handed to the caller after verification.

    Not stored server side. `id` is the consumed login code's id.
    """

    id: str
    user: SessionUser
