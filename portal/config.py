"""Client portal login configuration."""

from pydantic import BaseModel, Field


class PortalConfig(BaseModel):
    """
    Client portal login configuration.

    Durations are in minutes unless the name says otherwise.
    Secrets are not configured here; they come from Vault.
    """

    # Login code settings
    code_expiry_minutes: int = Field(
        default=15,
        description="How long a login code remains valid",
        ge=1,
        le=60,
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Whether code requests and verifications are throttled",
    )
    request_attempts_per_email: int = Field(
        default=5,
        description="Max code requests per email per window",
        ge=1,
        le=50,
    )
    request_attempts_per_ip: int = Field(
        default=20,
        description="Max code requests per client IP per window",
        ge=1,
        le=500,
    )
    verify_attempts_per_email: int = Field(
        default=10,
        description="Max verification attempts per email per window",
        ge=1,
        le=50,
    )
    rate_limit_window_minutes: int = Field(
        default=15,
        description="Rate limit window duration",
        ge=1,
        le=60,
    )

    # Email delivery
    email_timeout_seconds: int = Field(
        default=10,
        description="Timeout for the email gateway call",
        ge=1,
        le=60,
    )
    email_subject: str = Field(
        default="Din inloggningskod till IGC Kundportal",
        description="Subject line of the login code email",
    )
    email_sender: str = Field(
        default="auth",
        description="Gateway sender identity for login code emails",
    )

    # Application
    app_name: str = Field(
        default="IGC Kundportal",
        description="Application name shown in emails",
    )
    signature: str = Field(
        default="Interim Growth Collective",
        description="Footer line of outgoing emails",
    )
    unknown_company_name: str = Field(
        default="Okänt företag",
        description="Company name used when the company lookup fails",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the login endpoints",
    )
