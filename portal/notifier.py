"""Login code email rendering and delivery."""

import html
import logging

from clients.email_client import EmailGatewayClient
from portal.config import PortalConfig
from portal.types import ClientUser

logger = logging.getLogger(__name__)

_TEMPLATE = """\
<div style="font-family: system-ui, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #1a1a1a; font-size: 24px;">Hej {name}!</h1>
  <p style="color: #4a4a4a; font-size: 16px;">Din engångskod för att logga in i {app_name} är:</p>
  <div style="background: #f4f4f4; padding: 20px; text-align: center; border-radius: 8px; margin: 24px 0;">
    <span style="font-size: 32px; font-weight: bold; letter-spacing: 4px; color: #1a1a1a;">{code}</span>
  </div>
  <p style="color: #666; font-size: 14px;">Koden är giltig i {minutes} minuter.</p>
  <p style="color: #666; font-size: 14px;">Om du inte begärt denna kod kan du ignorera detta meddelande.</p>
  <hr style="border: none; border-top: 1px solid #eee; margin: 32px 0;">
  <p style="color: #999; font-size: 12px;">{signature}</p>
</div>
"""


def render_code_email(name: str, code: str, minutes: int, app_name: str, signature: str) -> str:
    """Render the login code email body. All text values are HTML-escaped."""
    return _TEMPLATE.format(
        name=html.escape(name),
        code=html.escape(code),
        minutes=minutes,
        app_name=html.escape(app_name),
        signature=html.escape(signature),
    )


class LoginCodeNotifier:
    """Delivers login codes by email through the gateway."""

    def __init__(self, email_client: EmailGatewayClient, config: PortalConfig):
        self._email_client = email_client
        self._config = config

    def send_code(self, user: ClientUser, code: str) -> None:
        """Email a login code to the user.

        Raises:
            EmailGatewayError: If the gateway rejects or does not answer in time.
        """
        body = render_code_email(
            name=user.name,
            code=code,
            minutes=self._config.code_expiry_minutes,
            app_name=self._config.app_name,
            signature=self._config.signature,
        )
        self._email_client.send_email(
            to=user.email,
            subject=self._config.email_subject,
            html=body,
            sender=self._config.email_sender,
        )
        logger.info(f"Login code email sent to user {user.id}")
