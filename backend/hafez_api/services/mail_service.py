"""
Hafez Quraan Backend — SendGrid Mail Dispatcher
=================================================

What:  Sends the verification-code email through SendGrid's v3 REST API.
How:   One POST to /v3/mail/send per code using an httpx.AsyncClient owned
       by the dispatcher. The client is created in the app lifespan and
       closed on shutdown.
Who:   POST /send-otp (via the MailDispatcher dependency).

Failure mapping (all → UpstreamServiceError → HTTP 500):
    no API key configured          → "Email service is not configured"
    401 / 403 from SendGrid        → authorization_failed=True, key-specific message
    other non-2xx / network error  → "Failed to send email: <provider message>"

No retries: the client generated the code and can simply ask again.
"""

import html
import logging
from typing import Optional

import httpx
from fastapi import Request

from hafez_api.config import Settings
from hafez_api.exceptions import UpstreamServiceError
from hafez_api.services.mail_base import MailDispatcher

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your Verification Code - Hafez Quraan"

LOGO_URL = (
    "https://raw.githubusercontent.com/AhmedAtalla92/quran-memorization-app/main/"
    "Hafez%20Quraan%20Logo.png"
)

OTP_EMAIL_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #ffffff;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="text-align: center; margin-bottom: 30px;">
      <img src="{logo_url}" alt="Hafez Quraan" width="100" height="100" style="display: block; margin: 0 auto;">
    </div>
    <div style="background-color: #f9f9f9; border: 1px solid #e0e0e0; border-radius: 8px; padding: 30px; margin-bottom: 20px;">
      <h2 style="color: #1a4d2e; font-size: 20px; margin: 0 0 15px 0; text-align: center;">Verification Code</h2>
      <p style="color: #333333; font-size: 15px; line-height: 1.5; margin: 0 0 20px 0; text-align: center;">
        Here is your verification code for Hafez Quraan:
      </p>
      <div style="background-color: #ffffff; border: 2px solid #1a4d2e; border-radius: 6px; padding: 20px; text-align: center; margin: 20px 0;">
        <div style="font-size: 32px; font-weight: bold; color: #1a4d2e; letter-spacing: 5px; font-family: 'Courier New', monospace;">
          {otp}
        </div>
      </div>
      <p style="color: #666666; font-size: 13px; line-height: 1.5; margin: 15px 0 0 0; text-align: center;">
        This code expires in 5 minutes
      </p>
    </div>
    <div style="background-color: #fffbf0; border-left: 3px solid #d4af37; padding: 12px 15px; margin-bottom: 20px;">
      <p style="color: #666666; font-size: 13px; line-height: 1.5; margin: 0;">
        <strong>Security:</strong> Never share this code. We will never ask for it.
      </p>
    </div>
    <div style="text-align: center; padding-top: 20px; border-top: 1px solid #e0e0e0;">
      <p style="color: #999999; font-size: 12px; line-height: 1.5; margin: 0 0 5px 0;">
        Hafez Quraan - Quran Memorization App
      </p>
      <p style="color: #999999; font-size: 11px; line-height: 1.5; margin: 0;">
        <a href="https://hafezquraan.com" style="color: #1a4d2e; text-decoration: none;">hafezquraan.com</a>
      </p>
    </div>
  </div>
</body>
</html>
"""


def render_otp_email(otp: str) -> str:
    """The code is client-supplied, so it is escaped before going into HTML."""
    return OTP_EMAIL_TEMPLATE.format(logo_url=LOGO_URL, otp=html.escape(otp))


class SendGridDispatcher(MailDispatcher):
    """
    Args:
        settings: Source of the API key, sender identity and timeout.
        client: Optional pre-built httpx client (tests pass one backed by
                httpx.MockTransport). When omitted the dispatcher builds and
                owns its own client.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.api_key = settings.sendgrid_api_key.strip()
        self.configured = settings.mail_configured
        self.api_url = settings.sendgrid_api_url
        self.from_email = settings.mail_from_email
        self.from_name = settings.mail_from_name
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.mail_timeout_seconds)

        if not self.configured:
            logger.warning("SENDGRID_API_KEY is not set; POST /send-otp will fail until it is")

    def build_payload(self, email: str, otp: str) -> dict:
        return {
            "personalizations": [{"to": [{"email": email}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": OTP_SUBJECT,
            "content": [{"type": "text/html", "value": render_otp_email(otp)}],
        }

    async def send_otp(self, email: str, otp: str) -> None:
        if not self.configured:
            raise UpstreamServiceError(message="Email service is not configured")

        try:
            response = await self.client.post(
                self.api_url,
                json=self.build_payload(email, otp),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error("SendGrid request failed for %s: %s", email, str(e))
            raise UpstreamServiceError(
                message=f"Failed to send email: {e}",
                context={"error_type": type(e).__name__},
            )

        if response.status_code in (401, 403):
            logger.error("SendGrid rejected the API key (HTTP %d)", response.status_code)
            raise UpstreamServiceError(
                message="Failed to send email: the email provider rejected the API key",
                authorization_failed=True,
                status_code=response.status_code,
            )

        if response.is_error:
            detail = self._error_detail(response)
            logger.error("SendGrid error for %s (HTTP %d): %s", email, response.status_code, detail)
            raise UpstreamServiceError(
                message=f"Failed to send email: {detail}",
                status_code=response.status_code,
            )

        logger.info("OTP email sent to: %s", email)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        """SendGrid reports failures as {"errors": [{"message": ...}, ...]}."""
        try:
            errors = response.json().get("errors") or []
            messages = [e.get("message") for e in errors if isinstance(e, dict) and e.get("message")]
            if messages:
                return "; ".join(messages)
        except (ValueError, AttributeError):
            pass
        return f"HTTP {response.status_code}"

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def get_mail_dispatcher(request: Request) -> MailDispatcher:
    """FastAPI dependency: the dispatcher built by the lifespan handler."""
    return request.app.state.mail_dispatcher
