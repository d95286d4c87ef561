"""Outbound mail service."""

import logging
from pathlib import Path

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from app.config import get_settings
from app.errors import MailFailed

logger = logging.getLogger("lms_accounts")

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class MailService:
    """Sends HTML e-mail through the configured SMTP relay."""

    def __init__(self) -> None:
        self._client: FastMail | None = None
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def _get_client(self) -> FastMail:
        """Lazy-build the SMTP client so importing the app never needs mail credentials."""
        if self._client is None:
            settings = get_settings()
            config = ConnectionConfig(
                MAIL_USERNAME=settings.MAIL_USERNAME,
                MAIL_PASSWORD=settings.MAIL_PASSWORD,
                MAIL_FROM=settings.MAIL_FROM,
                MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
                MAIL_PORT=settings.MAIL_PORT,
                MAIL_SERVER=settings.MAIL_SERVER,
                MAIL_STARTTLS=settings.MAIL_STARTTLS,
                MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
                USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
                SUPPRESS_SEND=1 if settings.MAIL_SUPPRESS_SEND else 0,
            )
            self._client = FastMail(config)
        return self._client

    def render_password_reset(self, name: str, reset_url: str) -> str:
        """Render the reset e-mail body."""
        template = self._env.get_template("emails/reset_password.html")
        return template.render(name=name, reset_url=reset_url)

    async def send(self, recipient: str, subject: str, html: str) -> None:
        """Send an HTML message. Any transport failure becomes MailFailed."""
        message = MessageSchema(
            subject=subject,
            recipients=[recipient],
            body=html,
            subtype=MessageType.html,
        )
        try:
            await self._get_client().send_message(message)
        except Exception as e:
            logger.error("Failed to send '%s' to %s: %s", subject, recipient, e)
            raise MailFailed() from e

    async def send_password_reset(self, recipient: str, name: str, reset_url: str) -> None:
        """Send the password reset link. A broken template also becomes MailFailed."""
        try:
            html = self.render_password_reset(name, reset_url)
        except TemplateError as e:
            logger.error("Failed to render password reset e-mail: %s", e)
            raise MailFailed() from e
        await self.send(recipient, "Reset Password", html)


_mail_service: MailService | None = None


def get_mail_service() -> MailService:
    """Get singleton mail service instance."""
    global _mail_service
    if _mail_service is None:
        _mail_service = MailService()
    return _mail_service
