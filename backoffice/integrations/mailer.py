"""
Back Office — Transactional e-mail over SMTP

smtplib is blocking, so delivery runs in Starlette's threadpool.
"""
import logging
import smtplib
from email.message import EmailMessage

from starlette.concurrency import run_in_threadpool

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import EmailDeliveryError
from backoffice.models.order import Order
from backoffice.models.user import User

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _deliver(self, message: EmailMessage) -> None:
        s = self.settings
        with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT) as smtp:
            if s.SMTP_STARTTLS:
                smtp.starttls()
            if s.SMTP_USERNAME:
                smtp.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
            smtp.send_message(message)

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[tuple[str, bytes, str]] | None = None,
    ) -> None:
        """attachments: (filename, data, mime type) triples."""
        message = EmailMessage()
        message["From"] = self.settings.MAIL_FROM
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        for filename, data, mime in attachments or []:
            maintype, subtype = mime.split("/", 1)
            message.add_attachment(data, maintype=maintype, subtype=subtype, filename=filename)
        try:
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Mail '%s' to %s failed: %s", subject, to, exc)
            raise EmailDeliveryError(f"Could not send e-mail to {to}.") from exc
        logger.info("Mail '%s' sent to %s", subject, to)

    async def send_password_creation(self, user: User, token: str) -> None:
        link = f"{self.settings.FRONTEND_URL}/set-password?token={token}"
        await self.send(
            user.email,
            "Create your password",
            f"Hello {user.first_name},\n\n"
            f"An account '{user.username}' was created for you at {self.settings.STORE_NAME}.\n"
            f"Choose your password here (valid {self.settings.PASSWORD_TOKEN_TTL_MINUTES} minutes):\n"
            f"{link}\n",
        )

    async def send_password_reset(self, user: User, token: str) -> None:
        link = f"{self.settings.FRONTEND_URL}/set-password?token={token}"
        await self.send(
            user.email,
            "Reset your password",
            f"Hello {user.first_name},\n\n"
            f"Use this link to choose a new password "
            f"(valid {self.settings.PASSWORD_TOKEN_TTL_MINUTES} minutes):\n{link}\n\n"
            f"If you did not ask for this, ignore this message.\n",
        )

    async def send_order_confirmation(self, order: Order, invoice_pdf: bytes) -> None:
        await self.send(
            order.customer_email,
            f"Order {order.order_number} confirmed",
            f"Thank you for your order {order.order_number}.\n"
            f"Total paid: {order.total} €.\n"
            f"Your invoice is attached.\n\n{self.settings.STORE_NAME}\n",
            attachments=[(f"facture-{order.order_number}.pdf", invoice_pdf, "application/pdf")],
        )
