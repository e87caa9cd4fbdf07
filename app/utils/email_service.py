import asyncio
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import logging
from typing import List, Optional

from app.core.config import Config

logger = logging.getLogger(__name__)

APP_NAME = Config.APP_NAME


@dataclass
class EmailMessage:
    to: str
    subject: str
    body: str
    is_html: bool = True


def send_email(to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> bool:
    """
    Send an email using SMTP

    Args:
        to_email: Recipient email address
        subject: Email subject
        html_content: HTML content of the email
        text_content: Plain text content (optional, defaults to stripped HTML)

    Returns:
        True if email sent successfully, False otherwise
    """
    if not Config.SMTP_USER or not Config.SMTP_PASSWORD:
        logger.warning(f"SMTP credentials not configured. Email to {to_email} not sent. Please configure SMTP_USER and SMTP_PASSWORD environment variables.")
        return False

    try:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = Config.FROM_EMAIL
        message["To"] = to_email

        if not text_content:
            text_content = html_content.replace("<br>", "\n").replace("</p>", "\n")

        message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(Config.SMTP_HOST, Config.SMTP_PORT) as server:
            server.starttls()
            server.login(Config.SMTP_USER, Config.SMTP_PASSWORD)
            server.send_message(message)

        logger.info(f"Email sent successfully to {to_email}")
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {str(e)}")
        return False


def _base_template(title: str, content: str) -> str:
    return f"""
    <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #ddd; border-radius: 5px;">
                <h2 style="color: #4CAF50;">{title}</h2>
                {content}
                <br>
                <p>Best regards,<br>
                {APP_NAME} Team</p>
            </div>
        </body>
    </html>
    """


def _funko_details(name: str, price: float, category: str, funko_id: int) -> str:
    return f"""
                <div style="background-color: #f5f5f5; padding: 15px; border-left: 4px solid #4CAF50; margin: 20px 0;">
                    <p><strong>ID:</strong> {funko_id}</p>
                    <p><strong>Name:</strong> {name}</p>
                    <p><strong>Price:</strong> {price:.2f} €</p>
                    <p><strong>Category:</strong> {category}</p>
                </div>
    """


def funko_created_email(to_email: str, name: str, price: float, category: str, funko_id: int) -> EmailMessage:
    content = "<p>A new product has been added to the catalog.</p>" + _funko_details(name, price, category, funko_id)
    return EmailMessage(
        to=to_email,
        subject="Nuevo Producto",
        body=_base_template("Nuevo Producto Creado", content),
    )


def funko_updated_email(to_email: str, name: str, price: float, category: str, funko_id: int) -> EmailMessage:
    content = "<p>A product in the catalog has been updated.</p>" + _funko_details(name, price, category, funko_id)
    return EmailMessage(
        to=to_email,
        subject="Producto Actualizado",
        body=_base_template("Producto Actualizado", content),
    )


class EmailService:
    """
    Unbounded outgoing mail queue drained by a single worker task.

    ``enqueue_email`` returns as soon as the message is queued; delivery
    happens later in ``deliver``, which each backend implements.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    async def enqueue_email(self, message: EmailMessage) -> None:
        await self._queue.put(message)
        logger.debug(f"Email to {message.to} queued ({self._queue.qsize()} pending)")

    async def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._run(), name="email-worker")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        await asyncio.gather(self._worker, return_exceptions=True)
        self._worker = None

    async def join(self) -> None:
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.deliver(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Email delivery to {message.to} failed: {str(e)}")
            finally:
                self._queue.task_done()

    async def deliver(self, message: EmailMessage) -> None:
        raise NotImplementedError


class SmtpEmailService(EmailService):
    async def deliver(self, message: EmailMessage) -> None:
        html = message.body if message.is_html else f"<p>{message.body}</p>"
        await asyncio.to_thread(send_email, message.to, message.subject, html)


class MemoryEmailService(EmailService):
    """Development backend: logs messages and keeps them in an outbox."""

    def __init__(self):
        super().__init__()
        self.outbox: List[EmailMessage] = []

    async def deliver(self, message: EmailMessage) -> None:
        self.outbox.append(message)
        logger.info(f"[memory mail] to={message.to} subject={message.subject}")


def create_email_service() -> EmailService:
    if Config.EMAIL_BACKEND.lower() == "smtp":
        return SmtpEmailService()
    return MemoryEmailService()
