# app/services/mail_service.py
import logging
import re
import smtplib
from html import escape

from sqlmodel import Session

from app.core import email_client
from app.core.errors import ServerError, ValidationError
from app.repositories.user_repo import UserRepository
from app.schemas.mail import MailSent, NotifyUsersRequest, SendMailRequest

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")

DEFAULT_NOTIFY_SUBJECT = "Admin Notification"


def html_to_text(html: str) -> str:
    """Crude plain-text fallback for HTML bodies."""
    return _TAG_RE.sub("", html).strip() or " "


class MailService:
    """
    Admin-initiated email: one-off messages and broadcasts to users.
    Sends happen inside the request; SMTP failures become 500s.
    """

    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo

    def send_custom(self, payload: SendMailRequest) -> None:
        if not payload.to or not payload.subject or not payload.html:
            raise ValidationError("Missing required fields: to, subject, html")
        self._send(
            to_email=payload.to,
            subject=payload.subject,
            text_body=html_to_text(payload.html),
            html_body=payload.html,
        )

    def notify_users(self, session: Session, payload: NotifyUsersRequest) -> tuple[MailSent, str | None]:
        """
        Broadcast `message` to the selected users (bcc).

        Returns the result and an optional message. Without SMTP
        configuration the send is simulated: logged, nothing delivered.
        """
        if not payload.user_ids:
            raise ValidationError("user_ids is required")
        if not payload.message or not payload.message.strip():
            raise ValidationError("message is required")

        users = self.user_repo.list_by_ids(session, payload.user_ids)
        emails = [u.email for u in users if u.email]
        subject = (payload.subject or "").strip() or DEFAULT_NOTIFY_SUBJECT

        if not email_client.is_configured() or not emails:
            logger.info(
                "Email not configured or no recipients; simulating notification "
                "(subject=%r, recipients=%s, preview=%r)",
                subject,
                emails,
                payload.message[:200],
            )
            return (
                MailSent(sent=0, recipients=emails),
                "Simulated send (email not configured)",
            )

        html_body = (
            '<div style="font-family:system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial,sans-serif">'
            + escape(payload.message).replace("\n", "<br>")
            + "</div>"
        )
        self._send(
            to_email=email_client.config.sender,
            subject=subject,
            text_body=payload.message,
            html_body=html_body,
            bcc=emails,
        )
        return MailSent(sent=len(emails), recipients=emails), None

    @staticmethod
    def _send(**kwargs) -> None:
        try:
            email_client.send_email(**kwargs)
        except (RuntimeError, OSError, smtplib.SMTPException) as e:
            logger.exception("Email send failed")
            raise ServerError(f"Failed to send email: {e}")
