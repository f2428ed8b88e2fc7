# app/schemas/mail.py
import uuid

from pydantic import EmailStr
from sqlmodel import SQLModel


class SendMailRequest(SQLModel):
    to: EmailStr | None = None
    subject: str | None = None
    html: str | None = None


class NotifyUsersRequest(SQLModel):
    user_ids: list[uuid.UUID] = []
    message: str | None = None
    subject: str | None = None


class MailSent(SQLModel):
    sent: int
    recipients: list[str]
