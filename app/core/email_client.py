# app/core/email_client.py
"""
SMTP delivery for transactional mail (order notifications, admin
broadcasts).

Configuration comes from environment variables, read once at import:

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=store@example.com
    SMTP_PASSWORD=<app password>
    SMTP_FROM_EMAIL=store@example.com
    SMTP_FROM_NAME=UNI10
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true

Without host and credentials the client reports itself unconfigured;
callers decide whether that is an error or a simulated send.
"""

import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

TRUTHY = {"1", "true", "yes", "y"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY


@dataclass(frozen=True)
class SmtpConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    from_email: str
    from_name: str
    use_tls: bool
    use_ssl: bool

    @classmethod
    def from_env(cls) -> "SmtpConfig":
        username = os.getenv("SMTP_USERNAME")
        return cls(
            host=os.getenv("SMTP_HOST"),
            port=int(os.getenv("SMTP_PORT", "587")),
            username=username,
            password=os.getenv("SMTP_PASSWORD"),
            from_email=os.getenv("SMTP_FROM_EMAIL", username or ""),
            from_name=os.getenv("SMTP_FROM_NAME", "UNI10"),
            use_tls=_env_flag("SMTP_USE_TLS", True),
            use_ssl=_env_flag("SMTP_USE_SSL", False),
        )

    @property
    def sender(self) -> str:
        """Address used in From, and as To for bcc-only broadcasts."""
        return self.from_email or self.username or ""

    @property
    def from_header(self) -> str:
        if self.from_email:
            return f"{self.from_name} <{self.from_email}>"
        return self.username or ""


config = SmtpConfig.from_env()


def is_configured() -> bool:
    """True when host and credentials are all present."""
    return bool(config.host and config.username and config.password)


def build_message(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    bcc: list[str] | None = None,
) -> EmailMessage:
    """
    Plain-text message with an optional HTML alternative part.
    """
    msg = EmailMessage()
    msg["From"] = config.from_header
    msg["To"] = to_email
    msg["Subject"] = subject
    if bcc:
        msg["Bcc"] = ", ".join(bcc)

    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


def _connect() -> smtplib.SMTP:
    # SSL on connect (465) takes precedence over STARTTLS (587)
    if config.use_ssl:
        return smtplib.SMTP_SSL(config.host, config.port, timeout=30)

    server = smtplib.SMTP(config.host, config.port, timeout=30)
    if config.use_tls:
        server.starttls()
    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    bcc: list[str] | None = None,
) -> None:
    """
    Send one message, optionally with hidden recipients.

    Raises
    ------
    RuntimeError:
        SMTP host or credentials are missing.
    smtplib.SMTPException / OSError:
        The connection, login or send failed.
    """
    if not is_configured():
        raise RuntimeError(
            "SMTP is not configured. Set SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD."
        )

    msg = build_message(to_email, subject, text_body, html_body, bcc)

    server = _connect()
    try:
        server.login(config.username, config.password)  # type: ignore[arg-type]
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            pass
