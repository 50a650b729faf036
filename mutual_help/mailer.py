from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from mutual_help.config import get_settings
from mutual_help.exceptions import MailError
from mutual_help.logging_config import get_logger

LOGGER = get_logger(__name__)


def send_mail(to_name: str, to_email: str, subject: str, text: str) -> None:
    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_email:
        LOGGER.warning("SMTP is not configured, mail %r to %s not sent", subject, to_email)
        return

    msg = MIMEMultipart()
    msg["From"] = formataddr((settings.mail_sender_name, settings.smtp_email))
    msg["To"] = formataddr((to_name, to_email))
    msg["Subject"] = subject
    msg.attach(MIMEText(text, "plain", "utf-8"))

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            if settings.smtp_password:
                server.login(settings.smtp_email, settings.smtp_password)
            server.sendmail(settings.smtp_email, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        raise MailError(f"Couldn't send {subject!r} to {to_email}") from e


def send_welcome_email(name: str, email: str) -> None:
    sender = get_settings().mail_sender_name
    text = f"""Hi {name}!

Thank you for registering to our website. {sender} team wants to welcome you to our community!

Best Regards,
{sender} team
"""
    try:
        send_mail(name, email, "Confirmation", text)
    except MailError:
        LOGGER.exception("Welcome email to %s failed", email)


def send_reset_password_email(name: str, email: str, reset_token: str) -> None:
    settings = get_settings()
    text = f"""Hi {name}!

You've requested to reset your password. Click this link to reset your password: {settings.reset_password_url}?token={reset_token}

If it wasn't you, just ignore this email.

Best Regards,
{settings.mail_sender_name} team
"""
    try:
        send_mail(name, email, "Reset Your Password", text)
    except MailError:
        LOGGER.exception("Reset password email to %s failed", email)
