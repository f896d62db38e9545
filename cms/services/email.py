import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from cms.core.config import settings
from cms.templating import TEMPLATES_DIR

logger = logging.getLogger(__name__)

# Plain-text parts must not be HTML-escaped
email_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def _link(path: str, **params: str) -> str:
    return f"{settings.site_url.rstrip('/')}{path}?{urlencode(params)}"


def build_activation_message(username: str, email: str, token: str) -> MIMEMultipart:
    link = _link("/auth/activate-account", email=email, token=token)
    context = {"username": username, "link": link}
    return _build_message(
        to=email,
        subject="Account activation",
        text_template="email/activate_account.txt",
        html_template="email/activate_account.html",
        context=context,
    )


def build_password_reset_message(email: str, token: str) -> MIMEMultipart:
    link = _link("/auth/reset-password", email=email, token=token)
    context = {
        "link": link,
        "token": token,
        "expire_minutes": settings.password_reset_expire_minutes,
    }
    return _build_message(
        to=email,
        subject="Reset Password",
        text_template="email/reset_password.txt",
        html_template="email/reset_password.html",
        context=context,
    )


def _build_message(
    to: str, subject: str, text_template: str, html_template: str, context: dict
) -> MIMEMultipart:
    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = settings.smtp_from_email or "no-reply@example.com"
    message["To"] = to
    message.attach(MIMEText(email_templates.get_template(text_template).render(context), "plain"))
    message.attach(MIMEText(email_templates.get_template(html_template).render(context), "html"))
    return message


async def send_activation_email(username: str, email: str, token: str) -> None:
    """Send the account activation link to a newly registered user."""
    await _send(build_activation_message(username, email, token))


async def send_password_reset_email(email: str, token: str) -> None:
    """Send password reset instructions to a user."""
    await _send(build_password_reset_message(email, token))


async def _send(message: MIMEMultipart) -> None:
    if not all([
        settings.smtp_host,
        settings.smtp_port,
        settings.smtp_user,
        settings.smtp_password,
        settings.smtp_from_email,
    ]):
        logger.warning(
            "SMTP not configured - cannot send %r email to %s",
            message["Subject"],
            message["To"],
        )
        raise ValueError("SMTP is not configured. Please configure SMTP settings in .env file.")

    send_kwargs = {
        "hostname": settings.smtp_host,
        "port": settings.smtp_port,
        "username": settings.smtp_user,
        "password": settings.smtp_password,
    }

    # Port 465 uses direct TLS, everything else STARTTLS
    if settings.smtp_use_tls:
        if settings.smtp_port == 465:
            send_kwargs["use_tls"] = True
        else:
            send_kwargs["start_tls"] = True

    await aiosmtplib.send(message, **send_kwargs)
    logger.info("Sent %r email to %s", message["Subject"], message["To"])
