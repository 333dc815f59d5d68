from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formatdate
from html import escape as html_escape
from typing import Protocol

import boto3
import resend
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, NoCredentialsError

from budget_tracker.core.config import settings
from budget_tracker.core.errors import EmailDeliveryError, EmailNotConfiguredError

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("smtp", "ses", "resend")


class EmailSender(Protocol):
    def send(self, to_email: str, subject: str, body: str) -> None:
        ...


def _normalize_provider(raw: str | None) -> str:
    """
    Supported providers:
    - smtp (default when unset)
    - ses
    - resend
    """
    provider = (raw or "").strip().lower()
    if not provider:
        return "smtp"
    if provider in SUPPORTED_PROVIDERS:
        return provider
    raise EmailNotConfiguredError(
        f"Unsupported EMAIL_PROVIDER={provider!r}. Supported: smtp (default), ses, resend."
    )


def _require_smtp_config() -> None:
    if not settings.SMTP_HOST:
        raise EmailNotConfiguredError("SMTP_HOST is not set")
    if not settings.SMTP_FROM_EMAIL:
        raise EmailNotConfiguredError("SMTP_FROM_EMAIL is not set")


def _require_from_email() -> str:
    """FROM_EMAIL is used only for ses and resend."""
    if not settings.FROM_EMAIL:
        raise EmailNotConfiguredError("FROM_EMAIL is not set")
    return settings.FROM_EMAIL


def _send_email_smtp(to_email: str, subject: str, body: str) -> None:
    _require_smtp_config()

    msg = MIMEText(body, "plain", "utf-8")
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)

    try:
        if settings.SMTP_USE_SSL:
            server: smtplib.SMTP = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10)
        else:
            server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("SMTP connect failed: host=%s port=%s", settings.SMTP_HOST, settings.SMTP_PORT)
        raise EmailDeliveryError(f"SMTP email failed: {e}") from e

    try:
        server.ehlo()
        if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
            server.starttls()
            server.ehlo()

        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)

        server.sendmail(settings.SMTP_FROM_EMAIL, [to_email], msg.as_string())
        logger.info("SMTP email sent: to=%s", to_email)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("SMTP email failed")
        raise EmailDeliveryError(f"SMTP email failed: {e}") from e
    finally:
        try:
            server.quit()
        except (smtplib.SMTPException, OSError):
            pass


def _send_email_ses(to_email: str, subject: str, body: str) -> str | None:
    region = (settings.AWS_REGION or "").strip()
    if not region:
        raise EmailNotConfiguredError("AWS_REGION is not set (required for SES)")
    from_email = _require_from_email()
    client = boto3.client("ses", region_name=region)

    try:
        res = client.send_email(
            Source=from_email,
            Destination={"ToAddresses": [to_email]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": body, "Charset": "UTF-8"}},
            },
        )
    except NoCredentialsError as e:
        logger.exception("SES email failed (no AWS credentials)")
        raise EmailDeliveryError("SES email failed: AWS credentials not available") from e
    except EndpointConnectionError as e:
        logger.exception("SES email failed (endpoint connection)")
        raise EmailDeliveryError("SES email failed: could not connect to SES endpoint") from e
    except ClientError as e:
        logger.exception("SES email failed (client error)")
        code = (e.response or {}).get("Error", {}).get("Code", "ClientError")
        raise EmailDeliveryError(f"SES email failed: {code}") from e
    except BotoCoreError as e:
        logger.exception("SES email failed (botocore)")
        raise EmailDeliveryError("SES email failed") from e

    msg_id = res.get("MessageId")
    logger.info("SES email sent: to=%s msg_id=%s", to_email, msg_id)
    return msg_id


def _send_email_resend(to_email: str, subject: str, body: str) -> str | None:
    api_key = (settings.RESEND_API_KEY or "").strip()
    if not api_key:
        raise EmailNotConfiguredError("RESEND_API_KEY is not set")
    from_email = _require_from_email()

    payload = {
        "from": from_email,
        "to": [to_email],
        "subject": subject,
        "text": body,
        "html": f"<pre>{html_escape(body)}</pre>",
    }

    try:
        resend.api_key = api_key
        res = resend.Emails.send(payload)  # type: ignore[attr-defined]
    except Exception as e:  # noqa: BLE001
        raise EmailDeliveryError(f"Resend send failed: {e}") from e

    msg_id: str | None = None
    if isinstance(res, dict):
        if res.get("error"):
            raise EmailDeliveryError(f"Resend API error: {res.get('error')}")
        v = res.get("id")
        if isinstance(v, str) and v.strip():
            msg_id = v.strip()

    logger.info("Resend email sent: to=%s msg_id=%s", to_email, msg_id)
    return msg_id


def send_email(to_email: str, subject: str, body: str) -> str | None:
    """
    Sends email using the configured provider.
    - EMAIL_PROVIDER=smtp (default): SMTP via stdlib
    - EMAIL_PROVIDER=ses: AWS SES via boto3
    - EMAIL_PROVIDER=resend: Resend API

    With EMAIL_ENABLED=false nothing leaves the process; the send is only logged.
    """
    provider = _normalize_provider(settings.EMAIL_PROVIDER)
    if not settings.EMAIL_ENABLED:
        logger.info("Email disabled; not sending: to=%s subject=%r provider=%s", to_email, subject, provider)
        return None
    if provider == "ses":
        return _send_email_ses(to_email=to_email, subject=subject, body=body)
    if provider == "resend":
        return _send_email_resend(to_email=to_email, subject=subject, body=body)
    _send_email_smtp(to_email=to_email, subject=subject, body=body)
    return None


class ConfiguredEmailSender:
    """``EmailSender`` backed by ``send_email`` and the process settings."""

    def send(self, to_email: str, subject: str, body: str) -> None:
        send_email(to_email=to_email, subject=subject, body=body)
