"""Outbound transactional email over SMTP with a Mailgun HTTP fallback."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Callable

import requests

from ..config import Settings, get_settings
from ..security.secrets import MissingSecretError, optional_secret, require_secret

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when no configured transport accepted the message."""


def _smtp(settings: Settings, to_address: str, subject: str, body: str) -> None:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = str(settings.email_from_address)
    message["To"] = to_address
    message.set_content(body)

    username = (settings.email_username or "").strip()
    try:
        with smtplib.SMTP(str(settings.email_host), settings.email_port, timeout=20) as smtp:
            if settings.email_use_tls:
                smtp.starttls()
            if username:
                smtp.login(username, require_secret("EMAIL_PASSWORD"))
            smtp.send_message(message)
    except MissingSecretError as exc:
        raise EmailDeliveryError(str(exc)) from exc
    except (smtplib.SMTPException, OSError) as exc:  # pragma: no cover - network interactions
        logger.exception("SMTP delivery failed for %s", to_address)
        raise EmailDeliveryError(str(exc)) from exc


def _mailgun(settings: Settings, to_address: str, subject: str, body: str) -> None:
    api_key = optional_secret("MAILGUN_API_KEY") or settings.mailgun_api_key
    if not api_key:
        raise EmailDeliveryError("MAILGUN_API_KEY must be set to a real value")
    try:
        response = requests.post(
            f"https://api.mailgun.net/v3/{settings.mailgun_domain}/messages",
            auth=("api", api_key),
            data={
                "from": str(settings.email_from_address),
                "to": to_address,
                "subject": subject,
                "text": body,
            },
            timeout=20,
        )
    except requests.RequestException as exc:  # pragma: no cover - network interactions
        logger.exception("Mailgun request failed for %s", to_address)
        raise EmailDeliveryError(str(exc)) from exc

    if response.status_code >= 400:
        logger.error("Mailgun returned %s: %s", response.status_code, response.text)
        raise EmailDeliveryError(f"Mailgun delivery failed with status {response.status_code}")


def _transports(settings: Settings) -> list[tuple[str, Callable[[Settings, str, str, str], None]]]:
    transports: list[tuple[str, Callable[[Settings, str, str, str], None]]] = []
    if settings.email_host and settings.email_from_address:
        transports.append(("smtp", _smtp))
    if settings.mailgun_domain and settings.email_from_address:
        transports.append(("mailgun", _mailgun))
    return transports


def send_email(to_address: str, subject: str, body: str) -> bool:
    """Deliver a plaintext email through the first transport that accepts it.

    Raises ``EmailDeliveryError`` when the payload is incomplete, when no
    transport is configured, or when every configured transport fails.
    """

    if not to_address or not subject or not body:
        raise EmailDeliveryError("Email payload is incomplete")

    settings = get_settings()
    transports = _transports(settings)
    if not transports:
        raise EmailDeliveryError("Email delivery is not configured. Provide SMTP settings or Mailgun credentials.")

    last_error: EmailDeliveryError | None = None
    for name, transport in transports:
        try:
            transport(settings, to_address, subject, body)
            return True
        except EmailDeliveryError as exc:
            logger.warning("%s delivery failed: %s", name, exc)
            last_error = exc
    raise EmailDeliveryError("All email transports failed") from last_error


__all__ = ["send_email", "EmailDeliveryError"]
