"""Sending verification codes by e-mail over SMTP."""

from __future__ import annotations

import os
import smtplib
import ssl
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_HOST = "smtp.gmail.com"
DEFAULT_PORT = 587
SUBJECT = "ILYPO - Код подтверждения"
BODY_TEMPLATE = (
    "Ваш код подтверждения: {code}\n"
    "Данный код действителен в течение 10 минут."
)

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


@dataclass(frozen=True)
class SmtpSettings:
    """Where and as whom verification e-mails are sent."""

    username: str
    password: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    sender: str = ""
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.sender:
            object.__setattr__(self, "sender", self.username)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SmtpSettings:
        """Read the settings from ``ILY_SMTP_*`` environment variables.

        ``ILY_SMTP_USER`` and ``ILY_SMTP_PASSWORD`` are required; host, port
        and sender address fall back to defaults.
        """
        env = os.environ if environ is None else environ
        username = env.get("ILY_SMTP_USER", "")
        secret = env.get("ILY_SMTP_PASSWORD", "")
        if not username:
            raise ValueError("не задан ILY_SMTP_USER")
        if not secret:
            raise ValueError("не задан ILY_SMTP_PASSWORD")
        raw_port = env.get("ILY_SMTP_PORT", str(DEFAULT_PORT))
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ValueError(f"неверный ILY_SMTP_PORT: {raw_port!r}") from exc
        if not 0 < port < 65536:
            raise ValueError(f"неверный ILY_SMTP_PORT: {raw_port!r}")
        return cls(
            username=username,
            password=secret,
            host=env.get("ILY_SMTP_HOST", DEFAULT_HOST) or DEFAULT_HOST,
            port=port,
            sender=env.get("ILY_SMTP_FROM", ""),
        )


def compose_message(settings: SmtpSettings, recipient: str, code: str) -> str:
    """Build the raw e-mail text carrying ``code`` to ``recipient``."""
    body = BODY_TEMPLATE.format(code=code)
    return (
        f"From: {settings.sender}\n"
        f"To: {recipient}\n"
        f"Subject: {SUBJECT}\n\n"
        f"{body}"
    )


def send_verification_email(settings: SmtpSettings, recipient: str, code: str) -> None:
    """Send ``code`` to ``recipient``; SMTP failures propagate as ``smtplib`` errors.

    STARTTLS is used whenever the server offers it. Credentials are never
    sent over an unencrypted link except to a local server.
    """
    message = compose_message(settings, recipient, code).encode("utf-8")
    with smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout) as smtp:
        smtp.ehlo()
        if smtp.has_extn("starttls"):
            smtp.starttls(context=ssl.create_default_context())
            smtp.ehlo()
        elif settings.host not in _LOCAL_HOSTS:
            raise smtplib.SMTPException("unencrypted connection")
        smtp.login(settings.username, settings.password)
        smtp.sendmail(settings.sender, [recipient], message)