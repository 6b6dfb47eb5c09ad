# mailer.py
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Mapping, Optional, Protocol

__all__ = ["DeliveryError", "Notifier", "SmtpNotifier", "mask_email"]

_log = logging.getLogger("mailer")


class DeliveryError(Exception):
    """Raised by a notifier when a message could not be handed off."""


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        ...


def mask_email(addr: Optional[str]) -> str:
    if not addr:
        return ""
    try:
        local, domain = addr.split("@", 1)
    except ValueError:
        return (addr[:6] + "…") if len(addr) > 6 else addr
    local_mask = local[0] + "***" if len(local) > 1 else "*"
    # keep domain TLD visible
    dot = domain.rfind(".")
    if dot > 0:
        dom_mask = domain[0] + "***" + domain[dot:]
    else:
        dom_mask = (domain[:1] or "") + "***"
    return f"{local_mask}@{dom_mask}"


class SmtpNotifier:
    """
    Plain-text mail over SMTP (STARTTLS on 587 by default).
    One attempt per message; any transport failure surfaces as DeliveryError.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_email: str,
        from_name: str = "EV Charging Office",
        use_tls: bool = True,
        timeout: float = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Mapping) -> "SmtpNotifier":
        return cls(
            host=config["SMTP_HOST"],
            port=int(config.get("SMTP_PORT", 587)),
            username=config.get("SMTP_USER"),
            password=config.get("SMTP_PASS"),
            from_email=config["MAIL_FROM"],
            from_name=config.get("MAIL_FROM_NAME", "EV Charging Office"),
            use_tls=bool(config.get("SMTP_USE_TLS", True)),
            timeout=config.get("SMTP_TIMEOUT_SECONDS", 10),
        )

    @property
    def sender(self) -> str:
        return f'"{self.from_name}" <{self.from_email}>'

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content(body)
        return msg

    def send(self, to: str, subject: str, body: str) -> None:
        msg = self.build_message(to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
                if self.use_tls:
                    s.starttls(context=ssl.create_default_context())
                if self.username and self.password:
                    s.login(self.username, self.password)
                s.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            _log.warning("[mail] send to %s via %s:%s failed: %r", mask_email(to), self.host, self.port, e)
            raise DeliveryError(f"SMTP delivery failed: {e!r}") from e

        _log.info("[mail] sent %r via %s:%s to %s", subject, self.host, self.port, mask_email(to))
