"""Canales de notificación.

Cada canal declara su modo de render y su lista de destinos; el
dispatcher entrega a cada destino por separado. ``deliver`` lanza
ChannelDeliveryError ante cualquier fallo: quien decide absorberlo es
el dispatcher, no el canal.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Dict, Optional, Sequence

import requests

from ..core.domain.event import EventRecord
from ..errors import ChannelDeliveryError
from .renderer import ChannelPayload, DigestPayload, RenderMode, ReportPayload

logger = logging.getLogger(__name__)


# =============================================================================
# Transporte SMTP
# =============================================================================

@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int = 587
    username: str = ""
    password: str = ""
    starttls: bool = True
    mail_from: str = ""
    timeout_seconds: float = 10.0


class SmtpMailer:
    """Envía un correo ``{from, to, subject, text, html}`` por SMTP."""

    def __init__(self, config: SmtpConfig):
        self._config = config

    @property
    def config(self) -> SmtpConfig:
        return self._config

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        cfg = self._config
        msg = EmailMessage()
        msg["From"] = cfg.mail_from or cfg.username
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds) as smtp:
            if cfg.starttls:
                smtp.starttls()
            if cfg.username:
                smtp.login(cfg.username, cfg.password)
            smtp.send_message(msg)


# =============================================================================
# Canales
# =============================================================================

class NotificationChannel:
    """Base de los canales."""

    name: str = "channel"
    mode: RenderMode = RenderMode.DIGEST

    def __init__(self, destinations: Sequence[str]):
        self._destinations = tuple(destinations)

    @property
    def destinations(self) -> Sequence[str]:
        return self._destinations

    @property
    def enabled(self) -> bool:
        return bool(self._destinations)

    def describe(self, destination: str) -> str:
        """Etiqueta del destino apta para logs y respuestas."""
        return destination

    def deliver(self, record: EventRecord, payload: ChannelPayload, destination: str) -> None:
        raise NotImplementedError


class EmailChannel(NotificationChannel):
    """Informe completo (texto + HTML) a cada destinatario."""

    name = "email"
    mode = RenderMode.REPORT

    def __init__(self, mailer: SmtpMailer, recipients: Sequence[str]):
        super().__init__(recipients)
        self._mailer = mailer

    def deliver(self, record: EventRecord, payload: ChannelPayload, destination: str) -> None:
        if not isinstance(payload, ReportPayload):
            raise TypeError("email channel requires a ReportPayload")
        try:
            self._mailer.send(destination, payload.subject, payload.text, payload.html)
        except (smtplib.SMTPException, OSError) as e:
            raise ChannelDeliveryError(self.name, destination, f"{type(e).__name__}: {e}") from e
        logger.info("[EMAIL] Sent id=%s to=%s", record.id, destination)


class SmsGatewayChannel(NotificationChannel):
    """SMS vía gateway email-a-SMS del operador.

    Es el mismo transporte SMTP con el digest como cuerpo, recortado al
    presupuesto de caracteres.
    """

    name = "sms"
    mode = RenderMode.DIGEST

    def __init__(self, mailer: SmtpMailer, gateways: Sequence[str], max_chars: int = 160):
        super().__init__(gateways)
        self._mailer = mailer
        self._max_chars = max_chars

    def body_for(self, payload: DigestPayload) -> str:
        return payload.text[: self._max_chars]

    def deliver(self, record: EventRecord, payload: ChannelPayload, destination: str) -> None:
        if not isinstance(payload, DigestPayload):
            raise TypeError("sms channel requires a DigestPayload")
        try:
            self._mailer.send(destination, "", self.body_for(payload))
        except (smtplib.SMTPException, OSError) as e:
            raise ChannelDeliveryError(self.name, destination, f"{type(e).__name__}: {e}") from e
        logger.info("[SMS] Sent id=%s to=%s", record.id, destination)


class WebhookChannel(NotificationChannel):
    """POST JSON a una o más URLs."""

    name = "webhook"
    mode = RenderMode.DIGEST

    def __init__(self, urls: Sequence[str], timeout_seconds: float = 10.0):
        super().__init__(urls)
        self._timeout = timeout_seconds

    def describe(self, destination: str) -> str:
        return _host(destination)

    def build_body(self, record: EventRecord, payload: DigestPayload) -> Dict[str, Any]:
        raise NotImplementedError

    def deliver(self, record: EventRecord, payload: ChannelPayload, destination: str) -> None:
        if not isinstance(payload, DigestPayload):
            raise TypeError(f"{self.name} channel requires a DigestPayload")
        try:
            response = requests.post(
                destination,
                json=self.build_body(record, payload),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ChannelDeliveryError(self.name, _host(destination), f"{type(e).__name__}: {e}") from e

        if not response.ok:
            raise ChannelDeliveryError(
                self.name,
                _host(destination),
                f"HTTP {response.status_code}: {response.text[:200]}",
            )
        logger.info("[WEBHOOK] %s delivered id=%s host=%s", self.name, record.id, _host(destination))


class ChatWebhookChannel(WebhookChannel):
    """Webhook de chat (Discord usa ``content``, Slack usa ``text``)."""

    name = "chat"

    def build_body(self, record: EventRecord, payload: DigestPayload) -> Dict[str, Any]:
        return {"content": payload.text, "text": payload.text}


class RelayWebhookChannel(WebhookChannel):
    """Relay genérico: digest + registro completo."""

    name = "relay"

    def build_body(self, record: EventRecord, payload: DigestPayload) -> Dict[str, Any]:
        return {"digest": payload.text, "record": record.to_dict()}


def _host(url: str) -> str:
    # Las URLs de webhook suelen llevar el token en el path: no loguearlo.
    return url.split("://", 1)[-1].split("/", 1)[0]
