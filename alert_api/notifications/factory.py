"""Factory para los canales y el dispatcher del proceso.

Un canal existe solo si tiene destinos configurados; email y SMS
además requieren SMTP_HOST.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from common.config import Settings, get_settings

from .channels import (
    ChatWebhookChannel,
    EmailChannel,
    NotificationChannel,
    RelayWebhookChannel,
    SmsGatewayChannel,
    SmtpConfig,
    SmtpMailer,
)
from .dispatcher import ChannelDispatcher

logger = logging.getLogger(__name__)

_dispatcher_instance: Optional[ChannelDispatcher] = None


def build_channels(settings: Settings) -> List[NotificationChannel]:
    channels: List[NotificationChannel] = []

    if settings.smtp_host and (settings.mail_to or settings.sms_to):
        mailer = SmtpMailer(
            SmtpConfig(
                host=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_user,
                password=settings.smtp_password,
                starttls=settings.smtp_starttls,
                mail_from=settings.mail_from,
                timeout_seconds=settings.channel_timeout_seconds,
            )
        )
        if settings.mail_to:
            channels.append(EmailChannel(mailer, settings.mail_to))
        if settings.sms_to:
            channels.append(SmsGatewayChannel(mailer, settings.sms_to, settings.sms_max_chars))
    elif settings.mail_to or settings.sms_to:
        logger.warning("[CHANNELS] MAIL_TO/SMS_TO set but SMTP_HOST empty - email/sms disabled")

    if settings.chat_webhook_urls:
        channels.append(
            ChatWebhookChannel(settings.chat_webhook_urls, settings.channel_timeout_seconds)
        )
    if settings.relay_webhook_urls:
        channels.append(
            RelayWebhookChannel(settings.relay_webhook_urls, settings.channel_timeout_seconds)
        )

    logger.info(
        "[CHANNELS] Configured: %s",
        ", ".join(f"{ch.name}({len(ch.destinations)})" for ch in channels) or "none",
    )
    return channels


def create_dispatcher(settings: Optional[Settings] = None) -> ChannelDispatcher:
    settings = settings or get_settings()
    return ChannelDispatcher(
        build_channels(settings),
        timeout_seconds=settings.dispatch_timeout_seconds,
        max_workers=settings.dispatch_max_workers,
    )


def get_dispatcher() -> ChannelDispatcher:
    """Obtiene la instancia singleton del dispatcher."""
    global _dispatcher_instance
    if _dispatcher_instance is None:
        _dispatcher_instance = create_dispatcher()
    return _dispatcher_instance


def reset_dispatcher() -> None:
    """Resetea el dispatcher singleton (útil para testing)."""
    global _dispatcher_instance
    _dispatcher_instance = None
