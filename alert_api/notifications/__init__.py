"""Render y entrega de notificaciones."""

from .channels import (
    ChatWebhookChannel,
    EmailChannel,
    NotificationChannel,
    RelayWebhookChannel,
    SmsGatewayChannel,
    SmtpConfig,
    SmtpMailer,
)
from .dispatcher import ChannelDispatcher, ChannelResult
from .factory import build_channels, create_dispatcher, get_dispatcher, reset_dispatcher
from .renderer import DigestPayload, NotificationRenderer, RenderMode, ReportPayload

__all__ = [
    "ChannelDispatcher",
    "ChannelResult",
    "ChatWebhookChannel",
    "DigestPayload",
    "EmailChannel",
    "NotificationChannel",
    "NotificationRenderer",
    "RelayWebhookChannel",
    "RenderMode",
    "ReportPayload",
    "SmsGatewayChannel",
    "SmtpConfig",
    "SmtpMailer",
    "build_channels",
    "create_dispatcher",
    "get_dispatcher",
    "reset_dispatcher",
]
