"""Taxonomía de errores del relay.

Solo AuthorizationError y MalformedInputError llegan al productor como
respuesta no-200. StoreError y ChannelDeliveryError se registran y se
absorben: el dispositivo nunca debe reintentar por fallos aguas abajo.
"""

from __future__ import annotations


class AlertRelayError(Exception):
    """Base de todos los errores del relay."""


class AuthorizationError(AlertRelayError):
    """Header de secreto ausente o distinto al configurado."""

    status_code = 403

    def __init__(self, reason: str = "Forbidden"):
        self.reason = reason
        super().__init__(reason)


class MalformedInputError(AlertRelayError):
    """El body no se puede decodificar como objeto JSON."""

    status_code = 400

    def __init__(self, reason: str = "Bad Request"):
        self.reason = reason
        super().__init__(reason)


class StoreError(AlertRelayError):
    """Fallo de lectura/escritura en el historial (Redis)."""


class ChannelDeliveryError(AlertRelayError):
    """Fallo de entrega en un canal o destino concreto."""

    def __init__(self, channel: str, destination: str, reason: str):
        self.channel = channel
        self.destination = destination
        self.reason = reason
        super().__init__(f"{channel} -> {destination}: {reason}")
