"""Relay de alertas de dispositivos.

Ingesta un evento, extrae métricas, lo guarda en el historial acotado
y lo reenvía a los canales de notificación configurados.
"""

__version__ = "0.4.0"
