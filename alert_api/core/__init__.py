"""Núcleo del relay: modelo de dominio y conexión a Redis."""
