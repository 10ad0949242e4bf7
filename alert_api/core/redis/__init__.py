"""Redis layer - conexión al almacén de listas ordenadas."""

from .connection import RedisConnection

__all__ = ["RedisConnection"]
