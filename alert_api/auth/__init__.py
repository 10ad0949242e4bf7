"""Autenticación por secreto compartido."""

from .shared_secret import SECRET_HEADER, verify_shared_secret

__all__ = ["SECRET_HEADER", "verify_shared_secret"]
