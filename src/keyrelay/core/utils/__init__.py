"""Utility helpers."""

from .logging import redact_credentials, setup_logging

__all__ = ["redact_credentials", "setup_logging"]
