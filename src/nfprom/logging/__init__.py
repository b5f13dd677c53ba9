"""Logging configuration and process context for nfprom."""

from .context import log_context, set_process_role
from .setup import configure_logging

__all__ = ["configure_logging", "log_context", "set_process_role"]
