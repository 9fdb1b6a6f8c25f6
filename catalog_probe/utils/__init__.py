"""Shared utilities."""

from .logging import get_contextual_logger, setup_logging

__all__ = ["get_contextual_logger", "setup_logging"]
