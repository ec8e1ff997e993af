"""Utility modules."""

from order_lifecycle.utils.logging import get_logger, setup_logging

__all__ = ["setup_logging", "get_logger"]
