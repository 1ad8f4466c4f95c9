"""Shared utilities (logging configuration)."""

from src.utils.logger import configure_audit_logging, setup_logger

__all__ = ["configure_audit_logging", "setup_logger"]
