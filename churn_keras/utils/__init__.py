"""Utility functions."""

from .helpers import setup_logging, set_seeds, get_timestamp, format_metrics

__all__ = ["setup_logging", "set_seeds", "get_timestamp", "format_metrics"]
