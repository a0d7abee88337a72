"""Logging setup shared by the CLI and library entry points."""

from booksearch.observability.logging import JsonFormatter, configure_logging


__all__ = ["JsonFormatter", "configure_logging"]
