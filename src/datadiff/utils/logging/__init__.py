"""
Logging setup for datadiff.

The comparison engine itself only uses ``logging.getLogger(__name__)``;
applications (and the CLI) call setup_logging() or configure_from_env()
once at startup to decide where records go.

Usage:
    from datadiff.utils.logging import setup_logging, ContextLogger

    setup_logging(level="INFO", log_file="/var/log/datadiff/run.log")

    log = ContextLogger(__name__, table="public.person")
    log.info("Comparison started", chunk_size=15)
"""

from .config import configure_from_env, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
