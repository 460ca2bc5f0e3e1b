"""
Logging for the pumpscope API and CLI.

Every module logs through ``logging.getLogger(__name__)``; the root handler
renders those records with structlog. Lines emitted while an exchange is
being resolved also carry the exchange's routing fields (``project_id``,
``function``) bound through :func:`bind_exchange_context`.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings

# Upstream client and access-log chatter; per-request detail is logged by the providers
NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _renderer(is_dev: bool) -> structlog.types.Processor:
    if is_dev:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(log_level: Optional[str] = None) -> None:
    """Install the pumpscope log handler on the root logger.

    DEBUG renders human-readable console lines, any other level renders one
    JSON object per line. The CLI passes its own level; the API falls back
    to ``settings.log_level``.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    is_dev = level == logging.DEBUG

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if not is_dev:
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(is_dev)],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_exchange_context(**fields: object) -> None:
    """Attach routing fields of the current exchange to every following log line."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_exchange_context() -> None:
    """Drop exchange fields once the exchange is finished."""
    structlog.contextvars.clear_contextvars()
