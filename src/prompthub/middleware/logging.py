"""structlog configuration shared by structlog and stdlib loggers.

Routers and middleware log through ``structlog.get_logger()``; the badge
services use ``logging.getLogger(__name__)``. Both end in the same root
handler, so every line carries the request context bound in contextvars.
"""

import logging

import structlog

from prompthub.config import Settings

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]

# Installed by setup_logging; replaced when an app is created again (tests).
_handler: logging.Handler | None = None


def setup_logging(settings: Settings) -> None:
    """Install a JSON (production) or console (local) renderer on the root logger."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    global _handler  # noqa: PLW0603
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler()
    _handler.setFormatter(formatter)
    root.addHandler(_handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
