"""Structured logging setup using structlog.

One shared processor chain (context vars, log level, timestamps, stack
info) ends in either a coloured ConsoleRenderer or a JSONRenderer.  JSON is
used when ``app_env`` is ``"production"`` or ``json_output`` is set; the
host application normally passes ``Settings.app_env``, and the ``APP_ENV``
environment variable is the fallback.

Log lines go to **stderr**.  stdout belongs to the CLI's command output, so
``python -m src.cli chunks doc-1 > chunks.txt`` captures results only.

Standard-library ``logging`` (chromadb, httpx, openai) is routed through
the same renderer.
"""

import logging
import os
import sys

import structlog

_NOISY_LIBRARIES = ("chromadb", "httpx", "httpcore", "openai")


def configure_logging(
    log_level: str = "INFO",
    app_env: str | None = None,
    json_output: bool = False,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        app_env: Deployment environment; ``APP_ENV`` is read when omitted.
        json_output: Force JSON rendering regardless of environment.

    Returns:
        A configured structlog BoundLogger.
    """
    env = app_env if app_env is not None else os.environ.get("APP_ENV", "development")
    use_json = json_output or env == "production"
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Request-level chatter from client libraries only shows at DEBUG.
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
