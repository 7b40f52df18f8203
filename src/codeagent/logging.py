"""Logging configuration: structlog over stdlib logging, one run id per log line."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Client libraries that log every request or sandbox RPC at INFO.
CHATTY_LOGGERS = ("httpx", "httpcore", "e2b", "e2b_code_interpreter")


def configure_logging(level: str, *, app_env: str = "dev") -> None:
    """Route structlog and stdlib records through one handler on stderr.

    JSON lines in prod, the console renderer elsewhere. Client libraries in
    ``CHATTY_LOGGERS`` stay at WARNING unless ``level`` is DEBUG.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: structlog.types.Processor
    if app_env == "prod":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    client_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(client_level)


@contextmanager
def run_context(run_id: str, **extra: object) -> Iterator[None]:
    """Tag every log line inside the block with ``run_id``.

    Previous context values are restored on exit, so nested or concurrent
    runs on separate tasks keep their own ids.
    """
    with structlog.contextvars.bound_contextvars(run_id=run_id, **extra):
        yield
