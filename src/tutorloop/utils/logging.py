"""
Structured logging for the tutoring pipeline.

structlog is configured once per process via ``setup_logging``; modules get
their loggers through ``get_logger`` and emit snake_case events with keyword
context. Events emitted while a turn is running carry its ``session_id`` and
``turn_id`` through ``turn_log_context``.
"""

import logging
import uuid
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Iterator

import structlog
from rich.console import Console
from rich.markup import escape

from ..models.enums import LogLevel

if TYPE_CHECKING:
    from ..core.config import TutorConfig

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.dev.set_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
]


# Root handlers added by setup_logging, replaced on every call
_installed_handlers: list[logging.Handler] = []


def _stdlib_handler(handler: logging.Handler, renderer) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    _installed_handlers.append(handler)
    return handler


def _remove_installed_handlers() -> None:
    root_logger = logging.getLogger()
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()


def setup_logging(config: "TutorConfig | None" = None) -> None:
    """
    Configure structlog for the process.

    Without ``log_file`` events are printed directly (JSON at DEBUG level,
    console rendering otherwise). With ``log_file`` they are routed through
    the stdlib root logger to the console and, as JSON lines, to a rotating
    file. Calling it again replaces the handlers a previous call installed.
    """
    if config is None:
        from ..core.config import get_config

        config = get_config()

    level = getattr(logging, config.log_level.value, logging.INFO)
    _remove_installed_handlers()

    if config.log_file is not None:
        config.ensure_log_directory()
        root_logger = logging.getLogger()
        root_logger.addHandler(
            _stdlib_handler(
                RotatingFileHandler(
                    config.log_file,
                    maxBytes=config.log_max_bytes,
                    backupCount=config.log_backup_count,
                    encoding="utf-8",
                ),
                structlog.processors.JSONRenderer(),
            )
        )
        root_logger.addHandler(
            _stdlib_handler(logging.StreamHandler(), structlog.dev.ConsoleRenderer())
        )
        root_logger.setLevel(level)

        logger_factory = structlog.stdlib.LoggerFactory()
        final_processor = structlog.stdlib.ProcessorFormatter.wrap_for_formatter
    else:
        logger_factory = structlog.PrintLoggerFactory()  # type: ignore[assignment]
        final_processor = (
            structlog.processors.JSONRenderer()
            if config.log_level == LogLevel.DEBUG
            else structlog.dev.ConsoleRenderer()
        )

    structlog.configure(
        processors=SHARED_PROCESSORS + [final_processor],  # type: ignore[arg-type]
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger, typically with ``__name__``."""
    return structlog.get_logger(name)


@contextmanager
def turn_log_context(session_id: str) -> Iterator[str]:
    """
    Bind ``session_id`` and a fresh ``turn_id`` to every event logged inside.

    Yields the turn id. Bindings are restored on exit, including on cancellation.
    """
    turn_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(session_id=session_id, turn_id=turn_id):
        yield turn_id


class ComponentLogger:
    """Start/complete/error events for one pipeline component"""

    ICONS = {"started": "[cyan]▶[/cyan]", "completed": "[green]✓[/green]", "failed": "[red]✗[/red]"}

    def __init__(self, component_name: str, echo: bool = False):
        self.logger = structlog.get_logger(component_name)
        self.component = component_name
        self.echo = echo
        self.console = Console(stderr=True)

    def _echo(self, phase: str, operation: str, suffix: str = "") -> None:
        if self.echo:
            self.console.print(
                f"{self.ICONS[phase]} {escape(f'[{self.component}]')} {operation} {phase}{suffix}"
            )

    def log_operation_start(self, operation: str, details: dict | None = None):
        self._echo("started", operation)
        self.logger.debug(f"{operation}_started", component=self.component, **(details or {}))

    def log_operation_complete(
        self, operation: str, duration_ms: float | None = None, details: dict | None = None
    ):
        suffix = f" ({duration_ms:.0f}ms)" if duration_ms is not None else ""
        self._echo("completed", operation, suffix)
        context = dict(details or {}, component=self.component)
        if duration_ms is not None:
            context["duration_ms"] = round(duration_ms, 2)
        self.logger.info(f"{operation}_completed", **context)

    def log_operation_error(self, operation: str, error: Exception, details: dict | None = None):
        self._echo("failed", operation)
        self.logger.error(
            f"{operation}_failed",
            component=self.component,
            error_type=type(error).__name__,
            error_message=str(error),
            **(details or {}),
        )
