"""
Structured logging for the deal team.

structlog everywhere; run-scoped ids (``trace_id`` of the pipeline run and
``deal_id`` of the deal room being worked on) are bound through structlog's
contextvars, so every log line emitted inside a run carries them, including
lines from concurrently gathered steps.

Console rendering by default; configure_logging(json_output=True) for JSON
lines.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Generator

import structlog
from structlog.types import Processor

from .config import config


def _bound(key: str) -> str | None:
    return structlog.contextvars.get_contextvars().get(key)


def get_trace_id() -> str | None:
    """Trace id of the run in progress, if any."""
    return _bound('trace_id')


def get_deal_id() -> str | None:
    """Deal room the current run is working on, if any."""
    return _bound('deal_id')


def _renderer(json_output: bool) -> list[Processor]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog (and the stdlib root logger it prints alongside).

    Args:
        json_output: JSON lines instead of the console renderer
        log_level: Level name; defaults to config.LOG_LEVEL
    """
    level_num = logging.getLevelName((log_level or config.LOG_LEVEL).upper())
    if not isinstance(level_num, int):
        level_num = logging.INFO

    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level_num)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt='iso', utc=True),
            structlog.processors.StackInfoRenderer(),
            *_renderer(json_output),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def logging_context(
    trace_id: str | None = None,
    deal_id: str | None = None,
) -> Generator[None, None, None]:
    """
    Bind run ids for the duration of the block.

    Ids left as None keep whatever an enclosing block bound; on exit the
    previous values are restored.

    Usage:
        with logging_context(trace_id='K3J9QXA'):
            with logging_context(deal_id=room.id):
                logger.info('orchestrator.deal_committed')  # carries both ids
    """
    values = {'trace_id': trace_id, 'deal_id': deal_id}
    with structlog.contextvars.bound_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    ):
        yield


class PipelineTimer:
    """
    Wall-clock durations of the named stages of one run, in milliseconds.

    Stages may overlap (steps gathered concurrently each time themselves).
    """

    def __init__(self):
        self.started = time.perf_counter()
        self.stages: dict[str, float] = {}

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        began = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - began) * 1000)

    def record(self, name: str, duration_ms: float) -> None:
        self.stages[name] = duration_ms

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000

    def summary(self) -> dict[str, Any]:
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {name: round(ms, 2) for name, ms in self.stages.items()},
        }


# Console logging until the entry point configures otherwise.
configure_logging()
