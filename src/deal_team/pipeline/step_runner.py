"""
Pipeline step runner.

Wraps one unit of work (one model call) with a uniform contract:
- the named agent shows ``working`` with the step description while it runs
- exactly one StepRecord is appended when the step ends, completed or error
- the agent is left ``idle`` on success and ``error`` on failure
- failures are logged and re-raised unchanged; the caller decides whether
  the run aborts

There is no retry here. A caller that wants one calls run_step() again.
"""

from __future__ import annotations

import time
import traceback
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

import structlog

from ..logging import logging_context
from ..models.pipeline import AgentRole, AgentStatus, ErrorDetail, StepRecord, agent_name_for
from ..utils import new_id

if TYPE_CHECKING:
    from ..store.state import StateStore

logger = structlog.get_logger(__name__)

T = TypeVar('T')

# Longest traceback kept on an error StepRecord.
MAX_STACK_CHARS = 2000


def _format_stack(exc: BaseException) -> str:
    stack = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    if len(stack) > MAX_STACK_CHARS:
        return stack[-MAX_STACK_CHARS:]
    return stack


class StepRunner:
    """Runs pipeline steps against a StateStore's agents and step log."""

    def __init__(self, state: StateStore):
        self.state = state

    async def run_step(
        self,
        role: AgentRole,
        description: str,
        work: Callable[[], Awaitable[T]],
        trace_id: str,
    ) -> T:
        """
        Execute ``work`` once as a logged pipeline step.

        Args:
            role: Agent performing the step
            description: Human-readable task, shown as the agent's current task
            work: Zero-argument coroutine function; called exactly once
            trace_id: Id of the run this step belongs to

        Returns:
            Whatever ``work`` returned

        Raises:
            BaseException: The exception raised by ``work``, unchanged
        """
        agent_name = agent_name_for(role)
        log = logger.bind(agent=agent_name, step=description)

        with logging_context(trace_id=trace_id):
            self.state.update_agent(role, status=AgentStatus.WORKING, current_task=description)
            log.info('step_runner.started')
            started = time.perf_counter()

            try:
                result = await work()
            except BaseException as exc:
                # Cancellations are recorded too, then propagate unchanged.
                latency_ms = round((time.perf_counter() - started) * 1000)
                self.state.append_log(
                    StepRecord(
                        id=new_id(),
                        trace_id=trace_id,
                        agent_name=agent_name,
                        role=role,
                        message=f'FAILED: {description}',
                        status=AgentStatus.ERROR,
                        latency_ms=latency_ms,
                        error_details=ErrorDetail(
                            message=str(exc),
                            stack=_format_stack(exc),
                            code=type(exc).__name__,
                            context=description,
                        ),
                    )
                )
                self.state.update_agent(
                    role, status=AgentStatus.ERROR, current_task='Error encountered'
                )
                log.error('step_runner.failed', latency_ms=latency_ms, error=str(exc))
                raise

            latency_ms = round((time.perf_counter() - started) * 1000)
            self.state.append_log(
                StepRecord(
                    id=new_id(),
                    trace_id=trace_id,
                    agent_name=agent_name,
                    role=role,
                    message=f'{description} - Completed',
                    status=AgentStatus.COMPLETED,
                    latency_ms=latency_ms,
                )
            )
            self.state.update_agent(role, status=AgentStatus.IDLE, current_task='Standby')
            log.info('step_runner.completed', latency_ms=latency_ms)
            return result
