"""
Agent roster and step log models.

Agents are the visible members of the simulated deal team; their status is
what a renderer shows while a run is in flight. StepRecords form the
append-only step log, grouped per run by trace_id.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import ConfigDict, Field

from .base import CamelModel


class AgentRole(str, Enum):
    MD = 'Managing Director'
    VP = 'Vice President'
    ASSOCIATE = 'Associate'
    SCOUT = 'Scout Agent'
    COMPS = 'Comps Agent'
    DILIGENCE = 'Diligence Agent'
    DESIGN = 'Design Director'


class AgentStatus(str, Enum):
    IDLE = 'idle'
    THINKING = 'thinking'
    WORKING = 'working'
    COMPLETED = 'completed'
    ERROR = 'error'


class Agent(CamelModel):
    id: str
    role: AgentRole
    name: str
    status: AgentStatus = AgentStatus.IDLE
    current_task: str | None = None
    description: str = ''


DEFAULT_AGENTS: tuple[Agent, ...] = (
    Agent(id='1', role=AgentRole.MD, name='Athena (MD)', description='Strategy & Risk'),
    Agent(id='2', role=AgentRole.VP, name='Marcus (VP)', description='Orchestration'),
    Agent(id='3', role=AgentRole.ASSOCIATE, name='Ken (Associate)', description='Modeling'),
    Agent(id='4', role=AgentRole.SCOUT, name='Scout-Alpha', description='Data Mining'),
    Agent(id='5', role=AgentRole.DILIGENCE, name='Sarah (Diligence)', description='Doc Analysis'),
    Agent(id='6', role=AgentRole.COMPS, name='Comps-Beta', description='Market Multiples'),
    Agent(id='7', role=AgentRole.DESIGN, name='Sienna (Design)', description='Visual Assets'),
)


def default_agents() -> list[Agent]:
    """Fresh copy of the default roster, all idle."""
    return [agent.model_copy() for agent in DEFAULT_AGENTS]


def agent_name_for(role: AgentRole) -> str:
    for agent in DEFAULT_AGENTS:
        if agent.role == role:
            return agent.name
    return 'Unknown'


class ErrorDetail(CamelModel):
    """Diagnostics captured for a failed step."""

    model_config = ConfigDict(frozen=True)

    message: str
    stack: str | None = None
    code: str | None = None
    context: str | None = None


class StepRecord(CamelModel):
    """
    One entry of the step log.

    Written once when a step finishes and never modified afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    trace_id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    agent_name: str
    role: AgentRole
    message: str
    status: AgentStatus
    latency_ms: int | None = Field(default=None, alias='latency')
    error_details: ErrorDetail | None = None
