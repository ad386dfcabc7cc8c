"""
Deal Team Orchestrator

Simulates a private-equity deal team (MD, VP, Associate, Scout, Diligence,
Comps and Design agents) by sequencing hosted-model calls, repairing and
normalizing their output into deal records, and persisting the resulting
state to a key-value store.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    DealTeamOrchestrator,
    RunResult,
    StepRunner,
    extract_json,
    normalize,
)
from .store import FileKeyValueStore, MemoryKeyValueStore, StateStore
from .clients import ModelClient, OpenAIModelClient
from .export import deal_to_csv, export_filename, memo_to_markdown
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    PipelineTimer,
)
from .errors import (
    DealTeamError,
    PipelineError,
    JSONParseError,
    NoCandidatesError,
    PipelineBusyError,
    ModelClientError,
)

__all__ = [
    # Version
    '__version__',
    # Orchestration
    'DealTeamOrchestrator',
    'RunResult',
    'StepRunner',
    'extract_json',
    'normalize',
    # State
    'StateStore',
    'MemoryKeyValueStore',
    'FileKeyValueStore',
    # Clients
    'ModelClient',
    'OpenAIModelClient',
    # Exports
    'deal_to_csv',
    'memo_to_markdown',
    'export_filename',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'DealTeamError',
    'PipelineError',
    'JSONParseError',
    'NoCandidatesError',
    'PipelineBusyError',
    'ModelClientError',
]
