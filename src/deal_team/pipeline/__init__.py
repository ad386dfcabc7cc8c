"""
Pipeline components: response repair, normalization, step running, the
agent services and the orchestrator that sequences them.
"""

from .sanitizer import extract_json, locate_payload, repair_json, strip_code_fences
from .normalizer import normalize, normalize_portfolio, normalize_slides
from .step_runner import StepRunner
from .strategy import MandateStrategist
from .sourcing import DeepDiveResult, TargetSourcer
from .structuring import DealStructurer
from .diligence import DiligenceAnalyst
from .design import DesignStudio
from .orchestrator import DealTeamOrchestrator, RunContext, RunIntent, RunResult

__all__ = [
    # Orchestration
    'DealTeamOrchestrator',
    'RunContext',
    'RunIntent',
    'RunResult',
    'StepRunner',
    # Untrusted output boundary
    'extract_json',
    'locate_payload',
    'repair_json',
    'strip_code_fences',
    'normalize',
    'normalize_portfolio',
    'normalize_slides',
    # Agent services
    'MandateStrategist',
    'TargetSourcer',
    'DeepDiveResult',
    'DealStructurer',
    'DiligenceAnalyst',
    'DesignStudio',
]
