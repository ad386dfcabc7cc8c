"""
Prompt templates for the deal team agents.
"""

from .design import (
    build_concept_image_prompt,
    build_deliverable_outline_prompt,
    build_slide_design_prompt,
)
from .diligence import build_document_analysis_prompt, build_portfolio_prompt
from .sourcing import (
    SCOUT_TARGET_COUNT,
    build_deep_dive_prompt,
    build_location_prompt,
    build_scout_prompt,
    build_selection_prompt,
)
from .strategy import build_opinion_prompt, build_strategy_prompt
from .structuring import BENCHMARK_LIMIT, build_structuring_prompt, format_benchmarks

__all__ = [
    # Managing Director
    'build_strategy_prompt',
    'build_opinion_prompt',
    # Scout / VP
    'SCOUT_TARGET_COUNT',
    'build_scout_prompt',
    'build_selection_prompt',
    'build_deep_dive_prompt',
    'build_location_prompt',
    # Associate
    'BENCHMARK_LIMIT',
    'build_structuring_prompt',
    'format_benchmarks',
    # Diligence
    'build_document_analysis_prompt',
    'build_portfolio_prompt',
    # Design
    'build_concept_image_prompt',
    'build_deliverable_outline_prompt',
    'build_slide_design_prompt',
]
