"""
External service clients for the Deal Team orchestrator.
"""

from .base import (
    GenerateConfig,
    GroundingReference,
    ImageConfig,
    InlineData,
    ModelClient,
    ModelResponse,
    Part,
    ToolKind,
)
from .openai_client import OpenAIModelClient

__all__ = [
    'GenerateConfig',
    'GroundingReference',
    'ImageConfig',
    'InlineData',
    'ModelClient',
    'ModelResponse',
    'Part',
    'ToolKind',
    'OpenAIModelClient',
]
