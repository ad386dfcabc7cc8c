"""
Model invocation boundary.

The deal team talks to a hosted model through a single call:

    generate(model, contents, config) -> ModelResponse

``contents`` is a prompt string or a list of Parts (text and inline
base64 data). ``config`` selects reasoning depth, a JSON response schema,
grounding tools, or image output. Implementations raise ModelClientError
subclasses on failure.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, Sequence


class ToolKind(str, Enum):
    """Grounding tools a request may enable."""

    WEB_SEARCH = 'web_search'
    MAPS_GROUNDING = 'maps_grounding'


@dataclass
class ImageConfig:
    """
    Image output options.

    ``size_hint`` is only accepted by some image models; callers leave it
    None when invoking a model that rejects it.
    """

    aspect_ratio: str = '1:1'
    size_hint: str | None = None


@dataclass
class GenerateConfig:
    reasoning_budget: int | None = None
    response_schema: dict[str, Any] | None = None
    schema_name: str = 'response'
    tools: list[ToolKind] = field(default_factory=list)
    image_config: ImageConfig | None = None
    max_output_tokens: int | None = None


@dataclass
class InlineData:
    """Raw base64 content (no data-URI prefix) with its MIME type."""

    mime_type: str
    data: str
    name: str | None = None

    @property
    def data_uri(self) -> str:
        return f'data:{self.mime_type};base64,{self.data}'


@dataclass
class Part:
    text: str | None = None
    inline_data: InlineData | None = None


@dataclass
class GroundingReference:
    """A source the model cited (web page or map location)."""

    uri: str
    title: str | None = None
    source: ToolKind = ToolKind.WEB_SEARCH


@dataclass
class ModelResponse:
    text: str = ''
    grounding_references: list[GroundingReference] = field(default_factory=list)
    images: list[InlineData] = field(default_factory=list)

    def grounding_uris(self, source: ToolKind | None = None) -> list[str]:
        """Cited URIs, optionally only those from one tool."""
        return [
            ref.uri
            for ref in self.grounding_references
            if ref.uri and (source is None or ref.source == source)
        ]


class ModelClient(Protocol):
    async def generate(
        self,
        model: str,
        contents: str | Sequence[Part],
        config: GenerateConfig | None = None,
    ) -> ModelResponse: ...
