"""
OpenAI-backed ModelClient for the Deal Team orchestrator.

Handles:
- Text generation via the Responses API, with optional JSON-schema output,
  reasoning effort and web-search grounding
- Inline document and image inputs (base64)
- Image generation via the Images API
- Retry with exponential backoff on connection errors and timeouts only;
  every other API error is wrapped in the typed error hierarchy
"""

import os
from typing import Any, Sequence

import structlog
from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import ModelResponseError, wrap_model_error
from .base import (
    GenerateConfig,
    GroundingReference,
    ImageConfig,
    InlineData,
    ModelResponse,
    Part,
    ToolKind,
)

logger = structlog.get_logger(__name__)

# Supported output sizes per image model family, keyed by aspect ratio.
_IMAGE_SIZES: dict[str, dict[str, str]] = {
    'gpt-image': {'1:1': '1024x1024', '16:9': '1536x1024', '9:16': '1024x1536'},
    'dall-e-3': {'1:1': '1024x1024', '16:9': '1792x1024', '9:16': '1024x1792'},
}
_SIZE_HINT_QUALITY = {'1K': 'medium', '2K': 'high'}

_transient_retry = retry(
    retry=retry_if_exception_type((APIConnectionError, APITimeoutError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)


def reasoning_effort(budget: int) -> str:
    """Map a thinking-token budget onto an OpenAI reasoning effort."""
    if budget <= 1024:
        return 'low'
    if budget <= 8192:
        return 'medium'
    return 'high'


def _input_content(contents: str | Sequence[Part]) -> list[dict[str, Any]]:
    if isinstance(contents, str):
        return [{'type': 'input_text', 'text': contents}]

    items: list[dict[str, Any]] = []
    for part in contents:
        if part.text is not None:
            items.append({'type': 'input_text', 'text': part.text})
        if part.inline_data is not None:
            inline = part.inline_data
            if inline.mime_type.startswith('image/'):
                items.append({'type': 'input_image', 'image_url': inline.data_uri})
            else:
                items.append({
                    'type': 'input_file',
                    'filename': inline.name or 'attachment',
                    'file_data': inline.data_uri,
                })
    return items


def _prompt_text(contents: str | Sequence[Part]) -> str:
    if isinstance(contents, str):
        return contents
    return '\n'.join(part.text for part in contents if part.text)


def _grounding(response: Any, source: ToolKind) -> list[GroundingReference]:
    refs: list[GroundingReference] = []
    for item in getattr(response, 'output', None) or []:
        if getattr(item, 'type', None) != 'message':
            continue
        for content in getattr(item, 'content', None) or []:
            for annotation in getattr(content, 'annotations', None) or []:
                if getattr(annotation, 'type', None) == 'url_citation':
                    refs.append(
                        GroundingReference(
                            uri=annotation.url,
                            title=getattr(annotation, 'title', None),
                            source=source,
                        )
                    )
    return refs


class OpenAIModelClient:
    """
    Async ModelClient on top of the OpenAI SDK.

    Configuration via environment variables:
    - OPENAI_API_KEY: Required API key

    Maps grounding has no dedicated OpenAI tool; it is served by web search
    and the citations are tagged ToolKind.MAPS_GROUNDING.
    """

    def __init__(self, api_key: str | None = None):
        """
        Initialize the client.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
        """
        self.api_key = api_key or os.getenv('OPENAI_API_KEY')
        if not self.api_key:
            raise ValueError('OPENAI_API_KEY environment variable is required')

        self._client = AsyncOpenAI(api_key=self.api_key)

    async def generate(
        self,
        model: str,
        contents: str | Sequence[Part],
        config: GenerateConfig | None = None,
    ) -> ModelResponse:
        """
        Run one model invocation.

        Args:
            model: Model identifier
            contents: Prompt text or a list of Parts
            config: Generation options

        Returns:
            ModelResponse with text, cited sources and generated images

        Raises:
            ModelClientError: Typed wrapper around the API failure
        """
        config = config or GenerateConfig()
        try:
            if config.image_config is not None:
                return await self._generate_image(model, _prompt_text(contents), config.image_config)
            return await self._generate_text(model, contents, config)
        except APIError as exc:
            raise wrap_model_error(exc, context={'model': model}) from exc

    async def _generate_text(
        self,
        model: str,
        contents: str | Sequence[Part],
        config: GenerateConfig,
    ) -> ModelResponse:
        kwargs: dict[str, Any] = {
            'model': model,
            'input': [{'role': 'user', 'content': _input_content(contents)}],
        }
        if config.tools:
            # Both grounding kinds run on the web search tool.
            kwargs['tools'] = [{'type': 'web_search'}]
        if config.response_schema is not None:
            kwargs['text'] = {
                'format': {
                    'type': 'json_schema',
                    'name': config.schema_name,
                    'schema': config.response_schema,
                    'strict': False,
                }
            }
        if config.reasoning_budget is not None:
            kwargs['reasoning'] = {'effort': reasoning_effort(config.reasoning_budget)}
        if config.max_output_tokens is not None:
            kwargs['max_output_tokens'] = config.max_output_tokens

        response = await self._create_response(**kwargs)

        source = ToolKind.WEB_SEARCH
        if ToolKind.MAPS_GROUNDING in config.tools:
            source = ToolKind.MAPS_GROUNDING

        text = response.output_text or ''
        logger.debug('openai_client.response', model=model, chars=len(text))
        return ModelResponse(text=text, grounding_references=_grounding(response, source))

    @_transient_retry
    async def _create_response(self, **kwargs: Any) -> Any:
        return await self._client.responses.create(**kwargs)

    async def _generate_image(self, model: str, prompt: str, image_config: ImageConfig) -> ModelResponse:
        family = 'dall-e-3' if model.startswith('dall-e') else 'gpt-image'
        sizes = _IMAGE_SIZES[family]
        kwargs: dict[str, Any] = {
            'model': model,
            'prompt': prompt,
            'n': 1,
            'size': sizes.get(image_config.aspect_ratio, sizes['1:1']),
        }
        if family == 'dall-e-3':
            kwargs['response_format'] = 'b64_json'
        if image_config.size_hint is not None:
            kwargs['quality'] = _SIZE_HINT_QUALITY.get(image_config.size_hint, image_config.size_hint)

        response = await self._create_image(**kwargs)

        images = [
            InlineData(mime_type='image/png', data=item.b64_json)
            for item in response.data or []
            if getattr(item, 'b64_json', None)
        ]
        if not images:
            raise ModelResponseError('Image model returned no image data', context={'model': model})
        return ModelResponse(images=images)

    @_transient_retry
    async def _create_image(self, **kwargs: Any) -> Any:
        return await self._client.images.generate(**kwargs)

    async def close(self):
        """Close the client connection."""
        await self._client.close()
