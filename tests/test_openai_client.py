"""
Tests for the OpenAI-backed ModelClient.

The SDK client is replaced by mocks so the request shapes, citation
parsing and error wrapping can be checked offline. The live test at the
end runs only when OPENAI_API_KEY is set.

Run with: pytest tests/test_openai_client.py -v
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError, BadRequestError, PermissionDeniedError

from deal_team.clients import (
    GenerateConfig,
    ImageConfig,
    InlineData,
    OpenAIModelClient,
    Part,
    ToolKind,
)
from deal_team.clients.openai_client import reasoning_effort
from deal_team.errors import ModelClientError, ModelPermissionError, ModelResponseError

REQUEST = httpx.Request('POST', 'https://api.openai.com/v1/responses')


def _text_response(text: str, urls: list[str] | None = None) -> SimpleNamespace:
    annotations = [SimpleNamespace(type='url_citation', url=url, title=f'Source {i}') for i, url in enumerate(urls or [])]
    return SimpleNamespace(
        output_text=text,
        output=[
            SimpleNamespace(type='web_search_call'),
            SimpleNamespace(
                type='message',
                content=[SimpleNamespace(type='output_text', text=text, annotations=annotations)],
            ),
        ],
    )


def _status_error(cls, message: str, status: int):
    return cls(message, response=httpx.Response(status, request=REQUEST), body=None)


@pytest.fixture
def client() -> OpenAIModelClient:
    client = OpenAIModelClient(api_key='sk-test')
    client._client = MagicMock()
    client._client.responses.create = AsyncMock(return_value=_text_response('hello'))
    client._client.images.generate = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(b64_json='iVBORw0KGgo=')])
    )
    return client


class TestInitialization:
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv('OPENAI_API_KEY', raising=False)

        with pytest.raises(ValueError):
            OpenAIModelClient()


class TestTextGeneration:
    """Requests sent to the Responses API."""

    @pytest.mark.asyncio
    async def test_plain_prompt(self, client: OpenAIModelClient):
        response = await client.generate('gpt-4.1-mini', 'Say hello')

        assert response.text == 'hello'
        kwargs = client._client.responses.create.await_args.kwargs
        assert kwargs == {
            'model': 'gpt-4.1-mini',
            'input': [{'role': 'user', 'content': [{'type': 'input_text', 'text': 'Say hello'}]}],
        }

    @pytest.mark.asyncio
    async def test_schema_reasoning_and_limit(self, client: OpenAIModelClient):
        schema = {'type': 'object', 'properties': {'companyName': {'type': 'string'}}}
        config = GenerateConfig(
            reasoning_budget=4096,
            response_schema=schema,
            schema_name='deal_package',
            max_output_tokens=8192,
        )

        await client.generate('o4-mini', 'Structure it', config)

        kwargs = client._client.responses.create.await_args.kwargs
        assert kwargs['text']['format'] == {
            'type': 'json_schema',
            'name': 'deal_package',
            'schema': schema,
            'strict': False,
        }
        assert kwargs['reasoning'] == {'effort': 'medium'}
        assert kwargs['max_output_tokens'] == 8192
        assert 'tools' not in kwargs

    @pytest.mark.asyncio
    async def test_inline_parts(self, client: OpenAIModelClient):
        parts = [
            Part(text='Analyze these'),
            Part(inline_data=InlineData(mime_type='application/pdf', data='JVBERi0=', name='cim.pdf')),
            Part(inline_data=InlineData(mime_type='image/png', data='iVBORw0KGgo=')),
        ]

        await client.generate('gpt-4.1-mini', parts)

        content = client._client.responses.create.await_args.kwargs['input'][0]['content']
        assert content == [
            {'type': 'input_text', 'text': 'Analyze these'},
            {'type': 'input_file', 'filename': 'cim.pdf', 'file_data': 'data:application/pdf;base64,JVBERi0='},
            {'type': 'input_image', 'image_url': 'data:image/png;base64,iVBORw0KGgo='},
        ]

    @pytest.mark.asyncio
    async def test_web_citations(self, client: OpenAIModelClient):
        client._client.responses.create.return_value = _text_response(
            'Acme is growing.', ['https://a.example.com', 'https://b.example.com']
        )

        response = await client.generate(
            'gpt-4.1', 'Deep dive', GenerateConfig(tools=[ToolKind.WEB_SEARCH])
        )

        assert client._client.responses.create.await_args.kwargs['tools'] == [{'type': 'web_search'}]
        assert response.grounding_uris() == ['https://a.example.com', 'https://b.example.com']
        assert response.grounding_uris(ToolKind.MAPS_GROUNDING) == []

    @pytest.mark.asyncio
    async def test_maps_citations_tagged(self, client: OpenAIModelClient):
        client._client.responses.create.return_value = _text_response('HQ found.', ['https://maps.example.com/x'])

        response = await client.generate(
            'gpt-4.1-mini', 'Where is HQ', GenerateConfig(tools=[ToolKind.MAPS_GROUNDING])
        )

        assert response.grounding_uris(ToolKind.MAPS_GROUNDING) == ['https://maps.example.com/x']

    @pytest.mark.asyncio
    async def test_missing_output_text(self, client: OpenAIModelClient):
        client._client.responses.create.return_value = SimpleNamespace(output_text=None, output=None)

        response = await client.generate('gpt-4.1-mini', 'Hi')

        assert response.text == ''
        assert response.grounding_references == []

    @pytest.mark.parametrize('budget,effort', [(0, 'low'), (1024, 'low'), (1025, 'medium'), (8192, 'medium'), (32768, 'high')])
    def test_reasoning_effort(self, budget: int, effort: str):
        assert reasoning_effort(budget) == effort


class TestImageGeneration:
    """Requests sent to the Images API."""

    @pytest.mark.asyncio
    async def test_gpt_image(self, client: OpenAIModelClient):
        response = await client.generate(
            'gpt-image-1', 'A logo', GenerateConfig(image_config=ImageConfig('16:9', size_hint='1K'))
        )

        kwargs = client._client.images.generate.await_args.kwargs
        assert kwargs == {
            'model': 'gpt-image-1',
            'prompt': 'A logo',
            'n': 1,
            'size': '1536x1024',
            'quality': 'medium',
        }
        assert response.images[0].data_uri == 'data:image/png;base64,iVBORw0KGgo='

    @pytest.mark.asyncio
    async def test_dalle_without_size_hint(self, client: OpenAIModelClient):
        await client.generate('dall-e-3', [Part(text='A logo')], GenerateConfig(image_config=ImageConfig('9:16')))

        kwargs = client._client.images.generate.await_args.kwargs
        assert kwargs['size'] == '1024x1792'
        assert kwargs['response_format'] == 'b64_json'
        assert 'quality' not in kwargs

    @pytest.mark.asyncio
    async def test_unknown_aspect_ratio_defaults_square(self, client: OpenAIModelClient):
        await client.generate('gpt-image-1', 'A logo', GenerateConfig(image_config=ImageConfig('4:3')))

        assert client._client.images.generate.await_args.kwargs['size'] == '1024x1024'

    @pytest.mark.asyncio
    async def test_no_image_data(self, client: OpenAIModelClient):
        client._client.images.generate.return_value = SimpleNamespace(data=[SimpleNamespace(b64_json=None)])

        with pytest.raises(ModelResponseError):
            await client.generate('gpt-image-1', 'A logo', GenerateConfig(image_config=ImageConfig()))


class TestErrorHandling:
    """API failures surface as typed errors."""

    @pytest.mark.asyncio
    async def test_permission_denied_wrapped(self, client: OpenAIModelClient):
        client._client.images.generate.side_effect = _status_error(
            PermissionDeniedError, 'Error code: 403 - model not available', 403
        )

        with pytest.raises(ModelPermissionError) as exc_info:
            await client.generate('gpt-image-1', 'A logo', GenerateConfig(image_config=ImageConfig()))

        assert exc_info.value.context['model'] == 'gpt-image-1'
        assert isinstance(exc_info.value.__cause__, PermissionDeniedError)
        assert client._client.images.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_bad_request_not_retried(self, client: OpenAIModelClient):
        client._client.responses.create.side_effect = _status_error(BadRequestError, 'Invalid schema', 400)

        with pytest.raises(ModelClientError):
            await client.generate('gpt-4.1-mini', 'Hi')

        assert client._client.responses.create.await_count == 1

    @pytest.mark.asyncio
    async def test_connection_error_retried(self, client: OpenAIModelClient):
        client._client.responses.create.side_effect = [
            APIConnectionError(request=REQUEST),
            _text_response('recovered'),
        ]

        response = await client.generate('gpt-4.1-mini', 'Hi')

        assert response.text == 'recovered'
        assert client._client.responses.create.await_count == 2


class TestLiveClient:
    """Runs against the real API; skipped without OPENAI_API_KEY."""

    @pytest.mark.asyncio
    async def test_simple_completion(self, openai_api_key: str):
        client = OpenAIModelClient(api_key=openai_api_key)
        try:
            response = await client.generate('gpt-4.1-mini', 'Reply with the single word: ready')
        finally:
            await client.close()

        assert 'ready' in response.text.lower()
