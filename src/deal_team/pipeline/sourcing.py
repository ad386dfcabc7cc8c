"""
Sourcing service: web-grounded candidate search, target selection, deep
dive and headquarters verification.
"""

from dataclasses import dataclass, field

import structlog

from ..clients.base import GenerateConfig, ModelClient, ToolKind
from ..config import config
from ..errors import ModelOutputError, SourcingError
from ..prompts.sourcing import (
    build_deep_dive_prompt,
    build_location_prompt,
    build_scout_prompt,
    build_selection_prompt,
)
from .sanitizer import extract_json

logger = structlog.get_logger(__name__)

# Deep-dive text used when the model answers with nothing.
EMPTY_DEEP_DIVE = 'No specific data found.'


@dataclass
class DeepDiveResult:
    """Research text for one company plus the web sources it cites."""

    text: str
    sources: list[str] = field(default_factory=list)


class TargetSourcer:
    """
    Scout and VP calls of the sourcing flow.

    Candidate search and the deep dive are grounded in live web search;
    location verification uses the maps grounding tool.
    """

    def __init__(
        self,
        client: ModelClient,
        fast_model: str | None = None,
        analyst_model: str | None = None,
    ):
        self.client = client
        self.fast_model = fast_model or config.FAST_MODEL
        self.analyst_model = analyst_model or config.ANALYST_MODEL

    async def scout_targets(self, strategy: str, fund_name: str) -> list[str]:
        """
        Find candidate company names matching the MD strategy.

        Returns:
            Candidate names in the order the model listed them; may be empty

        Raises:
            SourcingError: Model call failed
            ModelOutputError: Response is not a JSON array (JSONParseError
                when it is not JSON at all)
        """
        prompt = build_scout_prompt(strategy, fund_name)
        try:
            response = await self.client.generate(
                self.fast_model,
                prompt,
                GenerateConfig(tools=[ToolKind.WEB_SEARCH]),
            )
        except Exception as exc:
            raise SourcingError(f'Scouting Failed: {exc}', context={'model': self.fast_model}) from exc

        parsed = extract_json(response.text or '[]')
        if not isinstance(parsed, list):
            raise ModelOutputError(
                'Scouting Failed: Parsed output is not an array',
                context={'type': type(parsed).__name__},
            )

        candidates = [name.strip() for name in parsed if isinstance(name, str) and name.strip()]
        logger.info('sourcing.candidates_found', count=len(candidates))
        return candidates

    async def select_target(self, candidates: list[str], context: str) -> str:
        """
        Pick the single best candidate for the user request.

        Raises:
            SourcingError: No candidates, model call failed or empty answer
        """
        if not candidates:
            raise SourcingError('Target Selection Failed: No targets provided for selection')

        prompt = build_selection_prompt(candidates, context)
        try:
            response = await self.client.generate(self.fast_model, prompt)
        except Exception as exc:
            raise SourcingError(f'Target Selection Failed: {exc}') from exc

        selected = response.text.strip().strip('"*').strip()
        if not selected:
            raise SourcingError('Target Selection Failed: Empty selection response')
        return selected

    async def deep_dive(self, company_name: str) -> DeepDiveResult:
        """
        Research one company with web grounding.

        Raises:
            SourcingError: Model call failed
        """
        prompt = build_deep_dive_prompt(company_name)
        try:
            response = await self.client.generate(
                self.analyst_model,
                prompt,
                GenerateConfig(tools=[ToolKind.WEB_SEARCH]),
            )
        except Exception as exc:
            raise SourcingError(f'Deep Dive Failed: {exc}', context={'model': self.analyst_model}) from exc

        return DeepDiveResult(
            text=response.text or EMPTY_DEEP_DIVE,
            sources=response.grounding_uris(ToolKind.WEB_SEARCH),
        )

    async def verify_location(self, company_name: str) -> list[str]:
        """
        Map links for the company headquarters.

        Returns:
            Map URIs cited by the model; empty when none were found

        Raises:
            SourcingError: Model call failed
        """
        prompt = build_location_prompt(company_name)
        try:
            response = await self.client.generate(
                self.fast_model,
                prompt,
                GenerateConfig(tools=[ToolKind.MAPS_GROUNDING]),
            )
        except Exception as exc:
            raise SourcingError(f'Location Verification Failed: {exc}') from exc

        return response.grounding_uris(ToolKind.MAPS_GROUNDING)
