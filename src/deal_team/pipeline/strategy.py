"""
Managing Director service: mandate check and final investment opinion.

Both calls run on the reasoning model with a small thinking budget and
return free-form markdown.
"""

import structlog

from ..clients.base import GenerateConfig, ModelClient
from ..config import config
from ..errors import StrategyError
from ..models.deal import DealRecord
from ..models.portfolio import FirmProfile
from ..prompts.strategy import build_opinion_prompt, build_strategy_prompt

logger = structlog.get_logger(__name__)


class MandateStrategist:
    """
    Turns a user request into a search strategy, and a finished deal into an
    IC opinion.

    Usage:
        strategist = MandateStrategist(client)
        strategy = await strategist.get_strategy('Find vertical SaaS', profile)
    """

    def __init__(
        self,
        client: ModelClient,
        model: str | None = None,
        reasoning_budget: int | None = None,
    ):
        self.client = client
        self.model = model or config.REASONING_MODEL
        self.reasoning_budget = reasoning_budget or config.REASONING_BUDGET

    async def _reason(self, prompt: str, failure: str) -> str:
        try:
            response = await self.client.generate(
                self.model,
                prompt,
                GenerateConfig(reasoning_budget=self.reasoning_budget),
            )
        except Exception as exc:
            raise StrategyError(f'{failure}: {exc}', context={'model': self.model}) from exc

        text = response.text.strip()
        if not text:
            raise StrategyError(f'{failure}: Empty response from MD Agent', context={'model': self.model})
        return text

    async def get_strategy(self, user_prompt: str, profile: FirmProfile) -> str:
        """
        Acknowledge the request against the mandate and define a search strategy.

        A request outside the mandate is treated as a strategic pivot, never
        refused.

        Raises:
            StrategyError: Model call failed or returned nothing
        """
        prompt = build_strategy_prompt(user_prompt, profile.format_mandate(), profile.fund_name)
        strategy = await self._reason(prompt, 'MD Strategy Generation Failed')
        logger.info('strategy.generated', chars=len(strategy))
        return strategy

    async def final_opinion(self, record: DealRecord, profile: FirmProfile, user_prompt: str) -> str:
        """
        Write the final IC opinion for a structured deal.

        Raises:
            StrategyError: Model call failed or returned nothing
        """
        prompt = build_opinion_prompt(
            record,
            profile.format_mandate(),
            user_prompt or 'Analyze this deal',
            profile.fund_name,
        )
        return await self._reason(prompt, 'Opinion Generation Failed')
