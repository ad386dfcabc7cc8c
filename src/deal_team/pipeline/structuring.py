"""
Associate service: builds the full deal package for one company.

The model is asked for a DealPackage-shaped JSON object; the response goes
through the sanitizer and the normalizer, so the caller always receives a
fully populated DealRecord even from a truncated answer.
"""

import structlog

from ..clients.base import GenerateConfig, ModelClient
from ..config import config
from ..errors import StructuringError
from ..models.deal import DealPackage, DealRecord
from ..models.extraction import response_schema
from ..models.portfolio import PortfolioCompany
from ..prompts.structuring import build_structuring_prompt
from .normalizer import normalize
from .sanitizer import extract_json

logger = structlog.get_logger(__name__)


class DealStructurer:
    """
    Generates the 3-statement model, LBO, memo and sensitivity grid.

    Usage:
        structurer = DealStructurer(client)
        record = await structurer.generate_structure('Acme', research, candidates, portfolio)
    """

    def __init__(
        self,
        client: ModelClient,
        model: str | None = None,
        max_output_tokens: int | None = None,
    ):
        self.client = client
        self.model = model or config.ANALYST_MODEL
        self.max_output_tokens = max_output_tokens or config.STRUCTURING_MAX_TOKENS
        self._schema = response_schema(DealPackage)

    async def generate_structure(
        self,
        company_name: str,
        raw_data: str,
        candidates: list[str] | None = None,
        portfolio: list[PortfolioCompany] | None = None,
        fund_name: str = 'the fund',
    ) -> DealRecord:
        """
        Structure a deal from research text or extracted document data.

        Args:
            company_name: Target name; also the fallback when the model omits it
            raw_data: Deep-dive text or JSON from document analysis
            candidates: Candidate list the target was selected from
            portfolio: Portfolio companies quoted as benchmarks
            fund_name: Fund the package is prepared for

        Returns:
            Normalized DealRecord with candidates_analyzed set

        Raises:
            StructuringError: Model call failed
            JSONParseError: Response could not be parsed even after repair
        """
        log = logger.bind(company=company_name)
        prompt = build_structuring_prompt(company_name, raw_data, fund_name, portfolio)

        try:
            response = await self.client.generate(
                self.model,
                prompt,
                GenerateConfig(
                    response_schema=self._schema,
                    schema_name='deal_package',
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as exc:
            raise StructuringError(
                f'Structure Generation Failed: {exc}',
                context={'company': company_name, 'model': self.model},
            ) from exc

        parsed = extract_json(response.text or '{}')
        if not isinstance(parsed, dict):
            log.warning('structuring.unexpected_shape', type=type(parsed).__name__)

        record = normalize(parsed, company_name)
        record.candidates_analyzed = list(candidates or [])
        log.info(
            'structuring.completed',
            ebitda=record.ebitda,
            recommendation=record.memo.investment_recommendation,
        )
        return record

