"""
Diligence service: reads uploaded documents.

- analyze_documents(): extracts headline metrics and memo highlights for one
  target from CIMs, financial statements and similar files
- ingest_portfolio(): parses portfolio reports into PortfolioCompany rows
"""

from typing import Any

import structlog

from ..clients.base import GenerateConfig, InlineData, ModelClient, Part
from ..config import config
from ..errors import DiligenceError
from ..models.extraction import DocumentAnalysis, PortfolioExtraction, response_schema
from ..models.messages import FileAttachment
from ..models.portfolio import PortfolioCompany
from ..prompts.diligence import build_document_analysis_prompt, build_portfolio_prompt
from .normalizer import normalize_portfolio
from .sanitizer import extract_json

logger = structlog.get_logger(__name__)


def attachment_parts(instruction: str, files: list[FileAttachment]) -> list[Part]:
    """Instruction text followed by one inline part per file (raw base64)."""
    parts = [Part(text=instruction)]
    for file in files:
        parts.append(
            Part(
                inline_data=InlineData(
                    mime_type=file.mime_type,
                    data=file.base64_payload,
                    name=file.name,
                )
            )
        )
    return parts


class DiligenceAnalyst:
    """Document-reading calls of the Diligence agent."""

    def __init__(self, client: ModelClient, model: str | None = None):
        self.client = client
        self.model = model or config.FAST_MODEL

    async def analyze_documents(
        self,
        files: list[FileAttachment],
        user_prompt: str,
        fund_name: str = 'the fund',
    ) -> dict[str, Any]:
        """
        Extract key facts about the company described in ``files``.

        Returns:
            Parsed analysis object (camelCase keys); always has companyName

        Raises:
            DiligenceError: Model call failed or no company name was found
            JSONParseError: Response could not be parsed even after repair
        """
        parts = attachment_parts(build_document_analysis_prompt(user_prompt, fund_name), files)
        try:
            response = await self.client.generate(
                self.model,
                parts,
                GenerateConfig(
                    response_schema=response_schema(DocumentAnalysis),
                    schema_name='document_analysis',
                ),
            )
        except Exception as exc:
            raise DiligenceError(
                f'Document Analysis Failed: {exc}',
                context={'files': [f.name for f in files]},
            ) from exc

        analysis = extract_json(response.text or '{}')
        if not isinstance(analysis, dict) or not analysis.get('companyName'):
            raise DiligenceError(
                'Document Analysis Failed: Failed to extract company name from document',
                context={'files': [f.name for f in files]},
            )

        logger.info('diligence.documents_analyzed', company=analysis['companyName'], files=len(files))
        return analysis

    async def ingest_portfolio(
        self,
        files: list[FileAttachment],
        fund_name: str = 'the fund',
    ) -> list[PortfolioCompany]:
        """
        Parse portfolio documents into companies; rows without an id get one.

        Raises:
            DiligenceError: Model call failed or the response holds no company list
        """
        parts = attachment_parts(build_portfolio_prompt(fund_name), files)
        try:
            response = await self.client.generate(
                self.model,
                parts,
                GenerateConfig(
                    response_schema=response_schema(PortfolioExtraction),
                    schema_name='portfolio',
                ),
            )
        except Exception as exc:
            raise DiligenceError(f'Portfolio Ingestion Failed: {exc}') from exc

        parsed = extract_json(response.text or '[]')
        if not isinstance(parsed, list) and not isinstance(_companies(parsed), list):
            raise DiligenceError('Portfolio Ingestion Failed: Failed to parse portfolio array.')

        companies = normalize_portfolio(parsed)
        logger.info('diligence.portfolio_ingested', companies=len(companies))
        return companies


def _companies(parsed: Any) -> Any:
    return parsed.get('companies') if isinstance(parsed, dict) else None
