"""
Structured output targets for model calls other than structuring.

These models only describe the JSON schema sent with each request. Responses
are never validated against them directly: they go through extract_json()
and the normalizer like any other untrusted model output.

Array results are wrapped in an object because JSON-schema response formats
require an object at the top level.
"""

from pydantic import Field

from .base import CamelModel
from .deal import Slide
from .portfolio import PortfolioCompany


class MemoHighlights(CamelModel):
    executive_summary: str = ''
    investment_thesis: list[str] = Field(default_factory=list)
    key_risks: list[str] = Field(default_factory=list)
    market_overview: str = ''
    operational_upside: str = ''


class DocumentAnalysis(CamelModel):
    """Key facts the Diligence agent pulls out of uploaded documents."""

    company_name: str
    sector: str = ''
    ebitda: float = 0
    revenue: float = 0
    asking_multiple: float = 0
    summary: str
    memo: MemoHighlights


class PortfolioExtraction(CamelModel):
    companies: list[PortfolioCompany] = Field(default_factory=list)


class SlideOutline(CamelModel):
    slides: list[Slide] = Field(default_factory=list)


def response_schema(model: type[CamelModel]) -> dict:
    """JSON schema for a response model, keyed by the camelCase names."""
    return model.model_json_schema(by_alias=True)
