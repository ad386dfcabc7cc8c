"""
Deal Record models.

DealPackage is the shape the Associate asks the model to produce; its JSON
schema is sent as the structuring response schema. DealRecord extends it with
the fields the pipeline itself fills in (candidates, grounding links,
deliverables). DealRoom wraps one DealRecord with pipeline metadata and is the
unit stored in the deals slice.

Key design decisions:
- Every field has a default so a fully-defaulted record renders
- Records coming from the model are built by the normalizer with
  model_construct(), so leaf values are kept exactly as the model sent them
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import Field

from .base import CamelModel

Recommendation = Literal['GO', 'NO-GO', 'HOLD']
DeliverableStatus = Literal['drafting', 'rendering', 'completed']


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# =============================================================================
# Financial Statements
# =============================================================================


class FinancialRow(CamelModel):
    """One line item; values align positionally with FinancialModels.years."""

    label: str = ''
    values: list[float] = Field(default_factory=list)


class FinancialSection(CamelModel):
    """A titled block of rows (income statement, debt schedule, ...)."""

    title: str = ''
    rows: list[FinancialRow] = Field(default_factory=list)


class FinancialModels(CamelModel):
    """Three-statement model: LTM plus projection years."""

    years: list[str] = Field(
        default_factory=lambda: ['LTM'],
        description='Period labels, e.g. ["LTM", "2025E", "2026E"]',
    )
    income_statement: FinancialSection = Field(
        default_factory=lambda: FinancialSection(title='Income Statement')
    )
    balance_sheet: FinancialSection = Field(
        default_factory=lambda: FinancialSection(title='Balance Sheet')
    )
    cash_flow: FinancialSection = Field(
        default_factory=lambda: FinancialSection(title='Cash Flow')
    )


# =============================================================================
# LBO
# =============================================================================


class LBOModel(CamelModel):
    """Headline LBO returns."""

    entry_multiple: float = 0
    exit_multiple: float = 0
    irr: float = Field(default=0, description='IRR in percent')
    moic: float = 0
    debt_to_equity: float = 0


class LabeledText(CamelModel):
    label: str = ''
    value: str = ''


class LabeledAmount(CamelModel):
    label: str = ''
    value: float = 0


class LBODetailed(CamelModel):
    """Assumptions, sources & uses, debt schedule and projected returns."""

    assumptions: list[LabeledText] = Field(default_factory=list)
    sources: list[LabeledAmount] = Field(default_factory=list)
    uses: list[LabeledAmount] = Field(default_factory=list)
    debt_schedule: FinancialSection = Field(
        default_factory=lambda: FinancialSection(title='Debt Schedule')
    )
    projected_returns: FinancialSection = Field(
        default_factory=lambda: FinancialSection(title='Returns')
    )


class SensitivityExit(CamelModel):
    exit_multiple: float = 0
    irr: float = 0


class SensitivityRow(CamelModel):
    """IRR across exit multiples for one entry multiple."""

    entry_multiple: float = 0
    exits: list[SensitivityExit] = Field(default_factory=list)


class Comparable(CamelModel):
    name: str = ''
    multiple: float = 0


# =============================================================================
# Investment Memo
# =============================================================================


class InvestmentMemo(CamelModel):
    """Investment committee memo. Every field has a renderable default."""

    executive_summary: str = 'Pending generation...'
    investment_recommendation: Recommendation = 'HOLD'
    recommendation_rationale: str = 'Insufficient data for recommendation.'
    deal_merits: list[str] = Field(default_factory=list)
    investment_thesis: list[str] = Field(default_factory=list)
    key_risks: list[str] = Field(default_factory=list)
    risk_mitigation: str = Field(
        default='N/A', description='How the key risks are mitigated'
    )
    market_overview: str = 'N/A'
    competitive_landscape: str = Field(
        default='N/A', description='Competitors, market share, moat'
    )
    customer_analysis: str = Field(
        default='N/A', description='Concentration, retention, churn'
    )
    operational_upside: str = 'N/A'


# =============================================================================
# Deliverables
# =============================================================================


class DeliverableType(str, Enum):
    TEASER = 'Teaser'
    PITCH_DECK = 'Pitch Deck'
    CIM = 'CIM'
    ONE_PAGER = 'One Pager'

    @property
    def slide_limit(self) -> int:
        if self in (DeliverableType.TEASER, DeliverableType.ONE_PAGER):
            return 3
        return 10


class Slide(CamelModel):
    title: str = ''
    content_points: list[str] = Field(default_factory=list)
    visual_directive: str = Field(
        default='', description='Chart or visual to render on the slide'
    )
    image_url: str | None = None


class Deliverable(CamelModel):
    """A generated presentation artifact."""

    id: str
    type: DeliverableType
    title: str
    status: DeliverableStatus = 'drafting'
    slides: list[Slide] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


# =============================================================================
# Deal Record
# =============================================================================


class DealPackage(CamelModel):
    """Deal package produced by the structuring call."""

    company_name: str = 'Target Company'
    sector: str = 'Unknown'
    location: str = 'N/A'

    ebitda: float = Field(default=0, description='LTM EBITDA in $M')
    revenue: float = Field(default=0, description='LTM revenue in $M')
    asking_multiple: float = 0
    implied_value: float = 0

    financial_models: FinancialModels = Field(default_factory=FinancialModels)
    lbo_model: LBOModel = Field(default_factory=LBOModel)
    lbo_detailed: LBODetailed = Field(default_factory=LBODetailed)
    memo: InvestmentMemo = Field(default_factory=InvestmentMemo)
    sensitivity_analysis: list[SensitivityRow] = Field(default_factory=list)
    comparables: list[Comparable] = Field(default_factory=list)


class DealRecord(DealPackage):
    """Canonical, fully populated deal record consumed by renderers."""

    candidates_analyzed: list[str] = Field(default_factory=list)
    grounding_urls: list[str] = Field(default_factory=list)
    deliverables: list[Deliverable] = Field(default_factory=list)


class DealStage(str, Enum):
    SOURCING = 'Sourcing'
    SCREENING = 'Screening'
    DILIGENCE = 'Diligence'
    IC_REVIEW = 'IC Review'
    CLOSED = 'Closed'
    PASSED = 'Passed'


class DealRoom(CamelModel):
    """One deal in the pipeline together with its record."""

    id: str
    title: str
    stage: DealStage = DealStage.SOURCING
    data: DealRecord
    created_at: datetime = Field(default_factory=_utcnow)
    last_updated: datetime = Field(default_factory=_utcnow)
    tags: list[str] = Field(default_factory=list)
    priority: Literal['Low', 'Medium', 'High'] = 'Medium'
