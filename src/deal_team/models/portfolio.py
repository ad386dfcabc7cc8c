"""
Portfolio companies and the firm profile that defines the investment mandate.
"""

from typing import Literal

from pydantic import Field

from .base import CamelModel


class PortfolioCompany(CamelModel):
    """A company already held (or watched) by the fund."""

    id: str = ''
    name: str = ''
    sector: str = ''
    location: str | None = None
    entry_date: str | None = Field(default=None, description='YYYY-MM-DD or year')
    investment_status: Literal['Active', 'Exited', 'Watchlist'] = 'Active'
    revenue: float = Field(default=0, description='LTM revenue in $M')
    ebitda: float = Field(default=0, description='LTM EBITDA in $M')
    gross_margin: float | None = None
    description: str | None = None


class FirmProfile(CamelModel):
    """The fund's mandate, injected into every strategy and opinion prompt."""

    fund_name: str = 'Meridian Capital'
    fund_type: str = 'Private Equity'
    fund_size: str = '$500M'
    website: str = ''
    check_size: str = '$10M - $50M'
    target_sectors: list[str] = Field(
        default_factory=lambda: ['Healthcare Services', 'Industrials', 'B2B Software']
    )
    business_models: list[str] = Field(
        default_factory=lambda: ['Recurring Revenue', 'High Margin Service']
    )
    geographic_focus: list[str] = Field(default_factory=lambda: ['North America'])
    revenue_range: str = '$10M - $100M'
    ebitda_range: str = '> $3M'
    profitability_status: str = 'Profitable'
    fundraising_stage: str = 'Deploying Fund III'
    strategic_notes: str = (
        'We prefer founder-led businesses. Avoid cyclical heavy industries. '
        'High retention is key.'
    )

    def format_mandate(self) -> str:
        """Render the mandate block used in prompts."""
        return (
            f"Fund: {self.fund_name} ({self.fund_type})\n"
            f"Size: {self.fund_size}. Check Size: {self.check_size}.\n"
            f"Focus Sectors: {', '.join(self.target_sectors)}.\n"
            f"Business Models: {', '.join(self.business_models)}.\n"
            f"Geo: {', '.join(self.geographic_focus)}.\n"
            f"Financial Criteria: Rev {self.revenue_range}, EBITDA {self.ebitda_range}, "
            f"Status: {self.profitability_status}.\n"
            f"Strategic Notes: {self.strategic_notes}"
        )
