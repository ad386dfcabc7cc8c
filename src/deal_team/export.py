"""
Deal Record exports.

- deal_to_csv(): financial statements, then the LBO (assumptions, sources
  and uses, debt schedule, returns) in a spreadsheet-friendly layout
- memo_to_markdown(): the investment memo as a Markdown document
- export_filename(): download name for either export
"""

import csv
import io
import re
from datetime import date
from itertools import zip_longest
from typing import Any, Literal

from .models.deal import DealRecord, FinancialSection

ExportKind = Literal['csv', 'memo']

_FILENAME_SUFFIX = {
    'csv': '_Deal_Model.csv',
    'memo': '_Investment_Memo.md',
}
_WHITESPACE_RE = re.compile(r'\s+')


def export_filename(company_name: str, kind: ExportKind) -> str:
    """``Acme Corp`` -> ``Acme_Corp_Deal_Model.csv`` / ``Acme_Corp_Investment_Memo.md``."""
    return _WHITESPACE_RE.sub('_', company_name) + _FILENAME_SUFFIX[kind]


# =============================================================================
# CSV
# =============================================================================


def _write_section(writer: Any, section: FinancialSection, periods: list[str]) -> None:
    writer.writerow([])
    writer.writerow([str(section.title).upper()])
    writer.writerow(['Metric', *periods])
    for row in section.rows:
        writer.writerow([row.label, *row.values])


def deal_to_csv(record: DealRecord) -> str:
    """
    Render the deal model as CSV text.

    Debt schedule and returns are laid out against the projection years
    (every period after the first), or all periods when there is only one.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    models = record.financial_models
    years = [str(year) for year in models.years]

    writer.writerow([f'DEAL EXPORT - {str(record.company_name).upper()}'])

    writer.writerow([])
    writer.writerow(['--- FINANCIAL MODELS ---'])
    for section in (models.income_statement, models.balance_sheet, models.cash_flow):
        _write_section(writer, section, years)

    lbo = record.lbo_detailed
    writer.writerow([])
    writer.writerow(['--- LBO MODEL ---'])

    writer.writerow([])
    writer.writerow(['ASSUMPTIONS'])
    for assumption in lbo.assumptions:
        writer.writerow([assumption.label, assumption.value])

    writer.writerow([])
    writer.writerow(['SOURCES AND USES'])
    writer.writerow(['Sources', 'Amount', '', 'Uses', 'Amount'])
    for source, use in zip_longest(lbo.sources, lbo.uses):
        writer.writerow([
            source.label if source else '',
            source.value if source else '',
            '',
            use.label if use else '',
            use.value if use else '',
        ])

    projection_years = years[1:] if len(years) > 1 else years
    _write_section(writer, lbo.debt_schedule, projection_years)
    _write_section(writer, lbo.projected_returns, projection_years)

    return buffer.getvalue()


# =============================================================================
# Markdown
# =============================================================================


def _bullets(items: list[Any]) -> list[str]:
    return [f'- {item}' for item in items]


def memo_to_markdown(record: DealRecord, as_of: date | None = None) -> str:
    """Render the investment memo; ``as_of`` defaults to today."""
    memo = record.memo
    as_of = as_of or date.today()

    lines = [
        f'# INVESTMENT MEMO: {str(record.company_name).upper()}',
        '',
        f'**Date:** {as_of.isoformat()}',
        f'**Sector:** {record.sector}',
        f'**Recommendation:** {memo.investment_recommendation or "N/A"}',
        '',
        '## EXECUTIVE SUMMARY',
        f'{memo.executive_summary or "N/A"}',
        '',
        '## INVESTMENT THESIS',
        *_bullets(memo.investment_thesis),
        '',
    ]

    if memo.deal_merits:
        lines += ['## DEAL MERITS', *_bullets(memo.deal_merits), '']

    if memo.key_risks:
        lines += ['## KEY RISKS & MITIGANTS', *_bullets(memo.key_risks)]
        if memo.risk_mitigation:
            lines += ['', 'Mitigation Strategy:', str(memo.risk_mitigation)]
        lines.append('')

    lines += ['## MARKET OVERVIEW', f'{memo.market_overview or "N/A"}', '']

    for heading, body in (
        ('COMPETITIVE LANDSCAPE', memo.competitive_landscape),
        ('CUSTOMER ANALYSIS', memo.customer_analysis),
        ('OPERATIONAL UPSIDE', memo.operational_upside),
        ('RECOMMENDATION RATIONALE', memo.recommendation_rationale),
    ):
        if body:
            lines += [f'## {heading}', str(body), '']

    return '\n'.join(lines) + '\n'
