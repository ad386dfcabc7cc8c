"""
Associate prompt for the full deal package (3-statement model, LBO, memo).

The response shape is enforced with the DealPackage JSON schema; the prompt
only carries the modeling instructions.
"""

from ..models.portfolio import PortfolioCompany

# Portfolio companies quoted as benchmarks.
BENCHMARK_LIMIT = 3

STRUCTURING_PROMPT_TEMPLATE = """Create a detailed deal package for "{company_name}" for {fund_name}, based on:
{raw_data}
{benchmarks}
MODELING INSTRUCTIONS:
1. **FILL THE GAPS**: Private company data is often missing. ESTIMATE missing metrics
   (margins, CapEx, growth) from sector benchmarks.
2. **DO NOT RETURN ZEROS**: A model of zeros is useless. Use industry-standard assumptions
   where needed and note them in the memo.
3. **3-Statement Model**: LTM plus 5 projection years. EBITDA must flow from Revenue x Margin.
4. **LBO Model**: Assume standard PE leverage (e.g. 4.0x-5.0x senior, 1.0x mezzanine).
   Calculate 5-year returns. IRR is in percent.
5. **Investment Memo**: Professional and decisive; explain *why* each estimate was made.
6. **Sensitivity**: IRR grid across 3 entry and 3 exit multiples.

Return a single JSON object."""


def format_benchmarks(portfolio: list[PortfolioCompany]) -> str:
    """One-line benchmark context from the first few portfolio companies."""
    if not portfolio:
        return ''
    peers = [f'{p.name} ({p.sector}, {p.ebitda}M EBITDA)' for p in portfolio[:BENCHMARK_LIMIT]]
    return f'\nCONTEXT - PORTFOLIO BENCHMARKS: {", ".join(peers)}.\n'


def build_structuring_prompt(
    company_name: str,
    raw_data: str,
    fund_name: str,
    portfolio: list[PortfolioCompany] | None = None,
) -> str:
    return STRUCTURING_PROMPT_TEMPLATE.format(
        company_name=company_name,
        fund_name=fund_name,
        raw_data=raw_data,
        benchmarks=format_benchmarks(portfolio or []),
    )
