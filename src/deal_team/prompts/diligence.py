"""
Diligence Agent prompts for uploaded documents.
"""

DOCUMENT_ANALYSIS_PROMPT_TEMPLATE = """Act as a Private Equity Diligence Agent for {fund_name}.
Analyze the provided document(s).
User Context: "{user_prompt}"

TASK:
1. Extract key metrics (EBITDA, Revenue) in $M.
2. If specific metrics are missing, INFER them from context or sector averages
   (e.g. if OpEx is listed, back into margins).
3. Return a structured JSON object. companyName is required."""

PORTFOLIO_PROMPT_TEMPLATE = """Act as a Private Equity Operations Agent for {fund_name}.
Parse the attached portfolio data into one entry per company.
Revenue and EBITDA are LTM figures in $M; investmentStatus is one of
Active, Exited, Watchlist. Return a JSON object with a "companies" array."""


def build_document_analysis_prompt(user_prompt: str, fund_name: str) -> str:
    return DOCUMENT_ANALYSIS_PROMPT_TEMPLATE.format(user_prompt=user_prompt, fund_name=fund_name)


def build_portfolio_prompt(fund_name: str) -> str:
    return PORTFOLIO_PROMPT_TEMPLATE.format(fund_name=fund_name)
