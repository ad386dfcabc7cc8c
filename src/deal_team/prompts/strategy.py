"""
Managing Director prompts: mandate check and final IC opinion.
"""

from ..models.deal import DealRecord

# =============================================================================
# Prompt Templates
# =============================================================================

STRATEGY_PROMPT_TEMPLATE = """User Prompt: "{user_prompt}"

FIRM HISTORICAL MANDATE:
{mandate}

Your Role: Managing Director at {fund_name}.
Task: Analyze the user's request.

CRITICAL INSTRUCTION:
The user is the final decision maker. If the request departs from the historical
mandate (a different sector, geography or deal size), allow it. Do not block the
request on mandate grounds; acknowledge the pivot and build a strategy for the
NEW request.

Output:
1. Acknowledge the user's intent.
2. If it differs from the historical mandate, flag it as a "Strategic Pivot" and proceed.
3. Define a SPECIFIC search strategy for the Scout Agent (keywords, sectors, financial criteria).

FORMATTING RULES:
- Use **bold** for key terms.
- Use ### for section headers.
- Use - for bullet points.
- Keep it brief and authoritative."""

OPINION_PROMPT_TEMPLATE = """Original Request: "{user_prompt}"

Firm Mandate:
{mandate}

Target Selected: "{company_name}"
Financials: EBITDA ${ebitda}M, IRR {irr}%.
Associate Recommendation: {recommendation}

Write the final Investment Committee opinion for {fund_name}.
Be decisive. Use bold formatting for the verdict and the key numbers."""


def build_strategy_prompt(user_prompt: str, mandate: str, fund_name: str) -> str:
    return STRATEGY_PROMPT_TEMPLATE.format(
        user_prompt=user_prompt,
        mandate=mandate,
        fund_name=fund_name,
    )


def build_opinion_prompt(record: DealRecord, mandate: str, user_prompt: str, fund_name: str) -> str:
    return OPINION_PROMPT_TEMPLATE.format(
        user_prompt=user_prompt,
        mandate=mandate,
        company_name=record.company_name,
        ebitda=record.ebitda,
        irr=record.lbo_model.irr,
        recommendation=record.memo.investment_recommendation,
        fund_name=fund_name,
    )
