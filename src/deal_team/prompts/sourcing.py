"""
Scout and VP prompts: candidate search, selection, deep dive and HQ lookup.
"""

# Number of candidates the scout is asked for.
SCOUT_TARGET_COUNT = 5

SCOUT_PROMPT_TEMPLATE = """You are the Scout Agent for {fund_name}.
MD Directive:
{strategy}

Task: Search the LIVE WEB for {count} real, existing private or public companies that fit
these criteria. Focus on companies with recent news, funding or market activity.

CRITICAL: Return ONLY a raw JSON array of strings with their names.
Do NOT write any introductory text. Just the array.

Example: ["Company A", "Company B", "Company C"]"""

SELECTION_PROMPT_TEMPLATE = """Candidates: {candidates}.
User Context / Mandate:
{mandate}

Task: Pick the SINGLE best candidate that fits the user's current request.
Return ONLY the company name."""

DEEP_DIVE_PROMPT_TEMPLATE = """Perform a deep-dive investigation on: "{company_name}".

SEARCH STRATEGY (triangulation):
1. Search for official financials (Revenue, EBITDA).
2. If private or missing, search for employee count and funding history to ESTIMATE
   revenue (e.g. ~$200k ARR per employee for SaaS).
3. Identify the top 3 competitors and their trading multiples.
4. Find the headquarters location.

OUTPUT REQUIREMENT:
- Synthesize a comprehensive profile.
- Where numbers are estimated, state it explicitly: "Estimated based on [proxy]..."
- Do not simply say "Data not found". Fill the gaps with sector benchmarks."""

LOCATION_PROMPT_TEMPLATE = (
    'Where is the headquarters of {company_name}? Provide the exact address if possible.'
)


def build_scout_prompt(strategy: str, fund_name: str, count: int = SCOUT_TARGET_COUNT) -> str:
    return SCOUT_PROMPT_TEMPLATE.format(strategy=strategy, fund_name=fund_name, count=count)


def build_selection_prompt(candidates: list[str], mandate: str) -> str:
    return SELECTION_PROMPT_TEMPLATE.format(candidates=', '.join(candidates), mandate=mandate)


def build_deep_dive_prompt(company_name: str) -> str:
    return DEEP_DIVE_PROMPT_TEMPLATE.format(company_name=company_name)


def build_location_prompt(company_name: str) -> str:
    return LOCATION_PROMPT_TEMPLATE.format(company_name=company_name)
