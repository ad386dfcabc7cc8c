"""
Pytest configuration and shared fixtures.

Key fixtures:
- kv: Empty in-memory key-value store
- state: Hydrated StateStore over ``kv``
- openai_api_key: OpenAI API key from environment (live tests only)

All pipeline tests mock the model services; no API key is needed except
for tests that ask for ``openai_api_key``.
"""

import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)

from deal_team.store import MemoryKeyValueStore, StateStore


@pytest.fixture
def openai_api_key() -> str:
    """Get OpenAI API key from environment."""
    key = os.getenv('OPENAI_API_KEY')
    if not key:
        pytest.skip('OPENAI_API_KEY not set')
    return key


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    """Empty in-memory store."""
    return MemoryKeyValueStore()


@pytest.fixture
def state(kv: MemoryKeyValueStore) -> StateStore:
    """Freshly hydrated state over the in-memory store."""
    return StateStore(kv).hydrate()


@pytest.fixture
def sample_deal_payload() -> dict:
    """A complete structuring response, as the model would send it."""
    return {
        'companyName': 'Acme Field Services',
        'sector': 'Industrials',
        'location': 'Columbus, OH',
        'ebitda': 12.0,
        'revenue': 80.0,
        'askingMultiple': 9.5,
        'impliedValue': 114.0,
        'financialModels': {
            'years': ['LTM', '2026E', '2027E'],
            'incomeStatement': {
                'title': 'Income Statement',
                'rows': [
                    {'label': 'Revenue', 'values': [80, 88, 96.8]},
                    {'label': 'EBITDA', 'values': [12, 13.9, 15.5]},
                ],
            },
            'balanceSheet': {'title': 'Balance Sheet', 'rows': [{'label': 'Cash', 'values': [5, 7, 10]}]},
            'cashFlow': {'title': 'Cash Flow', 'rows': [{'label': 'FCF', 'values': [6, 7, 8]}]},
        },
        'lboModel': {'entryMultiple': 9.5, 'exitMultiple': 10, 'irr': 24.1, 'moic': 2.9, 'debtToEquity': 1.4},
        'lboDetailed': {
            'assumptions': [{'label': 'Senior Debt', 'value': '4.5x'}],
            'sources': [{'label': 'Senior Debt', 'value': 54}, {'label': 'Sponsor Equity', 'value': 66}],
            'uses': [{'label': 'Purchase Price', 'value': 114}],
            'debtSchedule': {'title': 'Debt Schedule', 'rows': [{'label': 'Senior', 'values': [48, 40]}]},
            'projectedReturns': {'title': 'Returns', 'rows': [{'label': 'Equity Value', 'values': [90, 120]}]},
        },
        'memo': {
            'executiveSummary': 'Route-dense HVAC services platform.',
            'investmentRecommendation': 'GO',
            'recommendationRationale': 'Recurring maintenance revenue.',
            'dealMerits': ['Founder-led', 'Recurring contracts'],
            'investmentThesis': ['Buy-and-build', 'Pricing power'],
            'keyRisks': ['Technician retention'],
            'riskMitigation': 'Retention bonuses.',
            'marketOverview': 'Fragmented regional market.',
            'competitiveLandscape': 'Local independents.',
            'customerAnalysis': 'No customer above 5%.',
            'operationalUpside': 'Route optimization.',
        },
        'sensitivityAnalysis': [
            {'entryMultiple': 9, 'exits': [{'exitMultiple': 9, 'irr': 20}, {'exitMultiple': 11, 'irr': 27}]},
        ],
        'comparables': [{'name': 'Comfort Systems', 'multiple': 14.2}],
    }
