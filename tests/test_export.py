"""
Tests for the CSV model and Markdown memo exports.

Run with: pytest tests/test_export.py -v
"""

import csv
import io
from datetime import date

import pytest

from deal_team.export import deal_to_csv, export_filename, memo_to_markdown
from deal_team.pipeline.normalizer import normalize


@pytest.fixture
def record(sample_deal_payload):
    return normalize(sample_deal_payload, 'Acme')


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestFilenames:
    @pytest.mark.parametrize(
        'name,kind,expected',
        [
            ('Acme Corp', 'csv', 'Acme_Corp_Deal_Model.csv'),
            ('Acme  Field\tServices', 'memo', 'Acme_Field_Services_Investment_Memo.md'),
            ('Solo', 'csv', 'Solo_Deal_Model.csv'),
        ],
    )
    def test_whitespace_collapsed(self, name: str, kind: str, expected: str):
        assert export_filename(name, kind) == expected


class TestCsvExport:
    """Statements first, then the LBO blocks."""

    def test_layout(self, record):
        rows = _rows(deal_to_csv(record))

        assert rows[0] == ['DEAL EXPORT - ACME FIELD SERVICES']
        assert ['--- FINANCIAL MODELS ---'] in rows
        assert ['INCOME STATEMENT'] in rows
        assert ['Metric', 'LTM', '2026E', '2027E'] in rows
        assert ['Revenue', '80', '88', '96.8'] in rows
        assert rows.index(['--- FINANCIAL MODELS ---']) < rows.index(['--- LBO MODEL ---'])

    def test_sources_and_uses_paired(self, record):
        rows = _rows(deal_to_csv(record))
        header = rows.index(['Sources', 'Amount', '', 'Uses', 'Amount'])

        assert rows[header + 1] == ['Senior Debt', '54', '', 'Purchase Price', '114']
        assert rows[header + 2] == ['Sponsor Equity', '66', '', '', '']

    def test_debt_schedule_uses_projection_years(self, record):
        rows = _rows(deal_to_csv(record))
        schedule = rows.index(['DEBT SCHEDULE'])

        assert rows[schedule + 1] == ['Metric', '2026E', '2027E']
        assert rows[schedule + 2] == ['Senior', '48', '40']

    def test_single_year_model(self):
        record = normalize({'financialModels': {'years': ['LTM']}}, 'Solo')
        rows = _rows(deal_to_csv(record))
        schedule = rows.index(['DEBT SCHEDULE'])

        assert rows[schedule + 1] == ['Metric', 'LTM']

    def test_default_record(self):
        text = deal_to_csv(normalize(None, 'Empty Co'))

        assert text.startswith('DEAL EXPORT - EMPTY CO\n')
        assert 'ASSUMPTIONS' in text


class TestMemoExport:
    """Markdown memo sections."""

    def test_sections(self, record):
        text = memo_to_markdown(record, as_of=date(2026, 10, 18))

        assert text.startswith('# INVESTMENT MEMO: ACME FIELD SERVICES\n')
        assert '**Date:** 2026-10-18' in text
        assert '**Recommendation:** GO' in text
        assert '- Buy-and-build' in text
        assert '## DEAL MERITS\n- Founder-led' in text
        assert 'Mitigation Strategy:\nRetention bonuses.' in text
        assert '## RECOMMENDATION RATIONALE\nRecurring maintenance revenue.' in text
        assert text.endswith('\n')

    def test_section_order(self, record):
        text = memo_to_markdown(record, as_of=date(2026, 10, 18))
        headings = [line for line in text.splitlines() if line.startswith('## ')]

        assert headings[:5] == [
            '## EXECUTIVE SUMMARY',
            '## INVESTMENT THESIS',
            '## DEAL MERITS',
            '## KEY RISKS & MITIGANTS',
            '## MARKET OVERVIEW',
        ]

    def test_empty_lists_skip_sections(self):
        text = memo_to_markdown(normalize({}, 'Empty Co'), as_of=date(2026, 1, 1))

        assert '## DEAL MERITS' not in text
        assert '## KEY RISKS & MITIGANTS' not in text
        assert '**Recommendation:** HOLD' in text
