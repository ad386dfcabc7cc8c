"""
Deal Record normalizer.

Maps whatever the sanitizer produced onto a fully populated DealRecord so
renderers never meet a missing field. The rules:

- A value the model supplied (present and not None) is kept verbatim; leaf
  values are never coerced, which is why models are built with
  model_construct() instead of validation.
- A missing value gets the field default declared on the model.
- Composite fields are defaulted one level deep, field by field. A composite
  of the wrong container type (a memo that is a string, rows that are not a
  list) counts as missing.

Every function here is total: any input, including None, produces a record.
"""

from datetime import datetime, timezone
from typing import Any, TypeVar, get_args, get_origin

import structlog
from pydantic import TypeAdapter, ValidationError

from ..models.base import CamelModel
from ..models.deal import (
    Comparable,
    DealRecord,
    Deliverable,
    DeliverableStatus,
    DeliverableType,
    FinancialModels,
    FinancialRow,
    FinancialSection,
    InvestmentMemo,
    LabeledAmount,
    LabeledText,
    LBODetailed,
    LBOModel,
    SensitivityExit,
    SensitivityRow,
    Slide,
)
from ..models.portfolio import PortfolioCompany
from ..utils import new_id

logger = structlog.get_logger(__name__)

M = TypeVar('M', bound=CamelModel)

FALLBACK_COMPANY_NAME = 'Target Company'

_DELIVERABLE_STATUSES = get_args(DeliverableStatus)
_TIMESTAMP = TypeAdapter(datetime)

# Keys older model prompts used for the same field.
_LEGACY_KEYS = {
    (LBOModel, 'debt_to_equity'): ('debttoEquity',),
    (SensitivityExit, 'exit_multiple'): ('multiple',),
}


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _items(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _lookup(model_cls: type[CamelModel], name: str, source: dict[str, Any]) -> Any:
    field = model_cls.model_fields[name]
    keys = (field.alias or name, name, *_LEGACY_KEYS.get((model_cls, name), ()))
    for key in keys:
        if source.get(key) is not None:
            return source[key]
    return None


def _construct(model_cls: type[M], source: Any, **composites: Any) -> M:
    """
    Build ``model_cls`` from ``source`` without validation.

    Fields passed in ``composites`` are taken as given (already normalized);
    every other field is looked up in ``source`` and defaulted when missing.
    List-typed fields that hold something other than a list are defaulted.
    """
    source = _mapping(source)
    values: dict[str, Any] = {}
    for name, field in model_cls.model_fields.items():
        if name in composites:
            values[name] = composites[name]
            continue
        value = _lookup(model_cls, name, source)
        if value is None or (get_origin(field.annotation) is list and not isinstance(value, list)):
            value = field.get_default(call_default_factory=True)
        values[name] = value
    return model_cls.model_construct(**values)


# =============================================================================
# Composite Fields
# =============================================================================


def _rows(value: Any) -> list[FinancialRow]:
    return [_construct(FinancialRow, row) for row in _items(value) if isinstance(row, dict)]


def _section(value: Any, default_title: str) -> FinancialSection:
    section = _mapping(value)
    title = section.get('title')
    return FinancialSection.model_construct(
        title=default_title if title is None else title,
        rows=_rows(section.get('rows')),
    )


def normalize_financial_models(value: Any) -> FinancialModels:
    models = _mapping(value)
    return _construct(
        FinancialModels,
        models,
        income_statement=_section(models.get('incomeStatement'), 'Income Statement'),
        balance_sheet=_section(models.get('balanceSheet'), 'Balance Sheet'),
        cash_flow=_section(models.get('cashFlow'), 'Cash Flow'),
    )


def normalize_lbo_detailed(value: Any) -> LBODetailed:
    detailed = _mapping(value)
    return _construct(
        LBODetailed,
        detailed,
        assumptions=[
            _construct(LabeledText, item)
            for item in _items(detailed.get('assumptions'))
            if isinstance(item, dict)
        ],
        sources=[
            _construct(LabeledAmount, item)
            for item in _items(detailed.get('sources'))
            if isinstance(item, dict)
        ],
        uses=[
            _construct(LabeledAmount, item)
            for item in _items(detailed.get('uses'))
            if isinstance(item, dict)
        ],
        debt_schedule=_section(detailed.get('debtSchedule'), 'Debt Schedule'),
        projected_returns=_section(detailed.get('projectedReturns'), 'Returns'),
    )


def _sensitivity(value: Any) -> list[SensitivityRow]:
    rows = []
    for row in _items(value):
        if not isinstance(row, dict):
            continue
        exits = [_construct(SensitivityExit, e) for e in _items(row.get('exits')) if isinstance(e, dict)]
        rows.append(_construct(SensitivityRow, row, exits=exits))
    return rows


def normalize_slides(value: Any) -> list[Slide]:
    """Slides from a model outline; accepts a bare list or ``{"slides": [...]}``."""
    if isinstance(value, dict):
        value = value.get('slides')
    return [_construct(Slide, slide) for slide in _items(value) if isinstance(slide, dict)]


def _timestamp(value: Any) -> datetime:
    try:
        return _TIMESTAMP.validate_python(value)
    except ValidationError:
        return datetime.now(tz=timezone.utc)


def _deliverable(item: dict[str, Any]) -> Deliverable:
    try:
        deliverable_type = DeliverableType(item.get('type'))
    except (ValueError, TypeError):
        # Unknown types fall back to the largest slide limit so no slide is cut.
        deliverable_type = DeliverableType.PITCH_DECK
    status = item.get('status')
    title = item.get('title')
    return _construct(
        Deliverable,
        item,
        id=str(item.get('id') or new_id()),
        type=deliverable_type,
        title=deliverable_type.value if title is None else title,
        status=status if status in _DELIVERABLE_STATUSES else 'drafting',
        slides=normalize_slides(item.get('slides')),
        created_at=_timestamp(item.get('createdAt')),
    )


def _deliverables(value: Any) -> list[Deliverable]:
    # Slides keep model-written leaves, so stored deliverables are rebuilt
    # without validation, like the rest of the record.
    deliverables = []
    for item in _items(value):
        if not isinstance(item, dict):
            logger.warning('normalizer.deliverable_dropped', type=type(item).__name__)
            continue
        deliverables.append(_deliverable(item))
    return deliverables


# =============================================================================
# Public API
# =============================================================================


def normalize(parsed: Any, fallback_name: str) -> DealRecord:
    """
    Turn a parsed (possibly partial) model response into a DealRecord.

    Args:
        parsed: Output of extract_json(); anything, including None
        fallback_name: Company name used when the response has none

    Returns:
        DealRecord with every field present
    """
    data = _mapping(parsed)
    company_name = _lookup(DealRecord, 'company_name', data) or fallback_name or FALLBACK_COMPANY_NAME

    return _construct(
        DealRecord,
        data,
        company_name=company_name,
        financial_models=normalize_financial_models(data.get('financialModels')),
        lbo_model=_construct(LBOModel, data.get('lboModel')),
        lbo_detailed=normalize_lbo_detailed(data.get('lboDetailed')),
        memo=_construct(InvestmentMemo, data.get('memo')),
        sensitivity_analysis=_sensitivity(data.get('sensitivityAnalysis')),
        comparables=[
            _construct(Comparable, item)
            for item in _items(data.get('comparables'))
            if isinstance(item, dict)
        ],
        deliverables=_deliverables(data.get('deliverables')),
    )


def normalize_portfolio(parsed: Any) -> list[PortfolioCompany]:
    """
    Portfolio rows from a model response.

    Accepts a bare list or ``{"companies": [...]}``. Rows without an id get one.
    """
    if isinstance(parsed, dict):
        parsed = parsed.get('companies')
    companies = []
    for row in _items(parsed):
        if not isinstance(row, dict):
            continue
        company = _construct(PortfolioCompany, row)
        if not company.id:
            company.id = new_id()
        companies.append(company)
    return companies
