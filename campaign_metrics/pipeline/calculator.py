"""
Metrics calculator stage — ParsedCsv → MetricSummary.

Columns are summed over the whole file before any ratio is taken, so sparse
rows with zero impressions or clicks never divide by zero. Every ratio whose
denominator total is zero is defined as 0.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Optional

from campaign_metrics.config import REQUIRED_COLUMNS, OPTIONAL_COLUMNS
from campaign_metrics.errors import MissingColumn, NonNumericValue
from campaign_metrics.pipeline.base import StageAdapter, StageResult, ParsedCsv, MetricSummary

logger = logging.getLogger('pipeline.calculator')

ZERO = Decimal('0')
HUNDRED = Decimal('100')
CENTS = Decimal('0.01')

# Totals and derived figures are stored as NUMERIC(20, 2)
FIGURE_LIMIT = Decimal(10) ** 18

_STRIP_CHARS = ('$', ',')


def resolve_columns(columns) -> Dict[str, Optional[str]]:
    """
    Map each canonical column name to the header name actually used in the file.

    Matching ignores case and surrounding whitespace. Optional columns that are
    absent map to None.

    Raises:
        MissingColumn: any required column is absent
    """
    by_lower = {}
    for col in columns:
        by_lower.setdefault(col.strip().lower(), col)

    missing = [name for name in REQUIRED_COLUMNS if name not in by_lower]
    if missing:
        raise MissingColumn(missing)

    resolved = {name: by_lower[name] for name in REQUIRED_COLUMNS}
    for name in OPTIONAL_COLUMNS:
        resolved[name] = by_lower.get(name)
    return resolved


def parse_number(raw: str, column: str, line_number: int) -> Decimal:
    """Blank → 0; "$1,200.50" → 1200.50; anything else non-numeric raises."""
    text = (raw or '').strip()
    for ch in _STRIP_CHARS:
        text = text.replace(ch, '')
    if not text:
        return ZERO
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise NonNumericValue(column, line_number, raw)
    if not value.is_finite() or value < 0:
        raise NonNumericValue(column, line_number, raw)
    return value


def _bounded(name: str, value: Decimal) -> Decimal:
    if abs(value) >= FIGURE_LIMIT:
        raise NonNumericValue(name, None, value)
    return value


def _ratio(name: str, numerator: Decimal, denominator: Decimal, scale: Decimal = HUNDRED) -> Decimal:
    if denominator == 0:
        return ZERO.quantize(CENTS)
    raw = numerator / denominator * scale
    try:
        value = raw.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise NonNumericValue(name, None, raw)
    return _bounded(name, value)


def calculate_metrics(parsed: ParsedCsv) -> MetricSummary:
    """
    Aggregate parsed rows into totals and the four derived figures.

    Raises:
        MissingColumn:   impressions, clicks, conversions or cost absent
        NonNumericValue: a cell in one of those columns (or revenue) is not a number,
                         or a total or derived figure is too large to store
    """
    columns = resolve_columns(parsed.columns)
    totals = {name: ZERO for name in columns}

    for row in parsed.rows:
        for name, header in columns.items():
            if header is None:
                continue
            totals[name] += parse_number(row.get(header), header, row.line_number)

    for name, total in totals.items():
        _bounded(name, total)

    impressions = totals['impressions']
    clicks = totals['clicks']
    conversions = totals['conversions']
    cost = totals['cost']
    revenue = totals.get('revenue', ZERO)

    return MetricSummary(
        total_impressions=impressions,
        total_clicks=clicks,
        total_conversions=conversions,
        total_cost=cost,
        total_revenue=revenue,
        click_through_rate=_ratio('click_through_rate', clicks, impressions),
        conversion_rate=_ratio('conversion_rate', conversions, clicks),
        average_cpc=_ratio('average_cpc', cost, clicks, scale=Decimal('1')),
        roi=_ratio('roi', revenue - cost, cost),
        row_count=len(parsed.rows),
    )


class ComputeStage(StageAdapter):
    """Compute the metric summary from parsed rows."""
    stage = 'computing'
    description = 'Sum impressions, clicks, conversions, cost and revenue; derive CTR, CVR, CPC, ROI'

    def run(self, payload, upload) -> StageResult:
        summary = calculate_metrics(payload)
        logger.info("Computed metrics for upload %s: ctr=%s cvr=%s cpc=%s roi=%s",
                    upload.id, summary.click_through_rate, summary.conversion_rate,
                    summary.average_cpc, summary.roi,
                    extra={'upload_id': upload.id, 'stage': self.stage})
        return StageResult(output=summary, processed=summary.row_count, meta=summary.to_dict())
