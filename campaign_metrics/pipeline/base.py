"""
Pipeline stage contracts and the value types that flow between stages.

Every stage adapter implements StageAdapter.run() and returns a StageResult.
The coordinator only sees the uniform interface:

    parsing   : None        → ParsedCsv
    computing : ParsedCsv   → MetricSummary
    storing   : MetricSummary → MetricRecord
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type

from campaign_metrics.config import ROLE_ADMIN


@dataclass(frozen=True)
class Caller:
    """Identity of the user on whose behalf a core operation runs."""
    user_id: int
    role: str = 'client'

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def can_access(self, owner_id: int) -> bool:
        return self.is_admin or owner_id == self.user_id


@dataclass(frozen=True)
class CsvRow:
    """One data row: its 1-based line number in the file and column → cell text."""
    line_number: int
    values: Dict[str, str]

    def get(self, column: str, default: str = '') -> str:
        return self.values.get(column, default)


@dataclass
class ParsedCsv:
    """Header plus data rows in file order."""
    columns: List[str]
    rows: List[CsvRow]
    skipped_lines: List[int] = field(default_factory=list)

    def __len__(self):
        return len(self.rows)


@dataclass(frozen=True)
class MetricSummary:
    """Aggregated totals and the four derived figures for one upload."""
    total_impressions: Decimal
    total_clicks: Decimal
    total_conversions: Decimal
    total_cost: Decimal
    total_revenue: Decimal
    click_through_rate: Decimal
    conversion_rate: Decimal
    average_cpc: Decimal
    roi: Decimal
    row_count: int

    def to_dict(self) -> Dict[str, str]:
        return {
            'totalImpressions': str(self.total_impressions),
            'totalClicks': str(self.total_clicks),
            'totalConversions': str(self.total_conversions),
            'totalCost': str(self.total_cost),
            'totalRevenue': str(self.total_revenue),
            'clickThroughRate': str(self.click_through_rate),
            'conversionRate': str(self.conversion_rate),
            'averageCpc': str(self.average_cpc),
            'roi': str(self.roi),
            'rowCount': self.row_count,
        }


@dataclass
class StageResult:
    """Uniform output from every pipeline stage."""
    output: Any
    processed: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


class StageAdapter(ABC):
    """
    Base class for the pipeline stages.

    The adapter receives the previous stage's output and the Upload row being
    processed, does its work, and returns a StageResult whose `output` feeds
    the next stage. Errors are raised as PipelineError subclasses; the
    coordinator turns them into a failed upload.
    """
    stage: str = ''
    description: str = ''

    @abstractmethod
    def run(self, payload: Any, upload: Any) -> StageResult:
        """
        Execute this stage.

        Args:
            payload: Output of the previous stage (None for the first stage).
            upload:  The Upload row (upload.id, upload.storage_key, ...).

        Returns:
            StageResult carrying the value for the next stage.
        """
        ...


def get_adapter(stage_registry: Dict[str, Type[StageAdapter]], stage: str,
                **kwargs) -> StageAdapter:
    """Look up and instantiate the adapter for a stage."""
    adapter_cls = stage_registry.get(stage)
    if not adapter_cls:
        raise ValueError(f"No adapter registered for stage '{stage}'")
    return adapter_cls(**kwargs)


def get_pipeline_info(stage_registry: Dict[str, Type[StageAdapter]]) -> List[Dict[str, Optional[str]]]:
    """Serialize the stage registry into a JSON-friendly list, in run order."""
    return [
        {'stage': name, 'description': cls.description or ''}
        for name, cls in stage_registry.items()
    ]
