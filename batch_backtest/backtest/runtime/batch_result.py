from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from batch_backtest.backtest.engine.engine_base import ResultReport
    from batch_backtest.backtest.orchestrator.aggregation import (
        AggregatePerformanceReport,
        BatchReport,
        SummaryReport,
    )
    from batch_backtest.backtest.orchestrator.spans import DateSpan


@dataclass(frozen=True, slots=True)
class BatchResult:
    """
    Outcome of one batch call.

    ``performance_report`` and ``batch_report`` are None when the batch
    had no partitions; that means "no data", not zero.
    """

    backtests: list[ResultReport]
    performance_report: AggregatePerformanceReport | None
    batch_report: BatchReport | None
    summary_report: SummaryReport
    spans: list[DateSpan]
    elapsed_seconds: float

    @property
    def periods_total(self) -> int:
        if self.performance_report is None:
            return 0
        return self.performance_report.periods_total

    def to_dict(self) -> dict[str, Any]:
        """Render the response body handed back across the transport."""
        return {
            "backtests": [dict(b) for b in self.backtests],
            "performanceReport": (
                self.performance_report.to_dict()
                if self.performance_report is not None
                else None
            ),
            "batchReport": (
                self.batch_report.to_dict()
                if self.batch_report is not None
                else None
            ),
            "summaryReport": self.summary_report.to_dict(),
            "meta": {
                "spans": [span.to_daterange() for span in self.spans],
                "elapsedSeconds": self.elapsed_seconds,
            },
        }
