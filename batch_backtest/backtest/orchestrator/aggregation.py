"""
Report aggregation.

Reduces per-partition result reports into batch-level summaries. Reports
must be in partition (chronological) order: boundary fields are taken
from the first and the last report.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from batch_backtest.errors import AggregationError

# Fields summed across partitions, as (report key, attribute name)
SUMMED_FIELDS: tuple[tuple[str, str], ...] = (
    ("losses", "losses"),
    ("profit", "profit"),
    ("relativeProfit", "relative_profit"),
    ("trades", "trades"),
    ("yearlyProfit", "yearly_profit"),
)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class AggregatePerformanceReport:
    losses: float
    profit: float
    relative_profit: float
    trades: float
    yearly_profit: float

    # From the first partition
    start_balance: Any
    start_price: Any
    start_time: Any

    # From the last partition
    end_price: Any
    end_time: Any

    min_profit: float
    max_profit: float
    periods_profit: int
    periods_loss: int
    periods_total: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "losses": self.losses,
            "profit": self.profit,
            "relativeProfit": self.relative_profit,
            "trades": self.trades,
            "yearlyProfit": self.yearly_profit,
            "startBalance": self.start_balance,
            "startPrice": self.start_price,
            "startTime": self.start_time,
            "endPrice": self.end_price,
            "endTime": self.end_time,
            "minProfit": self.min_profit,
            "maxProfit": self.max_profit,
            "periodsProfit": self.periods_profit,
            "periodsLoss": self.periods_loss,
            "periodsTotal": self.periods_total,
        }


@dataclass(frozen=True, slots=True)
class BatchReport:
    min_profit: float
    max_profit: float

    def to_dict(self) -> dict[str, Any]:
        return {"minProfit": self.min_profit, "maxProfit": self.max_profit}


@dataclass(frozen=True, slots=True)
class SummaryReport:
    """Trades / profit rollup computed from the advisor's simplified stats."""

    stats: list[Mapping[str, Any]]
    trades: float
    total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": [dict(s) for s in self.stats],
            "trades": self.trades,
            "total": self.total,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _number(value: Any) -> float:
    """Missing values count as zero; anything else must be numeric."""
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    return value


def _performance_reports(
    reports: Sequence[Mapping[str, Any]],
) -> list[Mapping[str, Any]]:
    performance: list[Mapping[str, Any]] = []

    for index, report in enumerate(reports):
        if not isinstance(report, Mapping):
            raise AggregationError(
                index=index,
                reason=f"report is {type(report).__name__}, not a mapping",
            )

        perf = report.get("performanceReport")
        if not isinstance(perf, Mapping):
            raise AggregationError(
                index=index,
                reason="missing performanceReport",
            )

        performance.append(perf)

    return performance


def _profits(performance: Sequence[Mapping[str, Any]]) -> list[float]:
    profits: list[float] = []

    for index, perf in enumerate(performance):
        try:
            profits.append(_number(perf.get("profit")))
        except TypeError as exc:
            raise AggregationError(index=index, reason=f"profit: {exc}") from exc

    return profits


# ---------------------------------------------------------------------------
# Aggregators
# ---------------------------------------------------------------------------

def aggregate_performance(
    reports: Sequence[Mapping[str, Any]],
    profit_threshold: float = 0.0,
) -> AggregatePerformanceReport | None:
    """
    Sum the per-partition performance reports.

    Returns None for an empty batch. A partition counts as profitable when
    its profit is at least ``profit_threshold``.
    """
    if not reports:
        return None

    performance = _performance_reports(reports)

    totals = {attr: 0 for _, attr in SUMMED_FIELDS}

    for index, perf in enumerate(performance):
        for key, attr in SUMMED_FIELDS:
            try:
                totals[attr] += _number(perf.get(key))
            except TypeError as exc:
                raise AggregationError(
                    index=index,
                    reason=f"{key}: {exc}",
                ) from exc

    profits = _profits(performance)
    periods_profit = sum(1 for p in profits if p >= profit_threshold)

    first = performance[0]
    last = performance[-1]

    return AggregatePerformanceReport(
        **totals,
        start_balance=first.get("startBalance"),
        start_price=first.get("startPrice"),
        start_time=first.get("startTime"),
        end_price=last.get("endPrice"),
        end_time=last.get("endTime"),
        min_profit=min(profits),
        max_profit=max(profits),
        periods_profit=periods_profit,
        periods_loss=len(profits) - periods_profit,
        periods_total=len(reports),
    )


def aggregate_batch(
    reports: Sequence[Mapping[str, Any]],
) -> BatchReport | None:
    """Profit extremes across partitions; None for an empty batch."""
    if not reports:
        return None

    profits = _profits(_performance_reports(reports))

    return BatchReport(min_profit=min(profits), max_profit=max(profits))


def collect_advisor_stats(
    reports: Iterable[Mapping[str, Any]],
) -> list[Mapping[str, Any]]:
    """Pick ``tradingAdvisor.stats`` from each report, skipping absent ones."""
    stats: list[Mapping[str, Any]] = []

    for report in reports:
        advisor = report.get("tradingAdvisor") if isinstance(report, Mapping) else None
        if not isinstance(advisor, Mapping):
            continue

        entry = advisor.get("stats")
        if entry is not None:
            stats.append(entry)

    return stats


def summarize_stats(
    stats: Iterable[Mapping[str, Any] | None],
) -> SummaryReport:
    """
    Roll up simplified per-partition stats.

    ``trades`` sums the ``profits`` counters and ``total`` sums
    ``profitTot``. Absent entries and fields contribute zero.
    """
    kept: list[Mapping[str, Any]] = []
    trades: float = 0
    total: float = 0

    for index, entry in enumerate(stats):
        if entry is None:
            continue

        try:
            trades += _number(entry.get("profits"))
            total += _number(entry.get("profitTot"))
        except TypeError as exc:
            raise AggregationError(index=index, reason=f"stats: {exc}") from exc

        kept.append(entry)

    return SummaryReport(stats=kept, trades=trades, total=total)
