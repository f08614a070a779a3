from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from batch_backtest.backtest.orchestrator.planner_models import BatchPlan


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PartitionSummary:
    index: int
    from_iso: str
    to_iso: str
    nominal_days: float
    warmup_ratio: float  # warm-up length / scored length


@dataclass(frozen=True, slots=True)
class BatchPlanSummary:
    mode: str
    batch_size: str
    synchronous: bool
    no_big_data: bool
    profit_threshold: float
    warmup_minutes: float
    partition_count: int
    partitions: List[PartitionSummary]
    warnings: List[str]


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def summarize_plan(*, plan: BatchPlan) -> BatchPlanSummary:
    warnings: list[str] = []
    partitions: list[PartitionSummary] = []

    settings = plan.settings

    if not plan.partitions:
        warnings.append(
            "Batch contains no partitions (range shorter than one "
            f"{plan.batch_size.value})"
        )

    if len(plan.partitions) > 50 and not settings.batch.synchronous:
        warnings.append(
            f"High number of concurrent partitions ({len(plan.partitions)}); "
            "no throttling is applied"
        )

    for partition in plan.partitions:
        span = partition.span
        scored = span.to_ts - span.nominal_from
        ratio = span.warmup / scored

        if ratio >= 1.0:
            warnings.append(
                f"partition {partition.index} warm-up is longer than its "
                f"scored window ({ratio:.0%})"
            )

        partitions.append(
            PartitionSummary(
                index=partition.index,
                from_iso=span.from_iso,
                to_iso=span.to_iso,
                nominal_days=scored.total_seconds() / 86400,
                warmup_ratio=ratio,
            )
        )

    return BatchPlanSummary(
        mode=plan.mode,
        batch_size=plan.batch_size.value,
        synchronous=settings.batch.synchronous,
        no_big_data=settings.batch.no_big_data,
        profit_threshold=settings.batch.batch_period_profit_threshold,
        warmup_minutes=plan.warmup.total_seconds() / 60,
        partition_count=len(plan.partitions),
        partitions=partitions,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def print_batch_summary(summary: BatchPlanSummary) -> None:
    execution = "sequential" if summary.synchronous else "concurrent"

    print(f"Mode: {summary.mode}")
    print(f"Batch size: {summary.batch_size}")
    print(f"Execution: {execution}")
    print(f"Warm-up: {summary.warmup_minutes:.0f} minutes")
    print(f"Profit threshold: {summary.profit_threshold}")
    print(f"Strip big data: {summary.no_big_data}")
    print(f"Partitions: {summary.partition_count}")
    print()

    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f"  - {w}")
        print()

    print("Partitions:")
    for p in summary.partitions:
        print(
            f"  - {p.index:04d}: "
            f"{p.from_iso} .. {p.to_iso} | "
            f"{p.nominal_days:.0f} days | "
            f"{p.warmup_ratio:.1%} warm-up"
        )
