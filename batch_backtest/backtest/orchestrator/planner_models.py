"""
Planning model definitions.

This module contains immutable planning structures used to describe a
batch and its partitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from batch_backtest.backtest.orchestrator.spans import BatchSize, DateSpan
    from batch_backtest.config.batch_settings import BatchSettings


@dataclass(frozen=True, slots=True)
class PartitionRequest:
    """
    One sub-run: a private configuration copy scoped to a single span.
    """

    index: int
    span: DateSpan
    config: dict[str, Any]


@dataclass(frozen=True, slots=True)
class BatchPlan:
    """
    Execution plan for a whole batch.
    """

    mode: str
    settings: BatchSettings
    batch_size: BatchSize
    warmup: timedelta
    partitions: list[PartitionRequest]

    @property
    def spans(self) -> list[DateSpan]:
        return [partition.span for partition in self.partitions]
