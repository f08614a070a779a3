from __future__ import annotations

import copy
from typing import Any, Mapping

from batch_backtest.backtest.orchestrator.planner_models import (
    BatchPlan,
    PartitionRequest,
)
from batch_backtest.backtest.orchestrator.spans import BatchSize, generate_spans
from batch_backtest.config.batch_settings import BatchSettings

# Exporter payloads dropped when ``batch.noBigData`` is enabled
BIG_DATA_FLAGS = ("roundtrips", "stratCandles")


def strip_big_data(config: dict[str, Any]) -> None:
    """
    Turn off heavy per-run payloads in ``config`` (in place).
    """
    exporter = config.setdefault("backtestResultExporter", {})
    data = exporter.setdefault("data", {})

    for flag in BIG_DATA_FLAGS:
        data[flag] = False


def plan_batch(config: Mapping[str, Any]) -> BatchPlan:
    """
    Build a deterministic execution plan for a batch.

    This function performs *planning only*. It does not invoke the
    compute engine.

    Responsibilities:
    - validate the settings the orchestrator consumes
    - compute the warm-up duration
    - cut the configured range into spans
    - produce one independent PartitionRequest per span

    Parameters
    ----------
    config:
        Fully merged batch configuration (see ``build_config``). It is
        not mutated.

    Returns
    -------
    BatchPlan
        Plan with partitions in chronological order.
    """

    settings = BatchSettings.from_config(config)

    # ------------------------------------------------------------------
    # 1. Warm-up and spans
    # ------------------------------------------------------------------

    batch_size = BatchSize.parse(settings.batch_backtest.batch_size)
    warmup = settings.warmup

    spans = generate_spans(
        batch_size,
        warmup,
        start=settings.range_start,
        end=settings.range_end,
        anchor_day=settings.batch_backtest.anchor_day,
    )

    # ------------------------------------------------------------------
    # 2. Shared template (applies to every partition uniformly)
    # ------------------------------------------------------------------

    template = copy.deepcopy(dict(config))

    if settings.batch.no_big_data:
        strip_big_data(template)

    # ------------------------------------------------------------------
    # 3. One private copy per partition
    # ------------------------------------------------------------------

    partitions: list[PartitionRequest] = []

    for index, span in enumerate(spans):
        partition_config = copy.deepcopy(template)
        if not isinstance(partition_config.get("backtest"), dict):
            partition_config["backtest"] = {}
        partition_config["backtest"]["daterange"] = span.to_daterange()

        partitions.append(
            PartitionRequest(
                index=index,
                span=span,
                config=partition_config,
            )
        )

    return BatchPlan(
        mode=str(config.get("mode", "backtest")),
        settings=settings,
        batch_size=batch_size,
        warmup=warmup,
        partitions=partitions,
    )
