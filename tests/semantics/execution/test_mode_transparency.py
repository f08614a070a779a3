"""
Semantic test: execution mode does not change results.

Invariant:
Given the same partitions and a deterministic engine, sequential and
concurrent execution return the same reports in partition order, and
therefore the same aggregates, even when concurrent sub-runs complete
out of order.
"""

from __future__ import annotations

import asyncio
from typing import Any

from batch_backtest.backtest.engine.engine_base import ComputeEngine
from batch_backtest.backtest.orchestrator.executor import run_partitions
from batch_backtest.backtest.runtime.entrypoint import prepare_batch, run_batch

OVERRIDES: dict[str, Any] = {
    "batchBacktest": {
        "batchSize": "1 month",
        "range": {"from": "2018-01-01T00:00:00Z", "to": "2018-07-01T00:00:00Z"},
    },
}


class DeterministicEngine(ComputeEngine):
    """Profit depends only on the partition; later partitions finish first."""

    def __init__(self) -> None:
        self.completed: list[str] = []

    async def run(self, mode: str, config: dict[str, Any]) -> dict[str, Any]:
        daterange = config["backtest"]["daterange"]
        month = int(daterange["to"][5:7])

        await asyncio.sleep(0.01 * (12 - month))
        self.completed.append(daterange["to"])

        return {
            "mode": mode,
            "daterange": daterange,
            "performanceReport": {
                "profit": (month * 7) % 11 - 5,
                "relativeProfit": month,
                "trades": month,
                "losses": month % 2,
                "yearlyProfit": month * 12,
                "startPrice": month * 100,
                "endPrice": month * 100 + 50,
            },
            "tradingAdvisor": {"stats": {"profits": month, "profitTot": month / 2}},
        }


def _run(synchronous: bool) -> tuple[dict[str, Any], DeterministicEngine]:
    engine = DeterministicEngine()
    overrides = dict(OVERRIDES, batch={"synchronous": synchronous})
    result = asyncio.run(run_batch(overrides, engine=engine))
    body = result.to_dict()
    body["meta"].pop("elapsedSeconds")
    return body, engine


def test_sequential_and_concurrent_results_match() -> None:
    sequential, _ = _run(True)
    concurrent, _ = _run(False)

    assert sequential == concurrent
    assert sequential["performanceReport"]["periodsTotal"] == 6


def test_concurrent_reports_are_returned_in_partition_order() -> None:
    engine = DeterministicEngine()
    plan = prepare_batch(OVERRIDES)

    reports = asyncio.run(
        run_partitions(engine, plan.mode, plan.partitions, synchronous=False)
    )

    expected = [p.span.to_daterange() for p in plan.partitions]

    assert [r["daterange"] for r in reports] == expected
    # Completion order was the reverse of partition order
    assert engine.completed == [d["to"] for d in reversed(expected)]


def test_sequential_runs_one_partition_at_a_time() -> None:
    in_flight = 0
    peak = 0

    class CountingEngine(ComputeEngine):
        async def run(self, mode: str, config: dict[str, Any]) -> dict[str, Any]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return {"performanceReport": {"profit": 0}}

    plan = prepare_batch(OVERRIDES)

    asyncio.run(
        run_partitions(CountingEngine(), plan.mode, plan.partitions, synchronous=True)
    )
    assert peak == 1

    peak = 0
    asyncio.run(
        run_partitions(CountingEngine(), plan.mode, plan.partitions, synchronous=False)
    )
    assert peak == len(plan.partitions)


def test_no_partitions_means_no_calls() -> None:
    engine = DeterministicEngine()

    assert asyncio.run(run_partitions(engine, "backtest", [], synchronous=False)) == []
    assert engine.completed == []
