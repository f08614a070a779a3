"""
Partition execution.

Runs the compute engine once per partition, either one at a time or all
at once, and returns the result reports in partition order.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from typing import TYPE_CHECKING, Mapping, Sequence

from batch_backtest.errors import PartitionExecutionError

if TYPE_CHECKING:
    from batch_backtest.backtest.engine.engine_base import ComputeEngine, ResultReport
    from batch_backtest.backtest.orchestrator.planner_models import PartitionRequest

LOGGER = logging.getLogger(__name__)


async def run_partitions(
    engine: ComputeEngine,
    mode: str,
    requests: Sequence[PartitionRequest],
    *,
    synchronous: bool,
    started: float | None = None,
) -> list[ResultReport]:
    """
    Execute all partitions and return their reports in request order.

    Sequential mode awaits each sub-run before dispatching the next, which
    keeps engine logs ordered. Concurrent mode dispatches every sub-run at
    once with no throttling.

    Both modes are fail-fast: the first failing partition aborts the
    batch with a PartitionExecutionError and no reports are returned.
    ``started`` is the ``time.perf_counter()`` reading errors measure
    their elapsed time from; it defaults to the moment of this call.
    """
    if not requests:
        return []

    if started is None:
        started = time.perf_counter()

    if synchronous:
        return await _run_sequential(engine, mode, requests, started)

    return await _run_concurrent(engine, mode, requests, started)


async def _invoke(
    engine: ComputeEngine,
    mode: str,
    request: PartitionRequest,
    started: float,
) -> ResultReport:
    """Run one partition and attach partition context to any failure."""
    try:
        # The engine may mutate its input; hand it a private copy
        report = await engine.run(mode, copy.deepcopy(request.config))
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise PartitionExecutionError(
            index=request.index,
            span=request.span,
            elapsed_seconds=time.perf_counter() - started,
            reason=f"{type(exc).__name__}: {exc}",
        ) from exc

    if not isinstance(report, Mapping):
        raise PartitionExecutionError(
            index=request.index,
            span=request.span,
            elapsed_seconds=time.perf_counter() - started,
            reason=(
                "malformed result: expected a mapping, "
                f"got {type(report).__name__}"
            ),
        )

    LOGGER.debug(
        "Partition finished",
        extra={"index": request.index, "from": request.span.from_iso},
    )

    return report


async def _run_sequential(
    engine: ComputeEngine,
    mode: str,
    requests: Sequence[PartitionRequest],
    started: float,
) -> list[ResultReport]:
    reports: list[ResultReport] = []

    for request in requests:
        reports.append(await _invoke(engine, mode, request, started))

    return reports


async def _run_concurrent(
    engine: ComputeEngine,
    mode: str,
    requests: Sequence[PartitionRequest],
    started: float,
) -> list[ResultReport]:
    tasks = [
        asyncio.ensure_future(_invoke(engine, mode, request, started))
        for request in requests
    ]

    try:
        done, pending = await asyncio.wait(
            tasks,
            return_when=asyncio.FIRST_EXCEPTION,
        )
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    failed = [
        task
        for task in tasks
        if task in done and not task.cancelled() and task.exception() is not None
    ]

    if failed:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        # Tasks are in request order, so this is the lowest failed index
        error = failed[0].exception()
        LOGGER.warning(
            "Concurrent batch aborted",
            extra={
                "failed_partitions": len(failed),
                "cancelled_partitions": len(pending),
            },
        )
        raise error

    return [task.result() for task in tasks]
