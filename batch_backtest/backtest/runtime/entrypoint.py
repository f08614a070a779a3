from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from batch_backtest.backtest.engine.engine_base import load_engine
from batch_backtest.backtest.engine.subprocess_engine import SubprocessComputeEngine
from batch_backtest.backtest.orchestrator.aggregation import (
    aggregate_batch,
    aggregate_performance,
    collect_advisor_stats,
    summarize_stats,
)
from batch_backtest.backtest.orchestrator.executor import run_partitions
from batch_backtest.backtest.orchestrator.planner import plan_batch
from batch_backtest.backtest.orchestrator.summary import (
    print_batch_summary,
    summarize_plan,
)
from batch_backtest.backtest.runtime.batch_finalizer import BatchFinalizer
from batch_backtest.backtest.runtime.batch_result import BatchResult
from batch_backtest.config.base_config import DEFAULT_BASE_CONFIG
from batch_backtest.config.merge import build_config
from batch_backtest.errors import AggregationError

if TYPE_CHECKING:
    from batch_backtest.backtest.engine.engine_base import ComputeEngine
    from batch_backtest.backtest.orchestrator.planner_models import BatchPlan

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def prepare_batch(
    overrides: Mapping[str, Any] | None,
    *,
    base: Mapping[str, Any] | None = None,
    mode: str = "backtest",
) -> BatchPlan:
    """Merge overrides onto the base and plan the batch without running it."""
    config = build_config(
        DEFAULT_BASE_CONFIG if base is None else base,
        overrides,
        mode=mode,
    )
    return plan_batch(config)


async def execute_plan(
    plan: BatchPlan,
    *,
    engine: ComputeEngine,
    started: float | None = None,
) -> BatchResult:
    """Run every partition of ``plan`` and aggregate the reports."""
    if started is None:
        started = time.perf_counter()

    settings = plan.settings

    if not plan.partitions:
        LOGGER.warning(
            "Batch has no partitions; nothing to run",
            extra={
                "batch_size": plan.batch_size.value,
                "from": settings.range_start.isoformat(),
                "to": settings.range_end.isoformat(),
            },
        )

    backtests = await run_partitions(
        engine,
        plan.mode,
        plan.partitions,
        synchronous=settings.batch.synchronous,
        started=started,
    )

    try:
        performance_report = aggregate_performance(
            backtests,
            settings.batch.batch_period_profit_threshold,
        )
        batch_report = aggregate_batch(backtests)
        summary_report = summarize_stats(collect_advisor_stats(backtests))
    except AggregationError as exc:
        raise AggregationError(
            index=exc.index,
            reason=exc.reason,
            elapsed_seconds=time.perf_counter() - started,
        ) from exc

    result = BatchResult(
        backtests=backtests,
        performance_report=performance_report,
        batch_report=batch_report,
        summary_report=summary_report,
        spans=plan.spans,
        elapsed_seconds=time.perf_counter() - started,
    )

    LOGGER.info(
        "Batch finished",
        extra={
            "spans": len(plan.partitions),
            "mode": plan.mode,
            "synchronous": settings.batch.synchronous,
            "elapsed_seconds": result.elapsed_seconds,
        },
    )

    return result


async def run_batch(
    overrides: Mapping[str, Any] | None,
    *,
    engine: ComputeEngine,
    base: Mapping[str, Any] | None = None,
    mode: str = "backtest",
) -> BatchResult:
    """
    Run one batch backtest.

    Steps:
    - merge ``overrides`` onto ``base`` (the default base when None)
    - validate settings and cut the range into warm-up extended spans
    - run one sub-run per span, sequentially or concurrently
    - aggregate the reports

    Raises ConfigurationError before anything is dispatched when the
    configuration is unusable, PartitionExecutionError when a sub-run
    fails and AggregationError when a report cannot be reduced. No
    partial result is returned on failure.
    """
    started = time.perf_counter()
    plan = prepare_batch(overrides, base=base, mode=mode)
    return await execute_plan(plan, engine=engine, started=started)


def run_batch_sync(
    overrides: Mapping[str, Any] | None,
    *,
    engine: ComputeEngine,
    base: Mapping[str, Any] | None = None,
    mode: str = "backtest",
) -> BatchResult:
    """Blocking wrapper around ``run_batch`` for callers without a loop."""
    return asyncio.run(run_batch(overrides, engine=engine, base=base, mode=mode))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def _build_engine(args: argparse.Namespace) -> ComputeEngine:
    if args.engine_command:
        return SubprocessComputeEngine(
            args.engine_command,
            timeout=args.engine_timeout,
        )
    return load_engine(args.engine)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Batch backtest: split a date range and run one sub-run per span"
    )

    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the JSON overrides merged onto the base configuration.",
    )

    parser.add_argument(
        "--base",
        type=Path,
        default=None,
        help="Optional JSON base configuration (defaults to the built-in base).",
    )

    parser.add_argument(
        "--plan",
        action="store_true",
        help="Plan the batch and print its partitions (no execution).",
    )

    parser.add_argument(
        "--run",
        action="store_true",
        help="Plan and execute the batch, printing the result JSON.",
    )

    engine_group = parser.add_mutually_exclusive_group()

    engine_group.add_argument(
        "--engine",
        type=str,
        default=None,
        help="ComputeEngine class as 'module:Class'.",
    )

    engine_group.add_argument(
        "--engine-command",
        type=str,
        default=None,
        help="Command spawned once per sub-run (JSON on stdin/stdout).",
    )

    parser.add_argument(
        "--engine-timeout",
        type=float,
        default=None,
        help="Per sub-run timeout in seconds for --engine-command.",
    )

    parser.add_argument(
        "--run-name",
        type=str,
        default=None,
        help="Run name used for experiment tracking.",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ...).",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.plan and not args.run:
        print("Error: one of --plan or --run must be specified.", file=sys.stderr)
        sys.exit(2)

    if args.run and not (args.engine or args.engine_command):
        print(
            "Error: --run requires --engine or --engine-command.",
            file=sys.stderr,
        )
        sys.exit(2)

    # ------------------------------------------------------------------
    # Load config and plan
    # ------------------------------------------------------------------

    overrides = _load_json(args.config)
    base = _load_json(args.base) if args.base is not None else None

    started = time.perf_counter()
    plan = prepare_batch(overrides, base=base)

    if args.plan and not args.run:
        print_batch_summary(summarize_plan(plan=plan))
        return

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------

    engine = _build_engine(args)
    result = asyncio.run(execute_plan(plan, engine=engine, started=started))

    print(json.dumps(result.to_dict(), indent=2, default=str))

    BatchFinalizer().finalize(plan=plan, result=result, run_name=args.run_name)


if __name__ == "__main__":
    main()
