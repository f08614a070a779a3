"""Public API for the batch_backtest package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Compute engine API
# ----------------------------------------------------------------------
from batch_backtest.backtest.engine.engine_base import (
    ComputeEngine,
    ResultReport,
    ThreadedComputeEngine,
    load_engine,
)
from batch_backtest.backtest.engine.subprocess_engine import (
    EngineProcessError,
    SubprocessComputeEngine,
)

# ----------------------------------------------------------------------
# Orchestration building blocks
# ----------------------------------------------------------------------
from batch_backtest.backtest.orchestrator.aggregation import (
    AggregatePerformanceReport,
    BatchReport,
    SummaryReport,
    aggregate_batch,
    aggregate_performance,
    collect_advisor_stats,
    summarize_stats,
)
from batch_backtest.backtest.orchestrator.executor import run_partitions
from batch_backtest.backtest.orchestrator.planner import plan_batch
from batch_backtest.backtest.orchestrator.planner_models import (
    BatchPlan,
    PartitionRequest,
)
from batch_backtest.backtest.orchestrator.spans import (
    BatchSize,
    DateSpan,
    generate_spans,
    warmup_duration,
)

# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------
from batch_backtest.backtest.runtime.batch_result import BatchResult
from batch_backtest.backtest.runtime.entrypoint import (
    execute_plan,
    prepare_batch,
    run_batch,
    run_batch_sync,
)

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from batch_backtest.config.base_config import DEFAULT_BASE_CONFIG, default_base_config
from batch_backtest.config.batch_settings import BatchSettings
from batch_backtest.config.merge import build_config, deep_merge

# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------
from batch_backtest.errors import (
    AggregationError,
    BatchBacktestError,
    ConfigurationError,
    PartitionExecutionError,
)

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Engine
    "ComputeEngine",
    "ThreadedComputeEngine",
    "SubprocessComputeEngine",
    "EngineProcessError",
    "ResultReport",
    "load_engine",

    # Spans
    "BatchSize",
    "DateSpan",
    "generate_spans",
    "warmup_duration",

    # Planning / execution
    "BatchPlan",
    "PartitionRequest",
    "plan_batch",
    "run_partitions",

    # Aggregation
    "AggregatePerformanceReport",
    "BatchReport",
    "SummaryReport",
    "aggregate_performance",
    "aggregate_batch",
    "collect_advisor_stats",
    "summarize_stats",

    # Entry point
    "BatchResult",
    "prepare_batch",
    "execute_plan",
    "run_batch",
    "run_batch_sync",

    # Config
    "BatchSettings",
    "DEFAULT_BASE_CONFIG",
    "default_base_config",
    "build_config",
    "deep_merge",

    # Errors
    "BatchBacktestError",
    "ConfigurationError",
    "PartitionExecutionError",
    "AggregationError",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("batch-backtest")
except PackageNotFoundError:
    __version__ = "0.0.0"
