"""
Error taxonomy for batch backtest orchestration.

All errors raised by the orchestrator derive from BatchBacktestError so
callers can catch the whole family at the transport boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from batch_backtest.backtest.orchestrator.spans import DateSpan


class BatchBacktestError(Exception):
    """Base class for all batch orchestration errors."""


class ConfigurationError(BatchBacktestError, ValueError):
    """
    The merged configuration is missing or has invalid fields.

    Raised before any partition is dispatched.
    """


class PartitionExecutionError(BatchBacktestError):
    """
    A single sub-run failed inside the compute engine.

    The underlying engine error is available as ``__cause__``.
    """

    def __init__(
        self,
        *,
        index: int,
        span: DateSpan | None,
        elapsed_seconds: float,
        reason: str,
    ) -> None:
        self.index = index
        self.span = span
        self.elapsed_seconds = elapsed_seconds
        self.reason = reason

        where = f"partition {index}"
        if span is not None:
            where += f" [{span.from_iso} .. {span.to_iso})"

        super().__init__(
            f"{where} failed after {elapsed_seconds:.3f}s: {reason}"
        )


class AggregationError(BatchBacktestError):
    """
    A result report lacks the structure required for reduction.

    This signals a contract violation between the compute engine and the
    aggregator and must never be coerced into zero/NaN values.
    """

    def __init__(
        self,
        *,
        index: int,
        reason: str,
        elapsed_seconds: float | None = None,
    ) -> None:
        self.index = index
        self.reason = reason
        self.elapsed_seconds = elapsed_seconds

        message = f"report {index}: {reason}"
        if elapsed_seconds is not None:
            message += f" (batch ran {elapsed_seconds:.3f}s)"

        super().__init__(message)
