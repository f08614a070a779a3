"""Batch settings model.

This module defines the validated view over the parts of a merged
configuration that the orchestrator itself consumes. Everything else in
the configuration belongs to the compute engine and passes through
untouched.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from batch_backtest.errors import ConfigurationError


class TradingAdvisorSettings(BaseModel):
    """Advisor fields needed to size the warm-up window."""

    history_size: float = Field(..., ge=0, alias="historySize")
    candle_size: float = Field(..., ge=0, alias="candleSize")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class BatchOptions(BaseModel):
    """Execution options under the ``batch`` key."""

    synchronous: bool = False
    no_big_data: bool = Field(False, alias="noBigData")
    batch_period_profit_threshold: float = Field(
        0.0,
        alias="batchPeriodProfitThreshold",
    )
    silent: bool = False

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("batch_period_profit_threshold", mode="before")
    @classmethod
    def _null_threshold_is_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class DateRange(BaseModel):
    """Overall ``[from, to)`` range that gets partitioned."""

    from_ts: datetime = Field(..., alias="from")
    to_ts: datetime = Field(..., alias="to")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("from_ts", "to_ts", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken to be UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class BatchBacktestOptions(BaseModel):
    """Partitioning options under the ``batchBacktest`` key."""

    batch_size: str | None = Field(None, alias="batchSize")
    anchor_day: int = Field(1, ge=1, le=28, alias="anchorDay")
    date_range: DateRange = Field(..., alias="range")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("batch_size", mode="before")
    @classmethod
    def _batch_size_as_text(cls, value: Any) -> Any:
        # Unrecognised sizes fall back to monthly when the plan is built
        if value is None or isinstance(value, str):
            return value
        return str(value)


class BatchSettings(BaseModel):
    """Validated orchestrator settings extracted from a merged config."""

    trading_advisor: TradingAdvisorSettings = Field(..., alias="tradingAdvisor")
    batch: BatchOptions = Field(default_factory=BatchOptions)
    batch_backtest: BatchBacktestOptions = Field(..., alias="batchBacktest")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _null_batch_is_default(cls, data: Any) -> Any:
        """Treat ``"batch": null`` the same as an absent batch block."""
        if isinstance(data, dict) and data.get("batch") is None:
            d = dict(data)
            d.pop("batch", None)
            return d
        return data

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> BatchSettings:
        """
        Validate a merged configuration.

        Raises ConfigurationError instead of pydantic's ValidationError so
        the transport boundary only has to know one error family.
        """
        try:
            return cls.model_validate(dict(config))
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigurationError(
                f"invalid batch configuration: {problems}"
            ) from exc

    @property
    def warmup(self) -> timedelta:
        """Warm-up lead time: history size x candle size, in minutes."""
        return timedelta(
            minutes=self.trading_advisor.history_size
            * self.trading_advisor.candle_size
        )

    @property
    def range_start(self) -> datetime:
        return self.batch_backtest.date_range.from_ts

    @property
    def range_end(self) -> datetime:
        return self.batch_backtest.date_range.to_ts
