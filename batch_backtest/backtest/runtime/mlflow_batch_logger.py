from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import mlflow

if TYPE_CHECKING:
    from batch_backtest.backtest.orchestrator.planner_models import BatchPlan
    from batch_backtest.backtest.runtime.batch_result import BatchResult

LOGGER = logging.getLogger(__name__)

DEFAULT_EXPERIMENT = "batch-backtest"


class MlflowBatchLogger:
    """Records batch settings and aggregate results in MLflow.

    Tracking is configured via environment variables:
    - MLFLOW_TRACKING_URI: HTTP(S) address of the MLflow tracking server.
      Example: http://mlflow.ml.svc.cluster.local:5000
    - MLFLOW_EXPERIMENT_NAME (optional): defaults to "batch-backtest".

    Without MLFLOW_TRACKING_URI the logger is disabled, so local runs do
    not leave an ``mlruns`` directory behind. Callers catch and log any
    exception raised here.
    """

    def __init__(self) -> None:
        self._tracking_uri = os.environ.get("MLFLOW_TRACKING_URI")
        self._experiment = os.environ.get(
            "MLFLOW_EXPERIMENT_NAME",
            DEFAULT_EXPERIMENT,
        )
        if self._tracking_uri:
            mlflow.set_tracking_uri(self._tracking_uri)

    def is_enabled(self) -> bool:
        return bool(self._tracking_uri)

    def log(
        self,
        *,
        plan: BatchPlan,
        result: BatchResult,
        run_name: str | None = None,
    ) -> None:
        if not self.is_enabled():
            return

        settings = plan.settings

        # Creates the experiment on first use
        mlflow.set_experiment(self._experiment)

        with mlflow.start_run(run_name=run_name):
            # Parameters (stable, comparable)
            mlflow.log_param("batch_size", plan.batch_size.value)
            mlflow.log_param("partitions", len(plan.partitions))
            mlflow.log_param("warmup_minutes", plan.warmup.total_seconds() / 60)
            mlflow.log_param("synchronous", settings.batch.synchronous)
            mlflow.log_param(
                "profit_threshold",
                settings.batch.batch_period_profit_threshold,
            )

            # Metrics
            mlflow.log_metric("duration_seconds", result.elapsed_seconds)

            report = result.performance_report
            if report is not None:
                mlflow.log_metric("profit", float(report.profit))
                mlflow.log_metric("relative_profit", float(report.relative_profit))
                mlflow.log_metric("trades", float(report.trades))
                mlflow.log_metric("min_profit", float(report.min_profit))
                mlflow.log_metric("max_profit", float(report.max_profit))
                mlflow.log_metric("periods_profit", report.periods_profit)
                mlflow.log_metric("periods_loss", report.periods_loss)

            mlflow.log_metric("summary_trades", float(result.summary_report.trades))
            mlflow.log_metric("summary_total", float(result.summary_report.total))

            # Tags (UI / filtering)
            mlflow.set_tag("mode", plan.mode)

        LOGGER.info(
            "MLflow batch log submitted",
            extra={
                "experiment": self._experiment,
                "partitions": len(plan.partitions),
            },
        )
