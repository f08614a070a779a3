from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from batch_backtest.backtest.runtime.mlflow_batch_logger import MlflowBatchLogger
from batch_backtest.backtest.runtime.prometheus_metrics import PrometheusMetricsClient

if TYPE_CHECKING:
    from batch_backtest.backtest.orchestrator.planner_models import BatchPlan
    from batch_backtest.backtest.runtime.batch_result import BatchResult

LOGGER = logging.getLogger(__name__)


class BatchFinalizer:
    """
    Publishes observability side-effects after a batch has completed.

    Responsibilities:
    - MLflow run with settings and aggregates
    - Prometheus gauges pushed to the Pushgateway

    Neither may fail the batch: errors are logged and swallowed.
    """

    def __init__(
        self,
        *,
        mlflow_logger: MlflowBatchLogger | None = None,
        metrics: PrometheusMetricsClient | None = None,
    ) -> None:
        self._mlflow_logger = mlflow_logger or MlflowBatchLogger()
        self._metrics = metrics or PrometheusMetricsClient()

    def finalize(
        self,
        *,
        plan: BatchPlan,
        result: BatchResult,
        run_name: str | None = None,
    ) -> None:
        # --- MLflow logging (side-effect only) ---
        if self._mlflow_logger.is_enabled():
            try:
                self._mlflow_logger.log(plan=plan, result=result, run_name=run_name)
            except Exception:
                LOGGER.exception("MLflow logging failed")

        # --- Prometheus metrics (side-effect only) ---
        if self._metrics.is_enabled():
            try:
                labels = {
                    "mode": plan.mode,
                    "batch_size": plan.batch_size.value,
                }

                self._metrics.record_batch(result, labels=labels)
                self._metrics.push_all()

            except Exception:
                LOGGER.exception("Prometheus push failed")
