from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

if TYPE_CHECKING:
    from batch_backtest.backtest.runtime.batch_result import BatchResult

LOGGER = logging.getLogger(__name__)

JOB_NAME = "batch_backtest"


class PrometheusMetricsClient:
    """Pushgateway client for batch-style runs.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway.
      Example: http://pushgateway.monitoring.svc.cluster.local:9091

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object used as grouping key.
      Without it, pushes from different workers overwrite each other.

      Example:
        {"worker": "batch-worker-1"}

    Delivery is best-effort. Callers log failures and carry on.
    """

    def __init__(self) -> None:
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning(
                "Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring"
            )
            return {}

        if not isinstance(data, dict):
            return {}

        return {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str)
        }

    def set_gauge(
        self,
        *,
        name: str,
        value: float,
        labels: dict[str, str],
    ) -> None:
        if not self._pushgateway_url:
            return

        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                name,
                documentation=name,
                labelnames=list(labels.keys()),
                registry=self._registry,
            )
            self._gauges[name] = gauge

        gauge.labels(**labels).set(value)

    def record_batch(self, result: BatchResult, *, labels: dict[str, str]) -> None:
        """Stage the standard gauges describing one finished batch."""
        self.set_gauge(
            name="batch_backtest_duration_seconds",
            value=result.elapsed_seconds,
            labels=labels,
        )
        self.set_gauge(
            name="batch_backtest_partitions",
            value=float(len(result.spans)),
            labels=labels,
        )

        report = result.performance_report
        if report is None:
            return

        self.set_gauge(
            name="batch_backtest_periods_profit",
            value=float(report.periods_profit),
            labels=labels,
        )
        self.set_gauge(
            name="batch_backtest_periods_loss",
            value=float(report.periods_loss),
            labels=labels,
        )
        self.set_gauge(
            name="batch_backtest_total_profit",
            value=float(report.profit),
            labels=labels,
        )

    def push_all(self, *, job: str = JOB_NAME) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
