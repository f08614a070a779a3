"""Default base configuration shared by every batch call.

The base is treated as read-only: callers receive a deep copy and
overrides are merged onto that copy.
"""

from __future__ import annotations

import copy
from typing import Any

DEFAULT_BASE_CONFIG: dict[str, Any] = {
    "watch": {
        "exchange": "poloniex",
        "currency": "USDT",
        "asset": "BTC",
    },
    "tradingAdvisor": {
        "enabled": True,
        "method": "MACD",
        "candleSize": 60,
        "historySize": 10,
    },
    "paperTrader": {
        "feeMaker": 0.25,
        "feeTaker": 0.25,
        "slippage": 0.05,
        "simulationBalance": {
            "asset": 1,
            "currency": 100,
        },
        "reportRoundtrips": True,
        "enabled": True,
    },
    "performanceAnalyzer": {
        "enabled": True,
        "riskFreeReturn": 5,
    },
    "backtest": {
        "daterange": "scan",
        "batchSize": 50,
    },
    "backtestResultExporter": {
        "enabled": True,
        "writeToDisk": False,
        "data": {
            "stratUpdates": False,
            "roundtrips": True,
            "stratCandles": True,
            "stratCandleProps": ["open"],
            "trades": True,
        },
    },
    "batch": {
        "synchronous": False,
        "noBigData": False,
        "batchPeriodProfitThreshold": 0,
        "silent": False,
    },
    "batchBacktest": {
        "batchSize": "1 month",
        "anchorDay": 1,
        "range": {
            "from": "2018-01-01T00:00:00Z",
            "to": "2021-01-01T00:00:00Z",
        },
    },
}


def default_base_config() -> dict[str, Any]:
    """Return a private deep copy of the default base configuration."""
    return copy.deepcopy(DEFAULT_BASE_CONFIG)
