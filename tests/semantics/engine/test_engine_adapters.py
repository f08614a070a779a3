"""
Semantic test: compute engine adapters.

Invariant:
Blocking engines run off the event loop, child-process engines speak
JSON over stdin/stdout and turn any process failure into an engine
error, and dynamic loading only accepts ComputeEngine subclasses.
"""

from __future__ import annotations

import asyncio
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest

from batch_backtest.backtest.engine.engine_base import (
    ComputeEngine,
    ThreadedComputeEngine,
    load_engine,
)
from batch_backtest.backtest.engine.subprocess_engine import (
    EngineProcessError,
    SubprocessComputeEngine,
)


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def test_base_engine_must_be_subclassed() -> None:
    with pytest.raises(NotImplementedError):
        asyncio.run(ComputeEngine().run("backtest", {}))


def test_threaded_engine_runs_blocking_function_in_worker_thread() -> None:
    loop_thread = threading.get_ident()
    seen: dict[str, Any] = {}

    def blocking(mode: str, config: dict[str, Any]) -> dict[str, Any]:
        seen["thread"] = threading.get_ident()
        return {"mode": mode, "performanceReport": {"profit": config["x"]}}

    with ThreadPoolExecutor(max_workers=2) as executor:
        engine = ThreadedComputeEngine(blocking, executor=executor)
        report = asyncio.run(engine.run("backtest", {"x": 3}))

    assert report == {"mode": "backtest", "performanceReport": {"profit": 3}}
    assert seen["thread"] != loop_thread


def test_threaded_engine_propagates_errors() -> None:
    def broken(mode: str, config: dict[str, Any]) -> dict[str, Any]:
        raise KeyError("candles")

    with pytest.raises(KeyError):
        asyncio.run(ThreadedComputeEngine(broken).run("backtest", {}))


def test_subprocess_engine_round_trips_json() -> None:
    engine = SubprocessComputeEngine(
        _python(
            "import json, sys\n"
            "p = json.load(sys.stdin)\n"
            "print(json.dumps({'mode': p['mode'], 'performanceReport': p['config']}))\n"
        )
    )

    report = asyncio.run(engine.run("backtest", {"profit": 4}))

    assert report == {"mode": "backtest", "performanceReport": {"profit": 4}}


@pytest.mark.parametrize(
    ("code", "message"),
    [
        ("import sys; sys.stderr.write('no candles'); sys.exit(3)", "status 3"),
        ("print('not json')", "invalid JSON"),
        ("print('[1, 2]')", "expected an object"),
    ],
)
def test_subprocess_engine_failures(code: str, message: str) -> None:
    engine = SubprocessComputeEngine(_python(code))

    with pytest.raises(EngineProcessError) as exc_info:
        asyncio.run(engine.run("backtest", {}))

    assert message in str(exc_info.value)


def test_subprocess_engine_timeout() -> None:
    engine = SubprocessComputeEngine(
        _python("import time; time.sleep(30)"),
        timeout=0.5,
    )

    with pytest.raises(EngineProcessError, match="timed out"):
        asyncio.run(engine.run("backtest", {}))


def test_subprocess_engine_rejects_empty_command() -> None:
    with pytest.raises(ValueError):
        SubprocessComputeEngine("")


def test_load_engine_instantiates_engine_subclasses() -> None:
    engine = load_engine(
        "batch_backtest.backtest.engine.subprocess_engine:SubprocessComputeEngine",
        command=["true"],
    )

    assert isinstance(engine, SubprocessComputeEngine)


@pytest.mark.parametrize(
    ("class_path", "error"),
    [
        ("json:JSONDecoder", TypeError),
        ("json:dumps", TypeError),
        ("no-colon-here", ValueError),
    ],
)
def test_load_engine_rejects_bad_paths(class_path: str, error: type[Exception]) -> None:
    with pytest.raises(error):
        load_engine(class_path)
