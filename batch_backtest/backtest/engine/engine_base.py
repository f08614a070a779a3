from __future__ import annotations

import asyncio
import functools
import importlib
from concurrent.futures import Executor
from typing import Any, Callable, Mapping

ResultReport = Mapping[str, Any]


class ComputeEngine:
    """Abstract base class for engines that execute one sub-run.

    The orchestrator treats engines as black boxes: one call, one
    configuration, one result report containing at least a
    ``performanceReport`` mapping.
    """

    async def run(self, mode: str, config: dict[str, Any]) -> ResultReport:
        """Run a single sub-run and return its result report.

        Subclass engines must implement this method.
        """
        raise NotImplementedError("run() must be implemented by subclasses")


class ThreadedComputeEngine(ComputeEngine):
    """Adapts a blocking ``func(mode, config)`` to the async engine API.

    Calls are dispatched to ``executor`` (the loop's default thread pool
    when None). The executor's ``max_workers`` is the only admission
    control applied to concurrent batches.
    """

    def __init__(
        self,
        func: Callable[[str, dict[str, Any]], ResultReport],
        *,
        executor: Executor | None = None,
    ) -> None:
        self._func = func
        self._executor = executor

    async def run(self, mode: str, config: dict[str, Any]) -> ResultReport:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            functools.partial(self._func, mode, config),
        )


def load_engine(class_path: str, **kwargs: Any) -> ComputeEngine:
    """Instantiate a ComputeEngine from a ``"module:Class"`` path."""
    try:
        module_path, class_name = class_path.split(":")
    except ValueError as exc:
        raise ValueError(
            f"Engine class path must look like 'module:Class', got {class_path!r}"
        ) from exc

    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)

    if not isinstance(cls, type) or not issubclass(cls, ComputeEngine):
        raise TypeError(
            f"Loaded class {class_name} is not a subclass of ComputeEngine."
        )

    return cls(**kwargs)
