"""Compute engine that runs every sub-run in its own child process."""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
from typing import Any, Sequence

from batch_backtest.backtest.engine.engine_base import ComputeEngine, ResultReport

LOGGER = logging.getLogger(__name__)


class EngineProcessError(RuntimeError):
    """The engine child process failed or produced unusable output."""


class SubprocessComputeEngine(ComputeEngine):
    """Spawns ``command`` once per sub-run.

    Protocol:
    - stdin: ``{"mode": ..., "config": ...}`` as JSON
    - stdout: the result report as a single JSON object
    - non-zero exit status means failure; stderr is attached to the error

    One process per sub-run keeps partitions isolated from each other,
    including any global state the engine keeps.
    """

    def __init__(
        self,
        command: str | Sequence[str],
        *,
        timeout: float | None = None,
    ) -> None:
        if isinstance(command, str):
            command = shlex.split(command)

        if not command:
            raise ValueError("command must not be empty")

        self._command = list(command)
        self._timeout = timeout

    async def run(self, mode: str, config: dict[str, Any]) -> ResultReport:
        payload = json.dumps({"mode": mode, "config": config}, default=str)

        process = await asyncio.create_subprocess_exec(
            *self._command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(payload.encode("utf-8")),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise EngineProcessError(
                f"engine timed out after {self._timeout}s"
            ) from exc
        except asyncio.CancelledError:
            # Sibling partition failed; do not leave orphaned children
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            raise EngineProcessError(
                f"engine exited with status {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )

        try:
            report = json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise EngineProcessError("engine returned invalid JSON") from exc

        if not isinstance(report, dict):
            raise EngineProcessError(
                f"engine returned {type(report).__name__}, expected an object"
            )

        LOGGER.debug(
            "Engine process finished",
            extra={"command": self._command[0], "stdout_bytes": len(stdout)},
        )

        return report
