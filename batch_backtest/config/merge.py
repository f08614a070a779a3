"""Configuration construction for a single batch call.

A batch call never mutates shared configuration. It deep-merges the
caller's overrides onto a copy of the base and applies the explicit
per-call settings on that copy.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from batch_backtest.errors import ConfigurationError


def deep_merge(
    base: Mapping[str, Any],
    overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """
    Merge ``overrides`` onto ``base`` and return a new mapping.

    Nested mappings merge recursively and override keys win. Lists and
    scalars replace the base value wholesale. Neither input is mutated.
    """
    merged: dict[str, Any] = copy.deepcopy(dict(base))

    if not overrides:
        return merged

    for key, value in overrides.items():
        current = merged.get(key)

        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
            continue

        merged[key] = copy.deepcopy(value)

    return merged


def build_config(
    base: Mapping[str, Any],
    overrides: Mapping[str, Any] | None,
    *,
    mode: str = "backtest",
) -> dict[str, Any]:
    """
    Build the fully-specified configuration for one batch call.

    Besides merging, this sets the execution mode and, when
    ``batch.silent`` is enabled, turns off engine chatter for this call
    only.
    """
    if overrides is not None and not isinstance(overrides, Mapping):
        raise ConfigurationError(
            f"overrides must be a mapping, got {type(overrides).__name__}"
        )

    config = deep_merge(base, overrides)
    config["mode"] = mode

    batch = config.get("batch")
    if isinstance(batch, Mapping) and batch.get("silent"):
        config["silent"] = True
        config["debug"] = False

    return config
