# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Runtime tunables for a detection run.

Values come from environment variables so that the embedding application can
adjust budgets without code changes. Malformed values fall back to defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _load_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _load_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


@dataclass(frozen=True)
class DetectionPolicy:
    """Holds the knobs shared by the engine and the CLI."""

    probe_timeout: float = 5.0
    parallel: bool = False
    permission_probe: bool = True
    fs_root: Optional[str] = None


def load_policy() -> DetectionPolicy:
    """Load the detection policy considering environment overrides."""

    return DetectionPolicy(
        probe_timeout=_load_float("ROOTSENTRY_PROBE_TIMEOUT", 5.0),
        parallel=_load_bool("ROOTSENTRY_PARALLEL", False),
        permission_probe=_load_bool("ROOTSENTRY_PERMISSION_PROBE", True),
        fs_root=os.environ.get("ROOTSENTRY_FS_ROOT") or None,
    )


policy = load_policy()


__all__ = ["DetectionPolicy", "load_policy", "policy"]
