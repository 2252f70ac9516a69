# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Root detection engine: probes, orchestration and verdict aggregation."""

from __future__ import annotations

from rootsentry.engine import RootDetector, detect
from rootsentry.errors import EngineError, ExternalProcessFailure, RegistryError, ResourceUnavailable
from rootsentry.models import DetectionResult, ProbeOutcome

__version__ = "0.1.0"

__all__ = [
    "DetectionResult",
    "EngineError",
    "ExternalProcessFailure",
    "ProbeOutcome",
    "RegistryError",
    "ResourceUnavailable",
    "RootDetector",
    "detect",
]
