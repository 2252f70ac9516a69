# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Exception hierarchy shared by probes, host adapters and the engine."""
from __future__ import annotations


class ResourceUnavailable(RuntimeError):
    """Raised when a probe target cannot be read or reached.

    Probes translate this into a non-triggered outcome with a diagnostic note;
    it never aborts a detection run.
    """


class ExternalProcessFailure(ResourceUnavailable):
    """Raised when a helper process fails to start, times out or exits badly."""


class EngineError(RuntimeError):
    """Raised when an internal invariant of the detection engine is broken."""


class RegistryError(EngineError):
    """Raised when a probe registry is malformed."""


__all__ = [
    "EngineError",
    "ExternalProcessFailure",
    "RegistryError",
    "ResourceUnavailable",
]
