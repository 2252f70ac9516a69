# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Facade wiring registry, orchestrator and aggregation together."""
from __future__ import annotations

import logging
from typing import Optional

from rootsentry.catalog import DEFAULT_CATALOG, ProbeCatalog
from rootsentry.errors import EngineError
from rootsentry.host import Host, default_host
from rootsentry.models import DetectionResult
from rootsentry.orchestrator import DetectionOrchestrator
from rootsentry.policy import DetectionPolicy, load_policy
from rootsentry.registry import ProbeRegistry, build_registry
from rootsentry.verdict import aggregate

_logger = logging.getLogger(__name__)


class RootDetector:
    """Evaluate the probe battery and return a data-only verdict."""

    def __init__(
        self,
        *,
        registry: Optional[ProbeRegistry] = None,
        host: Optional[Host] = None,
        catalog: ProbeCatalog = DEFAULT_CATALOG,
        policy: Optional[DetectionPolicy] = None,
    ) -> None:
        self.policy = policy or load_policy()
        self.host = host or default_host(timeout=self.policy.probe_timeout, fs_root=self.policy.fs_root)
        self.registry = registry or build_registry(
            self.host,
            catalog,
            include_permission_probe=self.policy.permission_probe,
        )
        self.orchestrator = DetectionOrchestrator(
            timeout=self.policy.probe_timeout,
            parallel=self.policy.parallel,
            on_cancel=self.cancel,
            runner=self.host.runner,
        )

    def detect(self) -> DetectionResult:
        """Run every probe once and aggregate the outcomes."""

        self.host.runner.reset()
        outcomes = self.orchestrator.run(self.registry)
        if len(outcomes) != len(self.registry):
            raise EngineError(f"expected {len(self.registry)} outcomes, got {len(outcomes)}")
        result = aggregate(outcomes)
        _logger.info(
            "Root detection finished: rooted=%s, %d of %d probes triggered",
            result.is_rooted,
            sum(1 for outcome in outcomes if outcome.triggered),
            len(outcomes),
        )
        return result

    def cancel(self) -> None:
        """Abort helper processes started by the current run."""

        self.host.runner.cancel_all()


def detect(**kwargs) -> DetectionResult:
    """Build a :class:`RootDetector` from *kwargs* and run it once."""

    return RootDetector(**kwargs).detect()


__all__ = ["RootDetector", "detect"]
