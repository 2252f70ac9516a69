# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Run every registered probe under isolation and a time budget."""
from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from concurrent.futures import wait
from typing import Callable, List, Optional, Tuple

from rootsentry.errors import EngineError
from rootsentry.host import CommandRunner, CommandScope
from rootsentry.models import ProbeOutcome
from rootsentry.probes import Probe
from rootsentry.registry import ProbeRegistry

_logger = logging.getLogger(__name__)

CancelHook = Callable[[], None]


class DetectionOrchestrator:
    """Collect exactly one outcome per probe, in registry order.

    Probes run on worker threads so that a stalled probe can be abandoned once
    its budget is spent. With ``parallel`` set all probes start at once;
    otherwise each probe starts after the previous one has been collected.

    When a *runner* is given every helper command a probe starts shares that
    probe's deadline, and the helpers of an abandoned probe are killed before
    :meth:`run` moves on.
    """

    def __init__(
        self,
        *,
        timeout: float = 5.0,
        parallel: bool = False,
        grace: float = 1.0,
        on_cancel: Optional[CancelHook] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.timeout = timeout
        self.parallel = parallel
        self.grace = grace
        self.on_cancel = on_cancel
        self.runner = runner

    def run(self, registry: ProbeRegistry) -> List[ProbeOutcome]:
        executor = ThreadPoolExecutor(max_workers=len(registry), thread_name_prefix="rootsentry-probe")
        pending: List[Tuple[Probe, Future, CommandScope]] = []
        outcomes: List[ProbeOutcome] = []
        try:
            if self.parallel:
                pending = [self._submit(executor, probe) for probe in registry]
                for probe, future, scope in pending:
                    outcomes.append(self._collect(probe, future, scope))
            else:
                for probe in registry:
                    pending.append(self._submit(executor, probe))
                    outcomes.append(self._collect(*pending[-1]))
        except BaseException:
            _logger.warning("Detection run aborted after %d of %d probes", len(outcomes), len(registry))
            for _, future, scope in pending:
                future.cancel()
                scope.abandon()
            if self.on_cancel is not None:
                self.on_cancel()
            wait([future for _, future, _ in pending], timeout=self.grace)
            raise
        finally:
            executor.shutdown(wait=False)
        return outcomes

    def _submit(self, executor: ThreadPoolExecutor, probe: Probe) -> Tuple[Probe, Future, CommandScope]:
        scope = CommandScope(time.monotonic() + self.timeout)
        return probe, executor.submit(self._evaluate, probe, scope), scope

    def _evaluate(self, probe: Probe, scope: CommandScope) -> ProbeOutcome:
        if self.runner is None:
            return probe.evaluate()
        with self.runner.activate(scope):
            return probe.evaluate()

    def _collect(self, probe: Probe, future: Future, scope: CommandScope) -> ProbeOutcome:
        remaining = max(0.0, scope.deadline + self.grace - time.monotonic())
        try:
            outcome = future.result(timeout=remaining)
        except FutureTimeout:
            future.cancel()
            scope.abandon()
            # the worker returns promptly once its helpers are gone
            wait([future], timeout=self.grace)
            _logger.warning("Probe %s exceeded its %gs budget", probe.id, self.timeout)
            return ProbeOutcome(probe.id, False, probe.evidence, diagnostic_note=f"timed out after {self.timeout:g}s")
        except Exception as exc:
            _logger.warning("Probe %s failed unexpectedly", probe.id, exc_info=True)
            return ProbeOutcome(
                probe.id,
                False,
                probe.evidence,
                diagnostic_note=f"probe error: {exc.__class__.__name__}: {exc}",
            )
        if not isinstance(outcome, ProbeOutcome) or outcome.probe_id != probe.id:
            raise EngineError(f"probe {probe.id!r} returned a foreign outcome: {outcome!r}")
        return outcome


__all__ = ["DetectionOrchestrator"]
