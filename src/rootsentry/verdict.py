# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Reduce probe outcomes into a single verdict."""
from __future__ import annotations

from typing import Iterable, List

from rootsentry.models import DetectionResult, ProbeOutcome


def aggregate(outcomes: Iterable[ProbeOutcome]) -> DetectionResult:
    """Combine *outcomes* into a :class:`DetectionResult`.

    The device counts as rooted when any outcome triggered. Evidence keeps the
    order of the outcomes and drops repeated texts.
    """

    collected = tuple(outcomes)
    evidence: List[str] = []
    for outcome in collected:
        if outcome.triggered and outcome.evidence not in evidence:
            evidence.append(outcome.evidence)
    return DetectionResult(
        is_rooted=any(outcome.triggered for outcome in collected),
        evidence=tuple(evidence),
        outcomes=collected,
    )


__all__ = ["aggregate"]
