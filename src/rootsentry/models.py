# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Data carried from probes to the presentation layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of a single probe evaluation."""

    probe_id: str
    triggered: bool
    evidence: str
    diagnostic_note: Optional[str] = None
    matches: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "probe_id": self.probe_id,
            "triggered": self.triggered,
            "evidence": self.evidence,
            "diagnostic_note": self.diagnostic_note,
            "matches": list(self.matches),
        }


@dataclass(frozen=True)
class DetectionResult:
    """Aggregated verdict plus the evidence of every triggered probe."""

    is_rooted: bool
    evidence: Tuple[str, ...] = ()
    outcomes: Tuple[ProbeOutcome, ...] = field(default=(), compare=False)

    def to_dict(self) -> dict:
        return {
            "is_rooted": self.is_rooted,
            "evidence": list(self.evidence),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


__all__ = ["DetectionResult", "ProbeOutcome"]
