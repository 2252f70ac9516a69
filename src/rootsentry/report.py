# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Render a :class:`DetectionResult` for people and for scripts."""
from __future__ import annotations

import json

from rootsentry.models import DetectionResult


def render_text(result: DetectionResult, *, verbose: bool = False) -> str:
    if result.is_rooted:
        lines = ["Your device is rooted!", "", "Detected Methods:"]
        lines.extend(f"- {item}" for item in result.evidence)
    else:
        lines = ["Your device is not rooted."]
    if verbose and result.outcomes:
        lines.extend(["", "Probes:"])
        for outcome in result.outcomes:
            state = "TRIGGERED" if outcome.triggered else "clear"
            line = f"  {outcome.probe_id:<22} {state}"
            if outcome.matches:
                line += f"  [{', '.join(outcome.matches)}]"
            if outcome.diagnostic_note:
                line += f"  ({outcome.diagnostic_note})"
            lines.append(line)
    return "\n".join(lines)


def render_json(result: DetectionResult) -> str:
    return json.dumps(result.to_dict(), ensure_ascii=False, indent=2)


__all__ = ["render_json", "render_text"]
