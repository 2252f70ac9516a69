# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Concrete environment probes.

Each probe is a frozen value object: its literals arrive from a
:class:`~rootsentry.catalog.ProbeCatalog` and its view of the device from
:mod:`rootsentry.host` adapters. :meth:`Probe.evaluate` never lets a
:class:`~rootsentry.errors.ResourceUnavailable` escape; an unreachable target
produces a non-triggered outcome carrying a diagnostic note instead.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, ClassVar, Iterable, List, Optional, Sequence, Tuple

from rootsentry.errors import ResourceUnavailable
from rootsentry.host import BuildInfo, Filesystem, LogSource, PackageRegistry, PermissionService, PropertyStore
from rootsentry.models import ProbeOutcome

_logger = logging.getLogger(__name__)

_MAX_LOG_MATCHES = 10


class Probe(ABC):
    """A single read-only check yielding a triggered/not-triggered outcome."""

    id: ClassVar[str]
    description: ClassVar[str]
    evidence: ClassVar[str]

    def evaluate(self) -> ProbeOutcome:
        try:
            return self.check()
        except ResourceUnavailable as exc:
            _logger.debug("Probe %s could not be evaluated: %s", self.id, exc)
            return self.miss(str(exc))

    @abstractmethod
    def check(self) -> ProbeOutcome:
        """Inspect the environment; may raise :class:`ResourceUnavailable`."""

    def hit(self, matches: Iterable[str] = ()) -> ProbeOutcome:
        return ProbeOutcome(self.id, True, self.evidence, matches=tuple(matches))

    def miss(self, note: Optional[str] = None) -> ProbeOutcome:
        return ProbeOutcome(self.id, False, self.evidence, diagnostic_note=note)

    def _settle(self, matches: Sequence[str], failures: Sequence[str]) -> ProbeOutcome:
        if matches:
            return self.hit(matches)
        if failures:
            return self.miss("; ".join(failures))
        return self.miss()


def _each(targets: Iterable[str], test: Callable[[str], Optional[str]]) -> Tuple[List[str], List[str]]:
    """Run *test* on every target, keeping going past unavailable ones."""

    matches: List[str] = []
    failures: List[str] = []
    for target in targets:
        try:
            found = test(target)
        except ResourceUnavailable as exc:
            failures.append(str(exc))
            continue
        if found is not None:
            matches.append(found)
    return matches, failures


@dataclass(frozen=True)
class _PathProbe(Probe):
    filesystem: Filesystem
    paths: Tuple[str, ...]

    def check(self) -> ProbeOutcome:
        return self._settle(*_each(self.paths, lambda path: path if self.filesystem.exists(path) else None))


@dataclass(frozen=True)
class SuBinaryProbe(_PathProbe):
    id: ClassVar[str] = "su_binary"
    description: ClassVar[str] = "su executable present in a system path"
    evidence: ClassVar[str] = "su binary found"


@dataclass(frozen=True)
class SuperuserAppProbe(_PathProbe):
    id: ClassVar[str] = "superuser_app"
    description: ClassVar[str] = "superuser application artefacts on the system partition"
    evidence: ClassVar[str] = "Superuser apps detected"


@dataclass(frozen=True)
class RootManagementAppProbe(Probe):
    id: ClassVar[str] = "root_management_app"
    description: ClassVar[str] = "known root manager packages installed"
    evidence: ClassVar[str] = "Root management apps installed"

    packages: PackageRegistry
    package_ids: Tuple[str, ...]

    def check(self) -> ProbeOutcome:
        matches, failures = _each(
            self.package_ids,
            lambda package_id: package_id if self.packages.is_installed(package_id) else None,
        )
        return self._settle(matches, failures)


@dataclass(frozen=True)
class BuildTagProbe(Probe):
    id: ClassVar[str] = "build_tags"
    description: ClassVar[str] = "image signed with test keys"
    evidence: ClassVar[str] = "Build tags indicate root"

    build: BuildInfo
    marker: str = "test-keys"

    def check(self) -> ProbeOutcome:
        tags = self.build.build_tags()
        return self.hit([tags]) if self.marker in tags else self.miss()


@dataclass(frozen=True)
class SystemPropertyProbe(Probe):
    id: ClassVar[str] = "system_properties"
    description: ClassVar[str] = "debug or test-key system properties"
    evidence: ClassVar[str] = "Dangerous properties detected"

    properties: PropertyStore
    names: Tuple[str, ...]
    dangerous_value: str = "1"
    marker: str = "test-keys"

    def _inspect(self, name: str) -> Optional[str]:
        value = self.properties.get(name)
        if value == self.dangerous_value or self.marker in value:
            return f"{name}={value}"
        return None

    def check(self) -> ProbeOutcome:
        return self._settle(*_each(self.names, self._inspect))


@dataclass(frozen=True)
class SelfStatusProbe(Probe):
    id: ClassVar[str] = "self_status"
    description: ClassVar[str] = "current process running as uid 0"
    evidence: ClassVar[str] = "Self status indicates root"

    filesystem: Filesystem
    path: str = "/proc/self/status"
    marker: str = "Uid:\t0"

    def check(self) -> ProbeOutcome:
        content = self.filesystem.read_text(self.path)
        return self.hit([self.path]) if self.marker in content else self.miss()


def scan_lines(lines: Iterable[str], keywords: Sequence[str], *, limit: int = _MAX_LOG_MATCHES) -> List[str]:
    """Return up to *limit* lines containing any keyword, ignoring case."""

    folded = [keyword.casefold() for keyword in keywords]
    found: List[str] = []
    for line in lines:
        lowered = line.casefold()
        if any(keyword in lowered for keyword in folded):
            found.append(line.strip())
            if len(found) >= limit:
                break
    return found


@dataclass(frozen=True)
class LogScanProbe(Probe):
    id: ClassVar[str] = "log_scan"
    description: ClassVar[str] = "root framework traces in the system log"
    evidence: ClassVar[str] = "magisk or zygisk found in logcat -d"

    logs: LogSource
    keywords: Tuple[str, ...] = ("magisk", "zygisk")

    def check(self) -> ProbeOutcome:
        found = scan_lines(self.logs.capture(), self.keywords)
        return self.hit(found) if found else self.miss()


@dataclass(frozen=True)
class PermissionProbe(Probe):
    id: ClassVar[str] = "storage_permission"
    description: ClassVar[str] = "storage write permission granted to this application"
    evidence: ClassVar[str] = "Unusual permissions granted"

    permissions: PermissionService
    permission: str = "android.permission.WRITE_EXTERNAL_STORAGE"

    def check(self) -> ProbeOutcome:
        if self.permissions.is_granted(self.permission):
            return self.hit([self.permission])
        return self.miss()


__all__ = [
    "BuildTagProbe",
    "LogScanProbe",
    "PermissionProbe",
    "Probe",
    "RootManagementAppProbe",
    "SelfStatusProbe",
    "SuBinaryProbe",
    "SuperuserAppProbe",
    "SystemPropertyProbe",
    "scan_lines",
]
