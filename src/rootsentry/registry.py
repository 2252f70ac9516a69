# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Ordered, immutable probe collection."""
from __future__ import annotations

from typing import Iterable, Iterator, Tuple

from rootsentry.catalog import DEFAULT_CATALOG, ProbeCatalog
from rootsentry.errors import RegistryError
from rootsentry.host import Host
from rootsentry.probes import (
    BuildTagProbe,
    LogScanProbe,
    PermissionProbe,
    Probe,
    RootManagementAppProbe,
    SelfStatusProbe,
    SuBinaryProbe,
    SuperuserAppProbe,
    SystemPropertyProbe,
)


class ProbeRegistry:
    """The probes of a detection run, in evaluation and report order."""

    __slots__ = ("_probes",)

    def __init__(self, probes: Iterable[Probe]) -> None:
        items = tuple(probes)
        if not items:
            raise RegistryError("a probe registry needs at least one probe")
        seen = set()
        for probe in items:
            if not isinstance(probe, Probe):
                raise RegistryError(f"{probe!r} is not a Probe")
            if probe.id in seen:
                raise RegistryError(f"duplicate probe id {probe.id!r}")
            seen.add(probe.id)
        self._probes: Tuple[Probe, ...] = items

    def __iter__(self) -> Iterator[Probe]:
        return iter(self._probes)

    def __len__(self) -> int:
        return len(self._probes)

    def __repr__(self) -> str:
        return f"ProbeRegistry({[probe.id for probe in self._probes]!r})"

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(probe.id for probe in self._probes)

    def get(self, probe_id: str) -> Probe:
        for probe in self._probes:
            if probe.id == probe_id:
                return probe
        raise KeyError(probe_id)


def build_registry(
    host: Host,
    catalog: ProbeCatalog = DEFAULT_CATALOG,
    *,
    include_permission_probe: bool = True,
) -> ProbeRegistry:
    """Register the standard probe battery against *host*."""

    probes = [
        SuBinaryProbe(host.filesystem, catalog.su_binary_paths),
        SuperuserAppProbe(host.filesystem, catalog.superuser_app_paths),
        RootManagementAppProbe(host.packages, catalog.root_manager_packages),
        BuildTagProbe(host.build, catalog.build_tag_marker),
        SystemPropertyProbe(
            host.properties,
            catalog.dangerous_properties,
            catalog.dangerous_property_value,
            catalog.build_tag_marker,
        ),
        SelfStatusProbe(host.filesystem, catalog.status_path, catalog.status_marker),
        LogScanProbe(host.logs, catalog.log_keywords),
    ]
    if include_permission_probe:
        probes.append(PermissionProbe(host.permissions, catalog.storage_permission))
    return ProbeRegistry(probes)


__all__ = ["ProbeRegistry", "build_registry"]
