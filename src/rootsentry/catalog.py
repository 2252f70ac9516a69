# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Declarative literals handed to probes at registration time."""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Tuple

import yaml


class CatalogError(ValueError):
    """Raised when a catalog file cannot be turned into a :class:`ProbeCatalog`."""


@dataclass(frozen=True)
class ProbeCatalog:
    su_binary_paths: Tuple[str, ...] = (
        "/sbin/su",
        "/system/sd/xbin/su",
        "/system/bin/su",
        "/system/xbin/su",
    )
    superuser_app_paths: Tuple[str, ...] = (
        "/system/app/SuperSU/SuperSU.apk",
        "/system/xbin/su",
        "/system/bin/su",
    )
    root_manager_packages: Tuple[str, ...] = (
        "com.noshufou.android.su",
        "eu.chainfire.supersu",
        "com.koushikdutta.superuser",
    )
    build_tag_marker: str = "test-keys"
    dangerous_properties: Tuple[str, ...] = ("ro.debuggable", "ro.secure", "ro.build.tags")
    dangerous_property_value: str = "1"
    status_path: str = "/proc/self/status"
    status_marker: str = "Uid:\t0"
    log_keywords: Tuple[str, ...] = ("magisk", "zygisk")
    storage_permission: str = "android.permission.WRITE_EXTERNAL_STORAGE"


DEFAULT_CATALOG = ProbeCatalog()


def _coerce(name: str, value: Any, template: Any) -> Any:
    if isinstance(template, tuple):
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise CatalogError(f"{name}: expected a list of strings")
        if not all(isinstance(item, str) for item in value):
            raise CatalogError(f"{name}: expected a list of strings")
        if not value or not all(value):
            raise CatalogError(f"{name}: expected a non-empty list of non-empty strings")
        return tuple(value)
    if not isinstance(value, str):
        raise CatalogError(f"{name}: expected a string")
    # an empty marker is a substring of everything
    if not value:
        raise CatalogError(f"{name}: must not be empty")
    return value


def catalog_from_mapping(data: Mapping[str, Any], *, base: ProbeCatalog = DEFAULT_CATALOG) -> ProbeCatalog:
    """Overlay *data* on *base*; keys that are absent keep their defaults."""

    known = {item.name for item in fields(ProbeCatalog)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise CatalogError(f"unknown catalog keys: {', '.join(unknown)}")
    overrides = {name: _coerce(name, value, getattr(base, name)) for name, value in data.items()}
    return replace(base, **overrides)


def load_catalog(path: str | Path) -> ProbeCatalog:
    """Read a YAML catalog file."""

    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"cannot read catalog {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CatalogError(f"invalid YAML in {path}: {exc}") from exc
    if data is None:
        return DEFAULT_CATALOG
    if not isinstance(data, dict):
        raise CatalogError(f"{path}: top level must be a mapping")
    return catalog_from_mapping(data)


__all__ = [
    "CatalogError",
    "DEFAULT_CATALOG",
    "ProbeCatalog",
    "catalog_from_mapping",
    "load_catalog",
]
