# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Platform services reached through pyjnius when running on Android."""
from __future__ import annotations

import logging
import os

from rootsentry.errors import ResourceUnavailable

_logger = logging.getLogger(__name__)

_NOT_FOUND = "android.content.pm.PackageManager$NameNotFoundException"


def is_android() -> bool:
    """Return ``True`` inside a python-for-android build."""

    return "ANDROID_ARGUMENT" in os.environ or "P4A_BOOTSTRAP" in os.environ


def _jnius():
    # Late import so that desktop hosts never need pyjnius.
    try:
        import jnius
    except ImportError as exc:
        raise ResourceUnavailable("pyjnius is not available") from exc
    return jnius


def _activity():
    jnius = _jnius()
    try:
        return jnius.autoclass("org.kivy.android.PythonActivity").mActivity
    except jnius.JavaException as exc:
        raise ResourceUnavailable(f"Android activity unavailable: {exc}") from exc


class AndroidPackageRegistry:
    """Query ``PackageManager`` for installed packages."""

    def is_installed(self, package_id: str) -> bool:
        jnius = _jnius()
        manager = _activity().getPackageManager()
        try:
            manager.getPackageInfo(package_id, 0)
        except jnius.JavaException as exc:
            if getattr(exc, "classname", None) == _NOT_FOUND:
                return False
            raise ResourceUnavailable(f"package lookup for {package_id} failed: {exc}") from exc
        return True


class AndroidPermissionService:
    """Ask the running activity whether a permission has been granted."""

    def is_granted(self, permission: str) -> bool:
        jnius = _jnius()
        activity = _activity()
        try:
            PackageManager = jnius.autoclass("android.content.pm.PackageManager")
            state = activity.checkSelfPermission(permission)
        except jnius.JavaException as exc:
            raise ResourceUnavailable(f"permission query for {permission} failed: {exc}") from exc
        _logger.debug("Permission %s state %s", permission, state)
        return state == PackageManager.PERMISSION_GRANTED


class AndroidBuildInfo:
    """Expose ``android.os.Build.TAGS``."""

    def build_tags(self) -> str:
        jnius = _jnius()
        try:
            tags = jnius.autoclass("android.os.Build").TAGS
        except jnius.JavaException as exc:
            raise ResourceUnavailable(f"Build.TAGS unavailable: {exc}") from exc
        return tags or ""


__all__ = [
    "AndroidBuildInfo",
    "AndroidPackageRegistry",
    "AndroidPermissionService",
    "is_android",
]
