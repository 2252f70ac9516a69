# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Test configuration helpers and a synthetic device fixture."""
from __future__ import annotations

import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    src = Path(__file__).resolve().parent.parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


_ensure_src_on_path()

import pytest  # noqa: E402

from rootsentry.errors import ResourceUnavailable  # noqa: E402
from rootsentry.host import CommandRunner, Filesystem, Host  # noqa: E402
from rootsentry.registry import build_registry  # noqa: E402

CLEAN_STATUS = "Name:\tpython\nState:\tR (running)\nUid:\t10123\t10123\t10123\t10123\nGid:\t10123\t10123\t10123\t10123\n"


class FakeDevice:
    """In-memory stand-in for the services a probe queries."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.installed: set[str] = set()
        self.properties = {"ro.debuggable": "0", "ro.secure": "0", "ro.build.tags": "release-keys"}
        self.broken_properties: set[str] = set()
        self.log_lines = ["I/ActivityManager: Start proc com.android.settings"]
        self.logs_available = True
        self.tags = "release-keys"
        self.granted = False
        self.write("/proc/self/status", CLEAN_STATUS)

    def write(self, path: str, content: str = "") -> Path:
        target = self.root / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        return target

    # adapters
    def is_installed(self, package_id: str) -> bool:
        return package_id in self.installed

    def get(self, name: str) -> str:
        if name in self.broken_properties:
            raise ResourceUnavailable(f"getprop {name} failed")
        return self.properties.get(name, "")

    def capture(self) -> list[str]:
        if not self.logs_available:
            raise ResourceUnavailable("cannot start logcat: No such file or directory")
        return list(self.log_lines)

    def is_granted(self, permission: str) -> bool:
        return self.granted

    def build_tags(self) -> str:
        return self.tags

    @property
    def host(self) -> Host:
        return Host(
            filesystem=Filesystem(str(self.root)),
            runner=CommandRunner(timeout=1.0),
            packages=self,
            properties=self,
            logs=self,
            permissions=self,
            build=self,
        )

    def registry(self, **kwargs):
        return build_registry(self.host, **kwargs)


@pytest.fixture
def device(tmp_path):
    return FakeDevice(tmp_path)
