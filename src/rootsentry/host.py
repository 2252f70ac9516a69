# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

"""Read-only adapters between probes and the host environment.

Every adapter either answers its query or raises
:class:`~rootsentry.errors.ResourceUnavailable`. Helper processes are spawned
without a shell, bounded by a timeout and killed together with their children
on every exit path.
"""
from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Protocol, Sequence, Set

import psutil

from rootsentry.errors import ExternalProcessFailure, ResourceUnavailable

_logger = logging.getLogger(__name__)

_REAP_TIMEOUT = 1.0


class PackageRegistry(Protocol):
    def is_installed(self, package_id: str) -> bool:
        ...


class PermissionService(Protocol):
    def is_granted(self, permission: str) -> bool:
        ...


class BuildInfo(Protocol):
    def build_tags(self) -> str:
        ...


class Filesystem:
    """Path checks and reads, optionally re-rooted under a mounted image."""

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = root

    def resolve(self, path: str) -> str:
        if not self.root:
            return path
        return os.path.join(self.root, path.lstrip("/"))

    def exists(self, path: str) -> bool:
        """Return whether *path* exists; raise when it cannot be checked."""

        try:
            os.stat(self.resolve(path))
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as exc:
            raise ResourceUnavailable(f"cannot check {path}: {exc.strerror or exc}") from exc
        return True

    def read_text(self, path: str) -> str:
        target = self.resolve(path)
        try:
            with open(target, "r", encoding="utf-8", errors="replace") as handle:
                return handle.read()
        except OSError as exc:
            raise ResourceUnavailable(f"cannot read {path}: {exc.strerror or exc}") from exc


def _kill_tree(pid: int) -> None:
    try:
        parent = psutil.Process(pid)
        victims = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return
    victims.append(parent)
    for victim in victims:
        try:
            victim.kill()
        except psutil.NoSuchProcess:
            continue
    psutil.wait_procs(victims, timeout=_REAP_TIMEOUT)


@dataclass(frozen=True)
class CommandResult:
    argv: Sequence[str]
    returncode: int
    stdout: str


class CommandScope:
    """Deadline and live helpers of one probe evaluation.

    Every command started while the scope is active shares its deadline.
    :meth:`abandon` kills the helpers still running and refuses new ones.
    """

    def __init__(self, deadline: Optional[float] = None) -> None:
        self.deadline = deadline
        self._lock = threading.Lock()
        self._live: Set[subprocess.Popen] = set()
        self._abandoned = False

    @property
    def abandoned(self) -> bool:
        with self._lock:
            return self._abandoned

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def track(self, proc: subprocess.Popen) -> bool:
        with self._lock:
            if self._abandoned:
                return False
            self._live.add(proc)
            return True

    def release(self, proc: subprocess.Popen) -> None:
        with self._lock:
            self._live.discard(proc)

    def abandon(self) -> None:
        with self._lock:
            self._abandoned = True
            live = list(self._live)
        for proc in live:
            _logger.debug("Killing helper process %s of an abandoned probe", proc.pid)
            _kill_tree(proc.pid)


class CommandRunner:
    """Run short-lived helper commands with a hard time limit."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._lock = threading.Lock()
        self._live: Set[subprocess.Popen] = set()
        self._cancelled = threading.Event()
        self._local = threading.local()

    @contextmanager
    def activate(self, scope: CommandScope) -> Iterator[CommandScope]:
        """Bind *scope* to commands run from the current thread."""

        previous = getattr(self._local, "scope", None)
        self._local.scope = scope
        try:
            yield scope
        finally:
            self._local.scope = previous

    def run(self, argv: Sequence[str], *, check: bool = True, timeout: Optional[float] = None) -> CommandResult:
        """Run *argv* and return its output.

        Raises :class:`ExternalProcessFailure` when the command cannot be
        started, exceeds its time limit, or exits non-zero while *check* is set.
        Inside an active :class:`CommandScope` the limit never extends past the
        scope deadline.
        """

        if self._cancelled.is_set():
            raise ExternalProcessFailure(f"{argv[0]} not started: detection cancelled")
        scope: Optional[CommandScope] = getattr(self._local, "scope", None)
        budget = self.timeout if timeout is None else timeout
        if scope is not None:
            remaining = scope.remaining()
            if scope.abandoned or (remaining is not None and remaining <= 0):
                raise ExternalProcessFailure(f"{argv[0]} not started: probe budget exhausted")
            if remaining is not None:
                budget = min(budget, remaining)
        try:
            proc = subprocess.Popen(
                list(argv),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise ExternalProcessFailure(f"cannot start {argv[0]}: {exc.strerror or exc}") from exc

        with self._lock:
            self._live.add(proc)
        finished = False
        try:
            if scope is not None and not scope.track(proc):
                raise ExternalProcessFailure(f"{argv[0]} interrupted: probe budget exhausted")
            if self._cancelled.is_set():
                raise ExternalProcessFailure(f"{argv[0]} interrupted: detection cancelled")
            stdout, _ = proc.communicate(timeout=budget)
            finished = True
        except subprocess.TimeoutExpired as exc:
            raise ExternalProcessFailure(f"{argv[0]} timed out after {budget:g}s") from exc
        finally:
            if not finished:
                self._abort(proc)
            if scope is not None:
                scope.release(proc)
            with self._lock:
                self._live.discard(proc)

        if self._cancelled.is_set():
            raise ExternalProcessFailure(f"{argv[0]} interrupted: detection cancelled")
        if scope is not None and scope.abandoned:
            raise ExternalProcessFailure(f"{argv[0]} interrupted: probe budget exhausted")
        if check and proc.returncode != 0:
            raise ExternalProcessFailure(f"{argv[0]} exited with status {proc.returncode}")
        return CommandResult(argv=tuple(argv), returncode=proc.returncode, stdout=stdout or "")

    def _abort(self, proc: subprocess.Popen) -> None:
        _kill_tree(proc.pid)
        try:
            proc.communicate(timeout=_REAP_TIMEOUT)
        except subprocess.TimeoutExpired:
            _logger.warning("Helper process %s did not exit after kill", proc.pid)

    def cancel_all(self) -> None:
        """Kill every helper still running and refuse to start new ones."""

        self._cancelled.set()
        with self._lock:
            live = list(self._live)
        for proc in live:
            _logger.debug("Cancelling helper process %s", proc.pid)
            _kill_tree(proc.pid)

    def reset(self) -> None:
        self._cancelled.clear()

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._live)


class PropertyStore:
    """Read system properties through the ``getprop`` helper."""

    def __init__(self, runner: CommandRunner, *, command: Sequence[str] = ("getprop",)) -> None:
        self.runner = runner
        self.command = tuple(command)

    def get(self, name: str) -> str:
        output = self.runner.run([*self.command, name]).stdout
        lines = output.splitlines()
        return lines[0].strip() if lines else ""


class LogSource:
    """Capture a snapshot of the system log."""

    def __init__(self, runner: CommandRunner, *, command: Sequence[str] = ("logcat", "-d")) -> None:
        self.runner = runner
        self.command = tuple(command)

    def capture(self) -> List[str]:
        return self.runner.run(self.command).stdout.splitlines()


class ShellPackageRegistry:
    """Look up installed packages with ``pm path``."""

    def __init__(self, runner: CommandRunner, *, command: Sequence[str] = ("pm", "path")) -> None:
        self.runner = runner
        self.command = tuple(command)

    def is_installed(self, package_id: str) -> bool:
        result = self.runner.run([*self.command, package_id], check=False)
        if result.returncode == 0:
            return any(line.startswith("package:") for line in result.stdout.splitlines())
        if not result.stdout.strip():
            return False
        raise ExternalProcessFailure(f"{self.command[0]} exited with status {result.returncode}")


class BuildPropInfo:
    """Read build tags from ``build.prop`` when the platform API is absent."""

    def __init__(self, filesystem: Filesystem, *, path: str = "/system/build.prop") -> None:
        self.filesystem = filesystem
        self.path = path

    def build_tags(self) -> str:
        for line in self.filesystem.read_text(self.path).splitlines():
            if line.startswith("ro.build.tags="):
                return line.split("=", 1)[1].strip()
        return ""


class UnsupportedPermissionService:
    """Permission queries need an application context; plain hosts have none."""

    def is_granted(self, permission: str) -> bool:
        raise ResourceUnavailable(f"no permission service on this host to query {permission}")


@dataclass(frozen=True)
class Host:
    filesystem: Filesystem
    runner: CommandRunner
    packages: PackageRegistry
    properties: PropertyStore
    logs: LogSource
    permissions: PermissionService
    build: BuildInfo


def default_host(*, timeout: float = 5.0, fs_root: Optional[str] = None) -> Host:
    """Assemble the adapters appropriate for the current platform."""

    from rootsentry import android

    filesystem = Filesystem(fs_root)
    runner = CommandRunner(timeout=timeout)
    if android.is_android() and not fs_root:
        _logger.debug("Using Android platform services")
        packages: PackageRegistry = android.AndroidPackageRegistry()
        permissions: PermissionService = android.AndroidPermissionService()
        build: BuildInfo = android.AndroidBuildInfo()
    else:
        packages = ShellPackageRegistry(runner)
        permissions = UnsupportedPermissionService()
        build = BuildPropInfo(filesystem)
    return Host(
        filesystem=filesystem,
        runner=runner,
        packages=packages,
        properties=PropertyStore(runner),
        logs=LogSource(runner),
        permissions=permissions,
        build=build,
    )


__all__ = [
    "BuildInfo",
    "BuildPropInfo",
    "CommandResult",
    "CommandRunner",
    "CommandScope",
    "Filesystem",
    "Host",
    "LogSource",
    "PackageRegistry",
    "PermissionService",
    "PropertyStore",
    "ShellPackageRegistry",
    "UnsupportedPermissionService",
    "default_host",
]
