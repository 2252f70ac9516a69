import dataclasses
import sys
import time
from dataclasses import dataclass
from typing import ClassVar

import psutil
import pytest

from rootsentry.engine import RootDetector
from rootsentry.host import CommandRunner, PropertyStore
from rootsentry.policy import DetectionPolicy
from rootsentry.probes import Probe, SystemPropertyProbe
from rootsentry.registry import ProbeRegistry


def make_detector(device, **policy):
    return RootDetector(host=device.host, policy=DetectionPolicy(probe_timeout=1.0, **policy))


def test_su_path_triggers_every_probe_sharing_it(device):
    device.write("/system/bin/su")
    result = make_detector(device).detect()
    assert result.is_rooted
    assert result.evidence == ("su binary found", "Superuser apps detected")


def test_release_keys_is_clean(device):
    device.tags = "release-keys"
    result = make_detector(device).detect()
    assert not result.is_rooted
    assert result.evidence == ()


def test_test_keys_triggers_build_tags(device):
    device.tags = "test-keys"
    result = make_detector(device).detect()
    assert result.is_rooted
    assert "Build tags indicate root" in result.evidence


def test_debuggable_property_triggers(device):
    device.properties["ro.debuggable"] = "1"
    result = make_detector(device).detect()
    assert result.evidence == ("Dangerous properties detected",)


def test_magisk_log_line_triggers(device):
    device.log_lines.append("Magisk Manager update")
    result = make_detector(device).detect()
    assert result.evidence == ("magisk or zygisk found in logcat -d",)


def test_clean_device(device):
    result = make_detector(device).detect()
    assert not result.is_rooted
    assert result.evidence == ()
    assert len(result.outcomes) == 8
    assert all(outcome.diagnostic_note is None for outcome in result.outcomes)


def test_evidence_follows_registry_order(device):
    device.granted = True
    device.log_lines.append("zygisk: injecting")
    device.write("/proc/self/status", "Uid:\t0\t0\t0\t0\n")
    device.installed.add("com.noshufou.android.su")
    device.write("/sbin/su")
    for parallel in (False, True):
        result = make_detector(device, parallel=parallel).detect()
        assert result.evidence == (
            "su binary found",
            "Root management apps installed",
            "Self status indicates root",
            "magisk or zygisk found in logcat -d",
            "Unusual permissions granted",
        )


def test_repeated_runs_are_identical(device):
    device.properties["ro.build.tags"] = "test-keys"
    detector = make_detector(device)
    assert detector.detect() == detector.detect()


def test_failures_do_not_change_outcome_count(device, tmp_path):
    device.logs_available = False
    device.broken_properties.update(device.properties)
    (tmp_path / "proc" / "self" / "status").unlink()
    result = make_detector(device).detect()
    assert len(result.outcomes) == 8
    assert not result.is_rooted
    notes = {outcome.probe_id: outcome.diagnostic_note for outcome in result.outcomes}
    assert notes["log_scan"] and notes["system_properties"] and notes["self_status"]


def test_permission_probe_can_be_disabled(device):
    device.granted = True
    result = make_detector(device, permission_probe=False).detect()
    assert not result.is_rooted
    assert len(result.outcomes) == 7


@dataclass(frozen=True)
class InterruptOnceBusy(Probe):
    """Raise KeyboardInterrupt as soon as another check has a helper running."""

    id: ClassVar[str] = "interrupt"
    description: ClassVar[str] = "interrupts the run"
    evidence: ClassVar[str] = "never reported"

    runner: CommandRunner

    def check(self):
        deadline = time.monotonic() + 10
        while self.runner.live_count == 0 and time.monotonic() < deadline:
            time.sleep(0.02)
        raise KeyboardInterrupt


def _alive(proc):
    try:
        return proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False


@pytest.mark.timeout(30)
def test_interrupted_detection_kills_in_flight_helpers(device):
    runner = CommandRunner(timeout=30.0)
    stalled_getprop = PropertyStore(runner, command=(sys.executable, "-c", "import time; time.sleep(30)"))
    host = dataclasses.replace(device.host, runner=runner, properties=stalled_getprop)
    registry = ProbeRegistry([InterruptOnceBusy(runner), SystemPropertyProbe(stalled_getprop, ("ro.debuggable",))])
    detector = RootDetector(
        registry=registry,
        host=host,
        policy=DetectionPolicy(probe_timeout=30.0, parallel=True),
    )
    before = set(psutil.Process().children(recursive=True))

    started = time.monotonic()
    with pytest.raises(KeyboardInterrupt):
        detector.detect()

    assert time.monotonic() - started < 15
    assert host.runner.live_count == 0
    assert [proc for proc in psutil.Process().children(recursive=True) if proc not in before and _alive(proc)] == []
