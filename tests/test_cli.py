import json

import pytest
from click.testing import CliRunner

from rootsentry import cli
from rootsentry.errors import EngineError
from rootsentry.models import DetectionResult, ProbeOutcome


class _StaticDetector:
    result = DetectionResult(False)
    error = None

    def __init__(self, **kwargs):
        type(self).kwargs = kwargs

    def detect(self):
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def static_detector(monkeypatch):
    monkeypatch.setattr(_StaticDetector, "result", DetectionResult(False))
    monkeypatch.setattr(_StaticDetector, "error", None)
    monkeypatch.setattr(cli, "RootDetector", _StaticDetector)
    return _StaticDetector


def test_clean_device_exits_zero(static_detector):
    result = CliRunner().invoke(cli.main, ["detect"])
    assert result.exit_code == cli.EXIT_CLEAN
    assert "Your device is not rooted." in result.output


def test_rooted_device_exits_one(static_detector, monkeypatch):
    outcome = ProbeOutcome("su_binary", True, "su binary found", matches=("/sbin/su",))
    monkeypatch.setattr(static_detector, "result", DetectionResult(True, ("su binary found",), (outcome,)))

    result = CliRunner().invoke(cli.main, ["-v", "detect"])

    assert result.exit_code == cli.EXIT_ROOTED
    assert "Your device is rooted!" in result.output
    assert "- su binary found" in result.output
    assert "/sbin/su" in result.output


def test_json_report(static_detector, monkeypatch):
    outcome = ProbeOutcome("log_scan", True, "magisk or zygisk found in logcat -d", matches=("Magisk",))
    monkeypatch.setattr(static_detector, "result", DetectionResult(True, (outcome.evidence,), (outcome,)))

    result = CliRunner().invoke(cli.main, ["detect", "--json"])

    payload = json.loads(result.output)
    assert payload["is_rooted"] is True
    assert payload["evidence"] == ["magisk or zygisk found in logcat -d"]
    assert payload["outcomes"][0]["matches"] == ["Magisk"]


def test_internal_error_is_distinct(static_detector, monkeypatch):
    monkeypatch.setattr(static_detector, "error", EngineError("broken registry"))
    result = CliRunner().invoke(cli.main, ["detect"])
    assert result.exit_code == cli.EXIT_INTERNAL


def test_interrupted_run_is_not_a_verdict(static_detector, monkeypatch):
    monkeypatch.setattr(static_detector, "error", KeyboardInterrupt())
    result = CliRunner().invoke(cli.main, ["detect"])
    assert result.exit_code == cli.EXIT_CANCELLED
    assert result.exit_code not in (cli.EXIT_CLEAN, cli.EXIT_ROOTED)
    assert "detection cancelled" in result.output


def test_unexpected_exception_is_internal(static_detector, monkeypatch):
    monkeypatch.setattr(static_detector, "error", RuntimeError("boom"))
    result = CliRunner().invoke(cli.main, ["detect"])
    assert result.exit_code == cli.EXIT_INTERNAL
    assert "RuntimeError: boom" in result.output


def test_flags_reach_policy(static_detector, tmp_path):
    result = CliRunner().invoke(
        cli.main,
        ["detect", "--root", str(tmp_path), "--timeout", "0.5", "--parallel", "--skip-permission-probe"],
    )
    assert result.exit_code == cli.EXIT_CLEAN
    policy = static_detector.kwargs["policy"]
    assert policy.fs_root == str(tmp_path)
    assert policy.probe_timeout == 0.5
    assert policy.parallel is True
    assert policy.permission_probe is False


def test_bad_catalog_is_a_usage_error(static_detector, tmp_path):
    catalog = tmp_path / "catalog.yaml"
    catalog.write_text("nonsense: [1]\n")
    result = CliRunner().invoke(cli.main, ["detect", "--catalog", str(catalog)])
    assert result.exit_code == 2
    assert "unknown catalog keys" in result.output


def test_probes_lists_registry(monkeypatch):
    monkeypatch.delenv("ROOTSENTRY_PERMISSION_PROBE", raising=False)
    result = CliRunner().invoke(cli.main, ["probes"])
    assert result.exit_code == 0
    names = [line.split()[0] for line in result.output.splitlines()]
    assert names[0] == "su_binary"
    assert names[-1] == "storage_permission"


@pytest.mark.timeout(60)
def test_mounted_image_with_su_is_rooted(tmp_path, monkeypatch):
    monkeypatch.delenv("ANDROID_ARGUMENT", raising=False)
    monkeypatch.delenv("P4A_BOOTSTRAP", raising=False)
    (tmp_path / "sbin").mkdir()
    (tmp_path / "sbin" / "su").write_text("")

    result = CliRunner().invoke(cli.main, ["detect", "--root", str(tmp_path), "--timeout", "2", "--json"])

    assert result.exit_code == cli.EXIT_ROOTED
    payload = json.loads(result.output)
    assert payload["evidence"][0] == "su binary found"
    assert len(payload["outcomes"]) == 8
