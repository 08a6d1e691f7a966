"""Tests for ServiceController."""

import subprocess

import pytest

from saptune.protocol.errors import ServiceError
from saptune.tuning.service import ServiceConfig, ServiceController


@pytest.fixture
def controller(tmp_path):
    return ServiceController(ServiceConfig(profile_file=str(tmp_path / "tuned" / "active_profile")))


def test_tuned_profile_round_trip(controller):
    assert controller.get_tuned_profile() == ""

    controller.write_tuned_profile("saptune")

    assert controller.get_tuned_profile() == "saptune"


def test_enable_start_runs_systemctl(controller, monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    controller.enable_start("tuned.service")

    assert calls == [["systemctl", "enable", "tuned.service"], ["systemctl", "start", "tuned.service"]]


def test_command_failure(controller, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(5, cmd, output="", stderr="Unit sapconf.service not loaded.")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ServiceError, match="not loaded"):
        controller.disable_stop("sapconf.service")


def test_is_running(controller, monkeypatch):
    monkeypatch.setattr(
        subprocess, "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 3, stdout="inactive\n", stderr=""),
    )

    assert controller.status("tuned.service") == "inactive"
    assert not controller.is_running("tuned.service")


def test_missing_systemctl(tmp_path):
    controller = ServiceController(ServiceConfig(systemctl=str(tmp_path / "no-systemctl")))

    assert controller.status("tuned.service") == "unknown"
