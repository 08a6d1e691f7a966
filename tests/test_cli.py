"""Tests for the saptune command line."""

import io
import os

import pytest
from rich.console import Console

from saptune import cli
from saptune.config import CONFIG_ENV_VAR
from saptune.tuning.lock import StateLock
from saptune.ui.console import ConsoleUI

from mocks import INITIAL_VALUES, MockServiceController


class Result:
    def __init__(self, code, out, err):
        self.code = code
        self.out = out
        self.err = err

    def line_with(self, text):
        return next(line for line in self.out.splitlines() if text in line)

    def rows(self):
        """Output lines split into cells (tables are printed without borders)."""
        return [line.split() for line in self.out.splitlines()]


@pytest.fixture
def sysconfig_dir(tmp_path):
    path = tmp_path / "sysconfig"
    path.mkdir()
    return path


@pytest.fixture
def config_file(tmp_path, sysconfig_dir, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    path = tmp_path / "saptune.toml"
    path.write_text(
        "[paths]\n"
        f'sysconfig_dir = "{sysconfig_dir}"\n'
        f'log_file = "{tmp_path / "saptune.log"}"\n'
    )
    return path


@pytest.fixture
def service():
    return MockServiceController()


@pytest.fixture
def root(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 0)


@pytest.fixture
def run(engine, service, config_file, root):
    def run(*argv):
        out, err = io.StringIO(), io.StringIO()
        ui = ConsoleUI(
            console=Console(file=out, width=300, highlight=False),
            err_console=Console(file=err, width=300, highlight=False),
        )
        code = cli.main(["--config", str(config_file)] + list(argv), engine=engine, service=service, ui=ui)
        return Result(code, out.getvalue(), err.getvalue())
    return run


def test_help_needs_no_root(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    out = io.StringIO()

    code = cli.main(["help"], ui=ConsoleUI(console=Console(file=out, width=300)))

    assert code == 0
    assert "saptune daemon [ start | status | stop ]" in out.getvalue()


def test_requires_root(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    err = io.StringIO()

    code = cli.main(["note", "list"], ui=ConsoleUI(err_console=Console(file=err, width=300)))

    assert code == 1
    assert "Please run saptune with root privilege." in err.getvalue()


def test_unknown_command_prints_help(run):
    result = run("tune", "everything")

    assert result.code == 1
    assert "Daemon control:" in result.out


def test_missing_note_id(run):
    assert run("note", "apply").code == 1


class TestNote:
    def test_apply(self, run, system):
        result = run("note", "apply", "N1")

        assert result.code == 0
        assert "The note has been applied successfully." in result.out
        assert "saptune daemon start" in result.out
        assert system.values["a"] == "1"

    def test_apply_without_reminder_when_daemon_configured(self, run, service):
        service.running.add("tuned.service")
        service.profile = "saptune"

        result = run("note", "apply", "N1")

        assert "Remember:" not in result.out

    def test_apply_unknown(self, run):
        result = run("note", "apply", "0000000")

        assert result.code == 1
        assert "Failed to tune for note 0000000" in result.err
        assert "not recognised by saptune" in result.err

    def test_apply_failure_lists_parameters(self, run, system):
        system.unwritable.add("b")

        result = run("note", "apply", "N1")

        assert result.code == 1
        assert "N1 b (write)" in result.err

    def test_list_marks_enabled_notes(self, run):
        run("note", "apply", "N3")
        run("solution", "apply", "SOL")

        result = run("note", "list")

        assert result.code == 0
        assert result.line_with("First note").startswith("*")
        assert result.line_with("Third note").startswith("+")

    def test_verify_deviation(self, run):
        result = run("note", "verify", "N1")

        assert result.code == 1
        assert ["Parameter", "Expected", "Actual"] in result.rows()
        assert ["a", "1", "0"] in result.rows()
        assert "The parameters listed above have deviated from the specified note." in result.err

    def test_verify_conforming(self, run):
        run("note", "apply", "N1")

        result = run("note", "verify", "N1")

        assert result.code == 0
        assert "The system fully conforms to the specified note." in result.out

    def test_verify_all(self, run, system):
        assert "well-tuned" in run("note", "verify").out

        run("note", "apply", "N3")
        system.values["d"] = "7"
        result = run("note", "verify")

        assert result.code == 1
        assert ["d", "5", "7"] in result.rows()
        assert "deviated from SAP/SUSE recommendations" in result.err

    def test_simulate(self, run, system):
        result = run("note", "simulate", "N1")

        assert result.code == 0
        assert "If you run `saptune note apply N1`" in result.out
        assert ["a", "1"] in result.rows()
        assert ["b", "2"] in result.rows()
        assert system.writes == []

    def test_revert(self, run, system):
        run("note", "apply", "N1")

        result = run("note", "revert", "N1")

        assert result.code == 0
        assert "successfully reverted" in result.out
        assert system.values == INITIAL_VALUES

    def test_revert_not_applied(self, run):
        result = run("note", "revert", "N3")

        assert result.code == 1
        assert "Failed to revert note N3" in result.err

    def test_customise_without_file(self, run):
        result = run("note", "customise", "N1")

        assert result.code == 1
        assert "Note N1 does not require additional customisation input." in result.err

    def test_customise_opens_editor(self, run, sysconfig_dir, monkeypatch):
        (sysconfig_dir / "saptune-note-N1").write_text("A=1\n")
        calls = []
        monkeypatch.setenv("EDITOR", "nano")
        monkeypatch.setattr(os, "execvp", lambda file, args: calls.append(args))

        assert run("note", "customise", "N1").code == 0
        assert calls == [["nano", str(sysconfig_dir / "saptune-note-N1")]]


class TestSolution:
    def test_apply_reports_absorbed_notes(self, run, store):
        run("note", "apply", "N1")

        result = run("solution", "apply", "SOL")

        assert result.code == 0
        assert "All tuning options for the SAP solution have been applied successfully." in result.out
        assert "now tuned by the SAP solution" in result.out
        assert store.load().active_notes == []

    def test_list(self, run):
        run("solution", "apply", "SOL2")

        result = run("solution", "list")

        enabled = [line.split()[-1] for line in result.out.splitlines() if line.startswith("*")]
        assert enabled == ["SOL2"]

    def test_verify(self, run):
        run("solution", "apply", "SOL2")
        assert run("solution", "verify", "SOL2").code == 0

        result = run("solution", "verify", "SOL")

        assert result.code == 1
        assert "N1 - First note -" in result.out
        assert "deviated from the specified SAP solution recommendations" in result.err

    def test_simulate(self, run):
        result = run("solution", "simulate", "SOL")

        assert result.code == 0
        assert "N1 - First note -" in result.out
        assert "N2 - Second note -" in result.out

    def test_other_platform(self, run):
        result = run("solution", "apply", "PPCONLY")

        assert result.code == 1
        assert "not available on platform x86_64" in result.err

    def test_revert(self, run, system):
        run("solution", "apply", "SOL")

        result = run("solution", "revert", "SOL")

        assert result.code == 0
        assert system.values == INITIAL_VALUES


class TestDaemon:
    def test_start(self, run, service):
        result = run("daemon", "start")

        assert result.code == 0
        assert service.calls == ["disable_stop sapconf.service", "enable_start tuned.service"]
        assert service.profile == "saptune"
        assert "Daemon (tuned.service) has been enabled and started." in result.out
        assert "Your system has not yet been tuned." in result.out

    def test_start_ignores_missing_sapconf(self, run, service):
        service.failing.add("sapconf.service")

        assert run("daemon", "start").code == 0
        assert service.is_running("tuned.service")

    def test_start_failure(self, run, service):
        service.failing.add("tuned.service")

        assert run("daemon", "start").code == 1

    def test_status_stopped(self, run):
        result = run("daemon", "status")

        assert result.code == cli.EXIT_TUNED_STOPPED
        assert "is stopped" in result.err

    def test_status_wrong_profile(self, run, service):
        service.running.add("tuned.service")
        service.profile = "throughput-performance"

        assert run("daemon", "status").code == cli.EXIT_TUNED_WRONG_PROFILE

    def test_status_not_tuned(self, run, service):
        service.running.add("tuned.service")
        service.profile = "saptune"

        assert run("daemon", "status").code == cli.EXIT_NOT_TUNED

    def test_status_tuned(self, run, service):
        service.running.add("tuned.service")
        service.profile = "saptune"
        run("solution", "apply", "SOL")
        run("note", "apply", "N3")

        result = run("daemon", "status")

        assert result.code == 0
        assert "The system has been tuned for the following solutions and notes:" in result.out
        assert "SOL" in result.out and "N3" in result.out

    def test_stop(self, run, service):
        service.running.add("tuned.service")

        result = run("daemon", "stop")

        assert result.code == 0
        assert not service.is_running("tuned.service")
        assert "All tuned parameters have been reverted to default." in result.out

    def test_apply_and_revert_run_by_tuned(self, run, system, store):
        run("solution", "apply", "SOL")
        system.reset(INITIAL_VALUES)

        assert run("daemon", "apply").code == 0
        assert system.values["c"] == "4"

        assert run("daemon", "revert").code == 0
        assert system.values == INITIAL_VALUES
        assert store.load().active_solutions == ["SOL"]

    def test_revert_dry_run(self, run, system):
        run("note", "apply", "N3")

        result = run("daemon", "revert", "--dry-run")

        assert result.code == 0
        assert "d: 5 -> 0" in result.out
        assert system.values["d"] == "5"


class TestStateErrors:
    def test_corrupt_state(self, run, service, store):
        store.path.write_text("{broken")
        service.running.add("tuned.service")
        service.profile = "saptune"

        for argv in (("note", "list"), ("daemon", "status"), ("solution", "list"), ("daemon", "start")):
            result = run(*argv)
            assert result.code == 1
            assert "Cannot read tuning state" in result.err
        assert store.path.read_text() == "{broken"

    def test_locked_state(self, run, store):
        store.lock_timeout = 0.05
        store.poll_interval = 0.01

        with StateLock(store.lock_path, exclusive=True):
            result = run("note", "list")

        assert result.code == 1
        assert "another saptune process is running" in result.err
