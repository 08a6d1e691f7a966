"""
CLI - Command-line interface for saptune.

    saptune daemon [ start | status | stop ]
    saptune note [ list | verify ]
    saptune note [ apply | simulate | verify | customise | revert ] NoteID
    saptune solution [ list | verify ]
    saptune solution [ apply | simulate | verify | revert ] SolutionName

``daemon apply`` and ``daemon revert`` are run by tuned and not advertised.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config
from .discovery.system import SystemScanner
from .log import configure_logging
from .note.catalog import NoteCatalog, customisation_path
from .protocol.errors import SaptuneError, ServiceError, TuningFailedError, UnsupportedPlatformError
from .solution.catalog import SolutionCatalog
from .tuning.engine import EngineConfig, TuningEngine
from .tuning.service import ServiceConfig, ServiceController
from .tuning.state import StateStore
from .ui.console import ConsoleUI

logger = logging.getLogger(__name__)

HELP_TEXT = """saptune: Comprehensive system optimisation management for SAP solutions.
Daemon control:
  saptune daemon [ start | status | stop ]
Tune system according to SAP and SUSE notes:
  saptune note [ list | verify ]
  saptune note [ apply | simulate | verify | customise | revert ] NoteID
Tune system for all notes applicable to your SAP solution:
  saptune solution [ list | verify ]
  saptune solution [ apply | simulate | verify | revert ] SolutionName
"""

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TUNED_STOPPED = 1
EXIT_TUNED_WRONG_PROFILE = 2
EXIT_NOT_TUNED = 3

NOT_TUNED_MESSAGE = (
    "Your system has not yet been tuned. "
    "Please visit `saptune note` and `saptune solution` to start tuning."
)


class CliExit(Exception):
    """Stop the command with an exit status and an optional message."""

    def __init__(self, code: int, message: str = "", show_help: bool = False):
        super().__init__(message)
        self.code = code
        self.message = message
        self.show_help = show_help


def usage_error() -> CliExit:
    return CliExit(EXIT_ERROR, show_help=True)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="saptune",
        description="Comprehensive system optimisation management for SAP solutions.",
        add_help=False,
    )
    parser.add_argument("command", nargs="?", default="")
    parser.add_argument("action", nargs="?", default="")
    parser.add_argument("target", nargs="?", default="")
    parser.add_argument("-h", "--help", action="store_true", help="Show help and exit")
    parser.add_argument("--config", help="Path to config file (default: $SAPTUNE_CONFIG or search paths)")
    parser.add_argument("--state-file", help="Override tuning state file")
    parser.add_argument("--extra-sheets", help="Override extra tuning sheet directory")
    parser.add_argument("--log-file", help="Override log file")
    parser.add_argument("--dry-run", action="store_true",
                        help="daemon revert: only list values that would be restored")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def build_engine(config: Config) -> TuningEngine:
    """
    Wire the engine for the local machine.

    Raises:
        UnsupportedPlatformError: No solutions for this architecture
    """
    facts = SystemScanner().scan()
    solutions = SolutionCatalog.builtin(facts.platform_key)
    solutions.ensure_supported()
    notes = NoteCatalog.load(
        extra_dir=config.paths.extra_sheets,
        sysconfig_dir=config.paths.sysconfig_dir,
    )
    store = StateStore(
        Path(config.paths.state_file),
        lock_timeout=config.lock.timeout,
        poll_interval=config.lock.poll_interval,
    )
    return TuningEngine(
        notes=notes,
        solutions=solutions,
        store=store,
        facts=facts,
        config=EngineConfig(read_timeout=config.parameters.read_timeout),
    )


class SaptuneCLI:
    """Dispatches daemon/note/solution actions to the engine."""

    def __init__(
        self,
        engine: TuningEngine,
        service: ServiceController,
        config: Config,
        ui: ConsoleUI,
    ):
        self.engine = engine
        self.service = service
        self.config = config
        self.ui = ui

    def run(self, command: str, action: str, target: str, dry_run: bool = False) -> int:
        if command == "daemon":
            return self.daemon_action(action, dry_run)
        if command == "note":
            return self.note_action(action, target)
        if command == "solution":
            return self.solution_action(action, target)
        raise usage_error()

    # =========================================================================
    # Shared helpers
    # =========================================================================

    def _daemon_configured(self) -> bool:
        daemon = self.config.daemon
        return (
            self.service.is_running(daemon.tuned_service)
            and self.service.get_tuned_profile() == daemon.profile
        )

    def _remind_daemon(self):
        if not self._daemon_configured():
            self.ui.print_daemon_reminder()

    def _tuning_failed(self, message: str, error: SaptuneError) -> CliExit:
        if isinstance(error, TuningFailedError):
            self.ui.print_failures(error.report)
        return CliExit(EXIT_ERROR, f"{message}: {error}")

    def verify_all_parameters(self) -> int:
        """Verify that no parameter deviates from the enabled solutions/notes."""
        try:
            unsatisfied, comparisons = self.engine.verify_all()
        except SaptuneError as e:
            raise CliExit(EXIT_ERROR, f"Failed to inspect the current system: {e}")
        if not unsatisfied:
            self.ui.print("The running system is currently well-tuned according to all of the enabled notes.")
            return EXIT_OK
        self.ui.print_unsatisfied(self.engine.notes, unsatisfied, comparisons)
        raise CliExit(EXIT_ERROR, "The parameters listed above have deviated from SAP/SUSE recommendations.")

    # =========================================================================
    # daemon
    # =========================================================================

    def daemon_action(self, action: str, dry_run: bool = False) -> int:
        daemon = self.config.daemon

        if action == "start":
            self.ui.print(f"Starting daemon ({daemon.tuned_service}), this may take several seconds...")
            try:
                self.service.disable_stop(daemon.sapconf_service)
            except ServiceError as e:
                logger.warning("%s", e)
            try:
                self.service.write_tuned_profile(daemon.profile)
                self.service.enable_start(daemon.tuned_service)
            except ServiceError as e:
                raise CliExit(EXIT_ERROR, str(e))
            # tuned then calls `saptune daemon apply`
            self.ui.print(f"Daemon ({daemon.tuned_service}) has been enabled and started.")
            state = self.engine.load_state()
            if not state.active_solutions and not state.active_notes:
                self.ui.print(NOT_TUNED_MESSAGE)
            return EXIT_OK

        if action == "apply":
            try:
                self.engine.tune_all()
            except SaptuneError as e:
                raise self._tuning_failed("Failed to apply enabled notes", e)
            return EXIT_OK

        if action == "status":
            if not self.service.is_running(daemon.tuned_service):
                raise CliExit(
                    EXIT_TUNED_STOPPED,
                    f"Daemon ({daemon.tuned_service}) is stopped. "
                    f"If you wish to start the daemon, run `saptune daemon start`.",
                )
            self.ui.print(f"Daemon ({daemon.tuned_service}) is running.")
            if self.service.get_tuned_profile() != daemon.profile:
                raise CliExit(
                    EXIT_TUNED_WRONG_PROFILE,
                    f"{daemon.tuned_service} profile is incorrect. "
                    f"If you wish to correct it, run `saptune daemon start`.",
                )
            state = self.engine.load_state()
            if not state.active_solutions and not state.active_notes:
                raise CliExit(EXIT_NOT_TUNED, NOT_TUNED_MESSAGE)
            self.ui.print("The system has been tuned for the following solutions and notes:")
            for name in state.active_solutions + state.active_notes:
                self.ui.print("\t" + name)
            return EXIT_OK

        if action == "stop":
            self.ui.print(f"Stopping daemon ({daemon.tuned_service}), this may take several seconds...")
            try:
                self.service.disable_stop(daemon.tuned_service)
            except ServiceError as e:
                raise CliExit(EXIT_ERROR, str(e))
            # tuned then calls `saptune daemon revert`
            self.ui.print(f"Daemon ({daemon.tuned_service}) has been disabled and stopped.")
            self.ui.print("All tuned parameters have been reverted to default.")
            return EXIT_OK

        if action == "revert":
            try:
                report = self.engine.revert_all(permanent=False, dry_run=dry_run)
            except SaptuneError as e:
                raise self._tuning_failed("Failed to revert tuned parameters", e)
            if dry_run:
                self.ui.print_restore_preview(report)
            return EXIT_OK

        raise usage_error()

    # =========================================================================
    # note
    # =========================================================================

    def note_action(self, action: str, note_id: str) -> int:
        notes = self.engine.notes

        if action == "list":
            state = self.engine.load_state()
            self.ui.print_note_list(
                notes,
                self.engine.get_sorted_solution_enabled_notes(),
                state.active_notes,
            )
            self._remind_daemon()
            return EXIT_OK

        if action == "verify" and not note_id:
            return self.verify_all_parameters()

        if not note_id or action not in ("apply", "verify", "simulate", "customise", "revert"):
            raise usage_error()

        if action == "apply":
            try:
                self.engine.tune_note(note_id)
            except SaptuneError as e:
                raise self._tuning_failed(f"Failed to tune for note {note_id}", e)
            self.ui.print("The note has been applied successfully.")
            self._remind_daemon()
            return EXIT_OK

        if action == "verify":
            # Check against the note whether or not it has been tuned for
            try:
                conforming, comparisons = self.engine.verify_note(note_id)
            except SaptuneError as e:
                raise CliExit(EXIT_ERROR, f"Failed to test the current system against the specified note: {e}")
            if not conforming:
                self.ui.print_note_fields(note_id, notes.get(note_id).name, comparisons, True)
                raise CliExit(EXIT_ERROR, "The parameters listed above have deviated from the specified note.")
            self.ui.print("The system fully conforms to the specified note.")
            return EXIT_OK

        if action == "simulate":
            try:
                _, comparisons = self.engine.verify_note(note_id)
            except SaptuneError as e:
                raise CliExit(EXIT_ERROR, f"Failed to test the current system against the specified note: {e}")
            self.ui.print(
                f"If you run `saptune note apply {note_id}`, "
                f"the following changes will be applied to your system:"
            )
            self.ui.print_note_fields(note_id, notes.get(note_id).name, comparisons, False)
            return EXIT_OK

        if action == "customise":
            return self.customise(note_id)

        # revert
        try:
            self.engine.revert_note(note_id, True)
        except SaptuneError as e:
            raise self._tuning_failed(f"Failed to revert note {note_id}", e)
        self.ui.print("Parameters tuned by the note have been successfully reverted.")
        self.ui.print(
            "Please note: the reverted note may still show up in list of enabled notes, "
            "if an enabled solution refers to it."
        )
        return EXIT_OK

    def customise(self, note_id: str) -> int:
        """Open the note's customisation file in $EDITOR (replaces this process)."""
        try:
            self.engine.get_note_by_id(note_id)
        except SaptuneError as e:
            raise CliExit(EXIT_ERROR, str(e))

        path = customisation_path(self.config.paths.sysconfig_dir, note_id)
        if not path.exists():
            raise CliExit(EXIT_ERROR, f"Note {note_id} does not require additional customisation input.")

        editor = os.environ.get("EDITOR") or "/usr/bin/vim"
        try:
            os.execvp(editor, [editor, str(path)])
        except OSError as e:
            raise CliExit(EXIT_ERROR, f"Failed to start launch editor {editor}: {e}")
        return EXIT_OK

    # =========================================================================
    # solution
    # =========================================================================

    def solution_action(self, action: str, name: str) -> int:
        if action == "list":
            state = self.engine.load_state()
            self.ui.print_solution_list(self.engine.solutions.sorted_names(), state.active_solutions)
            self._remind_daemon()
            return EXIT_OK

        if action == "verify" and not name:
            return self.verify_all_parameters()

        if not name or action not in ("apply", "verify", "simulate", "revert"):
            raise usage_error()

        if action == "apply":
            try:
                report = self.engine.tune_solution(name)
            except SaptuneError as e:
                raise self._tuning_failed(f"Failed to tune for solution {name}", e)
            self.ui.print("All tuning options for the SAP solution have been applied successfully.")
            self.ui.print_removed_notes(self.engine.notes, report.removed_additional_notes)
            self._remind_daemon()
            return EXIT_OK

        if action == "verify":
            # Check against the solution whether or not it has been tuned for
            try:
                unsatisfied, comparisons = self.engine.verify_solution(name)
            except SaptuneError as e:
                raise CliExit(
                    EXIT_ERROR,
                    f"Failed to test the current system against the specified SAP solution: {e}",
                )
            if not unsatisfied:
                self.ui.print("The system fully conforms to the tuning guidelines of the specified SAP solution.")
                return EXIT_OK
            self.ui.print_unsatisfied(self.engine.notes, unsatisfied, comparisons)
            raise CliExit(
                EXIT_ERROR,
                "The parameters listed above have deviated from the specified SAP solution recommendations.",
            )

        if action == "simulate":
            try:
                _, comparisons = self.engine.verify_solution(name)
            except SaptuneError as e:
                raise CliExit(
                    EXIT_ERROR,
                    f"Failed to test the current system against the specified SAP solution: {e}",
                )
            self.ui.print(
                f"If you run `saptune solution apply {name}`, "
                f"the following changes will be applied to your system:"
            )
            for note_id, note_comparisons in comparisons.items():
                self.ui.print_note_fields(note_id, self.engine.notes.get(note_id).name, note_comparisons, False)
            return EXIT_OK

        # revert
        try:
            self.engine.revert_solution(name)
        except SaptuneError as e:
            raise self._tuning_failed(f"Failed to revert tuning for solution {name}", e)
        self.ui.print("Parameters tuned by the notes referred by the SAP solution have been successfully reverted.")
        return EXIT_OK


def main(
    argv: Optional[List[str]] = None,
    engine: Optional[TuningEngine] = None,
    service: Optional[ServiceController] = None,
    ui: Optional[ConsoleUI] = None,
) -> int:
    """Main entry point. Returns the process exit status."""
    args = parse_args(argv)
    ui = ui or ConsoleUI()

    if args.help or args.command in ("", "help"):
        ui.print(HELP_TEXT)
        return EXIT_OK

    # All other actions require super user privilege
    if os.geteuid() != 0:
        ui.error("Please run saptune with root privilege.")
        return EXIT_ERROR

    try:
        config = Config.load(args.config).override_from_args(args)
    except (OSError, ValueError) as e:
        ui.error(f"Failed to load configuration: {e}")
        return EXIT_ERROR
    errors = config.validate()
    if errors:
        for error in errors:
            ui.error(error)
        return EXIT_ERROR

    configure_logging(level=config.logging.level, log_file=config.paths.log_file)
    logger.debug("%s", config.summary())

    try:
        if engine is None:
            try:
                engine = build_engine(config)
            except UnsupportedPlatformError as e:
                raise CliExit(EXIT_ERROR, str(e))
        service = service or ServiceController(ServiceConfig(profile_file=config.daemon.profile_file))
        cli = SaptuneCLI(engine=engine, service=service, config=config, ui=ui)
        return cli.run(args.command, args.action, args.target, dry_run=args.dry_run)
    except CliExit as e:
        if e.show_help:
            ui.print(HELP_TEXT)
        if e.message:
            ui.error(e.message)
        return e.code
    except SaptuneError as e:
        # Tuning state unreadable or locked by another saptune process
        ui.error(str(e))
        return EXIT_ERROR


def run():
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
