"""
TuningEngine - Applies, reverts and verifies notes and solutions.

Every mutating operation follows the same phases:
1. RESOLVE - look up the note/solution (nothing changes on failure)
2. LOCK + LOAD - exclusive state lock, read the tuning state
3. RECONCILE - per parameter: read, save original on first ownership,
   write or restore; failures are collected, never abort the run
4. SAVE - atomically persist the state, even after partial failure
5. REPORT - return a TuningReport, or raise TuningFailedError carrying it

Parameters shared by several notes are reference counted in the state:
the original value is restored only when the last owner is reverted.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..discovery.system import SystemFacts
from ..note.catalog import NoteCatalog
from ..note.models import Note
from ..note.parameters import Parameter, read_with_timeout
from ..protocol.errors import (
    NotActiveError,
    NotFoundError,
    ReadError,
    SaptuneError,
    TuningFailedError,
    WriteError,
)
from ..protocol.result import NoteFieldComparison, RestoreChange, TuningReport, conforms
from ..solution.catalog import SolutionCatalog
from .comparator import ParameterComparator
from .state import SavedParameter, StateStore, TuningState

logger = logging.getLogger(__name__)

Comparisons = Dict[str, NoteFieldComparison]


@dataclass
class EngineConfig:
    """Configuration for the tuning engine."""
    read_timeout: Optional[float] = 5.0


class TuningEngine:
    """
    Reconciles the live system with the enabled notes and solutions.

    Args:
        notes: Note catalog
        solutions: Solution catalog bound to this machine's platform key
        store: Persisted tuning state
        facts: Hardware facts for computed expected values
    """

    def __init__(
        self,
        notes: NoteCatalog,
        solutions: SolutionCatalog,
        store: StateStore,
        facts: SystemFacts,
        comparator: Optional[ParameterComparator] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.notes = notes
        self.solutions = solutions
        self.store = store
        self.facts = facts
        self.config = config or EngineConfig()
        self.comparator = comparator or ParameterComparator(read_timeout=self.config.read_timeout)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_note_by_id(self, note_id: str) -> Note:
        return self.notes.get(note_id)

    def load_state(self) -> TuningState:
        """Current tuning state (shared lock, read only)."""
        with self.store.snapshot() as state:
            return state

    def get_sorted_solution_enabled_notes(self) -> List[str]:
        """Note IDs referenced by any enabled solution, sorted, without duplicates."""
        state = self.load_state()
        return sorted(self._solution_note_ids(state))

    # =========================================================================
    # Notes
    # =========================================================================

    def tune_note(self, note_id: str) -> TuningReport:
        """
        Apply a note and remember it as enabled.

        A note already covered by an enabled solution is applied but not
        added to the list of individually enabled notes.

        Raises:
            NotFoundError: Unknown note
            TuningFailedError: Some parameters could not be read or written
        """
        note = self.get_note_by_id(note_id)
        report = TuningReport(notes=[note_id])

        with self.store.transaction() as state:
            self._apply_note(state, note, report)
            if note_id not in self._solution_note_ids(state):
                state.add_note(note_id)

        self._raise_on_failure(report)
        return report

    def revert_note(self, note_id: str, remove_from_state: bool = True) -> TuningReport:
        """
        Revert a note's parameters to their saved originals.

        Parameters still owned by another note keep their value. A note that
        an enabled solution still refers to keeps all of its parameters.

        Args:
            note_id: Note to revert
            remove_from_state: Also drop the note from the enabled notes

        Raises:
            NotFoundError: Unknown note
            NotActiveError: The note was never applied
            TuningFailedError: Some saved values could not be restored
        """
        note = self.get_note_by_id(note_id)
        report = TuningReport(notes=[note_id])

        with self.store.transaction() as state:
            covered = note_id in self._solution_note_ids(state)
            if note_id not in state.active_notes and not state.owns_any(note_id) and not covered:
                raise NotActiveError(f"Note {note_id} is not applied.")

            if remove_from_state:
                state.remove_note(note_id)

            if covered:
                logger.info("Note %s is still required by an enabled solution, parameters kept", note_id)
            else:
                self._release_note(state, note, report)

        self._raise_on_failure(report)
        return report

    def verify_note(self, note_id: str) -> Tuple[bool, Comparisons]:
        """Compare the system with a note, whether or not it is enabled."""
        note = self.get_note_by_id(note_id)
        comparisons = self.comparator.compare(note, self.facts)
        return conforms(comparisons), comparisons

    # =========================================================================
    # Solutions
    # =========================================================================

    def tune_solution(self, name: str) -> TuningReport:
        """
        Apply all notes of a solution and remember the solution as enabled.

        Individually enabled notes that belong to the solution are taken over
        by it; they are listed in ``removed_additional_notes``.

        Raises:
            NotFoundError: Unknown solution or note
            UnsupportedPlatformError: Solution not defined for this platform
            TuningFailedError: Some parameters could not be read or written
        """
        note_ids = self.solutions.get(name)
        notes = [self.get_note_by_id(note_id) for note_id in note_ids]
        report = TuningReport(notes=list(note_ids))

        with self.store.transaction() as state:
            for note in notes:
                if state.remove_note(note.id):
                    logger.info("Note %s is now tuned by solution %s", note.id, name)
                    report.removed_additional_notes.append(note.id)
            state.add_solution(name)
            for note in notes:
                self._apply_note(state, note, report)

        self._raise_on_failure(report)
        return report

    def revert_solution(self, name: str) -> TuningReport:
        """
        Revert the notes of a solution that nothing else still requires.

        Raises:
            NotFoundError: Unknown solution
            UnsupportedPlatformError: Solution not defined for this platform
            NotActiveError: Solution is not enabled
            TuningFailedError: Some saved values could not be restored
        """
        note_ids = self.solutions.get(name)
        report = TuningReport(notes=list(note_ids))

        with self.store.transaction() as state:
            if not state.remove_solution(name):
                raise NotActiveError(f"Solution {name} is not applied.")

            still_required = set(state.active_notes) | self._solution_note_ids(state)
            for note_id in reversed(note_ids):
                if note_id in still_required:
                    logger.info("Note %s is still required, parameters kept", note_id)
                    continue
                self._release_note(state, self._note_or_placeholder(note_id), report)

        self._raise_on_failure(report)
        return report

    def verify_solution(self, name: str) -> Tuple[List[str], Dict[str, Comparisons]]:
        """
        Compare the system with every note of a solution.

        Returns:
            (non-conforming note IDs, comparisons per note ID)
        """
        note_ids = self.solutions.get(name)
        return self._verify_notes(self.get_note_by_id(note_id) for note_id in note_ids)

    # =========================================================================
    # Everything enabled
    # =========================================================================

    def tune_all(self) -> TuningReport:
        """
        Re-apply every enabled solution and note, e.g. after a reboot.

        Notes that fail do not stop the others; all failures are reported.
        """
        report = TuningReport()

        with self.store.transaction() as state:
            report.notes = self._all_note_ids(state, report)
            for note_id in report.notes:
                try:
                    note = self.get_note_by_id(note_id)
                except NotFoundError as e:
                    report.add_failure(note_id, "", "resolve", e)
                    continue
                self._apply_note(state, note, report)

        logger.info("Tuned %d note(s), %d failure(s)", len(report.notes), len(report.failures))
        self._raise_on_failure(report)
        return report

    def revert_all(self, permanent: bool = False, dry_run: bool = False) -> TuningReport:
        """
        Restore every saved original value.

        Args:
            permanent: Also forget the enabled notes and solutions. Without
                it the next ``tune_all`` applies them again.
            dry_run: Only list the values that would be restored
        """
        report = TuningReport()

        if dry_run:
            with self.store.snapshot() as state:
                report.notes = self._all_note_ids(state)
                for record in reversed(list(state.parameters.values())):
                    change = self._preview_restore(record)
                    if change is not None:
                        report.changes.append(change)
            return report

        with self.store.transaction() as state:
            report.notes = self._all_note_ids(state)
            for key in reversed(list(state.parameters)):
                record = state.parameters.pop(key)
                owner = record.owners[0]
                parameter = self._find_parameter(key, record.owners)
                self._write_original(state, record, owner, parameter, report)

            if permanent:
                state.active_notes.clear()
                state.active_solutions.clear()

        self._raise_on_failure(report)
        return report

    def verify_all(self) -> Tuple[List[str], Dict[str, Comparisons]]:
        """
        Compare the system with every enabled note.

        Returns:
            (non-conforming note IDs, comparisons per note ID)
        """
        with self.store.snapshot() as state:
            note_ids = self._all_note_ids(state)

        notes = []
        for note_id in note_ids:
            if note_id not in self.notes:
                logger.warning("Enabled note %s is no longer defined, skipping", note_id)
                continue
            notes.append(self.get_note_by_id(note_id))
        return self._verify_notes(notes)

    # =========================================================================
    # Reconciliation steps
    # =========================================================================

    def _apply_note(self, state: TuningState, note: Note, report: TuningReport) -> None:
        for parameter in note.parameters:
            try:
                expected = parameter.expected_value(self.facts)
            except ReadError as e:
                report.add_failure(note.id, parameter.name, "compute", e)
                continue
            try:
                current = read_with_timeout(parameter, self.config.read_timeout)
            except ReadError as e:
                # Without the current value there is nothing to restore later
                report.add_failure(note.id, parameter.name, "read", e)
                continue

            if state.acquire(parameter.key, note.id, current):
                logger.debug("Note %s: saved original %s=%r", note.id, parameter.name, current)

            if self.comparator.matches(current, expected):
                continue

            try:
                parameter.write(expected)
            except WriteError as e:
                report.add_failure(note.id, parameter.name, "write", e)
            else:
                logger.info("Note %s: %s set to %r (was %r)", note.id, parameter.name, expected, current)

    def _release_note(self, state: TuningState, note: Note, report: TuningReport) -> None:
        parameters = {p.key: p for p in note.parameters}
        keys = [p.key for p in reversed(note.parameters)]
        # Saved by an older definition of the note
        keys += [key for key in state.owned_keys(note.id) if key not in parameters]

        for key in keys:
            record = state.release(key, note.id)
            if record is None:
                continue
            parameter = parameters.get(key) or self._find_parameter(key, [note.id])
            self._write_original(state, record, note.id, parameter, report)

    def _write_original(
        self,
        state: TuningState,
        record: SavedParameter,
        owner: str,
        parameter: Optional[Parameter],
        report: TuningReport,
    ) -> None:
        """Restore a released record; on failure keep it owned by ``owner``."""
        try:
            if parameter is None:
                raise NotFoundError(f"no note defines parameter {record.key}")
            parameter.write(record.original)
        except (WriteError, NotFoundError) as e:
            if owner not in record.owners:
                record.owners.append(owner)
            state.restore_record(record)
            report.add_failure(owner, parameter.name if parameter else record.key, "restore", e)
        else:
            logger.info("%s restored to %r", parameter.name, record.original)

    def _preview_restore(self, record: SavedParameter) -> Optional[RestoreChange]:
        parameter = self._find_parameter(record.key, record.owners)
        current = None
        if parameter is not None:
            try:
                current = read_with_timeout(parameter, self.config.read_timeout)
            except ReadError as e:
                logger.debug("Cannot read %s for preview: %s", record.key, e)
            if current is not None and self.comparator.matches(current, record.original):
                return None
        return RestoreChange(
            key=record.key,
            parameter=parameter.name if parameter else record.key,
            current=current,
            original=record.original,
        )

    def _verify_notes(self, notes: Iterable[Note]) -> Tuple[List[str], Dict[str, Comparisons]]:
        unsatisfied = []
        comparisons = {}
        for note in notes:
            comparisons[note.id] = self.comparator.compare(note, self.facts)
            if not conforms(comparisons[note.id]):
                unsatisfied.append(note.id)
        return unsatisfied, comparisons

    # =========================================================================
    # Helpers
    # =========================================================================

    def _solution_note_ids(self, state: TuningState) -> Set[str]:
        note_ids: Set[str] = set()
        for name in state.active_solutions:
            try:
                note_ids.update(self.solutions.get(name))
            except SaptuneError as e:
                logger.warning("Enabled solution %s cannot be resolved: %s", name, e)
        return note_ids

    def _all_note_ids(self, state: TuningState, report: Optional[TuningReport] = None) -> List[str]:
        """Solution notes (in solution order) then individual notes, deduplicated."""
        ordered: List[str] = []
        for name in state.active_solutions:
            try:
                note_ids = self.solutions.get(name)
            except SaptuneError as e:
                if report is not None:
                    report.add_failure(name, "", "resolve", e)
                continue
            ordered.extend(note_id for note_id in note_ids if note_id not in ordered)
        ordered.extend(note_id for note_id in state.active_notes if note_id not in ordered)
        return ordered

    def _note_or_placeholder(self, note_id: str) -> Note:
        """Catalog note, or an empty one so its saved values can still be released."""
        if note_id in self.notes:
            return self.get_note_by_id(note_id)
        logger.warning("Note %s is no longer defined", note_id)
        return Note(id=note_id, name=note_id)

    def _find_parameter(self, key: str, preferred_owners: Iterable[str] = ()) -> Optional[Parameter]:
        """Any parameter definition with this identity, owners' notes first."""
        preferred = [note_id for note_id in preferred_owners if note_id in self.notes]
        others = [note_id for note_id in self.notes.sorted_ids() if note_id not in preferred]
        for note_id in preferred + others:
            for parameter in self.notes.get(note_id).parameters:
                if parameter.key == key:
                    return parameter
        return None

    @staticmethod
    def _raise_on_failure(report: TuningReport) -> None:
        if not report.success:
            raise TuningFailedError(report)
