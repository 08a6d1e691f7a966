import pytest

from saptune.discovery.system import SystemFacts
from saptune.tuning.engine import EngineConfig, TuningEngine
from saptune.tuning.state import StateStore

from mocks import FakeSystem, INITIAL_VALUES, make_note_catalog, make_solution_catalog


@pytest.fixture
def system() -> FakeSystem:
    return FakeSystem(INITIAL_VALUES)


@pytest.fixture
def facts() -> SystemFacts:
    return SystemFacts(architecture="x86_64", memory_kb=16 * 1024 * 1024)


@pytest.fixture
def store(tmp_path) -> StateStore:
    return StateStore(tmp_path / "state.json", lock_timeout=1.0, poll_interval=0.01)


@pytest.fixture
def engine(system, facts, store) -> TuningEngine:
    return TuningEngine(
        notes=make_note_catalog(system),
        solutions=make_solution_catalog(),
        store=store,
        facts=facts,
        config=EngineConfig(read_timeout=1.0),
    )
