"""Tests for StateLock."""

import pytest

from saptune.protocol.errors import LockTimeoutError
from saptune.tuning.lock import StateLock


def test_second_exclusive_lock_times_out(tmp_path):
    path = tmp_path / "state.json.lock"

    with StateLock(path, exclusive=True):
        with pytest.raises(LockTimeoutError, match="another saptune process"):
            StateLock(path, exclusive=True, timeout=0.05, poll_interval=0.01).acquire()


def test_shared_locks_coexist(tmp_path):
    path = tmp_path / "state.json.lock"

    with StateLock(path, exclusive=False) as first:
        with StateLock(path, exclusive=False, timeout=0.05) as second:
            assert first.locked and second.locked


def test_exclusive_waits_for_shared(tmp_path):
    path = tmp_path / "state.json.lock"

    with StateLock(path, exclusive=False):
        with pytest.raises(LockTimeoutError):
            StateLock(path, exclusive=True, timeout=0.05, poll_interval=0.01).acquire()


def test_release_allows_next_holder(tmp_path):
    path = tmp_path / "state.json.lock"
    lock = StateLock(path)
    lock.acquire()
    lock.release()

    assert not lock.locked
    with StateLock(path, timeout=0.05):
        pass


def test_store_operations_respect_lock(store):
    store.lock_timeout = 0.05
    store.poll_interval = 0.01

    with StateLock(store.lock_path, exclusive=True):
        with pytest.raises(LockTimeoutError):
            with store.transaction():
                pass
