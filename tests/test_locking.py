"""
Tests for the advisory store lock.

Covers: acquire/release, bounded wait with LockTimeout, writers blocked
while another holder has the lock, readers unaffected, concurrent
writers from threads lose no catalog updates.
"""

import os
import sys
import threading
import time

import pytest

from devcreds.vault import CredentialStore, LockTimeout
from devcreds.vault import locking
from devcreds.vault.locking import StoreLock

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="flock semantics"
)


class TestStoreLock:

    def test_acquire_release(self, tmp_path):
        lock = StoreLock(tmp_path / ".lock", timeout=1.0)
        with lock:
            assert lock.is_held
        assert not lock.is_held

    def test_release_without_acquire(self, tmp_path):
        StoreLock(tmp_path / ".lock", timeout=1.0).release()

    def test_second_holder_times_out(self, tmp_path):
        path = tmp_path / ".lock"
        with StoreLock(path, timeout=1.0):
            contender = StoreLock(path, timeout=0.2)
            started = time.monotonic()
            with pytest.raises(LockTimeout) as exc:
                contender.acquire()
            elapsed = time.monotonic() - started
        assert 0.2 <= elapsed < 2.0
        assert exc.value.timeout == 0.2
        assert not contender.is_held

    def test_reacquire_after_release(self, tmp_path):
        path = tmp_path / ".lock"
        with StoreLock(path, timeout=0.5):
            pass
        with StoreLock(path, timeout=0.5) as lock:
            assert lock.is_held

    def test_lock_error_closes_descriptor(self, tmp_path, monkeypatch):
        closed = []
        real_close = os.close

        def failing_lock(fd):
            raise OSError("flock failed")

        def tracking_close(fd):
            closed.append(fd)
            real_close(fd)

        monkeypatch.setattr(locking, "_try_lock", failing_lock)
        monkeypatch.setattr(locking.os, "close", tracking_close)
        lock = StoreLock(tmp_path / ".lock", timeout=1.0)
        with pytest.raises(OSError, match="flock failed"):
            lock.acquire()
        assert len(closed) == 1
        assert not lock.is_held

    def test_timeout_closes_descriptor(self, tmp_path, monkeypatch):
        closed = []
        real_close = os.close

        def tracking_close(fd):
            closed.append(fd)
            real_close(fd)

        monkeypatch.setattr(locking, "_try_lock", lambda fd: False)
        monkeypatch.setattr(locking.os, "close", tracking_close)
        with pytest.raises(LockTimeout):
            StoreLock(tmp_path / ".lock", timeout=0.1).acquire()
        assert len(closed) == 1

    def test_waiter_gets_lock_when_released(self, tmp_path):
        path = tmp_path / ".lock"
        holder = StoreLock(path, timeout=1.0)
        holder.acquire()
        timer = threading.Timer(0.2, holder.release)
        timer.start()
        try:
            with StoreLock(path, timeout=3.0) as waiter:
                assert waiter.is_held
        finally:
            timer.join()


class TestStoreUnderContention:

    def test_store_times_out_while_locked(self, store):
        with StoreLock(store.credentials_dir / CredentialStore.LOCK_FILE, timeout=1.0):
            started = time.monotonic()
            with pytest.raises(LockTimeout):
                store.store("k", "v", "d")
            assert time.monotonic() - started >= store.config.lock_timeout
        assert not store.exists("k")
        assert store.list() == []

    def test_reads_do_not_need_lock(self, store):
        store.store("k", "v", "d")
        with StoreLock(store.credentials_dir / CredentialStore.LOCK_FILE, timeout=1.0):
            assert store.load("k") == "v"
            assert [e.key for e in store.list()] == ["k"]

    def test_concurrent_writers_lose_no_updates(self, store, config):
        errors = []

        def writer(prefix):
            try:
                other = CredentialStore(config=config)
                for i in range(5):
                    other.store(f"{prefix}_{i}", f"value_{i}", f"{prefix} {i}", session=store.session)
            except Exception as e:  # surfaced below
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(name,)) for name in ("alpha", "beta", "gamma")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store.list()) == 15
