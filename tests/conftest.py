"""
Shared pytest fixtures for the devcreds test suite.

Autouse fixtures below isolate tests from the real store home:
  - Configuration -> temp DEVCREDS_HOME with a low KDF work factor
  - Audit logger  -> temp directory (prevents test events in ~/.devcreds/logs)
  - Helper store  -> reset so no unlocked store leaks between tests
"""

import pytest

TEST_PASSPHRASE = "correct horse battery staple"
TEST_ITERATIONS = 10_000


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path, monkeypatch):
    """Point configuration at a temp home for every test."""
    from devcreds.core.config import StoreConfig, set_config

    for var in ("DEVCREDS_HOME", "DEVCREDS_PASSPHRASE", "DEVCREDS_LOCK_TIMEOUT", "DEVCREDS_KDF_ITERATIONS"):
        monkeypatch.delenv(var, raising=False)

    config = StoreConfig(
        home=tmp_path / "home",
        lock_timeout=2.0,
        kdf_iterations=TEST_ITERATIONS,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path):
    """Redirect the global AuditLogger to a temp directory for every test."""
    import devcreds.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod.set_audit_logger(audit_mod.AuditLogger(log_dir=tmp_path / "audit_logs"))

    yield

    audit_mod.set_audit_logger(old_logger)


@pytest.fixture(autouse=True)
def _isolate_helper_store():
    import devcreds.helper as helper_mod

    helper_mod.set_store(None)
    yield
    helper_mod.set_store(None)


@pytest.fixture
def config(_isolate_config):
    return _isolate_config


@pytest.fixture
def store(config):
    """An initialized, unlocked store."""
    from devcreds.vault import CredentialStore

    s = CredentialStore(config=config)
    s.open(TEST_PASSPHRASE)
    yield s
    s.close()
