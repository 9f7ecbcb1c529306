"""Tests for environment-driven configuration."""

from pathlib import Path

from devcreds.core.config import (
    DEFAULT_KDF_ITERATIONS,
    DEFAULT_LOCK_TIMEOUT,
    MIN_KDF_ITERATIONS,
    StoreConfig,
    get_config,
    set_config,
)


class TestFromEnv:

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path))
        monkeypatch.chdir(tmp_path)
        cfg = StoreConfig.from_env()
        assert cfg.home == tmp_path
        assert cfg.lock_timeout == DEFAULT_LOCK_TIMEOUT
        assert cfg.kdf_iterations == DEFAULT_KDF_ITERATIONS
        assert cfg.passphrase is None

    def test_derived_paths(self, tmp_path):
        cfg = StoreConfig(home=tmp_path)
        assert cfg.credentials_dir == tmp_path / "credentials"
        assert cfg.log_dir == tmp_path / "logs"
        assert cfg.descriptor_path == tmp_path / "env.global.json"

    def test_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path))
        monkeypatch.setenv("DEVCREDS_LOCK_TIMEOUT", "2.5")
        monkeypatch.setenv("DEVCREDS_KDF_ITERATIONS", "200000")
        monkeypatch.setenv("DEVCREDS_PASSPHRASE", "from-env")
        cfg = StoreConfig.from_env()
        assert cfg.lock_timeout == 2.5
        assert cfg.kdf_iterations == 200_000
        assert cfg.passphrase == "from-env"

    def test_invalid_values_fall_back(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path))
        monkeypatch.setenv("DEVCREDS_LOCK_TIMEOUT", "soon")
        monkeypatch.setenv("DEVCREDS_KDF_ITERATIONS", "many")
        cfg = StoreConfig.from_env()
        assert cfg.lock_timeout == DEFAULT_LOCK_TIMEOUT
        assert cfg.kdf_iterations == DEFAULT_KDF_ITERATIONS

    def test_iterations_clamped_to_minimum(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path))
        monkeypatch.setenv("DEVCREDS_KDF_ITERATIONS", "5")
        assert StoreConfig.from_env().kdf_iterations == MIN_KDF_ITERATIONS

    def test_empty_passphrase_is_unset(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path))
        monkeypatch.setenv("DEVCREDS_PASSPHRASE", "")
        assert StoreConfig.from_env().passphrase is None

    def test_home_expands_user(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("USERPROFILE", str(tmp_path))
        monkeypatch.setenv("DEVCREDS_HOME", "~/stash")
        assert StoreConfig.from_env().home == Path(tmp_path) / "stash"


class TestDotenv:

    def test_loads_dotenv_from_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path))
        # registered so monkeypatch removes what load_dotenv sets
        monkeypatch.setenv("DEVCREDS_LOCK_TIMEOUT", "")
        monkeypatch.delenv("DEVCREDS_LOCK_TIMEOUT")
        (tmp_path / ".env").write_text("DEVCREDS_LOCK_TIMEOUT=4\n")
        assert StoreConfig.from_env().lock_timeout == 4.0

    def test_environment_wins_over_dotenv(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path))
        monkeypatch.setenv("DEVCREDS_LOCK_TIMEOUT", "7")
        (tmp_path / ".env").write_text("DEVCREDS_LOCK_TIMEOUT=4\n")
        assert StoreConfig.from_env().lock_timeout == 7.0


class TestSingleton:

    def test_set_and_get(self, tmp_path):
        cfg = StoreConfig(home=tmp_path)
        set_config(cfg)
        assert get_config() is cfg

    def test_reset_reloads_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCREDS_HOME", str(tmp_path / "other"))
        set_config(None)
        assert get_config().home == tmp_path / "other"
