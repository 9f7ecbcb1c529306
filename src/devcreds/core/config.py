"""
Centralized configuration for devcreds.

All settings come from environment variables with sensible defaults.
A ``.env`` file in the store home (or the working directory) is loaded
first via python-dotenv; variables already set in the environment win.

Usage:
    from devcreds.core.config import get_config
    cfg = get_config()
    print(cfg.credentials_dir)   # ~/.devcreds/credentials
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".devcreds"
DEFAULT_LOCK_TIMEOUT = 10.0
DEFAULT_KDF_ITERATIONS = 600_000  # OWASP 2023 for PBKDF2-SHA256
MIN_KDF_ITERATIONS = 10_000


@dataclass(frozen=True)
class StoreConfig:
    """Resolved settings for one credential store home."""

    home: Path = DEFAULT_HOME
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    kdf_iterations: int = DEFAULT_KDF_ITERATIONS
    passphrase: Optional[str] = None  # DEVCREDS_PASSPHRASE, for non-interactive use

    @property
    def credentials_dir(self) -> Path:
        return self.home / "credentials"

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"

    @property
    def descriptor_path(self) -> Path:
        """Deferred environment descriptor (bindings only, no values)."""
        return self.home / "env.global.json"

    @classmethod
    def from_env(cls) -> "StoreConfig":
        home = Path(os.environ.get("DEVCREDS_HOME", str(DEFAULT_HOME))).expanduser()

        load_dotenv(home / ".env", override=False)
        load_dotenv(find_dotenv(usecwd=True), override=False)

        # The .env may itself relocate the home
        home = Path(os.environ.get("DEVCREDS_HOME", str(home))).expanduser()

        try:
            lock_timeout = float(os.environ.get("DEVCREDS_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT))
        except ValueError:
            logger.warning("Invalid DEVCREDS_LOCK_TIMEOUT, using %s", DEFAULT_LOCK_TIMEOUT)
            lock_timeout = DEFAULT_LOCK_TIMEOUT

        try:
            iterations = int(os.environ.get("DEVCREDS_KDF_ITERATIONS", DEFAULT_KDF_ITERATIONS))
        except ValueError:
            logger.warning("Invalid DEVCREDS_KDF_ITERATIONS, using %s", DEFAULT_KDF_ITERATIONS)
            iterations = DEFAULT_KDF_ITERATIONS
        if iterations < MIN_KDF_ITERATIONS:
            logger.warning(
                "DEVCREDS_KDF_ITERATIONS=%s below minimum, using %s",
                iterations, MIN_KDF_ITERATIONS,
            )
            iterations = MIN_KDF_ITERATIONS

        return cls(
            home=home,
            lock_timeout=lock_timeout,
            kdf_iterations=iterations,
            passphrase=os.environ.get("DEVCREDS_PASSPHRASE") or None,
        )


# ── Singleton ────────────────────────────────────────────────────────

_config: Optional[StoreConfig] = None


def get_config() -> StoreConfig:
    """Get or build the process-wide configuration."""
    global _config
    if _config is None:
        _config = StoreConfig.from_env()
    return _config


def set_config(config: Optional[StoreConfig]) -> None:
    """Replace the singleton (for testing). ``None`` forces a reload."""
    global _config
    _config = config
