# Vault - Key Derivation & Session Key Material
#
# The master passphrase is never written to disk. The ``.master``
# artifact holds the store salt, the PBKDF2 work factor and an
# AES-GCM encrypted canary; opening the canary proves the passphrase.

import getpass
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..core import EventSeverity, EventType, get_audit_logger
from .encryption import EncryptionService, SealedBlob
from .errors import (
    DecryptionFailure,
    EmptyPassphrase,
    PassphraseMismatch,
    SessionClosed,
    StoreNotInitialized,
    WrongPassphrase,
)
from .fileio import atomic_write, ensure_private_dir

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], str]


class SessionKeyMaterial:
    """
    Store key held for the duration of one session.

    The key lives in a mutable buffer that is zeroed on ``close()``;
    use it as a context manager to guarantee clearing.
    """

    def __init__(self, key: bytes):
        self._key: Optional[bytearray] = bytearray(key)

    @property
    def closed(self) -> bool:
        return self._key is None

    @property
    def key(self) -> bytes:
        if self._key is None:
            raise SessionClosed("Session key material has been cleared")
        return bytes(self._key)

    def slot_key(self, slot_salt: bytes) -> bytes:
        """Per-slot key derived from this session's store key."""
        return EncryptionService.derive_slot_key(self.key, slot_salt)

    def close(self) -> None:
        """Zero and drop the key material. Safe to call twice."""
        if self._key is not None:
            for i in range(len(self._key)):
                self._key[i] = 0
            self._key = None

    def __enter__(self) -> "SessionKeyMaterial":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<SessionKeyMaterial {state}>"


class KeyDerivation:
    """
    Turns the master passphrase into session key material.

    First run: prompts for passphrase + confirmation and creates the
    verification artifact. Later runs: derives the key from the stored
    salt and work factor and checks it against the canary.
    """

    MASTER_FILE = ".master"
    CANARY_PLAINTEXT = "DEVCREDS_STORE_OK"
    ARTIFACT_VERSION = 1

    def __init__(self, credentials_dir: Path, iterations: int):
        self.credentials_dir = Path(credentials_dir)
        self.master_path = self.credentials_dir / self.MASTER_FILE
        self.iterations = iterations
        self.logger = get_audit_logger()

    @property
    def is_initialized(self) -> bool:
        return self.master_path.exists() and self.master_path.stat().st_size > 0

    def setup(
        self,
        candidate: Optional[str] = None,
        confirmation: Optional[str] = None,
        prompt: PromptFn = getpass.getpass,
    ) -> SessionKeyMaterial:
        """
        Establish or reopen the store's key material.

        Args:
            candidate: Passphrase; prompted for when omitted
            confirmation: First-run confirmation; prompted for when neither
                it nor ``candidate`` is given, defaults to ``candidate``
                otherwise
            prompt: Hidden-input prompt function

        Raises:
            PassphraseMismatch: first run, confirmation differs
            WrongPassphrase: later run, passphrase does not open the canary
        """
        if self.is_initialized:
            if candidate is None:
                candidate = prompt("Enter master passphrase: ")
            return self.unlock(candidate)

        if candidate is None:
            candidate = prompt("Enter master passphrase: ")
            if confirmation is None:
                confirmation = prompt("Confirm master passphrase: ")
        elif confirmation is None:
            confirmation = candidate

        return self.initialize(candidate, confirmation)

    def initialize(self, passphrase: str, confirmation: str) -> SessionKeyMaterial:
        """Create the verification artifact. Nothing is written on failure."""
        if passphrase != confirmation:
            raise PassphraseMismatch("Passphrases don't match")
        if not passphrase:
            raise EmptyPassphrase("Master passphrase must not be empty")

        salt = EncryptionService.generate_salt()
        key = EncryptionService.derive_key(passphrase, salt, self.iterations)
        canary = EncryptionService.seal(
            self.CANARY_PLAINTEXT, key, {"purpose": "verify"}
        )

        artifact = {
            "version": self.ARTIFACT_VERSION,
            "kdf": "pbkdf2-sha256",
            "iterations": self.iterations,
            "salt": EncryptionService.encode_for_storage(salt),
            "verify_nonce": EncryptionService.encode_for_storage(canary.nonce),
            "verify_ciphertext": EncryptionService.encode_for_storage(canary.ciphertext),
            "created": datetime.now(timezone.utc).isoformat(),
        }

        ensure_private_dir(self.credentials_dir)
        atomic_write(self.master_path, json.dumps(artifact, indent=2))

        self.logger.log_event(
            event_type=EventType.STORE_INITIALIZED,
            severity=EventSeverity.INFO,
            message="Credential store initialized with master passphrase",
            details={"iterations": self.iterations},
        )
        return SessionKeyMaterial(key)

    def unlock(self, passphrase: str) -> SessionKeyMaterial:
        """Derive key material and prove it against the canary."""
        artifact = self._read_artifact()
        try:
            canary = SealedBlob(
                nonce=EncryptionService.decode_from_storage(artifact["verify_nonce"]),
                ciphertext=EncryptionService.decode_from_storage(artifact["verify_ciphertext"]),
            )
        except (ValueError, TypeError, AttributeError) as e:
            raise DecryptionFailure(f"Verification artifact is malformed: {e}") from e
        session = self._derive_from(artifact, passphrase)

        try:
            plaintext = EncryptionService.open(canary, session.key, {"purpose": "verify"})
        except DecryptionFailure:
            plaintext = None

        if plaintext != self.CANARY_PLAINTEXT:
            session.close()
            self.logger.log_event(
                event_type=EventType.STORE_UNLOCK_FAILED,
                severity=EventSeverity.ALERT,
                message="Credential store unlock failed: incorrect passphrase",
            )
            raise WrongPassphrase("Incorrect master passphrase")

        self.logger.log_event(
            event_type=EventType.STORE_UNLOCKED,
            severity=EventSeverity.INFO,
            message="Credential store unlocked",
        )
        return session

    def derive(self, passphrase: str) -> SessionKeyMaterial:
        """Derive key material from the stored parameters without checking the canary."""
        return self._derive_from(self._read_artifact(), passphrase)

    def _derive_from(self, artifact: dict, passphrase: str) -> SessionKeyMaterial:
        try:
            salt = EncryptionService.decode_from_storage(artifact["salt"])
            iterations = int(artifact["iterations"])
        except (ValueError, TypeError, AttributeError) as e:
            raise DecryptionFailure(f"Verification artifact is malformed: {e}") from e
        if iterations < 1:
            raise DecryptionFailure("Verification artifact has an invalid iteration count")
        key = EncryptionService.derive_key(passphrase, salt, iterations)
        return SessionKeyMaterial(key)

    def _read_artifact(self) -> dict:
        if not self.is_initialized:
            raise StoreNotInitialized(
                f"No master passphrase configured at {self.master_path}. Run setup first."
            )
        try:
            artifact = json.loads(self.master_path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise DecryptionFailure(f"Verification artifact is unreadable: {e}") from e

        required = ("salt", "iterations", "verify_nonce", "verify_ciphertext")
        if not isinstance(artifact, dict) or any(f not in artifact for f in required):
            raise DecryptionFailure("Verification artifact is missing required fields")
        return artifact
