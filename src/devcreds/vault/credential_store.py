# Vault - Credential Store
#
# Orchestrates key derivation, sealing, slot files and the index catalog
# behind store / load / list / verify.
#
# Write discipline (under the store lock):
#   store:  slot first, then index.  A crash in between leaves an inert
#           slot with no entry, which the next store of that key adopts.
#   remove: index first, then slot.  An entry never points at a missing slot.

import getpass
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core import EventSeverity, EventType, StoreConfig, get_audit_logger, get_config
from .catalog import IndexCatalog, IndexEntry
from .errors import CorruptCredential, CredentialStoreError, SessionClosed
from .fileio import ensure_private_dir
from .locking import StoreLock
from .registry import WELL_KNOWN_KEYS
from .session import KeyDerivation, SessionKeyMaterial
from .slots import CredentialSlot, validate_key_name

logger = logging.getLogger(__name__)


class CredentialStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class VerifyResult:
    key: str
    status: CredentialStatus


class CredentialStore:
    """
    Single-user, file-backed encrypted credential store.

    Layout under ``credentials_dir`` (mode 700):
        <key>.enc    sealed value per credential (600)
        index.json   key -> {description, updated} (600)
        .master      passphrase verifier, never the passphrase (600)
        .lock        advisory writer lock

    Usage:
        with CredentialStore() as store:
            store.open("passphrase")
            store.store("github_token", "ghp_...", "GitHub PAT")
            token = store.load("github_token")
    """

    LOCK_FILE = ".lock"

    def __init__(
        self,
        credentials_dir: Optional[Path] = None,
        config: Optional[StoreConfig] = None
    ):
        self.config = config or get_config()
        self.credentials_dir = Path(credentials_dir or self.config.credentials_dir)
        ensure_private_dir(self.credentials_dir)

        self.keys = KeyDerivation(self.credentials_dir, self.config.kdf_iterations)
        self.catalog = IndexCatalog(self.credentials_dir)
        self.session: Optional[SessionKeyMaterial] = None

        self.logger = get_audit_logger()

    # ── Session ──────────────────────────────────────────────────────

    @property
    def is_initialized(self) -> bool:
        return self.keys.is_initialized

    @property
    def is_unlocked(self) -> bool:
        return self.session is not None and not self.session.closed

    def open(
        self,
        passphrase: Optional[str] = None,
        confirmation: Optional[str] = None,
        prompt: Callable[[str], str] = getpass.getpass,
    ) -> SessionKeyMaterial:
        """Set up (first run) or unlock the store and keep the session."""
        self.close()
        self.session = self.keys.setup(passphrase, confirmation, prompt=prompt)
        return self.session

    def close(self) -> None:
        """Clear the held key material."""
        if self.session is not None:
            self.session.close()
            self.session = None
            self.logger.log_event(
                event_type=EventType.STORE_LOCKED,
                severity=EventSeverity.INFO,
                message="Credential store locked",
            )

    def __enter__(self) -> "CredentialStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _session(self, session: Optional[SessionKeyMaterial]) -> SessionKeyMaterial:
        session = session or self.session
        if session is None or session.closed:
            raise SessionClosed("Credential store is locked. Open it with the master passphrase first.")
        return session

    def _lock(self) -> StoreLock:
        return StoreLock(self.credentials_dir / self.LOCK_FILE, self.config.lock_timeout)

    # ── Operations ───────────────────────────────────────────────────

    def store(
        self,
        key: str,
        value: str,
        description: str,
        session: Optional[SessionKeyMaterial] = None
    ) -> Optional[IndexEntry]:
        """
        Seal and persist ``value`` under ``key``.

        An empty value is a no-op so a blank answer never clobbers an
        existing secret. Returns the new catalog entry, or None if skipped.
        """
        validate_key_name(key)
        if not value:
            self.logger.log_credential_event(
                EventType.CREDENTIAL_SKIPPED, key, "skipped (empty value)",
                severity=EventSeverity.WARNING,
            )
            return None

        session = self._session(session)
        slot = CredentialSlot(self.credentials_dir, key)

        with self._lock():
            slot.write(value, session)
            entry = self.catalog.upsert(key, description)

        self.logger.log_credential_event(
            EventType.CREDENTIAL_STORED, key, "stored",
            details={"description": description},
        )
        return entry

    def store_many(
        self,
        items: Iterable[Tuple[str, str, str]],
        session: Optional[SessionKeyMaterial] = None
    ) -> Dict[str, Optional[Exception]]:
        """
        Store several ``(key, value, description)`` triples independently.

        A failure on one key is recorded and the batch continues.

        Returns:
            key -> None on success (or skip), or the exception raised
        """
        results: Dict[str, Optional[Exception]] = {}
        for key, value, description in items:
            try:
                self.store(key, value, description, session=session)
                results[key] = None
            except (CredentialStoreError, OSError) as e:
                logger.warning("Failed to store credential %s: %s", key, e)
                self.logger.log_event(
                    event_type=EventType.STORE_ERROR,
                    severity=EventSeverity.ALERT,
                    message=f"Failed to store credential {key}: {type(e).__name__}",
                    details={"key": key},
                )
                results[key] = e
        return results

    def load(self, key: str, session: Optional[SessionKeyMaterial] = None) -> Optional[str]:
        """
        Decrypt the value stored under ``key``.

        Returns:
            The value, or None if the key was never configured

        Raises:
            CorruptCredential: the slot exists but does not open
        """
        value = self._open_slot(key, session)
        if value is not None:
            self.logger.log_credential_event(EventType.CREDENTIAL_ACCESSED, key, "accessed")
        return value

    def _open_slot(self, key: str, session: Optional[SessionKeyMaterial]) -> Optional[str]:
        slot = CredentialSlot(self.credentials_dir, key)
        if not slot.exists():
            return None
        session = self._session(session)
        try:
            return slot.read(session)
        except FileNotFoundError:
            # Removed between the existence check and the read
            return None
        except CorruptCredential:
            self.logger.log_credential_event(
                EventType.CREDENTIAL_CORRUPT, key, "slot failed authentication",
                severity=EventSeverity.ALERT,
            )
            raise

    def exists(self, key: str) -> bool:
        return CredentialSlot(self.credentials_dir, key).exists()

    def list(self) -> List[IndexEntry]:
        """All catalog entries ordered by key name. Never fails on an empty store."""
        return self.catalog.entries()

    def verify(
        self,
        keys: Sequence[str] = WELL_KNOWN_KEYS,
        session: Optional[SessionKeyMaterial] = None
    ) -> List[VerifyResult]:
        """Presence report per key. Values are decrypted but never returned."""
        report = []
        for key in keys:
            try:
                value = self._open_slot(key, session)
            except CorruptCredential:
                status = CredentialStatus.CORRUPT
            else:
                status = CredentialStatus.PRESENT if value else CredentialStatus.ABSENT
            report.append(VerifyResult(key=key, status=status))
        return report

    def remove(self, key: str) -> bool:
        """Delete a credential. Returns True if anything was removed."""
        validate_key_name(key)
        with self._lock():
            had_entry = self.catalog.remove(key)
            had_slot = CredentialSlot(self.credentials_dir, key).delete()

        removed = had_entry or had_slot
        if removed:
            self.logger.log_credential_event(EventType.CREDENTIAL_REMOVED, key, "removed")
        return removed

    def orphans(self) -> List[str]:
        """Slot files with no catalog entry (left by an interrupted store)."""
        catalog = self.catalog.read()
        return [key for key in CredentialSlot.list_keys(self.credentials_dir) if key not in catalog]
