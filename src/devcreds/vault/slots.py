# Vault - Credential Slots
#
# One ``<key>.enc`` file (mode 600) per stored secret. The file is a JSON
# envelope of base64 fields: per-slot HKDF salt, GCM nonce and ciphertext.
# Values are length-prefixed and zero-padded to 256-byte blocks before
# sealing, so slot size does not reveal the secret length.

import json
import logging
import re
from pathlib import Path
from typing import List

from .encryption import EncryptionService, SealedBlob
from .errors import CorruptCredential, DecryptionFailure, InvalidKeyName
from .fileio import atomic_write
from .session import SessionKeyMaterial

logger = logging.getLogger(__name__)

KEY_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")
MAX_KEY_LENGTH = 128


def validate_key_name(key: str) -> str:
    """Return ``key`` if it is safe to use as a slot file name."""
    if not isinstance(key, str) or not key:
        raise InvalidKeyName("Credential key must be a non-empty string")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidKeyName(f"Credential key longer than {MAX_KEY_LENGTH} characters")
    if not KEY_NAME_PATTERN.match(key):
        raise InvalidKeyName(
            f"Invalid credential key {key!r}: use letters, digits, '_', '.', '-'"
        )
    return key


class CredentialSlot:
    """The persisted, encrypted form of one named secret."""

    SUFFIX = ".enc"
    VERSION = 2

    def __init__(self, credentials_dir: Path, key: str):
        self.key = validate_key_name(key)
        self.path = Path(credentials_dir) / f"{key}{self.SUFFIX}"

    def exists(self) -> bool:
        return self.path.is_file()

    def _associated_data(self) -> dict:
        return {"key": self.key, "v": self.VERSION}

    def write(self, value: str, session: SessionKeyMaterial) -> None:
        """Seal ``value`` and atomically replace the slot file."""
        slot_salt = EncryptionService.generate_salt(EncryptionService.SLOT_SALT_LENGTH)
        blob = EncryptionService.seal(
            value, session.slot_key(slot_salt), self._associated_data(), pad=True
        )
        envelope = {
            "version": self.VERSION,
            "salt": EncryptionService.encode_for_storage(slot_salt),
            "nonce": EncryptionService.encode_for_storage(blob.nonce),
            "ciphertext": EncryptionService.encode_for_storage(blob.ciphertext),
        }
        atomic_write(self.path, json.dumps(envelope))

    def read(self, session: SessionKeyMaterial) -> str:
        """
        Open the slot.

        Raises:
            FileNotFoundError: no slot for this key
            CorruptCredential: damaged envelope, wrong key, or tampering
        """
        raw = self.path.read_bytes()
        try:
            envelope = json.loads(raw.decode("utf-8"))
            slot_salt = EncryptionService.decode_from_storage(envelope["salt"])
            blob = SealedBlob(
                nonce=EncryptionService.decode_from_storage(envelope["nonce"]),
                ciphertext=EncryptionService.decode_from_storage(envelope["ciphertext"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise CorruptCredential(self.key, "unreadable envelope") from e

        try:
            return EncryptionService.open(
                blob, session.slot_key(slot_salt), self._associated_data(), pad=True
            )
        except DecryptionFailure as e:
            raise CorruptCredential(self.key, str(e)) from e

    def delete(self) -> bool:
        """Remove the slot file. Returns True if it existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True

    @classmethod
    def list_keys(cls, credentials_dir: Path) -> List[str]:
        """Key names of all slot files present on disk, sorted."""
        credentials_dir = Path(credentials_dir)
        if not credentials_dir.is_dir():
            return []
        keys = []
        for path in credentials_dir.glob(f"*{cls.SUFFIX}"):
            key = path.name[: -len(cls.SUFFIX)]
            if KEY_NAME_PATTERN.match(key):
                keys.append(key)
        return sorted(keys)
