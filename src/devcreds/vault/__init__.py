# Vault Module - Encrypted Credential Store
#
# Per-credential files sealed with AES-256-GCM under a key derived from
# the master passphrase (PBKDF2 + per-slot HKDF), plus a metadata catalog
# kept consistent with the slots through locked, atomic writes.

from .catalog import IndexCatalog, IndexEntry
from .credential_store import CredentialStatus, CredentialStore, VerifyResult
from .encryption import EncryptionService, SealedBlob, check_passphrase_strength
from .errors import (
    CatalogCorrupt,
    CipherUnavailable,
    CorruptCredential,
    CredentialStoreError,
    DecryptionFailure,
    EmptyPassphrase,
    InvalidKeyName,
    LockTimeout,
    PassphraseMismatch,
    SessionClosed,
    StoreNotInitialized,
    WrongPassphrase,
)
from .registry import WELL_KNOWN_CREDENTIALS, WELL_KNOWN_KEYS, CredentialSpec, get_spec
from .session import KeyDerivation, SessionKeyMaterial
from .slots import CredentialSlot

__all__ = [
    "CredentialStore",
    "CredentialStatus",
    "VerifyResult",
    "IndexCatalog",
    "IndexEntry",
    "CredentialSlot",
    "EncryptionService",
    "SealedBlob",
    "check_passphrase_strength",
    "KeyDerivation",
    "SessionKeyMaterial",
    "CredentialSpec",
    "WELL_KNOWN_CREDENTIALS",
    "WELL_KNOWN_KEYS",
    "get_spec",
    # Errors
    "CredentialStoreError",
    "PassphraseMismatch",
    "EmptyPassphrase",
    "StoreNotInitialized",
    "DecryptionFailure",
    "WrongPassphrase",
    "CorruptCredential",
    "CipherUnavailable",
    "LockTimeout",
    "SessionClosed",
    "CatalogCorrupt",
    "InvalidKeyName",
]
