# Vault - Error Types
#
# Every failure the credential store can report. Filesystem faults are
# not wrapped; they propagate as OSError.


class CredentialStoreError(Exception):
    """Base class for credential store failures."""


class PassphraseMismatch(CredentialStoreError):
    """Passphrase and confirmation differ during first-time setup."""


class EmptyPassphrase(PassphraseMismatch):
    """An empty passphrase was supplied during first-time setup."""


class StoreNotInitialized(CredentialStoreError):
    """No verification artifact exists yet; run setup first."""


class DecryptionFailure(CredentialStoreError):
    """Ciphertext could not be authenticated under the given key."""


class WrongPassphrase(DecryptionFailure):
    """The passphrase does not open the store's verification artifact."""


class CorruptCredential(DecryptionFailure):
    """A credential slot exists but cannot be opened."""

    def __init__(self, key: str, reason: str = ""):
        self.key = key
        self.reason = reason
        message = f"Credential '{key}' is corrupt or sealed under a different passphrase"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class CipherUnavailable(CredentialStoreError):
    """No authenticated-encryption backend is available on this host."""


class LockTimeout(CredentialStoreError):
    """The store lock could not be acquired within the configured window."""

    def __init__(self, lock_path, timeout: float):
        self.lock_path = lock_path
        self.timeout = timeout
        super().__init__(
            f"Could not acquire credential store lock {lock_path} within {timeout:.1f}s"
        )


class SessionClosed(CredentialStoreError):
    """Key material was used after its session ended."""


class CatalogCorrupt(CredentialStoreError):
    """The index catalog exists but is not a valid catalog document."""


class InvalidKeyName(CredentialStoreError, ValueError):
    """Key name is empty, too long, or not safe to use as a file name."""
