"""
Credential helper functions for scripts and tooling.

Import this module to read credentials from the local store:

    from devcreds import helper
    token = helper.github_token()
    helper.load_credentials()        # export everything into os.environ

The store is unlocked once per process, using ``DEVCREDS_PASSPHRASE``
when set and an interactive prompt otherwise.
"""

import getpass
import logging
from typing import List, Optional

from .core import get_config
from .materializer import EnvironmentMaterializer
from .vault import CredentialStore, StoreNotInitialized, VerifyResult

logger = logging.getLogger(__name__)

_store: Optional[CredentialStore] = None


def get_store() -> CredentialStore:
    """Get the process-wide store, unlocking it on first use."""
    global _store
    if _store is None or not _store.is_unlocked:
        store = CredentialStore()
        if not store.is_initialized:
            raise StoreNotInitialized(
                "No credential store configured yet. Run 'devcreds' to set one up."
            )
        passphrase = get_config().passphrase
        if passphrase is None:
            passphrase = getpass.getpass("Master passphrase: ")
        store.open(passphrase)
        _store = store
    return _store


def set_store(store: Optional[CredentialStore]) -> None:
    """Replace the process-wide store (for testing). Closes the previous one."""
    global _store
    if _store is not None and _store is not store:
        _store.close()
    _store = store


def get_credential(key: str) -> Optional[str]:
    """Decrypt one credential; None if it was never configured."""
    return get_store().load(key)


# Convenience functions for common credentials
def github_token() -> Optional[str]:
    return get_credential("github_token")


def github_username() -> Optional[str]:
    return get_credential("github_username")


def github_org() -> Optional[str]:
    return get_credential("github_default_org")


def aws_access_key() -> Optional[str]:
    return get_credential("aws_access_key_id")


def aws_secret_key() -> Optional[str]:
    return get_credential("aws_secret_access_key")


def aws_region() -> Optional[str]:
    return get_credential("aws_region")


def database_url() -> Optional[str]:
    return get_credential("postgresql_url")


def redis_url() -> Optional[str]:
    return get_credential("redis_url")


def mongodb_url() -> Optional[str]:
    return get_credential("mongodb_url")


def openai_key() -> Optional[str]:
    return get_credential("openai_api_key")


def anthropic_key() -> Optional[str]:
    return get_credential("anthropic_api_key")


def load_credentials() -> List[str]:
    """Export every configured well-known credential into os.environ.

    Corrupt credentials are skipped (and logged) so one damaged slot
    does not block the rest. Returns the variable names exported.
    """
    return EnvironmentMaterializer(get_store()).inject(skip_corrupt=True)


def verify_credentials() -> List[VerifyResult]:
    """Presence report for the well-known credentials, without values."""
    return get_store().verify()
