# devcreds - Local Encrypted Credential Store
#
# Keeps developer secrets (tokens, keys, connection strings) on disk,
# sealed under a master passphrase, and hands them to tooling on demand.

__version__ = "0.1.0"
__author__ = "devcreds contributors"
__description__ = "Local encrypted credential store for development tooling"

from .vault import (
    CredentialStore,
    CredentialStoreError,
    CorruptCredential,
    WELL_KNOWN_CREDENTIALS,
)
from .materializer import EnvDescriptor, EnvironmentMaterializer

__all__ = [
    "__version__",
    "CredentialStore",
    "CredentialStoreError",
    "CorruptCredential",
    "WELL_KNOWN_CREDENTIALS",
    "EnvDescriptor",
    "EnvironmentMaterializer",
]
