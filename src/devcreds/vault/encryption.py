# Vault - Encryption Service
#
# Master passphrase -> store key (PBKDF2-HMAC-SHA256)
# Store key + per-slot salt -> slot key (HKDF-SHA256)
# Credential sealing (AES-256-GCM, key name bound as associated data)

import base64
import json
import os
import struct
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .errors import CipherUnavailable, DecryptionFailure


@dataclass(frozen=True)
class SealedBlob:
    """Nonce plus AES-GCM ciphertext (the 16-byte tag is appended by GCM)."""

    nonce: bytes
    ciphertext: bytes


def _aesgcm(key: bytes):
    """Build an AES-GCM cipher, or fail loudly when no backend exists."""
    try:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM
    except ImportError as e:
        raise CipherUnavailable(
            "AES-GCM backend unavailable: install the 'cryptography' package"
        ) from e

    from cryptography.exceptions import UnsupportedAlgorithm

    try:
        return AESGCM(key)
    except UnsupportedAlgorithm as e:
        raise CipherUnavailable(f"AES-GCM not supported by the crypto backend: {e}") from e


class EncryptionService:
    """
    Key derivation and authenticated encryption for credential slots.

    Flow:
    1. User enters master passphrase
    2. PBKDF2 derives a 256-bit store key from passphrase + store salt
    3. HKDF derives a per-slot key from the store key + a random slot salt
    4. AES-256-GCM seals each value with a fresh nonce; the key name is
       authenticated as associated data so slots cannot be swapped
    """

    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 32  # store salt
    SLOT_SALT_LENGTH = 16
    NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)
    TAG_LENGTH = 16
    PAD_BLOCK = 256  # sealed slot payloads are padded to a multiple of this
    LENGTH_PREFIX = 4
    SLOT_INFO = b"devcreds-slot-v1"

    @staticmethod
    def derive_key(passphrase: str, salt: bytes, iterations: int) -> bytes:
        """
        Derive the store key from the master passphrase using PBKDF2.

        Args:
            passphrase: User's master passphrase
            salt: Store salt (kept in the verification artifact)
            iterations: PBKDF2 work factor (fixed per store)

        Returns:
            256-bit store key
        """
        try:
            from cryptography.hazmat.primitives import hashes
            from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
        except ImportError as e:
            raise CipherUnavailable("PBKDF2 backend unavailable") from e

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=EncryptionService.KEY_LENGTH,
            salt=salt,
            iterations=iterations,
        )

        return kdf.derive(passphrase.encode('utf-8'))

    @staticmethod
    def derive_slot_key(store_key: bytes, slot_salt: bytes) -> bytes:
        """Derive an independent per-slot key from the store key (HKDF)."""
        try:
            from cryptography.hazmat.primitives import hashes
            from cryptography.hazmat.primitives.kdf.hkdf import HKDF
        except ImportError as e:
            raise CipherUnavailable("HKDF backend unavailable") from e

        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=EncryptionService.KEY_LENGTH,
            salt=slot_salt,
            info=EncryptionService.SLOT_INFO,
        )
        return hkdf.derive(bytes(store_key))

    @staticmethod
    def generate_salt(length: int = SALT_LENGTH) -> bytes:
        """Generate cryptographically random salt."""
        return os.urandom(length)

    @staticmethod
    def canonical_ad(associated_data: Optional[Dict[str, Any]]) -> Optional[bytes]:
        """Sorted, compact JSON so the same context always yields the same bytes."""
        if associated_data is None:
            return None
        return json.dumps(
            associated_data, separators=(",", ":"), sort_keys=True, ensure_ascii=False
        ).encode('utf-8')

    @staticmethod
    def pad(data: bytes) -> bytes:
        """
        Length-prefix ``data`` and zero-fill it to a multiple of PAD_BLOCK.

        Every value up to PAD_BLOCK - 4 bytes seals to the same size.
        """
        framed = struct.pack(">I", len(data)) + data
        remainder = len(framed) % EncryptionService.PAD_BLOCK
        if remainder:
            framed += b"\x00" * (EncryptionService.PAD_BLOCK - remainder)
        return framed

    @staticmethod
    def unpad(data: bytes) -> bytes:
        """Reverse ``pad``; a bad frame raises DecryptionFailure."""
        prefix = EncryptionService.LENGTH_PREFIX
        if len(data) < prefix or len(data) % EncryptionService.PAD_BLOCK:
            raise DecryptionFailure("Malformed payload: bad padded length")
        (length,) = struct.unpack(">I", data[:prefix])
        if length > len(data) - prefix:
            raise DecryptionFailure("Malformed payload: length prefix out of range")
        if any(data[prefix + length:]):
            raise DecryptionFailure("Malformed payload: non-zero padding")
        return data[prefix:prefix + length]

    @staticmethod
    def seal(
        plaintext: str,
        key: bytes,
        associated_data: Optional[Dict[str, Any]] = None,
        pad: bool = False
    ) -> SealedBlob:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            plaintext: Secret to encrypt
            key: 256-bit key
            associated_data: Context authenticated alongside the ciphertext
            pad: Hide the plaintext length by padding to PAD_BLOCK

        Returns:
            SealedBlob with a fresh random nonce
        """
        payload = plaintext.encode('utf-8')
        if pad:
            payload = EncryptionService.pad(payload)

        nonce = os.urandom(EncryptionService.NONCE_LENGTH)
        aesgcm = _aesgcm(bytes(key))
        ciphertext = aesgcm.encrypt(
            nonce,
            payload,
            EncryptionService.canonical_ad(associated_data),
        )
        return SealedBlob(nonce=nonce, ciphertext=ciphertext)

    @staticmethod
    def open(
        blob: SealedBlob,
        key: bytes,
        associated_data: Optional[Dict[str, Any]] = None,
        pad: bool = False
    ) -> str:
        """
        Decrypt a SealedBlob.

        Raises:
            DecryptionFailure: wrong key, tampered data, mismatched
                associated data, or a malformed blob
        """
        if len(blob.nonce) != EncryptionService.NONCE_LENGTH:
            raise DecryptionFailure("Malformed blob: bad nonce length")
        if len(blob.ciphertext) < EncryptionService.TAG_LENGTH:
            raise DecryptionFailure("Malformed blob: ciphertext too short")

        from cryptography.exceptions import InvalidTag

        aesgcm = _aesgcm(bytes(key))
        try:
            plaintext_bytes = aesgcm.decrypt(
                blob.nonce,
                blob.ciphertext,
                EncryptionService.canonical_ad(associated_data),
            )
        except InvalidTag as e:
            raise DecryptionFailure("Authentication failed: wrong key or tampered data") from e

        if pad:
            plaintext_bytes = EncryptionService.unpad(plaintext_bytes)

        try:
            return plaintext_bytes.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecryptionFailure("Decrypted payload is not valid UTF-8") from e

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Encode binary data for JSON storage (base64)."""
        return base64.b64encode(data).decode('ascii')

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode base64-encoded data from a JSON document."""
        return base64.b64decode(data.encode('ascii'), validate=True)


def check_passphrase_strength(passphrase: str) -> Tuple[bool, str]:
    """
    Check a master passphrase against basic strength rules.

    Weak passphrases are allowed; the setup flow only warns.

    Requirements:
    - At least 12 characters
    - Mix of uppercase, lowercase, numbers

    Returns:
        (is_strong, advice)
    """
    if len(passphrase) < 12:
        return False, "Master passphrase is shorter than 12 characters"

    if not any(c.isupper() for c in passphrase):
        return False, "Master passphrase has no uppercase letter"

    if not any(c.islower() for c in passphrase):
        return False, "Master passphrase has no lowercase letter"

    if not any(c.isdigit() for c in passphrase):
        return False, "Master passphrase has no digit"

    return True, ""
