"""
Encryption of demo login credentials at rest.

Credentials are serialized to JSON and sealed with AES-256-GCM. The stored
form is three base64 fields joined by colons: ``iv:tag:ciphertext``.
A fresh 12 byte IV is drawn for every encryption.
"""
import base64
import json
import logging
import os
from functools import lru_cache
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from core import config

logger = logging.getLogger(__name__)

IV_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32


class EncryptionError(Exception):
    pass


def _scrypt(secret: str, salt: bytes) -> bytes:
    return Scrypt(salt=salt, length=KEY_LENGTH, n=2 ** 14, r=8, p=1).derive(secret.encode("utf-8"))


@lru_cache(maxsize=8)
def _derive_key(raw_key: Optional[str], production: bool) -> bytes:
    if not raw_key:
        if production:
            raise EncryptionError("ENCRYPTION_KEY is not set; refusing to run without it in production.")
        logger.warning("ENCRYPTION_KEY is not set. Using an insecure development key.")
        return _scrypt("development-key", b"salt")

    if len(raw_key) < KEY_LENGTH:
        return _scrypt(raw_key, b"demo-hub-salt")
    # Long keys are used directly, truncated to 32 bytes.
    return raw_key.encode("utf-8")[:KEY_LENGTH]


def get_encryption_key() -> bytes:
    return _derive_key(config.ENCRYPTION_KEY, config.IS_PRODUCTION)


def encrypt_credentials(credentials: Optional[Dict[str, Optional[str]]]) -> str:
    """
    Encrypts a ``{"username": ..., "password": ...}`` mapping.

    Returns an empty string when there is nothing worth storing (no mapping, or
    both fields empty).
    """
    if not credentials or (not credentials.get("username") and not credentials.get("password")):
        return ""

    iv = os.urandom(IV_LENGTH)
    plaintext = json.dumps(credentials).encode("utf-8")
    try:
        sealed = AESGCM(get_encryption_key()).encrypt(iv, plaintext, None)
    except EncryptionError:
        raise
    except Exception as e:
        logger.error(f"Error encrypting credentials: {e}", exc_info=True)
        raise EncryptionError("Could not encrypt credentials") from e

    # AESGCM appends the tag to the ciphertext.
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return ":".join(base64.b64encode(part).decode("ascii") for part in (iv, tag, ciphertext))


def decrypt_credentials(encrypted: Optional[str]) -> Optional[Dict[str, Optional[str]]]:
    """Inverse of encrypt_credentials. Any failure yields None."""
    if not encrypted or not isinstance(encrypted, str):
        return None

    parts = encrypted.split(":")
    if len(parts) != 3:
        logger.warning("Encrypted credentials have an invalid format")
        return None

    try:
        iv, tag, ciphertext = (base64.b64decode(p) for p in parts)
        plaintext = AESGCM(get_encryption_key()).decrypt(iv, ciphertext + tag, None)
        return json.loads(plaintext.decode("utf-8"))
    except (InvalidTag, ValueError, TypeError) as e:
        logger.error(f"Error decrypting credentials: {e!r}")
        return None


def is_encrypted(value: Optional[str]) -> bool:
    """Shape check only; does not attempt decryption."""
    return isinstance(value, str) and len(value.split(":")) == 3


if __name__ == '__main__':
    print("--- Credentials Encryption Examples ---")
    blob = encrypt_credentials({"username": "demo", "password": "s3cret"})
    print(f"Encrypted: {blob}")
    print(f"Looks encrypted: {is_encrypted(blob)}")
    print(f"Decrypted: {decrypt_credentials(blob)}")
    print(f"Tampered:  {decrypt_credentials(blob[:-4] + 'AAAA')}")
    print("--- End of Encryption Examples ---")
