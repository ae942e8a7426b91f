"""AES-256-GCM encryption for bank account numbers, IBANs and OTA login secrets.

Stored form is "v1:" + base64(nonce + ciphertext-with-tag). Values without the
prefix are rows written before encryption was enabled and are returned as-is.
"""
from __future__ import annotations

import base64
import binascii
import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from app.config import get_settings

PREFIX = "v1:"
NONCE_SIZE = 12
AAD = b"villa-management-system"
KEY_SALT = b"salt"


class EncryptionError(Exception):
    """No ENCRYPTION_KEY, or a stored value that does not decrypt with it."""


@lru_cache
def _derive_key(secret: str) -> bytes:
    if len(secret) == 64:
        try:
            return bytes.fromhex(secret)
        except ValueError:
            pass
    return Scrypt(salt=KEY_SALT, length=32, n=2**14, r=8, p=1).derive(secret.encode("utf-8"))


def _cipher(secret: str | None = None) -> AESGCM:
    secret = (secret if secret is not None else get_settings().encryption_key).strip()
    if not secret:
        raise EncryptionError("ENCRYPTION_KEY is not set; bank details and OTA secrets cannot be stored")
    return AESGCM(_derive_key(secret))


def is_encrypted(value: str | None) -> bool:
    return isinstance(value, str) and value.startswith(PREFIX)


def encrypt_value(plaintext: str, secret: str | None = None) -> str:
    nonce = os.urandom(NONCE_SIZE)
    sealed = _cipher(secret).encrypt(nonce, plaintext.encode("utf-8"), AAD)
    return PREFIX + base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_value(stored: str, secret: str | None = None) -> str:
    if not is_encrypted(stored):
        return stored
    try:
        raw = base64.b64decode(stored[len(PREFIX):], validate=True)
        plain = _cipher(secret).decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], AAD)
    except (InvalidTag, binascii.Error, ValueError) as e:
        raise EncryptionError("Stored secret could not be decrypted; check ENCRYPTION_KEY") from e
    return plain.decode("utf-8")
