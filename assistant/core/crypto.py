"""Encryption of third-party credentials at rest.

Tokens are sealed with AES-256-GCM and stored as base64 of ``iv | tag | ciphertext``.
"""

import base64
import binascii
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

IV_BYTES = 12
TAG_BYTES = 16


class SecretKeyError(ValueError):
    pass


def _load_key(key_b64: str) -> bytes:
    try:
        key = base64.b64decode(key_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SecretKeyError("Encryption key must be base64") from exc
    if len(key) != 32:
        raise SecretKeyError("Encryption key must be 32 bytes base64")
    return key


def encrypt_secret(plaintext: str, key_b64: str) -> str:
    aead = AESGCM(_load_key(key_b64))
    iv = os.urandom(IV_BYTES)
    sealed = aead.encrypt(iv, plaintext.encode("utf-8"), None)
    # cryptography appends the tag to the ciphertext
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def decrypt_secret(payload_b64: str, key_b64: str) -> str:
    aead = AESGCM(_load_key(key_b64))
    payload = base64.b64decode(payload_b64)
    iv = payload[:IV_BYTES]
    tag = payload[IV_BYTES : IV_BYTES + TAG_BYTES]
    ciphertext = payload[IV_BYTES + TAG_BYTES :]
    return aead.decrypt(iv, ciphertext + tag, None).decode("utf-8")
