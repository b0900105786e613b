"""
XChaCha20-Poly1305 (IETF) content cipher.

The payload is encrypted once under a random 32-byte content key with a
fresh 24-byte nonce and the asset binding string as associated data.
"""
import secrets
from typing import Tuple, Union

from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_ABYTES,
    crypto_aead_xchacha20poly1305_ietf_KEYBYTES,
    crypto_aead_xchacha20poly1305_ietf_NPUBBYTES,
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError

from . import config
from .errors import DecryptionFailed

AEAD_ALGORITHM = "xchacha20poly1305-ietf"
KEY_SIZE = crypto_aead_xchacha20poly1305_ietf_KEYBYTES      # 32
NONCE_SIZE = crypto_aead_xchacha20poly1305_ietf_NPUBBYTES   # 24
TAG_SIZE = crypto_aead_xchacha20poly1305_ietf_ABYTES        # 16

KeyBytes = Union[bytes, bytearray]


def generate_content_key() -> bytearray:
    return bytearray(secrets.token_bytes(KEY_SIZE))


def generate_nonce() -> bytes:
    return secrets.token_bytes(NONCE_SIZE)


def wipe(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


def _check_params(key: KeyBytes, nonce: bytes, data: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        raise ValueError(f"Invalid key: must be {KEY_SIZE} bytes")
    if not isinstance(nonce, (bytes, bytearray)) or len(nonce) != NONCE_SIZE:
        raise ValueError(f"Invalid nonce: must be {NONCE_SIZE} bytes for XChaCha20-Poly1305 AEAD")
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Invalid data: must be bytes")


def encrypt(plaintext: bytes, content_key: KeyBytes, associated_data: str) -> Tuple[bytes, bytes]:
    """
    Encrypt ``plaintext`` under ``content_key`` with a fresh random nonce.

    ``associated_data`` is authenticated but travels in the clear.
    Returns (nonce, ciphertext||tag).
    """
    nonce = generate_nonce()
    _check_params(content_key, nonce, plaintext)
    if len(plaintext) > config.MAX_PLAINTEXT_SIZE:
        raise ValueError(f"Data too large for encryption: {len(plaintext)} > {config.MAX_PLAINTEXT_SIZE} bytes")
    ciphertext = crypto_aead_xchacha20poly1305_ietf_encrypt(
        bytes(plaintext), associated_data.encode("utf-8"), nonce, bytes(content_key)
    )
    return nonce, ciphertext


def decrypt(ciphertext: bytes, content_key: KeyBytes, nonce: bytes, associated_data: str) -> bytes:
    _check_params(content_key, nonce, ciphertext)
    if len(ciphertext) < TAG_SIZE:
        raise DecryptionFailed("Ciphertext is shorter than the authentication tag")
    try:
        return crypto_aead_xchacha20poly1305_ietf_decrypt(
            bytes(ciphertext), associated_data.encode("utf-8"), bytes(nonce), bytes(content_key)
        )
    except CryptoError as exc:
        raise DecryptionFailed() from exc
