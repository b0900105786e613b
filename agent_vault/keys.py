"""
Ed25519 (Solana wallet) to X25519 key conversion.

Recipients re-derive their decryption key from the wallet they already
hold, so derivation is deterministic and nothing extra is stored. Signing
keys and derived encryption keys are kept in separate types.
"""
import json
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, cast

import base58
from cryptography.hazmat.primitives.constant_time import bytes_eq
from nacl import signing
from nacl.bindings import (
    crypto_sign_ed25519_pk_to_curve25519,
    crypto_sign_ed25519_sk_to_curve25519,
)
from nacl.exceptions import CryptoError

from .errors import KeyConversionError

ED25519_PUBLIC_KEY_SIZE = 32
ED25519_SEED_SIZE = 32
ED25519_SECRET_KEY_SIZE = 64
X25519_KEY_SIZE = 32


@dataclass(frozen=True)
class SigningKeyPair:
    """A wallet's Ed25519 key pair. ``secret_key`` is a 32-byte seed or a
    64-byte seed||public key, and is None for public-only recipients."""
    public_key: bytes
    secret_key: Optional[bytes] = field(default=None, repr=False)

    @property
    def identity(self) -> str:
        return recipient_identity(self.public_key)


@dataclass
class EncryptionKeyPair:
    public_key: bytes
    secret_key: Optional[bytearray] = field(default=None, repr=False)

    def wipe(self) -> None:
        if self.secret_key is not None:
            for i in range(len(self.secret_key)):
                self.secret_key[i] = 0
            self.secret_key = None


def recipient_identity(public_key: bytes) -> str:
    """Canonical keyring identity: base58 of the Ed25519 public key."""
    if len(public_key) != ED25519_PUBLIC_KEY_SIZE:
        raise KeyConversionError(
            f"Ed25519 public key must be {ED25519_PUBLIC_KEY_SIZE} bytes, got {len(public_key)}"
        )
    return base58.b58encode(bytes(public_key)).decode("ascii")


def public_key_from_identity(identity: str) -> bytes:
    if not isinstance(identity, str) or not identity:
        raise KeyConversionError("Recipient identity must be a non-empty base58 string")
    try:
        raw = base58.b58decode(identity)
    except ValueError as exc:
        raise KeyConversionError(f"Invalid base58 wallet address: {identity!r}") from exc
    if len(raw) != ED25519_PUBLIC_KEY_SIZE:
        raise KeyConversionError(
            f"Wallet address {identity!r} must decode to {ED25519_PUBLIC_KEY_SIZE} bytes, got {len(raw)}"
        )
    return raw


def ed25519_pub_to_x25519_pub(public_key: bytes) -> bytes:
    if len(public_key) != ED25519_PUBLIC_KEY_SIZE:
        raise KeyConversionError(
            f"Ed25519 public key must be {ED25519_PUBLIC_KEY_SIZE} bytes, got {len(public_key)}"
        )
    try:
        return crypto_sign_ed25519_pk_to_curve25519(bytes(public_key))
    except (CryptoError, ValueError, TypeError) as exc:
        raise KeyConversionError("Ed25519 public key is not a valid curve point") from exc


def _expand_secret_key(public_key: bytes, secret_key: bytes) -> bytes:
    """Return the 64-byte libsodium secret key, checking it matches ``public_key``."""
    if len(secret_key) == ED25519_SEED_SIZE:
        seed = bytes(secret_key)
    elif len(secret_key) == ED25519_SECRET_KEY_SIZE:
        seed = bytes(secret_key[:ED25519_SEED_SIZE])
    else:
        raise KeyConversionError("Solana private key must be 32 or 64 bytes")

    derived_pub = signing.SigningKey(seed).verify_key.encode()
    if len(secret_key) == ED25519_SECRET_KEY_SIZE and not bytes_eq(
        bytes(secret_key[ED25519_SEED_SIZE:]), derived_pub
    ):
        raise KeyConversionError("Secret key halves are inconsistent")
    if not bytes_eq(bytes(public_key), derived_pub):
        raise KeyConversionError("Secret key does not belong to the given public key")
    return seed + derived_pub


def derive_encryption_keypair(signing_pair: SigningKeyPair) -> EncryptionKeyPair:
    """
    Map an Ed25519 key pair onto the birationally equivalent X25519 key pair.

    The public half is always derived; the secret half only when the signing
    pair carries one.
    """
    x_pub = ed25519_pub_to_x25519_pub(signing_pair.public_key)
    if signing_pair.secret_key is None:
        return EncryptionKeyPair(public_key=x_pub)

    full_secret = _expand_secret_key(signing_pair.public_key, signing_pair.secret_key)
    try:
        x_sk = bytearray(crypto_sign_ed25519_sk_to_curve25519(full_secret))
    except (CryptoError, ValueError, TypeError) as exc:
        raise KeyConversionError("Failed to convert Ed25519 secret key to Curve25519") from exc
    return EncryptionKeyPair(public_key=x_pub, secret_key=x_sk)


def signing_keypair_from_secret(secret_key: bytes) -> SigningKeyPair:
    """Build a key pair from a 32-byte seed or 64-byte Solana secret key."""
    if len(secret_key) == ED25519_SEED_SIZE:
        seed = bytes(secret_key)
    elif len(secret_key) == ED25519_SECRET_KEY_SIZE:
        seed = bytes(secret_key[:ED25519_SEED_SIZE])
    else:
        raise KeyConversionError("Solana private key must be 32 or 64 bytes")
    public_key = signing.SigningKey(seed).verify_key.encode()
    # Validates the trailing public half of 64-byte keys
    _expand_secret_key(public_key, secret_key)
    return SigningKeyPair(public_key=public_key, secret_key=bytes(secret_key))


def generate_signing_keypair() -> SigningKeyPair:
    sk = signing.SigningKey.generate()
    return SigningKeyPair(public_key=sk.verify_key.encode(), secret_key=bytes(sk) + sk.verify_key.encode())


def load_solana_keypair(path: str) -> SigningKeyPair:
    """
    Load a Solana private key from either a JSON array-of-ints (Solana CLI
    format) or a base58 text file.
    """
    with open(path, "r", encoding="utf-8") as f:
        content = f.read().strip()

    if not content:
        raise KeyConversionError(f"Solana key file {path} is empty")

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        parsed = content

    if isinstance(parsed, list):
        int_values: List[int] = []
        for entry in cast(Sequence[object], parsed):
            if not isinstance(entry, int) or isinstance(entry, bool) or not 0 <= entry <= 255:
                raise KeyConversionError("Solana private key JSON list must contain only byte values")
            int_values.append(entry)
        key_bytes = bytes(int_values)
    elif isinstance(parsed, str):
        try:
            key_bytes = base58.b58decode(parsed)
        except ValueError as exc:
            raise KeyConversionError(f"Unsupported Solana key format in {path}") from exc
    else:
        raise KeyConversionError(f"Unsupported Solana key format in {path}")

    if len(key_bytes) not in (ED25519_SEED_SIZE, ED25519_SECRET_KEY_SIZE):
        raise KeyConversionError(
            f"Solana private key in {path} must be 32 or 64 bytes, got {len(key_bytes)}"
        )
    return signing_keypair_from_secret(key_bytes)
