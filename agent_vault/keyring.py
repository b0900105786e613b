"""
Per-recipient sealing of the content key.

Each entry is an anonymous sealed box (X25519 ephemeral key + XSalsa20-
Poly1305) under the recipient's converted public key. No sender
authentication: the payload AEAD tag already binds the block.
"""
import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from nacl.exceptions import CryptoError
from nacl.public import PrivateKey, PublicKey, SealedBox

from .cipher import KEY_SIZE, KeyBytes
from .errors import DuplicateRecipient, KeyConversionError, KeyUnsealFailed, NoRecipients
from .keys import EncryptionKeyPair, ed25519_pub_to_x25519_pub, public_key_from_identity

logger = logging.getLogger(__name__)

Recipient = Tuple[str, bytes]


def recipients_from_identities(identities: Iterable[str]) -> List[Recipient]:
    """Convert base58 wallet addresses into (identity, X25519 public key) pairs."""
    return [
        (identity, ed25519_pub_to_x25519_pub(public_key_from_identity(identity)))
        for identity in identities
    ]


def build_keyring(content_key: KeyBytes, recipients: Sequence[Recipient]) -> Dict[str, bytes]:
    if not recipients:
        raise NoRecipients()

    keyring: Dict[str, bytes] = {}
    for identity, x25519_pub in recipients:
        if identity in keyring:
            raise DuplicateRecipient(f"Recipient {identity} appears more than once")
        try:
            box = SealedBox(PublicKey(bytes(x25519_pub)))
        except (CryptoError, ValueError, TypeError) as exc:
            raise KeyConversionError(f"Invalid X25519 public key for recipient {identity}") from exc
        keyring[identity] = box.encrypt(bytes(content_key))

    logger.debug(f"Sealed content key for {len(keyring)} recipient(s)")
    return keyring


def unseal_content_key(sealed: bytes, encryption_keys: EncryptionKeyPair) -> bytearray:
    if encryption_keys.secret_key is None:
        raise KeyUnsealFailed("Encryption key pair has no secret component")
    try:
        content_key = SealedBox(PrivateKey(bytes(encryption_keys.secret_key))).decrypt(bytes(sealed))
    except (CryptoError, ValueError, TypeError) as exc:
        raise KeyUnsealFailed() from exc
    if len(content_key) != KEY_SIZE:
        raise KeyUnsealFailed(f"Unsealed content key must be {KEY_SIZE} bytes, got {len(content_key)}")
    return bytearray(content_key)
