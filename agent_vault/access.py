"""
Building and opening secure blocks.

A secure block encrypts a configuration once under a random content key
and seals that key for every authorized wallet. Opening checks the asset
binding, finds the caller's keyring entry, unseals the key and decrypts.
"""
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from cryptography.hazmat.primitives.constant_time import bytes_eq

from . import cipher, config
from .codec import FORMAT_VERSION, SecureBlock, associated_data_for
from .errors import (
    AssetMismatch,
    DecryptionFailed,
    KeyConversionError,
    NoRecipients,
    NotAuthorized,
    SecureBlockError,
)
from .keyring import Recipient, build_keyring, unseal_content_key
from .keys import SigningKeyPair, derive_encryption_keypair, public_key_from_identity, ed25519_pub_to_x25519_pub

logger = logging.getLogger(__name__)

RecipientLike = Union[str, SigningKeyPair]


def _check_asset_id(asset_id: str) -> None:
    if not isinstance(asset_id, str) or not asset_id:
        raise ValueError("asset_id must be a non-empty string")


def _resolve_recipients(recipients: Sequence[RecipientLike]) -> List[Recipient]:
    resolved: List[Recipient] = []
    for recipient in recipients:
        if isinstance(recipient, SigningKeyPair):
            public_key = recipient.public_key
            identity = recipient.identity
        elif isinstance(recipient, str):
            public_key = public_key_from_identity(recipient)
            identity = recipient
        else:
            raise TypeError(f"Unsupported recipient type: {type(recipient)!r}")
        resolved.append((identity, ed25519_pub_to_x25519_pub(public_key)))
    return resolved


def build_secure_block(
    plaintext: Union[bytes, str],
    asset_id: str,
    recipients: Sequence[RecipientLike],
) -> SecureBlock:
    """
    Encrypt ``plaintext`` once and seal the content key for each recipient.

    ``recipients`` are base58 wallet addresses or SigningKeyPair objects
    (only the public half is used).
    """
    if not recipients:
        raise NoRecipients()
    _check_asset_id(asset_id)
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    resolved = _resolve_recipients(recipients)
    ad = associated_data_for(asset_id)

    content_key = cipher.generate_content_key()
    try:
        keyring = build_keyring(content_key, resolved)
        nonce, ciphertext = cipher.encrypt(plaintext, content_key, ad)
    finally:
        cipher.wipe(content_key)

    logger.info(f"🔒 Built secure block for {ad} with {len(keyring)} recipient(s)")
    return SecureBlock(
        version=FORMAT_VERSION,
        aead=cipher.AEAD_ALGORITHM,
        associated_data=ad,
        nonce=nonce,
        ciphertext=ciphertext,
        keyring=keyring,
    )


def open_secure_block(block: SecureBlock, asset_id: str, signing: SigningKeyPair) -> bytes:
    """Recover the plaintext of ``block`` as the holder of ``signing``."""
    if not isinstance(asset_id, str) or not asset_id:
        raise AssetMismatch("Secure block is not bound to an empty asset id")
    expected_ad = associated_data_for(asset_id)
    if not bytes_eq(block.associated_data.encode("utf-8"), expected_ad.encode("utf-8")):
        raise AssetMismatch(f"Secure block is not bound to asset {asset_id}")

    if signing.secret_key is None:
        raise KeyConversionError("Opening a secure block requires the wallet secret key")

    encryption_keys = derive_encryption_keypair(signing)
    try:
        identity = signing.identity
        sealed = block.keyring.get(identity)
        if sealed is None:
            logger.info(f"Wallet {identity} is not a recipient of the block for {expected_ad}")
            raise NotAuthorized(identity)

        content_key = unseal_content_key(sealed, encryption_keys)
    finally:
        encryption_keys.wipe()

    try:
        return cipher.decrypt(block.ciphertext, content_key, block.nonce, block.associated_data)
    finally:
        cipher.wipe(content_key)


class AccessOutcome(str, Enum):
    GRANTED = "granted"
    NOT_AUTHORIZED = "not_authorized"
    FAILED = "failed"


@dataclass(frozen=True)
class AccessResult:
    identity: str
    outcome: AccessOutcome
    error: Optional[str] = None

    @property
    def granted(self) -> bool:
        return self.outcome is AccessOutcome.GRANTED


def test_access(
    block: SecureBlock,
    asset_id: str,
    candidates: Sequence[SigningKeyPair],
) -> List[AccessResult]:
    """
    Try to open ``block`` with each candidate and report the outcome.

    Never raises for a per-candidate failure.
    """
    results: List[AccessResult] = []
    for candidate in candidates:
        try:
            identity = candidate.identity
        except SecureBlockError as exc:
            results.append(AccessResult("", AccessOutcome.FAILED, type(exc).__name__))
            continue
        try:
            open_secure_block(block, asset_id, candidate)
        except NotAuthorized:
            results.append(AccessResult(identity, AccessOutcome.NOT_AUTHORIZED, NotAuthorized.__name__))
        except (SecureBlockError, ValueError) as exc:
            logger.warning(f"⚠️ Access check failed for {identity}: {type(exc).__name__}")
            results.append(AccessResult(identity, AccessOutcome.FAILED, type(exc).__name__))
        else:
            results.append(AccessResult(identity, AccessOutcome.GRANTED))
    return results


# ---------- Agent configuration helpers ----------

def recipients_of(block: SecureBlock) -> List[str]:
    return sorted(block.keyring)


def build_agent_config_block(
    agent_config: Union[Mapping[str, Any], str],
    asset_id: str,
    owner: RecipientLike,
    protocol: Optional[RecipientLike] = None,
) -> SecureBlock:
    """
    Encrypt an agent configuration readable by the owner wallet and the
    protocol wallet. ``protocol`` falls back to the PROTOCOL_WALLET setting.
    """
    payload = agent_config if isinstance(agent_config, str) else json.dumps(agent_config)
    recipients: List[RecipientLike] = [owner]
    protocol = protocol if protocol is not None else config.PROTOCOL_WALLET
    if protocol is not None:
        recipients.append(protocol)
    else:
        logger.warning("⚠️ No protocol wallet configured; agent config is readable by the owner only")
    return build_secure_block(payload, asset_id, recipients)


def open_agent_config(block: SecureBlock, asset_id: str, signing: SigningKeyPair) -> Dict[str, Any]:
    plaintext = open_secure_block(block, asset_id, signing)
    try:
        decoded = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecryptionFailed("Decrypted configuration is not valid JSON") from exc
    if not isinstance(decoded, dict):
        raise DecryptionFailed("Decrypted configuration is not a JSON object")
    return decoded


def reencrypt_secure_block(
    block: SecureBlock,
    asset_id: str,
    signing: SigningKeyPair,
    recipients: Sequence[RecipientLike],
) -> SecureBlock:
    """
    Open ``block`` as a current recipient and seal the same plaintext for a
    new recipient set under a fresh content key and nonce.
    """
    if not recipients:
        raise NoRecipients()
    plaintext = open_secure_block(block, asset_id, signing)
    new_block = build_secure_block(plaintext, asset_id, recipients)
    logger.info(
        f"🔁 Re-encrypted block for {new_block.associated_data}: "
        f"{len(block.keyring)} -> {len(new_block.keyring)} recipient(s)"
    )
    return new_block
