"""
Versioned wire format for secure blocks.

    {
      "ver": 1,
      "aead": "xchacha20poly1305-ietf",
      "ad": "mint:<ASSET_PUBLIC_KEY_BASE58>",
      "nonce": "<base64, 24 bytes>",
      "ciphertext": "<base64>",
      "keyring": { "<recipient base58 pubkey>": "<base64 sealed box>", ... }
    }

Binary values written by older clients may carry a ``base64:`` prefix;
it is accepted on parse and never written.
"""
import base64
import binascii
import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Union, cast

from .cipher import AEAD_ALGORITHM, NONCE_SIZE, TAG_SIZE
from .errors import KeyConversionError, MalformedBlock, UnsupportedAlgorithm, UnsupportedVersion
from .keys import public_key_from_identity

FORMAT_VERSION = 1
SUPPORTED_VERSIONS = (FORMAT_VERSION,)
ASSOCIATED_DATA_PREFIX = "mint:"
LEGACY_B64_PREFIX = "base64:"
REQUIRED_FIELDS = ("ver", "aead", "ad", "nonce", "ciphertext", "keyring")


# ---------- Helpers (encoding) ----------

def b64e(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64d(data_b64: str) -> bytes:
    if data_b64.startswith(LEGACY_B64_PREFIX):
        data_b64 = data_b64[len(LEGACY_B64_PREFIX):]
    return base64.b64decode(data_b64.encode("ascii"), validate=True)


def associated_data_for(asset_id: str) -> str:
    return ASSOCIATED_DATA_PREFIX + asset_id


@dataclass(frozen=True)
class SecureBlock:
    version: int
    aead: str
    associated_data: str
    nonce: bytes
    ciphertext: bytes
    keyring: Mapping[str, bytes]

    def __post_init__(self) -> None:
        object.__setattr__(self, "keyring", MappingProxyType(dict(self.keyring)))

    @property
    def asset_id(self) -> str:
        """Asset id carried in the associated data, or '' when unprefixed."""
        if self.associated_data.startswith(ASSOCIATED_DATA_PREFIX):
            return self.associated_data[len(ASSOCIATED_DATA_PREFIX):]
        return ""


def block_to_dict(block: SecureBlock) -> Dict[str, Any]:
    return {
        "ver": block.version,
        "aead": block.aead,
        "ad": block.associated_data,
        "nonce": b64e(block.nonce),
        "ciphertext": b64e(block.ciphertext),
        "keyring": {identity: b64e(sealed) for identity, sealed in block.keyring.items()},
    }


def serialize(block: SecureBlock) -> bytes:
    return json.dumps(block_to_dict(block), separators=(",", ":"), sort_keys=True).encode("utf-8")


def _decode_field(name: str, value: Any) -> bytes:
    if not isinstance(value, str):
        raise MalformedBlock(f"Field '{name}' must be a base64 string")
    try:
        return b64d(value)
    except (binascii.Error, ValueError) as exc:
        raise MalformedBlock(f"Field '{name}' is not valid base64") from exc


def block_from_dict(obj: Any) -> SecureBlock:
    if not isinstance(obj, Mapping):
        raise MalformedBlock("Secure block must be a JSON object")
    envelope = cast(Mapping[str, Any], obj)

    version = envelope.get("ver")
    if not isinstance(version, int) or isinstance(version, bool):
        raise MalformedBlock("Field 'ver' must be an integer")
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersion(f"Unsupported encryption version: {version}")

    aead = envelope.get("aead")
    if aead != AEAD_ALGORITHM:
        raise UnsupportedAlgorithm(f"Unsupported encryption algorithm: {aead!r}")

    missing = [name for name in REQUIRED_FIELDS if name not in envelope]
    if missing:
        raise MalformedBlock(f"Missing required field(s): {', '.join(missing)}")

    ad = envelope["ad"]
    if not isinstance(ad, str) or not ad:
        raise MalformedBlock("Field 'ad' must be a non-empty string")

    nonce = _decode_field("nonce", envelope["nonce"])
    if len(nonce) != NONCE_SIZE:
        raise MalformedBlock(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

    ciphertext = _decode_field("ciphertext", envelope["ciphertext"])
    if len(ciphertext) < TAG_SIZE:
        raise MalformedBlock("Ciphertext is shorter than the authentication tag")

    raw_keyring = envelope["keyring"]
    if not isinstance(raw_keyring, Mapping) or not raw_keyring:
        raise MalformedBlock("Field 'keyring' must be a non-empty object")
    keyring: Dict[str, bytes] = {}
    for identity, sealed in cast(Mapping[Any, Any], raw_keyring).items():
        if not isinstance(identity, str):
            raise MalformedBlock("Keyring identities must be strings")
        try:
            public_key_from_identity(identity)
        except KeyConversionError as exc:
            raise MalformedBlock(f"Keyring identity {identity!r} is not a wallet address") from exc
        keyring[identity] = _decode_field(f"keyring[{identity}]", sealed)

    return SecureBlock(
        version=version,
        aead=aead,
        associated_data=ad,
        nonce=nonce,
        ciphertext=ciphertext,
        keyring=keyring,
    )


def parse(data: Union[bytes, str]) -> SecureBlock:
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedBlock("Secure block is not valid JSON") from exc
    except RecursionError as exc:
        raise MalformedBlock("Secure block JSON is nested too deeply") from exc
    return block_from_dict(obj)
