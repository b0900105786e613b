"""
Hybrid agent metadata: a public summary beside the encrypted configuration.

The metadata document is what actually gets stored. Anyone can read its
``public`` summary and descriptive fields; the full configuration travels
as a secure block under ``secure`` and only keyring recipients can open it.

    {
      "name": "Bot Agent",
      "symbol": "MFAGENT",
      "description": "...",
      "attributes": [{"trait_type": "...", "value": "..."}, ...],
      "public": {"name": "Bot", "type": "AI Agent", "framework": "elizaOS", "created": "..."},
      "secure": {"ver": 1, "aead": "...", "ad": "mint:<asset>", ...},
      "based_on": {"mint": "<asset>", ...}
    }
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from .access import RecipientLike, build_agent_config_block, open_agent_config
from .codec import SecureBlock, block_from_dict, block_to_dict
from .errors import HybridDataMismatch, MalformedBlock
from .keys import SigningKeyPair
from .storage import BlobStore, sha256_hex

logger = logging.getLogger(__name__)

AGENT_TYPE = "AI Agent"
DEFAULT_FRAMEWORK = "elizaOS"
METADATA_SYMBOL = "MFAGENT"
PUBLIC_FIELDS = ("name", "description", "purpose", "framework", "preferences")


def extract_public_summary(agent_config: Mapping[str, Any], created: Optional[str] = None) -> Dict[str, Any]:
    return {
        "name": agent_config.get("name"),
        "type": AGENT_TYPE,
        "framework": agent_config.get("framework", DEFAULT_FRAMEWORK),
        "created": created or datetime.now(timezone.utc).isoformat(),
    }


def sanitize_for_public(agent_config: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Copy of ``agent_config`` that is safe to display publicly.

    Only descriptive fields are kept and every capability loses its
    ``config`` section, which is where API keys and endpoints live.
    """
    public = {name: agent_config[name] for name in PUBLIC_FIELDS if name in agent_config}
    capabilities = agent_config.get("capabilities")
    if isinstance(capabilities, list):
        public["capabilities"] = [
            dict(capability, config={}) if isinstance(capability, Mapping) else capability
            for capability in capabilities
        ]
    return public


def build_hybrid_metadata(
    agent_config: Mapping[str, Any],
    asset_id: str,
    owner: RecipientLike,
    protocol: Optional[RecipientLike] = None,
    based_on: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Encrypt ``agent_config`` for the owner and protocol wallets and wrap the
    secure block in a metadata document with a public summary.

    ``based_on`` optionally describes the source NFT (``name``,
    ``collection``) and is copied into the descriptive fields.
    """
    agent_name = agent_config.get("name")
    if not isinstance(agent_name, str) or not agent_name:
        raise ValueError("Agent configuration needs a non-empty 'name'")

    block = build_agent_config_block(agent_config, asset_id, owner, protocol)
    public_data = extract_public_summary(agent_config)
    source = dict(based_on or {})

    attributes: List[Dict[str, str]] = [
        {"trait_type": "Agent Type", "value": AGENT_TYPE},
        {"trait_type": "Framework", "value": public_data["framework"]},
    ]
    if source.get("name"):
        attributes.append({"trait_type": "Based On", "value": str(source["name"])})
    if source.get("collection"):
        attributes.append({"trait_type": "Original Collection", "value": str(source["collection"])})

    description = f"AI Agent {agent_name}"
    if source.get("name"):
        description = f"AI Agent based on {source['name']}"

    metadata = {
        "name": f"{agent_name} Agent",
        "symbol": METADATA_SYMBOL,
        "description": description,
        "attributes": attributes,
        "public": public_data,
        "secure": block_to_dict(block),
        "based_on": dict(source, mint=asset_id),
    }
    logger.info(f"🧩 Built hybrid metadata for {agent_name} ({len(block.keyring)} recipient(s))")
    return metadata


def secure_block_from_metadata(metadata: Any) -> SecureBlock:
    if not isinstance(metadata, Mapping) or "secure" not in metadata:
        raise MalformedBlock("Agent metadata has no 'secure' section")
    return block_from_dict(metadata["secure"])


def validate_hybrid_data(metadata: Mapping[str, Any], private_config: Mapping[str, Any]) -> None:
    """Check that the public summary agrees with the decrypted configuration."""
    secure = metadata.get("secure")
    keyring = secure.get("keyring") if isinstance(secure, Mapping) else None
    if not isinstance(keyring, Mapping) or not keyring:
        raise HybridDataMismatch("Secure section must contain a non-empty keyring")

    public_data = metadata.get("public")
    if not isinstance(public_data, Mapping):
        raise HybridDataMismatch("Agent metadata has no public summary")
    if public_data.get("name") != private_config.get("name"):
        raise HybridDataMismatch("Public and private agent names must match")
    if public_data.get("framework") != private_config.get("framework", DEFAULT_FRAMEWORK):
        raise HybridDataMismatch("Public and private frameworks must match")


def open_hybrid_metadata(
    metadata: Mapping[str, Any],
    asset_id: str,
    signing: SigningKeyPair,
) -> Dict[str, Any]:
    """Decrypt the configuration inside ``metadata`` and check it against the public summary."""
    block = secure_block_from_metadata(metadata)
    private_config = open_agent_config(block, asset_id, signing)
    validate_hybrid_data(metadata, private_config)
    return private_config


def serialize_metadata(metadata: Mapping[str, Any]) -> bytes:
    return json.dumps(metadata, indent=2, sort_keys=True).encode("utf-8")


def parse_metadata(data: Union[bytes, str]) -> Dict[str, Any]:
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
        raise MalformedBlock("Agent metadata is not valid JSON") from exc
    if not isinstance(obj, dict):
        raise MalformedBlock("Agent metadata must be a JSON object")
    return obj


def store_hybrid_metadata(store: BlobStore, metadata: Mapping[str, Any], name: Optional[str] = None) -> str:
    data = serialize_metadata(metadata)
    uri = store.upload(data, name)
    logger.info(f"• Stored agent metadata at {uri} (sha256 {sha256_hex(data)})")
    return uri


def fetch_hybrid_metadata(store: BlobStore, uri: str) -> Dict[str, Any]:
    metadata = parse_metadata(store.fetch(uri))
    secure_block_from_metadata(metadata)
    return metadata
