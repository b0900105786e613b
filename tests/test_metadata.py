import copy

import pytest

from agent_vault.codec import block_to_dict
from agent_vault.errors import HybridDataMismatch, MalformedBlock, NotAuthorized
from agent_vault.metadata import (
    build_hybrid_metadata,
    extract_public_summary,
    fetch_hybrid_metadata,
    open_hybrid_metadata,
    parse_metadata,
    sanitize_for_public,
    secure_block_from_metadata,
    serialize_metadata,
    store_hybrid_metadata,
    validate_hybrid_data,
)
from agent_vault.storage import MemoryBlobStore

AGENT = {
    "name": "Bot",
    "description": "Trades on Jupiter",
    "purpose": "trading",
    "framework": "elizaOS",
    "capabilities": [
        {"type": "trading", "name": "swap", "config": {"apiKey": "sk-secret", "endpoint": "https://rpc"}},
    ],
    "preferences": {"risk": "low"},
    "apiKeys": {"jupiter": "sk-secret"},
}


@pytest.fixture
def metadata(owner, protocol, asset_id):
    return build_hybrid_metadata(AGENT, asset_id, owner, protocol, based_on={"name": "Mad Lad #1", "collection": "Mad Lads"})


def test_metadata_layout(metadata, owner, protocol, asset_id):
    assert metadata["name"] == "Bot Agent"
    assert metadata["public"]["name"] == "Bot"
    assert metadata["public"]["type"] == "AI Agent"
    assert metadata["based_on"] == {"name": "Mad Lad #1", "collection": "Mad Lads", "mint": asset_id}
    assert {"trait_type": "Based On", "value": "Mad Lad #1"} in metadata["attributes"]
    assert sorted(metadata["secure"]["keyring"]) == sorted([owner.identity, protocol.identity])
    assert metadata["secure"]["ad"] == f"mint:{asset_id}"


def test_secrets_stay_out_of_the_public_part(metadata):
    public_part = {k: v for k, v in metadata.items() if k != "secure"}
    assert "sk-secret" not in serialize_metadata(public_part).decode()
    assert "sk-secret" not in serialize_metadata(metadata).decode()


def test_both_wallets_open_the_configuration(metadata, owner, protocol, stranger, asset_id):
    assert open_hybrid_metadata(metadata, asset_id, owner) == AGENT
    assert open_hybrid_metadata(metadata, asset_id, protocol) == AGENT
    with pytest.raises(NotAuthorized):
        open_hybrid_metadata(metadata, asset_id, stranger)


def test_round_trip_through_blob_store(metadata, owner, asset_id):
    store = MemoryBlobStore()
    uri = store_hybrid_metadata(store, metadata)
    fetched = fetch_hybrid_metadata(store, uri)
    assert fetched == metadata
    assert secure_block_from_metadata(fetched) == secure_block_from_metadata(metadata)
    assert open_hybrid_metadata(fetched, asset_id, owner) == AGENT


def test_renamed_public_summary_is_detected(metadata, owner, asset_id):
    tampered = copy.deepcopy(metadata)
    tampered["public"]["name"] = "Impostor"
    with pytest.raises(HybridDataMismatch):
        open_hybrid_metadata(tampered, asset_id, owner)


def test_framework_mismatch_is_detected(metadata):
    with pytest.raises(HybridDataMismatch):
        validate_hybrid_data(metadata, dict(AGENT, framework="langchain"))


def test_empty_keyring_is_rejected(metadata):
    tampered = copy.deepcopy(metadata)
    tampered["secure"]["keyring"] = {}
    with pytest.raises(HybridDataMismatch):
        validate_hybrid_data(tampered, AGENT)
    with pytest.raises(MalformedBlock):
        secure_block_from_metadata(tampered)


def test_missing_public_summary_is_rejected(metadata):
    tampered = {k: v for k, v in metadata.items() if k != "public"}
    with pytest.raises(HybridDataMismatch):
        validate_hybrid_data(tampered, AGENT)


def test_consistent_data_validates(metadata):
    validate_hybrid_data(metadata, AGENT)


@pytest.mark.parametrize("data", [b"not json", b"[1]", b"[" * 100000 + b"]" * 100000])
def test_parse_metadata_rejects_garbage(data):
    with pytest.raises(MalformedBlock):
        parse_metadata(data)


def test_fetch_requires_secure_section():
    store = MemoryBlobStore()
    uri = store.upload(b'{"name": "Bot Agent"}')
    with pytest.raises(MalformedBlock):
        fetch_hybrid_metadata(store, uri)


def test_agent_without_name_is_rejected(owner, asset_id):
    with pytest.raises(ValueError):
        build_hybrid_metadata({"purpose": "trading"}, asset_id, owner)


def test_public_summary():
    summary = extract_public_summary({"name": "Bot"}, created="2024-01-01T00:00:00+00:00")
    assert summary == {"name": "Bot", "type": "AI Agent", "framework": "elizaOS", "created": "2024-01-01T00:00:00+00:00"}


def test_sanitize_strips_capability_config():
    public = sanitize_for_public(AGENT)
    assert "apiKeys" not in public
    assert public["capabilities"] == [{"type": "trading", "name": "swap", "config": {}}]
    assert public["preferences"] == {"risk": "low"}
    assert AGENT["capabilities"][0]["config"]["apiKey"] == "sk-secret"


def test_secure_section_matches_block_dict(metadata):
    assert block_to_dict(secure_block_from_metadata(metadata)) == metadata["secure"]
