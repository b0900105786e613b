"""Confidential multi-recipient configuration envelopes for Solana agent NFTs."""
from .access import (
    AccessOutcome,
    AccessResult,
    build_agent_config_block,
    build_secure_block,
    open_agent_config,
    open_secure_block,
    recipients_of,
    reencrypt_secure_block,
    test_access,
)
from .codec import SecureBlock, block_from_dict, block_to_dict, parse, serialize
from .errors import (
    AssetMismatch,
    DecryptionFailed,
    DuplicateRecipient,
    HybridDataMismatch,
    KeyConversionError,
    KeyUnsealFailed,
    MalformedBlock,
    NoRecipients,
    NotAuthorized,
    SecureBlockError,
    StorageError,
    UnsupportedAlgorithm,
    UnsupportedVersion,
    user_message,
)
from .metadata import (
    build_hybrid_metadata,
    extract_public_summary,
    fetch_hybrid_metadata,
    open_hybrid_metadata,
    sanitize_for_public,
    store_hybrid_metadata,
    validate_hybrid_data,
)
from .keys import (
    EncryptionKeyPair,
    SigningKeyPair,
    derive_encryption_keypair,
    generate_signing_keypair,
    load_solana_keypair,
    recipient_identity,
    signing_keypair_from_secret,
)

__version__ = "1.0.0"
