"""
Error taxonomy for secure block construction, parsing and opening.

Every failure in the envelope code is raised as a subclass of
SecureBlockError carrying a stable ``code`` string. Messages never contain
key material.
"""
from typing import Optional


class SecureBlockError(Exception):
    code = "INTERNAL_ERROR"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__ or self.code)


class KeyConversionError(SecureBlockError):
    """Signing key material could not be converted to an encryption key pair."""
    code = "KEY_DERIVATION_FAILED"


class BuildError(SecureBlockError):
    """Caller misuse while building a secure block."""
    code = "INVALID_ARGUMENT"


class NoRecipients(BuildError):
    """At least one recipient is required to build a secure block."""
    code = "NO_RECIPIENTS"


class DuplicateRecipient(BuildError):
    """Recipient appears more than once in the keyring."""
    code = "DUPLICATE_RECIPIENT"


class ParseError(SecureBlockError):
    """Serialized secure block could not be parsed."""
    code = "INVALID_ENCRYPTION_FORMAT"


class UnsupportedVersion(ParseError):
    """Secure block format version is not supported."""
    code = "UNSUPPORTED_ENCRYPTION_VERSION"


class UnsupportedAlgorithm(ParseError):
    """Secure block AEAD algorithm is not supported."""
    code = "UNSUPPORTED_ENCRYPTION_ALGORITHM"


class MalformedBlock(ParseError):
    """Secure block is missing fields or has badly shaped values."""
    code = "INVALID_ENCRYPTION_FORMAT"


class AssetMismatch(SecureBlockError):
    """Secure block is bound to a different asset."""
    code = "ASSET_MISMATCH"


class NotAuthorized(SecureBlockError):
    """Wallet is not a recipient of this secure block."""
    code = "NOT_AUTHORIZED"

    def __init__(self, identity: Optional[str] = None):
        message = None
        if identity:
            message = f"Not authorized: no sealed key for wallet {identity}"
        super().__init__(message)
        self.identity = identity


class IntegrityError(SecureBlockError):
    """Authenticity check failed."""
    code = "INTEGRITY_FAILURE"


class KeyUnsealFailed(IntegrityError):
    """Sealed content key could not be opened."""
    code = "KEY_UNSEAL_FAILED"


class DecryptionFailed(IntegrityError):
    """Ciphertext failed authentication."""
    code = "DECRYPTION_FAILED"


class HybridDataMismatch(SecureBlockError):
    """Public agent metadata does not match its encrypted configuration."""
    code = "CONFIG_VALIDATION_FAILED"


class StorageError(Exception):
    """Upload or fetch against a blob store failed."""
    code = "STORAGE_ERROR"


NOT_AUTHORIZED_MESSAGE = "You don't have access to this configuration"
UNAVAILABLE_MESSAGE = "Configuration is corrupted or unavailable"


def user_message(exc: BaseException) -> str:
    """Message safe to show in untrusted contexts."""
    if isinstance(exc, NotAuthorized):
        return NOT_AUTHORIZED_MESSAGE
    return UNAVAILABLE_MESSAGE
