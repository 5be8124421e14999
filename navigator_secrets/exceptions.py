"""
Navigator Secrets exceptions.

Authentication and authorization failures all derive from ``AccessDenied``
so an outer layer can report them to untrusted callers with the same
public message, while logs and metrics still see the concrete type.
"""
from typing import Optional


class SecretsError(Exception):
    """Base class for every error raised by navigator_secrets."""


class CryptoError(SecretsError):
    """Ciphertext could not be decoded or decrypted."""


class PayloadError(SecretsError):
    """A decrypted credential claim does not match the expected shape."""


class StorageIOError(SecretsError):
    """Filesystem write, read or delete failed."""


class FileRejected(SecretsError):
    """Uploaded file violates the bucket configuration."""


class BucketNotEmpty(SecretsError):
    """A bucket holding assets cannot be deleted."""


# ---------------------------------------------------------------------------
# Signed token codec
# ---------------------------------------------------------------------------

class TokenError(SecretsError):
    """Base class for signed token codec failures."""


class MalformedError(TokenError):
    """Token structure or claims cannot be parsed."""


class SignatureError(TokenError):
    """Token signature does not match the supplied key."""


class ExpiredError(TokenError):
    """Token expiry claim is in the past, or a ttl is not positive."""


# ---------------------------------------------------------------------------
# Access denials
# ---------------------------------------------------------------------------

class AccessDenied(SecretsError):
    """Base class for authentication and authorization failures."""

    public_message = "access denied"

    @property
    def reason(self) -> str:
        return type(self).__name__


class NotFound(AccessDenied):
    """Secret, bucket or asset is absent or not owned by the caller."""

    def __init__(self, kind: str, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or f"{kind.capitalize()} not found")


class ExpiredSecret(AccessDenied):
    """Secret row exists but its expiry has passed."""


class InvalidToken(AccessDenied):
    """Token is malformed, undecryptable, expired or wrongly signed."""


class WrongBucket(AccessDenied):
    """Read token was issued for a different bucket than the asset's."""


class NoKeyOverlap(AccessDenied):
    """Read token tag keys share nothing with the asset's tag keys."""
