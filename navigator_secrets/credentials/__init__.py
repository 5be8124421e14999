"""Credentials — secret-derived read tokens and signed URLs.

Security Note (Threat Model):
    Credential payloads are sealed under the master key and signed with the
    issuing secret's raw value. Anyone holding the master key and a secret
    value can mint tokens for that secret; both must stay server-side.
"""

from .crypto import SecretCipher
from .gate import authorize
from .keeper import SecretKeeper
from .payloads import PayloadCodec, ReadTokenPayload, SignedUrlPayload
from .read_token import ReadTokenService
from .signed_url import SignedUrlService
from .tokens import TokenCodec, Untrusted, Verified

__all__ = [
    "SecretCipher",
    "authorize",
    "SecretKeeper",
    "PayloadCodec",
    "ReadTokenPayload",
    "SignedUrlPayload",
    "ReadTokenService",
    "SignedUrlService",
    "TokenCodec",
    "Untrusted",
    "Verified",
]
