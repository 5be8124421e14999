"""
Signed Token Codec — compact HMAC-signed tokens carrying one opaque claim.

Wire format is a JWT (``header.claims.signature``) with claims:
    dat: opaque string (a sealed credential payload)
    iat: issuance time, seconds since epoch
    exp: expiry time, seconds since epoch

Decoding happens in two steps. ``decode_unverified`` parses the token
without checking the signature and returns an ``Untrusted`` value, which
is only good for learning which key to verify with. ``verify`` checks the
signature and expiry and returns a ``Verified`` value. Authorization code
accepts ``Verified`` only.
"""
import math
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generic, Optional, TypeVar, Union

import jwt

from ..exceptions import ExpiredError, MalformedError, SignatureError

logger = logging.getLogger("navigator.secrets")

T = TypeVar("T")
U = TypeVar("U")

CLAIM_KEY = "dat"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ttl_until(expiry: datetime, now: datetime) -> int:
    """Whole seconds remaining until ``expiry`` (floored, may be <= 0)."""
    return math.floor((expiry - now).total_seconds())


def _from_epoch(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass(frozen=True)
class Untrusted(Generic[T]):
    """Token content read without signature verification."""

    value: T
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    def map(self, fn: Callable[[T], U]) -> "Untrusted[U]":
        return replace(self, value=fn(self.value))


@dataclass(frozen=True)
class Verified(Generic[T]):
    """Token content whose signature and expiry have been checked."""

    value: T
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    def map(self, fn: Callable[[T], U]) -> "Verified[U]":
        return replace(self, value=fn(self.value))


class TokenCodec:
    """Sign and decode compact HMAC tokens.

    Args:
        algorithm: HMAC JWT algorithm (HS256, HS384 or HS512).
        clock: Zero-arg callable returning the current aware UTC datetime.
            Expiry is always judged against this clock.
    """

    def __init__(self, algorithm: str = "HS256", clock: Optional[Clock] = None):
        self.algorithm = algorithm
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    def sign(self, claim: str, key: str, ttl: Union[int, timedelta]) -> str:
        """Sign ``claim`` with ``key``, valid for ``ttl``.

        Args:
            claim: Opaque claim string.
            key: HMAC key material.
            ttl: Lifetime as seconds or a timedelta.

        Raises:
            ExpiredError: If ``ttl`` is not positive.
        """
        if isinstance(ttl, timedelta):
            ttl = math.floor(ttl.total_seconds())
        if ttl <= 0:
            raise ExpiredError(f"Token ttl must be positive, got {ttl}s")
        issued = int(self.now().timestamp())
        claims = {CLAIM_KEY: claim, "iat": issued, "exp": issued + ttl}
        return jwt.encode(claims, key, algorithm=self.algorithm)

    def _to_claims(self, payload: dict) -> tuple[str, Optional[datetime], Optional[datetime]]:
        claim = payload.get(CLAIM_KEY)
        if not isinstance(claim, str):
            raise MalformedError(f"Token has no {CLAIM_KEY!r} claim")
        try:
            return claim, _from_epoch(payload.get("iat")), _from_epoch(payload.get("exp"))
        except (TypeError, ValueError, OverflowError, OSError) as err:
            raise MalformedError("Token time claims are invalid") from err

    def decode_unverified(self, token: str) -> Untrusted[str]:
        """Parse a token without checking its signature.

        Raises:
            MalformedError: If the token cannot be parsed.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as err:
            raise MalformedError("Token cannot be decoded") from err
        claim, issued, expires = self._to_claims(payload)
        return Untrusted(claim, issued_at=issued, expires_at=expires)

    def verify(self, token: str, key: str) -> Verified[str]:
        """Check signature and expiry of ``token`` against ``key``.

        Raises:
            SignatureError: Signature mismatch.
            ExpiredError: ``exp`` is not in the future.
            MalformedError: Token cannot be parsed or lacks ``exp``.
        """
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["exp"],
                },
            )
        except jwt.InvalidSignatureError as err:
            raise SignatureError("Token signature mismatch") from err
        except jwt.InvalidTokenError as err:
            raise MalformedError("Token cannot be decoded") from err
        claim, issued, expires = self._to_claims(payload)
        if expires is None or expires <= self.now():
            raise ExpiredError("Token has expired")
        return Verified(claim, issued_at=issued, expires_at=expires)
