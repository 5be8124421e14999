"""
SecretKeeper — Secret lookup, creation and cleanup with expiry enforcement.

Raw secret values are stored as lookup-mode ciphertext under the master
key, so finding a secret by value is an equality match on ciphertext.
Every lookup that returns a secret checks its expiry first.

Security Note:
    Never log raw secret values or their ciphertext. Only ids.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError

from ..exceptions import ExpiredSecret, NotFound
from ..models import Secret, as_utc
from ..store import Store
from .crypto import SecretCipher
from .tokens import utcnow

logger = logging.getLogger("navigator.secrets")

_URL = TypeAdapter(AnyUrl)

# Raw values are the HMAC keys of their tokens; 32 bytes matches HS256.
MIN_SECRET_LENGTH = 32


class SecretKeeper:
    """Resolve stored secrets by id or raw value.

    Args:
        store: Persistence backend.
        cipher: Cipher keyed by the master key.
        clock: Zero-arg callable returning the current aware UTC datetime.
    """

    def __init__(
        self,
        store: Store,
        cipher: SecretCipher,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._cipher = cipher
        self._clock = clock or utcnow

    def check_expiry(self, secret: Secret) -> Secret:
        """Raise ``ExpiredSecret`` if the secret's expiry has passed."""
        if secret.is_expired(self._clock()):
            logger.info("Expired secret used: id=%s", secret.id)
            raise ExpiredSecret("Secret has expired")
        return secret

    def reveal(self, secret: Secret) -> str:
        """Return the raw secret value (the signing key of its tokens)."""
        return self._cipher.decrypt(secret.encrypted_value)

    async def create(
        self,
        raw: str,
        user_id: str,
        expires_at: Optional[datetime] = None,
        validation_uri: Optional[str] = None,
    ) -> Secret:
        """Encrypt and store a new secret.

        Raises:
            ValueError: Empty or short value, value already in use, expiry in
                the past or invalid validation URI. Naive expiries are UTC.
        """
        if not raw:
            raise ValueError("Secret is required")
        if len(raw.encode("utf-8")) < MIN_SECRET_LENGTH:
            raise ValueError(
                f"Secret must be at least {MIN_SECRET_LENGTH} bytes long"
            )
        if expires_at is not None:
            expires_at = as_utc(expires_at)
            if expires_at <= self._clock():
                raise ValueError("Secret expiry must be in the future")
        if validation_uri is not None:
            try:
                _URL.validate_python(validation_uri)
            except ValidationError as err:
                raise ValueError(f"Invalid validation URI: {validation_uri!r}") from err
        encrypted = self._cipher.encrypt(raw)
        if await self._store.find_secret_by_value(encrypted) is not None:
            raise ValueError("Secret value already in use")
        secret = Secret(
            encrypted_value=encrypted,
            expires_at=expires_at,
            validation_uri=validation_uri,
            user_id=user_id,
        )
        await self._store.create_secret(secret)
        logger.debug("Secret created: id=%s user=%s", secret.id, user_id)
        return secret

    async def get(self, secret_id: str, user_id: Optional[str] = None) -> Secret:
        """Fetch a secret by id, optionally scoped to its owner.

        Raises:
            NotFound: No such secret for this owner.
            ExpiredSecret: Secret exists but has expired.
        """
        secret = await self._store.get_secret(secret_id, user_id)
        if secret is None:
            raise NotFound("secret")
        return self.check_expiry(secret)

    async def resolve(self, raw: str) -> Secret:
        """Find the secret whose raw value is ``raw``.

        Raises:
            NotFound: No secret has this value.
            ExpiredSecret: Secret exists but has expired.
        """
        if not raw:
            raise NotFound("secret")
        secret = await self._store.find_secret_by_value(self._cipher.encrypt(raw))
        if secret is None:
            raise NotFound("secret")
        return self.check_expiry(secret)

    async def list_secrets(self, user_id: str) -> list[Secret]:
        return await self._store.list_secrets(user_id)

    async def delete(self, secret_id: str, user_id: str) -> None:
        """Delete one secret. Every token it issued stops verifying.

        Raises:
            NotFound: No such secret for this owner.
        """
        secret = await self._store.get_secret(secret_id, user_id)
        if secret is None:
            raise NotFound("secret")
        await self._store.delete_secret(secret.id)
        logger.debug("Secret deleted: id=%s user=%s", secret_id, user_id)

    async def delete_expired(self, user_id: str) -> int:
        """Delete every expired secret of ``user_id``; returns the count."""
        count = await self._store.delete_expired_secrets(user_id, self._clock())
        logger.info("Deleted %d expired secret(s) for user=%s", count, user_id)
        return count
