"""
Read tokens — bucket and tag-key scoped credentials derived from a secret.

Issuance seals a ``ReadTokenPayload`` under the master key and signs it
with the issuing secret's raw value. Verification decodes without trust to
learn the secret id, refetches that secret (so deleting or expiring it voids
the token), then checks the signature with the refetched secret's value.
"""
import logging
from collections.abc import Iterable

from ..exceptions import InvalidToken, MalformedError, NotFound, PayloadError, TokenError
from ..models import validate_tag_keys
from ..store import Store
from .keeper import SecretKeeper
from .payloads import PayloadCodec, ReadTokenPayload
from .tokens import TokenCodec, Verified, ttl_until

logger = logging.getLogger("navigator.secrets")

DEFAULT_TTL = 30 * 24 * 3600  # 30 days, for secrets that never expire


class ReadTokenService:
    """Issue and verify read tokens.

    Args:
        store: Persistence backend (bucket ownership checks).
        keeper: Secret lookups.
        payloads: Payload sealing.
        codec: Signed token codec; its clock is used for all expiry math.
        default_ttl: Lifetime in seconds for tokens of non-expiring secrets.
    """

    def __init__(
        self,
        store: Store,
        keeper: SecretKeeper,
        payloads: PayloadCodec,
        codec: TokenCodec,
        default_ttl: int = DEFAULT_TTL,
    ):
        self._store = store
        self._keeper = keeper
        self._payloads = payloads
        self._codec = codec
        self._default_ttl = default_ttl

    async def _owned_bucket(self, bucket_id: str, user_id: str) -> None:
        if await self._store.get_bucket(bucket_id, user_id) is None:
            raise NotFound("bucket")

    async def issue(self, raw_secret: str, bucket_id: str, keys: Iterable[str]) -> str:
        """Derive a read token for ``bucket_id`` limited to ``keys``.

        Args:
            raw_secret: Raw secret value presented by the caller.
            bucket_id: Bucket the token grants access to.
            keys: One or more tag keys.

        Returns:
            Signed token string.

        Raises:
            ValueError: No tag keys, or an invalid one.
            NotFound: Unknown secret, or bucket not owned by the secret's owner.
            ExpiredSecret: The secret has expired.
        """
        keys = validate_tag_keys(list(keys))
        if not keys:
            raise ValueError("At least one key is required")
        secret = await self._keeper.resolve(raw_secret)
        await self._owned_bucket(bucket_id, secret.user_id)

        now = self._codec.now()
        payload = ReadTokenPayload(
            secret_id=secret.id,
            user_id=secret.user_id,
            validation_uri=secret.validation_uri,
            expire_at=secret.expires_at,
            permission="read",
            bucket_id=bucket_id,
            keys=keys,
            issued_at=now,
        )
        if secret.expires_at is not None:
            ttl = ttl_until(secret.expires_at, now)
        else:
            ttl = self._default_ttl
        token = self._codec.sign(
            self._payloads.encode(payload), self._keeper.reveal(secret), ttl,
        )
        logger.debug(
            "Read token issued: secret=%s bucket=%s ttl=%ss",
            secret.id, bucket_id, ttl,
        )
        return token

    async def verify(self, token: str) -> Verified[ReadTokenPayload]:
        """Verify a read token and return its trusted payload.

        Raises:
            InvalidToken: Malformed, undecryptable, expired or wrongly
                signed token. The cause is not distinguished.
            NotFound: Secret deleted, or bucket no longer owned by its owner.
            ExpiredSecret: The issuing secret has expired.
        """
        try:
            claim = self._codec.decode_unverified(token).map(self._payloads.decode_read).value
        except (MalformedError, PayloadError) as err:
            raise InvalidToken("Invalid read token") from err

        secret = await self._keeper.get(claim.secret_id, claim.user_id)
        try:
            verified = self._codec.verify(token, self._keeper.reveal(secret))
            result = verified.map(self._payloads.decode_read)
        except (TokenError, PayloadError) as err:
            logger.info("Read token rejected: secret=%s (%s)", secret.id, type(err).__name__)
            raise InvalidToken("Invalid read token") from err

        await self._owned_bucket(result.value.bucket_id, secret.user_id)
        return result

