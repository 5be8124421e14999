"""
Signed URLs — single-asset credentials derived from a secret.

Same decode-then-verify pipeline as read tokens, but the payload only names
an asset and the issuing secret. The lifetime is chosen by the caller
within configured bounds and does not follow the secret's expiry; the
secret is still refetched and expiry-checked on every verification.
"""
import logging
from typing import Optional

from ..exceptions import InvalidToken, MalformedError, NotFound, PayloadError, TokenError
from ..models import Asset
from ..store import Store
from .keeper import SecretKeeper
from .payloads import PayloadCodec, SignedUrlPayload
from .tokens import TokenCodec

logger = logging.getLogger("navigator.secrets")


class SignedUrlService:
    """Issue and verify signed URL tokens.

    Args:
        store: Persistence backend (bucket and asset lookups).
        keeper: Secret lookups.
        payloads: Payload sealing.
        codec: Signed token codec.
        min_ttl: Shortest allowed lifetime in seconds.
        max_ttl: Longest allowed lifetime in seconds.
        default_ttl: Lifetime used when the caller does not pick one.
    """

    def __init__(
        self,
        store: Store,
        keeper: SecretKeeper,
        payloads: PayloadCodec,
        codec: TokenCodec,
        min_ttl: int = 60,
        max_ttl: int = 24 * 3600,
        default_ttl: int = 3600,
    ):
        self._store = store
        self._keeper = keeper
        self._payloads = payloads
        self._codec = codec
        self.min_ttl = min_ttl
        self.max_ttl = max_ttl
        self.default_ttl = default_ttl

    async def issue(
        self,
        raw_secret: str,
        bucket_id: str,
        asset_id: str,
        expires_in: Optional[int] = None,
    ) -> str:
        """Derive a signed URL token for one asset.

        Args:
            raw_secret: Raw secret value presented by the caller.
            bucket_id: Bucket that must contain the asset.
            asset_id: Asset the token grants access to.
            expires_in: Lifetime in seconds, within [min_ttl, max_ttl].

        Raises:
            ValueError: ``expires_in`` out of bounds.
            NotFound: Unknown secret, bucket not owned by the secret's owner,
                or asset not in that bucket.
            ExpiredSecret: The secret has expired.
        """
        ttl = self.default_ttl if expires_in is None else int(expires_in)
        if not self.min_ttl <= ttl <= self.max_ttl:
            raise ValueError(
                f"Signed URL lifetime must be between {self.min_ttl} and "
                f"{self.max_ttl} seconds, got {ttl}"
            )
        secret = await self._keeper.resolve(raw_secret)
        if await self._store.get_bucket(bucket_id, secret.user_id) is None:
            raise NotFound("bucket")
        asset = await self._store.get_asset(asset_id, bucket_id)
        if asset is None:
            raise NotFound("asset")

        payload = SignedUrlPayload(asset_id=asset.id, secret_id=secret.id)
        token = self._codec.sign(
            self._payloads.encode(payload), self._keeper.reveal(secret), ttl,
        )
        logger.debug(
            "Signed URL issued: secret=%s asset=%s ttl=%ss",
            secret.id, asset.id, ttl,
        )
        return token

    async def verify(self, token: str) -> Asset:
        """Verify a signed URL token and return the asset it grants.

        Raises:
            InvalidToken: Malformed, undecryptable, expired or wrongly
                signed token.
            NotFound: Secret, asset or owning bucket no longer resolves.
            ExpiredSecret: The issuing secret has expired.
        """
        try:
            claim = self._codec.decode_unverified(token).map(self._payloads.decode_signed).value
        except (MalformedError, PayloadError) as err:
            raise InvalidToken("Invalid signed URL") from err

        secret = await self._keeper.get(claim.secret_id)
        try:
            verified = self._codec.verify(token, self._keeper.reveal(secret))
            payload = verified.map(self._payloads.decode_signed).value
        except (TokenError, PayloadError) as err:
            logger.info("Signed URL rejected: secret=%s (%s)", secret.id, type(err).__name__)
            raise InvalidToken("Invalid signed URL") from err

        asset = await self._store.get_asset(payload.asset_id)
        if asset is None:
            raise NotFound("asset")
        if await self._store.get_bucket(asset.bucket_id, secret.user_id) is None:
            raise NotFound("bucket")
        return asset
