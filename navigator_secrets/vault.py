"""
AssetVault — public API wiring secrets, credentials and asset storage.

- ``create_secret`` / ``get_secret`` / ``list_secrets`` / ``delete_secret``
  / ``delete_expired_secrets`` — manage credential roots
- ``generate_read_token`` / ``verify_read_token`` — bucket + tag-key tokens
- ``generate_signed_url`` / ``verify_signed_url`` — single-asset tokens
- ``upload_asset`` / ``delete_asset`` — secret-authenticated asset writes
- ``serve_asset`` / ``serve_signed`` — verify-and-serve paths

Security Note:
    Every ``AccessDenied`` subclass raised here should reach untrusted
    callers as the same ``public_message``. Only ids and error types are
    logged, never secret values or tokens.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .conf import SecretsConfig
from .credentials.crypto import SecretCipher
from .credentials.gate import authorize
from .credentials.keeper import SecretKeeper
from .credentials.payloads import PayloadCodec, ReadTokenPayload
from .credentials.read_token import ReadTokenService
from .credentials.signed_url import SignedUrlService
from .credentials.tokens import TokenCodec, Verified, utcnow
from .exceptions import AccessDenied, NotFound
from .models import Asset, Bucket, Secret
from .storage import AssetStorage
from .store import Store

logger = logging.getLogger("navigator.secrets")


class AssetVault:
    """Credential issuance and asset access bound to one store.

    Args:
        config: Validated process configuration (master key, storage root).
        store: Persistence backend.
        clock: Optional zero-arg callable returning the current aware UTC
            datetime; defaults to wall-clock time.
    """

    def __init__(
        self,
        config: SecretsConfig,
        store: Store,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._config = config
        self._store = store
        self._clock = clock or utcnow
        cipher = SecretCipher(config.master_key.get_secret_value())
        codec = TokenCodec(config.token_algorithm, clock=self._clock)
        payloads = PayloadCodec(cipher)
        self.keeper = SecretKeeper(store, cipher, clock=self._clock)
        self.read_tokens = ReadTokenService(
            store, self.keeper, payloads, codec,
            default_ttl=config.read_token_ttl,
        )
        self.signed_urls = SignedUrlService(
            store, self.keeper, payloads, codec,
            min_ttl=config.signed_url_min_ttl,
            max_ttl=config.signed_url_max_ttl,
            default_ttl=config.signed_url_default_ttl,
        )
        self.storage = AssetStorage(config.storage_root, store)

    @classmethod
    def from_env(cls, store: Store) -> "AssetVault":
        """Build a vault from ``SecretsConfig.from_env()``."""
        return cls(SecretsConfig.from_env(), store)

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    async def create_secret(
        self,
        raw: str,
        user_id: str,
        expires_at: Optional[datetime] = None,
        validation_uri: Optional[str] = None,
    ) -> Secret:
        return await self.keeper.create(raw, user_id, expires_at, validation_uri)

    async def get_secret(self, secret_id: str, user_id: str) -> Secret:
        return await self.keeper.get(secret_id, user_id)

    async def list_secrets(self, user_id: str) -> list[Secret]:
        return await self.keeper.list_secrets(user_id)

    async def delete_secret(self, secret_id: str, user_id: str) -> None:
        await self.keeper.delete(secret_id, user_id)

    async def delete_expired_secrets(self, user_id: str) -> int:
        return await self.keeper.delete_expired(user_id)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def generate_read_token(self, raw_secret: str, bucket_id: str, keys: list[str]) -> str:
        return await self.read_tokens.issue(raw_secret, bucket_id, keys)

    async def verify_read_token(self, token: str) -> Verified[ReadTokenPayload]:
        return await self.read_tokens.verify(token)

    async def generate_signed_url(
        self,
        raw_secret: str,
        bucket_id: str,
        asset_id: str,
        expires_in: Optional[int] = None,
    ) -> str:
        return await self.signed_urls.issue(raw_secret, bucket_id, asset_id, expires_in)

    async def verify_signed_url(self, token: str) -> Asset:
        return await self.signed_urls.verify(token)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def _secret_bucket(self, raw_secret: str, bucket_id: str) -> Bucket:
        secret = await self.keeper.resolve(raw_secret)
        bucket = await self._store.get_bucket(bucket_id, secret.user_id)
        if bucket is None:
            raise NotFound("bucket", "Bucket not found or you don't have permission to access it")
        return bucket

    async def upload_asset(
        self,
        raw_secret: str,
        bucket_id: str,
        name: str,
        data: bytes,
        keys: Optional[list[str]] = None,
        content_type: Optional[str] = None,
    ) -> Asset:
        """Store a file in a bucket owned by the secret's owner."""
        bucket = await self._secret_bucket(raw_secret, bucket_id)
        return await self.storage.create_asset(bucket, name, data, keys, content_type)

    async def delete_asset(self, raw_secret: str, bucket_id: str, asset_id: str) -> Asset:
        """Delete an asset of a bucket owned by the secret's owner."""
        bucket = await self._secret_bucket(raw_secret, bucket_id)
        asset = await self._store.get_asset(asset_id, bucket.id)
        if asset is None:
            raise NotFound("asset")
        await self.storage.delete_asset(asset)
        return asset

    async def serve_asset(
        self,
        asset_id: str,
        read_token: Optional[str] = None,
    ) -> tuple[Asset, Path]:
        """Resolve an asset for serving, applying the tag-key gate.

        Assets without tag keys are served to anyone holding their id.

        Raises:
            AccessDenied: Any authentication or authorization failure.
        """
        asset = await self._store.get_asset(asset_id)
        if asset is None:
            raise NotFound("asset")
        verified = None
        if asset.keys is not None and read_token:
            verified = await self.read_tokens.verify(read_token)
        try:
            authorize(asset, verified)
        except AccessDenied as err:
            logger.info("Serve denied: asset=%s reason=%s", asset.id, err.reason)
            raise
        return asset, self.storage.full_path(asset.ref)

    async def serve_signed(self, token: str) -> tuple[Asset, Path]:
        """Resolve the asset named by a signed URL token for serving."""
        asset = await self.signed_urls.verify(token)
        return asset, self.storage.full_path(asset.ref)
