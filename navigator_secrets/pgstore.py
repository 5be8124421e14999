"""
PgStore — Store backed by an asyncpg-compatible connection pool.

Tables (schema ``navigator``):
    secrets(id, encrypted_value UNIQUE, expires_at, validation_uri, user_id,
            created_at, updated_at)
    buckets(id, name, user_id, config JSONB, created_at, updated_at)
    assets(id, name, size, ref, keys, bucket_id, content_type,
           created_at, updated_at)

Security Note:
    ``encrypted_value`` is lookup-mode ciphertext. Never log it.
"""
import logging
from datetime import datetime
from typing import Any, Optional

import orjson

from .exceptions import BucketNotEmpty
from .models import Asset, Bucket, Secret
from .store import Store

logger = logging.getLogger("navigator.secrets")

# SQL statements
_SELECT_SECRET = """
SELECT id, encrypted_value, expires_at, validation_uri, user_id, created_at, updated_at
FROM navigator.secrets
WHERE id = $1
"""

_SELECT_SECRET_BY_VALUE = """
SELECT id, encrypted_value, expires_at, validation_uri, user_id, created_at, updated_at
FROM navigator.secrets
WHERE encrypted_value = $1
"""

_SELECT_USER_SECRETS = """
SELECT id, encrypted_value, expires_at, validation_uri, user_id, created_at, updated_at
FROM navigator.secrets
WHERE user_id = $1
ORDER BY created_at DESC
"""

_INSERT_SECRET = """
INSERT INTO navigator.secrets
    (id, encrypted_value, expires_at, validation_uri, user_id, created_at, updated_at)
VALUES ($1, $2, $3, $4, $5, $6, $7)
"""

_DELETE_SECRET = """
DELETE FROM navigator.secrets WHERE id = $1
"""

_DELETE_EXPIRED_SECRETS = """
DELETE FROM navigator.secrets
WHERE user_id = $1 AND expires_at IS NOT NULL AND expires_at < $2
"""

_SELECT_BUCKET = """
SELECT id, name, user_id, config, created_at, updated_at
FROM navigator.buckets
WHERE id = $1 AND user_id = $2
"""

_INSERT_BUCKET = """
INSERT INTO navigator.buckets (id, name, user_id, config, created_at, updated_at)
VALUES ($1, $2, $3, $4::jsonb, $5, $6)
"""

_COUNT_BUCKET_ASSETS = """
SELECT count(*) FROM navigator.assets WHERE bucket_id = $1
"""

_DELETE_BUCKET = """
DELETE FROM navigator.buckets WHERE id = $1
"""

_SELECT_ASSET = """
SELECT id, name, size, ref, keys, bucket_id, content_type, created_at, updated_at
FROM navigator.assets
WHERE id = $1
"""

_SELECT_BUCKET_ASSETS = """
SELECT id, name, size, ref, keys, bucket_id, content_type, created_at, updated_at
FROM navigator.assets
WHERE bucket_id = $1
ORDER BY created_at DESC
"""

_INSERT_ASSET = """
INSERT INTO navigator.assets
    (id, name, size, ref, keys, bucket_id, content_type, created_at, updated_at)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
"""

_DELETE_ASSET = """
DELETE FROM navigator.assets WHERE id = $1
"""


def _affected(status: str) -> int:
    """Row count from a command status tag such as ``DELETE 3``."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


def _bucket_from_row(row: Any) -> Bucket:
    data = dict(row)
    config = data.get("config")
    if isinstance(config, (str, bytes)):
        data["config"] = orjson.loads(config)
    elif config is None:
        data.pop("config", None)
    return Bucket.model_validate(data)


class PgStore(Store):
    """Store implementation over an asyncpg-compatible pool.

    Args:
        db_pool: Pool exposing ``acquire()`` as an async context manager
            whose connection has ``fetch``, ``fetchrow``, ``fetchval``,
            ``execute`` and ``transaction``.
    """

    def __init__(self, db_pool: Any):
        self._db = db_pool

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    async def get_secret(self, secret_id: str, user_id: Optional[str] = None) -> Optional[Secret]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_SECRET, secret_id)
        if row is None:
            return None
        secret = Secret.model_validate(dict(row))
        if user_id is not None and secret.user_id != user_id:
            return None
        return secret

    async def find_secret_by_value(self, encrypted_value: str) -> Optional[Secret]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_SECRET_BY_VALUE, encrypted_value)
        return Secret.model_validate(dict(row)) if row is not None else None

    async def create_secret(self, secret: Secret) -> Secret:
        async with self._db.acquire() as conn:
            await conn.execute(
                _INSERT_SECRET,
                secret.id, secret.encrypted_value, secret.expires_at,
                secret.validation_uri, secret.user_id,
                secret.created_at, secret.updated_at,
            )
        logger.debug("Secret stored: id=%s user=%s", secret.id, secret.user_id)
        return secret

    async def delete_secret(self, secret_id: str) -> bool:
        async with self._db.acquire() as conn:
            status = await conn.execute(_DELETE_SECRET, secret_id)
        return _affected(status) > 0

    async def delete_expired_secrets(self, user_id: str, now: datetime) -> int:
        async with self._db.acquire() as conn:
            status = await conn.execute(_DELETE_EXPIRED_SECRETS, user_id, now)
        return _affected(status)

    async def list_secrets(self, user_id: str) -> list[Secret]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_USER_SECRETS, user_id)
        return [Secret.model_validate(dict(row)) for row in rows]

    # ------------------------------------------------------------------
    # Buckets
    # ------------------------------------------------------------------

    async def get_bucket(self, bucket_id: str, owner_id: str) -> Optional[Bucket]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_BUCKET, bucket_id, owner_id)
        return _bucket_from_row(row) if row is not None else None

    async def create_bucket(self, bucket: Bucket) -> Bucket:
        config = orjson.dumps(bucket.config.model_dump()).decode("utf-8")
        async with self._db.acquire() as conn:
            await conn.execute(
                _INSERT_BUCKET,
                bucket.id, bucket.name, bucket.user_id, config,
                bucket.created_at, bucket.updated_at,
            )
        return bucket

    async def delete_bucket(self, bucket_id: str) -> bool:
        async with self._db.acquire() as conn:
            tx = conn.transaction()
            await tx.start()
            try:
                count = await conn.fetchval(_COUNT_BUCKET_ASSETS, bucket_id)
                if count:
                    raise BucketNotEmpty(
                        "Cannot delete bucket with assets. Delete all assets first."
                    )
                status = await conn.execute(_DELETE_BUCKET, bucket_id)
                await tx.commit()
            except Exception:
                await tx.rollback()
                raise
        return _affected(status) > 0

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def get_asset(self, asset_id: str, bucket_id: Optional[str] = None) -> Optional[Asset]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_ASSET, asset_id)
        if row is None:
            return None
        asset = Asset.model_validate(dict(row))
        if bucket_id is not None and asset.bucket_id != bucket_id:
            return None
        return asset

    async def create_asset(self, asset: Asset) -> Asset:
        async with self._db.acquire() as conn:
            await conn.execute(
                _INSERT_ASSET,
                asset.id, asset.name, asset.size, asset.ref, asset.keys,
                asset.bucket_id, asset.content_type,
                asset.created_at, asset.updated_at,
            )
        return asset

    async def delete_asset(self, asset_id: str) -> bool:
        async with self._db.acquire() as conn:
            status = await conn.execute(_DELETE_ASSET, asset_id)
        return _affected(status) > 0

    async def list_assets(self, bucket_id: str) -> list[Asset]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_BUCKET_ASSETS, bucket_id)
        return [Asset.model_validate(dict(row)) for row in rows]
