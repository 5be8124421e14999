"""
Store — persistence interface for secrets, buckets and assets.

Lookups return ``None`` when a row is absent; callers translate that into
``NotFound``. Row operations are atomic per row; nothing here spans rows.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .exceptions import BucketNotEmpty
from .models import Asset, Bucket, Secret


class Store(ABC):
    """Abstract persistence backend."""

    # Secrets
    @abstractmethod
    async def get_secret(self, secret_id: str, user_id: Optional[str] = None) -> Optional[Secret]:
        ...

    @abstractmethod
    async def find_secret_by_value(self, encrypted_value: str) -> Optional[Secret]:
        ...

    @abstractmethod
    async def create_secret(self, secret: Secret) -> Secret:
        ...

    @abstractmethod
    async def delete_secret(self, secret_id: str) -> bool:
        ...

    @abstractmethod
    async def delete_expired_secrets(self, user_id: str, now: datetime) -> int:
        ...

    @abstractmethod
    async def list_secrets(self, user_id: str) -> list[Secret]:
        ...

    # Buckets
    @abstractmethod
    async def get_bucket(self, bucket_id: str, owner_id: str) -> Optional[Bucket]:
        ...

    @abstractmethod
    async def create_bucket(self, bucket: Bucket) -> Bucket:
        ...

    @abstractmethod
    async def delete_bucket(self, bucket_id: str) -> bool:
        ...

    # Assets
    @abstractmethod
    async def get_asset(self, asset_id: str, bucket_id: Optional[str] = None) -> Optional[Asset]:
        ...

    @abstractmethod
    async def create_asset(self, asset: Asset) -> Asset:
        ...

    @abstractmethod
    async def delete_asset(self, asset_id: str) -> bool:
        ...

    @abstractmethod
    async def list_assets(self, bucket_id: str) -> list[Asset]:
        ...


class MemoryStore(Store):
    """Dict-backed store, for tests and single-process use."""

    def __init__(self):
        self._secrets: dict[str, Secret] = {}
        self._buckets: dict[str, Bucket] = {}
        self._assets: dict[str, Asset] = {}

    async def get_secret(self, secret_id: str, user_id: Optional[str] = None) -> Optional[Secret]:
        secret = self._secrets.get(secret_id)
        if secret is None or (user_id is not None and secret.user_id != user_id):
            return None
        return secret

    async def find_secret_by_value(self, encrypted_value: str) -> Optional[Secret]:
        for secret in self._secrets.values():
            if secret.encrypted_value == encrypted_value:
                return secret
        return None

    async def create_secret(self, secret: Secret) -> Secret:
        self._secrets[secret.id] = secret
        return secret

    async def delete_secret(self, secret_id: str) -> bool:
        return self._secrets.pop(secret_id, None) is not None

    async def delete_expired_secrets(self, user_id: str, now: datetime) -> int:
        expired = [
            s.id for s in self._secrets.values()
            if s.user_id == user_id and s.is_expired(now)
        ]
        for secret_id in expired:
            del self._secrets[secret_id]
        return len(expired)

    async def list_secrets(self, user_id: str) -> list[Secret]:
        secrets = [s for s in self._secrets.values() if s.user_id == user_id]
        return sorted(secrets, key=lambda s: s.created_at, reverse=True)

    async def get_bucket(self, bucket_id: str, owner_id: str) -> Optional[Bucket]:
        bucket = self._buckets.get(bucket_id)
        if bucket is None or bucket.user_id != owner_id:
            return None
        return bucket

    async def create_bucket(self, bucket: Bucket) -> Bucket:
        self._buckets[bucket.id] = bucket
        return bucket

    async def delete_bucket(self, bucket_id: str) -> bool:
        if any(a.bucket_id == bucket_id for a in self._assets.values()):
            raise BucketNotEmpty(
                "Cannot delete bucket with assets. Delete all assets first."
            )
        return self._buckets.pop(bucket_id, None) is not None

    async def get_asset(self, asset_id: str, bucket_id: Optional[str] = None) -> Optional[Asset]:
        asset = self._assets.get(asset_id)
        if asset is None or (bucket_id is not None and asset.bucket_id != bucket_id):
            return None
        return asset

    async def create_asset(self, asset: Asset) -> Asset:
        self._assets[asset.id] = asset
        return asset

    async def delete_asset(self, asset_id: str) -> bool:
        return self._assets.pop(asset_id, None) is not None

    async def list_assets(self, bucket_id: str) -> list[Asset]:
        assets = [a for a in self._assets.values() if a.bucket_id == bucket_id]
        return sorted(assets, key=lambda a: a.created_at, reverse=True)
