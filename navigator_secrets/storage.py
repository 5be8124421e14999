"""
AssetStorage — deterministic asset paths and the file/metadata write pair.

Layout under the storage root:
    {user_id}/{bucket_id}/{tag1}~{tag2}~...~{asset_id}{.ext}

The filesystem and the store share no transaction. Creation writes the file
first and persists the row second; if either step fails the file is removed
and the error is re-raised. The asset record is validated before any write.
Deletion removes the file, then the row. A crash between those two steps
leaves an orphaned row that only an out-of-band sweep can repair.
"""
import asyncio
import logging
from pathlib import Path, PurePosixPath
from collections.abc import Iterable
from typing import Optional, Union

from .exceptions import StorageIOError
from .models import KEY_SEPARATOR, Asset, Bucket, join_keys, new_id, validate_tag_keys
from .store import Store

logger = logging.getLogger("navigator.secrets")


def _segment(value: str, name: str) -> str:
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"Invalid {name} for a storage path: {value!r}")
    return value


def build_path(
    user_id: str,
    bucket_id: str,
    tag_keys: Optional[Iterable[str]],
    asset_id: str,
    extension: str = "",
) -> str:
    """Relative POSIX path of an asset file.

    >>> build_path("u1", "bkt1", ["tag1"], "ast1", ".png")
    'u1/bkt1/tag1~ast1.png'
    """
    keys = validate_tag_keys(list(tag_keys or []))
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    filename = KEY_SEPARATOR.join([*keys, _segment(asset_id, "asset id")]) + extension
    return str(PurePosixPath(_segment(user_id, "user id"), _segment(bucket_id, "bucket id"), filename))


class AssetStorage:
    """Owns every file below ``root``.

    Args:
        root: Storage root directory.
        store: Persistence backend for asset rows.
    """

    def __init__(self, root: Union[str, Path], store: Store):
        self.root = Path(root)
        self._store = store

    def full_path(self, ref: str) -> Path:
        """Absolute path of ``ref``; refuses refs that escape the root."""
        root = self.root.resolve()
        path = (root / ref).resolve()
        if not path.is_relative_to(root):
            raise StorageIOError(f"Asset reference escapes storage root: {ref!r}")
        return path

    def ensure_directory(self, user_id: str, bucket_id: str) -> Path:
        """Create ``root/user_id/bucket_id`` if missing. Idempotent."""
        directory = self.root / _segment(user_id, "user id") / _segment(bucket_id, "bucket id")
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise StorageIOError(f"Cannot create directory {directory}: {err}") from err
        return directory

    def _discard(self, path: Path) -> None:
        """Compensation for a failed file or metadata write. Never raises."""
        try:
            path.unlink(missing_ok=True)
        except OSError as err:
            logger.error("Failed to remove orphaned asset file %s: %s", path, err)

    async def create_asset(
        self,
        bucket: Bucket,
        name: str,
        data: bytes,
        keys: Optional[list[str]] = None,
        content_type: Optional[str] = None,
    ) -> Asset:
        """Store ``data`` as a new asset of ``bucket``.

        Not idempotent: every call creates a new asset id.

        Raises:
            FileRejected: Data violates the bucket configuration.
            ValueError: Invalid tag keys.
            ValidationError: Invalid asset name, raised before any write.
            StorageIOError: The file could not be written.
            Exception: Whatever the store raised while persisting the row,
                after the written file has been removed.
        """
        bucket.config.check(name, len(data), content_type)
        joined = join_keys(keys)
        asset_id = new_id()
        ref = build_path(
            bucket.user_id, bucket.id, keys, asset_id, PurePosixPath(name).suffix,
        )

        asset = Asset(
            id=asset_id,
            name=name,
            size=len(data),
            ref=ref,
            keys=joined,
            bucket_id=bucket.id,
            content_type=content_type,
        )

        self.ensure_directory(bucket.user_id, bucket.id)
        path = self.full_path(ref)
        try:
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as err:
            self._discard(path)
            raise StorageIOError(f"Cannot write asset file: {err}") from err

        try:
            await self._store.create_asset(asset)
        except Exception:
            self._discard(path)
            raise
        logger.debug("Asset stored: id=%s bucket=%s size=%d", asset.id, bucket.id, asset.size)
        return asset

    async def delete_asset(self, asset: Asset) -> None:
        """Remove the asset file (absent is fine), then its row.

        Raises:
            StorageIOError: The file exists but could not be removed.
        """
        path = self.full_path(asset.ref)
        try:
            path.unlink(missing_ok=True)
        except OSError as err:
            raise StorageIOError(f"Cannot delete asset file: {err}") from err
        await self._store.delete_asset(asset.id)
        logger.debug("Asset deleted: id=%s bucket=%s", asset.id, asset.bucket_id)

    async def read_bytes(self, asset: Asset) -> bytes:
        path = self.full_path(asset.ref)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as err:
            raise StorageIOError(f"Cannot read asset file: {err}") from err
