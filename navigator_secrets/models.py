"""Persistent records: Secret, Bucket and Asset."""
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .conf import BucketConfig

KEY_SEPARATOR = "~"


def new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_tag_keys(keys: list[str]) -> list[str]:
    """Check tag keys are usable both as access labels and path segments.

    Raises:
        ValueError: If a key is empty or contains '~' or a path separator.
    """
    for key in keys:
        if not key:
            raise ValueError("Tag key cannot be empty")
        if KEY_SEPARATOR in key or "/" in key or "\\" in key:
            raise ValueError(f"Tag key cannot contain '~' or path separators: {key!r}")
        if key in (".", ".."):
            raise ValueError(f"Tag key cannot be {key!r}")
    return keys


def join_keys(keys: Optional[list[str]]) -> Optional[str]:
    if not keys:
        return None
    return KEY_SEPARATOR.join(validate_tag_keys(keys))


def split_keys(keys: Optional[str]) -> Optional[list[str]]:
    if keys is None:
        return None
    return keys.split(KEY_SEPARATOR)


class Secret(BaseModel):
    """A credential root. ``encrypted_value`` is the lookup-mode ciphertext."""

    id: str = Field(default_factory=new_id)
    encrypted_value: str
    expires_at: Optional[datetime] = None
    validation_uri: Optional[str] = None
    user_id: str
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    model_config = {"frozen": True}

    @field_validator("expires_at")
    @classmethod
    def _expiry_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now


class Bucket(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1, max_length=100)
    user_id: str
    config: BucketConfig = Field(default_factory=BucketConfig)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Asset(BaseModel):
    """A stored file. ``keys`` is the tilde-joined tag key list or None."""

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1, max_length=255)
    size: int = Field(ge=0)
    ref: str
    keys: Optional[str] = None
    bucket_id: str
    content_type: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def tag_keys(self) -> Optional[list[str]]:
        return split_keys(self.keys)
