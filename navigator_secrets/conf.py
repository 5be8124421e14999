"""
Navigator Secrets Configuration — master key loading and validated settings.

Reads process-wide settings from environment variables:
    NAVIGATOR_MASTER_KEY = <key material used for credential encryption>
    NAVIGATOR_STORAGE_ROOT = <directory holding bucket assets>
    NAVIGATOR_TOKEN_ALGORITHM = HS256 | HS384 | HS512

Security Note:
    Never log key material. The master key is held as a ``SecretStr``
    so it does not leak through ``repr()`` of the config.
"""
import os
import secrets
import logging
import mimetypes
from pathlib import Path, PurePosixPath
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from .exceptions import FileRejected

logger = logging.getLogger("navigator.secrets")

MASTER_KEY_ENV = "NAVIGATOR_MASTER_KEY"
STORAGE_ROOT_ENV = "NAVIGATOR_STORAGE_ROOT"
TOKEN_ALGORITHM_ENV = "NAVIGATOR_TOKEN_ALGORITHM"

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
DEFAULT_READ_TOKEN_TTL = 30 * 24 * 3600  # 30 days
SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")


def load_master_key() -> str:
    """Load the master key from the NAVIGATOR_MASTER_KEY environment variable.

    Returns:
        Raw master key material.

    Raises:
        RuntimeError: If the variable is unset or empty.
    """
    value = os.environ.get(MASTER_KEY_ENV)
    if not value:
        raise RuntimeError(
            "No master key found in environment. "
            f"Set {MASTER_KEY_ENV}=<random key material>"
        )
    return value


def generate_master_key() -> str:
    """Generate random master key material (URL-safe, 32 random bytes).

    This is a utility for operators to generate new keys.
    """
    return secrets.token_urlsafe(32)


class BucketConfig(BaseModel):
    """Upload restrictions of a bucket.

    ``allowed_file_types`` of ``None`` means any type is accepted. Entries
    may be extensions (``.png`` or ``png``), MIME types (``image/png``) or
    MIME wildcards (``image/*``).
    """

    allowed_file_types: Optional[list[str]] = None
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)

    @field_validator("allowed_file_types")
    @classmethod
    def normalize_types(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        """Lowercase entries and drop blanks."""
        if v is None:
            return None
        return [t.strip().lower() for t in v if t and t.strip()]

    def accepts(self, filename: str, content_type: Optional[str] = None) -> bool:
        if self.allowed_file_types is None:
            return True
        extension = PurePosixPath(filename).suffix.lower()
        if content_type is None:
            content_type = mimetypes.guess_type(filename)[0]
        mime = (content_type or "").lower()
        for pattern in self.allowed_file_types:
            if "/" in pattern:
                if pattern.endswith("/*"):
                    if mime.startswith(pattern[:-1]):
                        return True
                elif mime == pattern:
                    return True
            else:
                wanted = pattern if pattern.startswith(".") else f".{pattern}"
                if extension == wanted:
                    return True
        return False

    def check(self, filename: str, size: int, content_type: Optional[str] = None) -> None:
        """Validate an upload against this configuration.

        Raises:
            FileRejected: If the file is too large or of a disallowed type.
        """
        if size > self.max_file_size:
            max_mb = round(self.max_file_size / (1024 * 1024), 2)
            raise FileRejected(
                f"File size exceeds maximum allowed size of {max_mb}MB"
            )
        if not self.accepts(filename, content_type):
            raise FileRejected(
                f"File type not allowed: {filename!r} ({content_type or 'unknown'})"
            )


class SecretsConfig(BaseModel):
    """Validated process-wide configuration."""

    master_key: SecretStr
    storage_root: Path = Field(default_factory=lambda: Path("storage"))
    token_algorithm: str = Field(default="HS256")
    read_token_ttl: int = Field(default=DEFAULT_READ_TOKEN_TTL, ge=1)
    signed_url_min_ttl: int = Field(default=60, ge=1)
    signed_url_max_ttl: int = Field(default=24 * 3600, ge=1)
    signed_url_default_ttl: int = Field(default=3600, ge=1)

    @field_validator("master_key")
    @classmethod
    def validate_master_key(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("master_key cannot be empty")
        return v

    @field_validator("token_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Only HMAC signing is supported."""
        v = v.upper()
        if v not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported token algorithm: {v}")
        return v

    @model_validator(mode="after")
    def validate_signed_url_window(self) -> "SecretsConfig":
        """Ensure min <= default <= max for signed URL lifetimes."""
        if not (
            self.signed_url_min_ttl
            <= self.signed_url_default_ttl
            <= self.signed_url_max_ttl
        ):
            raise ValueError(
                "signed URL ttl bounds must satisfy min <= default <= max "
                f"(got {self.signed_url_min_ttl}, {self.signed_url_default_ttl}, "
                f"{self.signed_url_max_ttl})"
            )
        return self

    @classmethod
    def from_env(cls) -> "SecretsConfig":
        """Create SecretsConfig by loading values from environment.

        Returns:
            Populated SecretsConfig instance.
        """
        master_key = load_master_key()
        storage_root = Path(os.environ.get(STORAGE_ROOT_ENV, "storage"))
        algorithm = os.environ.get(TOKEN_ALGORITHM_ENV, "HS256")
        logger.debug(
            "Loaded secrets config: storage_root=%s algorithm=%s",
            storage_root, algorithm,
        )
        return cls(
            master_key=master_key,
            storage_root=storage_root,
            token_algorithm=algorithm,
        )
