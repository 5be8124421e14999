"""Navigator Secrets.

Long-lived secrets that derive scoped read tokens and signed URLs for
bucket assets.
"""
from .version import __version__
from .conf import BucketConfig, SecretsConfig, generate_master_key
from .models import Asset, Bucket, Secret
from .store import MemoryStore, Store
from .storage import AssetStorage, build_path
from .vault import AssetVault

__all__ = [
    "__version__",
    "AssetVault",
    "AssetStorage",
    "build_path",
    "BucketConfig",
    "SecretsConfig",
    "generate_master_key",
    "Asset",
    "Bucket",
    "Secret",
    "MemoryStore",
    "Store",
]
