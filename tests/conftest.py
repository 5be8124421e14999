"""
Shared fixtures for navigator_secrets tests.

Time is driven by ``FixedClock`` so token and secret expiry can be tested
without sleeping.
"""
from datetime import datetime, timedelta, timezone

import pytest

from navigator_secrets.conf import SecretsConfig
from navigator_secrets.credentials.crypto import SecretCipher
from navigator_secrets.credentials.keeper import SecretKeeper
from navigator_secrets.credentials.payloads import PayloadCodec
from navigator_secrets.credentials.read_token import ReadTokenService
from navigator_secrets.credentials.signed_url import SignedUrlService
from navigator_secrets.credentials.tokens import TokenCodec
from navigator_secrets.models import Bucket
from navigator_secrets.storage import AssetStorage
from navigator_secrets.store import MemoryStore
from navigator_secrets.vault import AssetVault

MASTER_KEY = "test-master-key-material-0123456789abcdef"
RAW_SECRET = "sk_test_7f3c9a1e5b2d4f6a8c0e1b3d5f7a9c2e4b6d8f0a"
OTHER_SECRET = "sk_test_0a9b8c7d6e5f4a3b2c1d0e9f8a7b6c5d4e3f2a1b"
OWNER = "user-1"
STRANGER = "user-2"


class FixedClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cipher():
    return SecretCipher(MASTER_KEY)


@pytest.fixture
def codec(clock):
    return TokenCodec("HS256", clock=clock)


@pytest.fixture
def payloads(cipher):
    return PayloadCodec(cipher)


@pytest.fixture
def keeper(store, cipher, clock):
    return SecretKeeper(store, cipher, clock=clock)


@pytest.fixture
def read_tokens(store, keeper, payloads, codec):
    return ReadTokenService(store, keeper, payloads, codec)


@pytest.fixture
def signed_urls(store, keeper, payloads, codec):
    return SignedUrlService(store, keeper, payloads, codec)


@pytest.fixture
def storage(tmp_path, store):
    return AssetStorage(tmp_path / "storage", store)


@pytest.fixture
def config(tmp_path):
    return SecretsConfig(master_key=MASTER_KEY, storage_root=tmp_path / "storage")


@pytest.fixture
def vault(config, store, clock):
    return AssetVault(config, store, clock=clock)


@pytest.fixture
async def secret(keeper):
    """A non-expiring secret owned by OWNER."""
    return await keeper.create(RAW_SECRET, OWNER)


@pytest.fixture
async def bucket(store):
    """A bucket owned by OWNER."""
    return await store.create_bucket(Bucket(name="photos", user_id=OWNER))
