"""
Tests for SecretsConfig, BucketConfig and environment loading.
"""
from pathlib import Path

import pytest
from pydantic import ValidationError

from navigator_secrets.conf import (
    DEFAULT_MAX_FILE_SIZE,
    BucketConfig,
    SecretsConfig,
    generate_master_key,
    load_master_key,
)
from navigator_secrets.exceptions import FileRejected


class TestBucketConfig:

    def test_defaults(self):
        config = BucketConfig()
        assert config.allowed_file_types is None
        assert config.max_file_size == DEFAULT_MAX_FILE_SIZE == 10 * 1024 * 1024

    def test_no_restriction(self):
        assert BucketConfig().accepts("anything.bin", "application/octet-stream")

    @pytest.mark.parametrize("types, filename, content_type, expected", [
        ([".png"], "cat.png", None, True),
        (["png"], "cat.PNG", None, True),
        ([".png"], "cat.jpg", None, False),
        (["image/png"], "cat", "image/png", True),
        (["image/png"], "cat", "image/jpeg", False),
        (["image/*"], "cat", "image/webp", True),
        (["image/*"], "notes", "text/plain", False),
        (["IMAGE/*"], "cat", "image/gif", True),
        (["image/*"], "cat.png", None, True),
    ])
    def test_accepts(self, types, filename, content_type, expected):
        config = BucketConfig(allowed_file_types=types)
        assert config.accepts(filename, content_type) is expected

    def test_check_size(self):
        with pytest.raises(FileRejected, match="maximum allowed size"):
            BucketConfig(max_file_size=10).check("a.txt", 11)

    def test_check_type(self):
        with pytest.raises(FileRejected, match="not allowed"):
            BucketConfig(allowed_file_types=[".png"]).check("a.txt", 1)

    def test_check_passes(self):
        BucketConfig(allowed_file_types=[".png"], max_file_size=10).check("a.png", 10)

    def test_invalid_size(self):
        with pytest.raises(ValidationError):
            BucketConfig(max_file_size=0)


class TestSecretsConfig:

    def test_defaults(self):
        config = SecretsConfig(master_key="k")
        assert config.token_algorithm == "HS256"
        assert config.read_token_ttl == 30 * 24 * 3600
        assert (config.signed_url_min_ttl, config.signed_url_default_ttl,
                config.signed_url_max_ttl) == (60, 3600, 86400)

    def test_master_key_hidden(self):
        config = SecretsConfig(master_key="super-secret-material")
        assert "super-secret-material" not in repr(config)
        assert config.master_key.get_secret_value() == "super-secret-material"

    def test_empty_master_key(self):
        with pytest.raises(ValidationError):
            SecretsConfig(master_key="")

    def test_algorithm_normalized(self):
        assert SecretsConfig(master_key="k", token_algorithm="hs512").token_algorithm == "HS512"

    def test_asymmetric_algorithm_rejected(self):
        with pytest.raises(ValidationError):
            SecretsConfig(master_key="k", token_algorithm="RS256")

    def test_signed_url_window(self):
        with pytest.raises(ValidationError):
            SecretsConfig(master_key="k", signed_url_min_ttl=600, signed_url_default_ttl=60)


class TestFromEnv:

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NAVIGATOR_MASTER_KEY", "env-master-key")
        monkeypatch.setenv("NAVIGATOR_STORAGE_ROOT", str(tmp_path))
        monkeypatch.setenv("NAVIGATOR_TOKEN_ALGORITHM", "HS384")
        config = SecretsConfig.from_env()
        assert config.master_key.get_secret_value() == "env-master-key"
        assert config.storage_root == Path(tmp_path)
        assert config.token_algorithm == "HS384"

    def test_missing_master_key(self, monkeypatch):
        monkeypatch.delenv("NAVIGATOR_MASTER_KEY", raising=False)
        with pytest.raises(RuntimeError, match="NAVIGATOR_MASTER_KEY"):
            load_master_key()

    def test_generate_master_key(self):
        first, second = generate_master_key(), generate_master_key()
        assert first != second
        assert len(first) >= 43
