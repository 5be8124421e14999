"""
Tests for the tag-key access gate.
"""
from datetime import datetime, timezone

import pytest

from navigator_secrets.credentials.gate import authorize
from navigator_secrets.credentials.payloads import ReadTokenPayload
from navigator_secrets.credentials.tokens import Untrusted, Verified
from navigator_secrets.exceptions import InvalidToken, NoKeyOverlap, WrongBucket
from navigator_secrets.models import Asset


def make_asset(keys=None, bucket_id="bkt1"):
    return Asset(name="a.png", size=1, ref="u1/bkt1/a.png", keys=keys, bucket_id=bucket_id)


def make_token(keys, bucket_id="bkt1"):
    return Verified(ReadTokenPayload(
        secret_id="sec1",
        user_id="u1",
        bucket_id=bucket_id,
        keys=keys,
        issued_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
    ))


class TestUnrestrictedAsset:

    def test_no_token_needed(self):
        assert authorize(make_asset(), None) is None

    def test_token_ignored(self):
        """Even a token for another bucket does not block an open asset."""
        assert authorize(make_asset(), make_token(["x"], bucket_id="other")) is None


class TestRestrictedAsset:

    def test_overlap_allows(self):
        authorize(make_asset("a~b"), make_token(["b", "c"]))

    def test_full_match_allows(self):
        authorize(make_asset("a"), make_token(["a"]))

    def test_no_overlap_denies(self):
        with pytest.raises(NoKeyOverlap):
            authorize(make_asset("a~b"), make_token(["x", "y"]))

    def test_case_sensitive(self):
        with pytest.raises(NoKeyOverlap):
            authorize(make_asset("a~b"), make_token(["A", "B"]))

    def test_wrong_bucket(self):
        with pytest.raises(WrongBucket):
            authorize(make_asset("a"), make_token(["a"], bucket_id="bkt2"))

    def test_wrong_bucket_checked_first(self):
        with pytest.raises(WrongBucket):
            authorize(make_asset("a"), make_token(["x"], bucket_id="bkt2"))

    def test_missing_token(self):
        with pytest.raises(InvalidToken):
            authorize(make_asset("a"), None)

    def test_untrusted_token_rejected(self):
        token = make_token(["a"])
        with pytest.raises(TypeError):
            authorize(make_asset("a"), Untrusted(token.value))
