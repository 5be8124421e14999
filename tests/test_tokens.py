"""
Tests for TokenCodec.

Tests cover:
- Signing and two-phase decoding (untrusted, then verified)
- Validity window against the injected clock
- Signature and structure failures
"""
from datetime import timedelta

import jwt
import pytest

from navigator_secrets.credentials.tokens import (
    CLAIM_KEY,
    TokenCodec,
    Untrusted,
    Verified,
    ttl_until,
)
from navigator_secrets.exceptions import ExpiredError, MalformedError, SignatureError

KEY = "k" * 48


class TestSign:
    """Tests for token signing."""

    def test_three_segments(self, codec):
        token = codec.sign("opaque", KEY, 60)
        assert token.count(".") == 2

    def test_claims(self, codec, clock):
        token = codec.sign("opaque", KEY, 60)
        claims = jwt.decode(token, options={"verify_signature": False})
        issued = int(clock.now.timestamp())
        assert claims == {CLAIM_KEY: "opaque", "iat": issued, "exp": issued + 60}

    def test_timedelta_ttl(self, codec, clock):
        token = codec.sign("opaque", KEY, timedelta(minutes=5))
        untrusted = codec.decode_unverified(token)
        assert untrusted.expires_at == clock.now + timedelta(minutes=5)

    @pytest.mark.parametrize("ttl", [0, -1, timedelta(seconds=-30)])
    def test_non_positive_ttl(self, codec, ttl):
        with pytest.raises(ExpiredError):
            codec.sign("opaque", KEY, ttl)


class TestDecodeUnverified:
    """Tests for decoding without a key."""

    def test_returns_untrusted(self, codec, clock):
        token = codec.sign("opaque", KEY, 60)
        untrusted = codec.decode_unverified(token)
        assert isinstance(untrusted, Untrusted)
        assert not isinstance(untrusted, Verified)
        assert untrusted.value == "opaque"
        assert untrusted.issued_at == clock.now

    def test_ignores_signature(self, codec):
        token = TokenCodec().sign("opaque", "another-key-" * 4, 60)
        assert codec.decode_unverified(token).value == "opaque"

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c", "a.b"])
    def test_malformed(self, codec, token):
        with pytest.raises(MalformedError):
            codec.decode_unverified(token)

    def test_missing_claim(self, codec):
        token = jwt.encode({"foo": "bar"}, KEY, algorithm="HS256")
        with pytest.raises(MalformedError):
            codec.decode_unverified(token)

    def test_map(self, codec):
        untrusted = codec.decode_unverified(codec.sign("opaque", KEY, 60))
        mapped = untrusted.map(str.upper)
        assert isinstance(mapped, Untrusted)
        assert mapped.value == "OPAQUE"
        assert mapped.expires_at == untrusted.expires_at


class TestVerify:
    """Tests for signature and expiry verification."""

    def test_returns_verified(self, codec):
        token = codec.sign("opaque", KEY, 60)
        verified = codec.verify(token, KEY)
        assert isinstance(verified, Verified)
        assert verified.value == "opaque"

    def test_valid_just_before_expiry(self, codec, clock):
        token = codec.sign("opaque", KEY, 120)
        clock.advance(119)
        assert codec.verify(token, KEY).value == "opaque"

    def test_expired_just_after_expiry(self, codec, clock):
        token = codec.sign("opaque", KEY, 120)
        clock.advance(121)
        with pytest.raises(ExpiredError):
            codec.verify(token, KEY)

    def test_expired_at_boundary(self, codec, clock):
        token = codec.sign("opaque", KEY, 120)
        clock.advance(120)
        with pytest.raises(ExpiredError):
            codec.verify(token, KEY)

    def test_wrong_key(self, codec):
        token = codec.sign("opaque", KEY, 60)
        with pytest.raises(SignatureError):
            codec.verify(token, "x" * 48)

    def test_tampered_claims(self, codec):
        token = codec.sign("opaque", KEY, 60)
        other = codec.sign("forged", KEY, 60)
        header, _, signature = token.split(".")
        forged = ".".join([header, other.split(".")[1], signature])
        with pytest.raises(SignatureError):
            codec.verify(forged, KEY)

    def test_malformed(self, codec):
        with pytest.raises(MalformedError):
            codec.verify("not-a-token", KEY)

    def test_missing_exp(self, codec):
        token = jwt.encode({CLAIM_KEY: "opaque"}, KEY, algorithm="HS256")
        with pytest.raises(MalformedError):
            codec.verify(token, KEY)

    def test_algorithm_pinned(self, codec):
        """A token signed with another HMAC algorithm is not accepted."""
        token = TokenCodec("HS512", clock=codec.now).sign("opaque", KEY, 60)
        with pytest.raises(MalformedError):
            codec.verify(token, KEY)


class TestTtlUntil:

    def test_floors(self, clock):
        assert ttl_until(clock.now + timedelta(seconds=1.9), clock.now) == 1

    def test_past(self, clock):
        assert ttl_until(clock.now - timedelta(seconds=5), clock.now) == -5
