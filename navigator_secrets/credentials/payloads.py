"""
Credential payloads and their sealed encoding.

A payload is serialized to JSON (orjson, camelCase field names), sealed
with the master key and used as the opaque claim of a signed token.
"""
from datetime import datetime
from typing import Literal, Optional, Union

import orjson
from pydantic import AnyUrl, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..exceptions import CryptoError, PayloadError
from .crypto import SecretCipher

Permission = Literal["read", "write", "delete"]


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class ReadTokenPayload(_Payload):
    """Claim of a read token: one bucket plus a set of tag keys."""

    secret_id: str
    user_id: str
    validation_uri: Optional[AnyUrl] = None
    expire_at: Optional[datetime] = None
    permission: Permission = "read"
    bucket_id: str
    keys: list[str] = Field(min_length=1)
    issued_at: datetime


class SignedUrlPayload(_Payload):
    """Claim of a signed URL: exactly one asset."""

    asset_id: str
    secret_id: str


class PayloadCodec:
    """Seal payloads into opaque strings and open them back."""

    def __init__(self, cipher: SecretCipher):
        self._cipher = cipher

    def encode(self, payload: Union[ReadTokenPayload, SignedUrlPayload]) -> str:
        data = orjson.dumps(payload.model_dump(mode="json", by_alias=True))
        return self._cipher.seal(data)

    def _decode(self, sealed: str, model: type[_Payload]) -> _Payload:
        try:
            data = orjson.loads(self._cipher.unseal(sealed))
        except (CryptoError, orjson.JSONDecodeError) as err:
            raise PayloadError("Credential payload cannot be decrypted") from err
        if not isinstance(data, dict):
            raise PayloadError("Credential payload is not an object")
        try:
            return model.model_validate(data)
        except ValidationError as err:
            raise PayloadError(
                f"Credential payload does not match {model.__name__}: "
                f"{err.error_count()} error(s)"
            ) from err

    def decode_read(self, sealed: str) -> ReadTokenPayload:
        """Open a read-token payload.

        Raises:
            PayloadError: Undecryptable claim or wrong field set.
        """
        return self._decode(sealed, ReadTokenPayload)

    def decode_signed(self, sealed: str) -> SignedUrlPayload:
        """Open a signed-URL payload.

        Raises:
            PayloadError: Undecryptable claim or wrong field set.
        """
        return self._decode(sealed, SignedUrlPayload)
