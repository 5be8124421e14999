"""Tag-key access gate applied when serving an asset."""
import logging
from typing import Optional

from ..exceptions import InvalidToken, NoKeyOverlap, WrongBucket
from ..models import Asset
from .payloads import ReadTokenPayload
from .tokens import Verified

logger = logging.getLogger("navigator.secrets")


def authorize(asset: Asset, token: Optional[Verified[ReadTokenPayload]]) -> None:
    """Decide whether ``token`` grants access to ``asset``.

    Assets without tag keys are open to anyone holding their id and the
    token is ignored. Otherwise the token must target the asset's bucket and
    share at least one tag key with it (exact, case-sensitive match).

    Raises:
        InvalidToken: Asset is restricted and no token was presented.
        TypeError: ``token`` was not produced by verification.
        WrongBucket: Token was issued for another bucket.
        NoKeyOverlap: Token and asset tag keys are disjoint.
    """
    asset_keys = asset.tag_keys
    if asset_keys is None:
        return
    if token is None:
        raise InvalidToken("A read token is required for this asset")
    if not isinstance(token, Verified):
        raise TypeError(
            f"authorize() requires a Verified token, got {type(token).__name__}"
        )
    payload = token.value
    if payload.bucket_id != asset.bucket_id:
        logger.info("Access denied: asset=%s wrong bucket", asset.id)
        raise WrongBucket("Read token was issued for another bucket")
    if set(asset_keys).isdisjoint(payload.keys):
        logger.info("Access denied: asset=%s no key overlap", asset.id)
        raise NoKeyOverlap("Read token keys do not match asset keys")
