from __future__ import annotations

from functools import lru_cache
from typing import Optional
from uuid import UUID

import jwt  # PyJWT
from fastapi import Header, HTTPException

from svc_customizer.config import settings
from svc_customizer.services.customizer_service import CustomizerService
from svc_customizer.services.upload_service import UploadService


def _decode_user_id_from_bearer(authorization: str | None) -> Optional[UUID]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    if not token or not settings.JWT_SECRET:
        return None

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], options={"require": ["sub"]})
        return UUID(str(payload.get("sub")))
    except (jwt.PyJWTError, ValueError) as e:
        # keep response small (don't echo the token)
        raise HTTPException(status_code=401, detail="unauthorized") from e


def get_optional_user_id(
    authorization: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> Optional[UUID]:
    """
    Shopper identity is optional on the storefront.
    1) Authorization: Bearer <jwt>  (preferred)
    2) X-User-Id: <uuid>           (only when TRUST_X_USER_ID_HEADER is set)
    Anonymous shoppers get None and their designs go to the system actor.
    """
    uid = _decode_user_id_from_bearer(authorization)
    if uid:
        return uid

    if x_user_id and settings.TRUST_X_USER_ID_HEADER:
        try:
            return UUID(x_user_id)
        except ValueError as e:
            raise HTTPException(status_code=401, detail="invalid_x_user_id") from e

    return None


@lru_cache(maxsize=1)
def get_customizer_service() -> CustomizerService:
    return CustomizerService()


@lru_cache(maxsize=1)
def get_upload_service() -> UploadService:
    return UploadService()
