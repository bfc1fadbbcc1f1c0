from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Optional
from uuid import UUID

from svc_customizer.config import settings
from svc_customizer.repos.users_repo import UsersRepo

log = logging.getLogger(__name__)

_system_actor_id: Optional[UUID] = None


async def ensure_system_actor(users: Optional[UsersRepo] = None) -> UUID:
    """Get-or-create the user that owns designs made by anonymous shoppers. Run once at startup."""
    global _system_actor_id
    if _system_actor_id is not None:
        return _system_actor_id

    # random hash: nobody can log in as this user
    unusable_hash = hashlib.sha256(secrets.token_bytes(32)).hexdigest()
    _system_actor_id = await (users or UsersRepo()).get_or_create(
        email=settings.SYSTEM_ACTOR_EMAIL,
        name="Public Customizer",
        password_hash=unusable_hash,
        role="SYSTEM",
    )
    log.info("system_actor_ready", extra={"user_id": str(_system_actor_id)})
    return _system_actor_id


def system_actor_id() -> UUID:
    if _system_actor_id is None:
        raise RuntimeError("system actor not resolved; ensure_system_actor() must run at startup")
    return _system_actor_id
