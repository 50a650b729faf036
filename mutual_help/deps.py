from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help.crud import TokenCRUD, UserCRUD
from mutual_help.db import get_db
from mutual_help.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def is_admin(user) -> bool:
    return user.user_type == "admin"


async def get_current_user_optional(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
):
    if creds is None:
        return None

    token = creds.credentials
    try:
        payload = decode_token(token)
        user_id = uuid.UUID(payload["sub"])
    except (ValueError, KeyError):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    # a logged out token still decodes, it must also be stored
    if await TokenCRUD(db).get(token) is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await UserCRUD(db).get(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


async def get_current_user(
    user=Depends(get_current_user_optional),
):
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def get_standard_user(
    user=Depends(get_current_user),
):
    # restricted accounts can still read and log out, nothing else
    if user.user_type not in ("standard", "admin"):
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


async def get_admin_user(
    user=Depends(get_current_user),
):
    if not is_admin(user):
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


async def get_current_token(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    user=Depends(get_current_user),
) -> str:
    if creds is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return creds.credentials


def require_owner_or_admin(user, owner_id: uuid.UUID | None):
    if is_admin(user):
        return
    if owner_id is None or user.id != owner_id:
        raise HTTPException(status_code=403, detail="Forbidden")
