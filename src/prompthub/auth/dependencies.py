"""Bearer-token authentication for the badge endpoints."""

from __future__ import annotations

import jwt
import structlog
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.auth.jwt import verify_token
from prompthub.auth.service import get_user_by_id
from prompthub.database import get_session
from prompthub.db.models import User

_bearer = HTTPBearer()


def _subject(token: str) -> int:
    """User id from a verified access token. 401 on anything unusable."""
    try:
        payload = verify_token(token, expected_type="access")
        return int(payload["sub"])
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=401, detail="Malformed token subject") from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """The active user named by the bearer token (401 unknown, 403 banned)."""
    user = await get_user_by_id(db, _subject(credentials.credentials))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if user.is_banned:
        raise HTTPException(status_code=403, detail="Account is banned")
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user
