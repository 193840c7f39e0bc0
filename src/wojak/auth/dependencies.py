"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wojak.auth.identity import JwksCache, verify_token
from wojak.config import get_settings

_bearer = HTTPBearer(auto_error=False)


def get_jwks_cache(request: Request) -> JwksCache:
    cache: JwksCache | None = getattr(request.app.state, "jwks_cache", None)
    if cache is None:
        raise HTTPException(status_code=503, detail="Identity verification unavailable")
    return cache


async def get_current_account_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """
    Verify the bearer token and return the account id (the token's ``sub``).

    Raises 401 on a missing or invalid token. Ban checks happen in the
    reward-path services, so read-only endpoints stay available to banned users.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        payload = await verify_token(credentials.credentials, get_jwks_cache(request), get_settings())
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return str(payload["sub"])
