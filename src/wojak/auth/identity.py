"""
Bearer-token verification against the identity provider's JWKS.

Tokens are issued elsewhere; this service only verifies RS256 signatures and
reads the ``sub`` claim as the account id. Signing keys live in a
``JwksCache`` owned by the application (see ``wojak.main.lifespan``).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx
import jwt

from wojak.config import Settings

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256"]


class JwksCache:
    """
    Time-boxed cache of the provider's signing keys.

    Keys are refetched when older than ``ttl_seconds``, after ``invalidate()``,
    or once per lookup when a token names a ``kid`` the cached set lacks
    (the provider rotated its keys).
    """

    def __init__(
        self,
        url: str,
        ttl_seconds: float = 3600,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url
        self.ttl_seconds = ttl_seconds
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)
        self._clock = clock
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def is_fresh(self) -> bool:
        return self._fetched_at is not None and self._clock() - self._fetched_at < self.ttl_seconds

    def invalidate(self) -> None:
        """Drop the cached keys; the next lookup refetches."""
        self._fetched_at = None
        self._keys = {}

    async def refresh(self) -> None:
        response = await self._client.get(self.url)
        response.raise_for_status()
        keys: dict[str, jwt.PyJWK] = {}
        for data in response.json().get("keys", []):
            kid = data.get("kid")
            if not kid:
                continue
            try:
                keys[kid] = jwt.PyJWK(data)
            except jwt.PyJWKError:
                logger.warning("Skipping unusable JWK %s", kid, exc_info=True)
        self._keys = keys
        self._fetched_at = self._clock()
        logger.info("Loaded %d signing keys from %s", len(keys), self.url)

    async def get_key(self, kid: str) -> jwt.PyJWK:
        """Signing key for ``kid``. Raises jwt.InvalidTokenError if unknown."""
        async with self._lock:
            if not self.is_fresh:
                await self.refresh()
            elif kid not in self._keys:
                await self.refresh()
        key = self._keys.get(kid)
        if key is None:
            msg = f"Unknown signing key: {kid}"
            raise jwt.InvalidTokenError(msg)
        return key

    async def aclose(self) -> None:
        await self._client.aclose()


def create_jwks_cache(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> JwksCache:
    return JwksCache(
        settings.auth_jwks_url,
        ttl_seconds=settings.auth_jwks_cache_ttl_seconds,
        timeout_seconds=settings.auth_jwks_timeout_seconds,
        transport=transport,
    )


async def verify_token(token: str, jwks: JwksCache, settings: Settings) -> dict[str, Any]:
    """
    Verify a provider-issued bearer token and return its claims.

    Raises:
        jwt.InvalidTokenError: If the token is malformed, expired, signed by an
            unknown key, or has no subject.
    """
    header = jwt.get_unverified_header(token)
    kid = header.get("kid")
    if not kid:
        msg = "Token header has no kid"
        raise jwt.InvalidTokenError(msg)

    try:
        key = await jwks.get_key(kid)
    except httpx.HTTPError as e:
        msg = "Signing keys unavailable"
        raise jwt.InvalidTokenError(msg) from e

    options = {"require": ["exp", "sub"], "verify_aud": settings.auth_audience is not None}
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            key.key,
            algorithms=ALGORITHMS,
            issuer=settings.auth_issuer,
            audience=settings.auth_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)
    return payload
