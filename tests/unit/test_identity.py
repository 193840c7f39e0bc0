"""Bearer-token verification against a mocked JWKS endpoint."""

from __future__ import annotations

import json
import time

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from wojak.auth.identity import JwksCache, verify_token
from wojak.config import Settings

JWKS_URL = "https://issuer.test/.well-known/jwks.json"
ISSUER = "https://issuer.test"


def _keypair(kid: str):
    private = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    jwk = json.loads(RSAAlgorithm.to_jwk(private.public_key()))
    jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return private, jwk


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class JwksServer:
    """httpx mock transport serving a mutable key set and counting fetches."""

    def __init__(self, *jwks: dict) -> None:
        self.keys = list(jwks)
        self.fetches = 0
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.fetches += 1
        if self.fail:
            return httpx.Response(503)
        return httpx.Response(200, json={"keys": self.keys})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def _token(private, kid: str, **overrides) -> str:
    claims = {"sub": "user_abc", "iss": ISSUER, "exp": int(time.time()) + 600}
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, private, algorithm="RS256", headers={"kid": kid})


@pytest.fixture
def settings() -> Settings:
    return Settings(auth_issuer=ISSUER, auth_jwks_url=JWKS_URL, auth_audience=None)


@pytest.fixture
def key_one():
    return _keypair("key-1")


class TestJwksCache:
    @pytest.mark.asyncio
    async def test_keys_cached_within_ttl(self, key_one):
        _, jwk = key_one
        server = JwksServer(jwk)
        clock = FakeClock()
        cache = JwksCache(JWKS_URL, ttl_seconds=60, transport=server.transport(), clock=clock)

        await cache.get_key("key-1")
        clock.now += 30
        await cache.get_key("key-1")
        assert server.fetches == 1

        clock.now += 31
        await cache.get_key("key-1")
        assert server.fetches == 2
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, key_one):
        _, jwk = key_one
        server = JwksServer(jwk)
        cache = JwksCache(JWKS_URL, transport=server.transport(), clock=FakeClock())

        await cache.get_key("key-1")
        cache.invalidate()
        assert not cache.is_fresh
        await cache.get_key("key-1")
        assert server.fetches == 2
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_unknown_kid_triggers_refetch(self, key_one):
        _, jwk = key_one
        _, rotated = _keypair("key-2")
        server = JwksServer(jwk)
        cache = JwksCache(JWKS_URL, transport=server.transport(), clock=FakeClock())

        await cache.get_key("key-1")
        server.keys.append(rotated)
        key = await cache.get_key("key-2")
        assert key.key_id == "key-2"
        assert server.fetches == 2
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_unknown_kid_after_refetch_is_invalid(self, key_one):
        _, jwk = key_one
        cache = JwksCache(JWKS_URL, transport=JwksServer(jwk).transport(), clock=FakeClock())
        with pytest.raises(jwt.InvalidTokenError):
            await cache.get_key("missing")
        await cache.aclose()


class TestVerifyToken:
    @pytest.mark.asyncio
    async def test_valid_token_returns_claims(self, key_one, settings):
        private, jwk = key_one
        cache = JwksCache(JWKS_URL, transport=JwksServer(jwk).transport())
        claims = await verify_token(_token(private, "key-1"), cache, settings)
        assert claims["sub"] == "user_abc"
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_expired_token_rejected(self, key_one, settings):
        private, jwk = key_one
        cache = JwksCache(JWKS_URL, transport=JwksServer(jwk).transport())
        token = _token(private, "key-1", exp=int(time.time()) - 60)
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            await verify_token(token, cache, settings)
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_missing_subject_rejected(self, key_one, settings):
        private, jwk = key_one
        cache = JwksCache(JWKS_URL, transport=JwksServer(jwk).transport())
        with pytest.raises(jwt.InvalidTokenError):
            await verify_token(_token(private, "key-1", sub=None), cache, settings)
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_wrong_issuer_rejected(self, key_one, settings):
        private, jwk = key_one
        cache = JwksCache(JWKS_URL, transport=JwksServer(jwk).transport())
        token = _token(private, "key-1", iss="https://elsewhere.test")
        with pytest.raises(jwt.InvalidTokenError):
            await verify_token(token, cache, settings)
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_signature_from_other_key_rejected(self, key_one, settings):
        _, jwk = key_one
        impostor, _ = _keypair("key-1")
        cache = JwksCache(JWKS_URL, transport=JwksServer(jwk).transport())
        with pytest.raises(jwt.InvalidTokenError):
            await verify_token(_token(impostor, "key-1"), cache, settings)
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_provider_outage_is_invalid_token(self, key_one, settings):
        private, jwk = key_one
        server = JwksServer(jwk)
        server.fail = True
        cache = JwksCache(JWKS_URL, transport=server.transport())
        with pytest.raises(jwt.InvalidTokenError, match="unavailable"):
            await verify_token(_token(private, "key-1"), cache, settings)
        await cache.aclose()
