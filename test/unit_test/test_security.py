import datetime

import jwt
import pytest

from nodo360.core.security import SecurityService
from nodo360.core.settings import settings


def encode(secret: str = "test-secret", **overrides) -> str:
    payload = {
        "sub": "11111111-1111-1111-1111-111111111111",
        "aud": settings.JWT_AUDIENCE,
        "exp": datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(minutes=5),
        **overrides,
    }
    return jwt.encode(payload, secret, algorithm=settings.ALGORITHM)


async def test_decode_valid_token():
    payload = await SecurityService().decode_access_token(encode(role="authenticated"))
    assert payload["sub"] == "11111111-1111-1111-1111-111111111111"
    assert payload["role"] == "authenticated"


async def test_expired_token():
    expired = encode(exp=datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(minutes=1))
    with pytest.raises(ValueError, match="Token expired"):
        await SecurityService().decode_access_token(expired)


@pytest.mark.parametrize(
    "token",
    [
        encode(secret="otro-secreto"),
        encode(aud="otra-audiencia"),
        "no.es.un.jwt",
    ],
)
async def test_invalid_tokens(token):
    with pytest.raises(ValueError, match="Invalid token"):
        await SecurityService().decode_access_token(token)


def test_hash_ip_is_stable_and_anonymous():
    hashed = SecurityService.hash_ip("203.0.113.7")
    assert hashed == SecurityService.hash_ip("203.0.113.7")
    assert len(hashed) == 32
    assert "203.0.113.7" not in hashed
    assert SecurityService.hash_ip("203.0.113.8") != hashed
    assert SecurityService.hash_ip(None) is None
