import time
from dataclasses import dataclass

import jwt
import pytest

from app.core.config import get_settings
from app.core.constants import Role
from app.core.security import authorize, decode_identity_token, parse_claims


@dataclass
class Principal:
    role: Role | str | None


def test_matching_role_is_authorized():
    assert authorize(Principal(Role.JUDGE), [Role.JUDGE, Role.ADMIN])
    assert authorize(Principal("admin"), ["admin"])


def test_wrong_role_is_rejected():
    assert not authorize(Principal(Role.PARTICIPANT), [Role.JUDGE])
    assert not authorize(Principal(Role.JUDGE), [])


def test_superadmin_passes_every_check():
    assert authorize(Principal(Role.SUPERADMIN), [Role.JUDGE])
    assert authorize(Principal(Role.SUPERADMIN), [])


def test_missing_user_or_unknown_role():
    assert not authorize(None, [Role.ADMIN])
    assert not authorize(Principal(None), [Role.ADMIN])
    assert not authorize(Principal("owner"), [Role.ADMIN])


def make_token(**claims) -> str:
    payload = {"sub": "user_123", "exp": int(time.time()) + 300, **claims}
    return jwt.encode(payload, get_settings().identity_jwt_secret, algorithm="HS256")


def test_decode_and_parse_claims():
    token = make_token(email="ann@example.com", name="Ann", role="judge")
    claims = parse_claims(decode_identity_token(token))
    assert claims.subject == "user_123"
    assert claims.email == "ann@example.com"
    assert claims.role == Role.JUDGE


def test_unknown_role_claim_is_dropped():
    claims = parse_claims(decode_identity_token(make_token(email="bob@example.com", role="owner")))
    assert claims.role is None
    assert claims.name == "bob"


def test_expired_or_foreign_token_rejected():
    expired = make_token(exp=int(time.time()) - 10)
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_identity_token(expired)
    foreign = jwt.encode(
        {"sub": "x", "exp": int(time.time()) + 60}, "another-provider-secret-value-0123456789", algorithm="HS256"
    )
    with pytest.raises(jwt.InvalidSignatureError):
        decode_identity_token(foreign)
