from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

import jwt

from app.core.config import get_settings
from app.core.constants import Role


@dataclass(frozen=True)
class IdentityClaims:
    subject: str
    email: str
    name: str
    role: Role | None


class HasRole(Protocol):
    role: Any


@lru_cache
def _jwks_client(url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(url)


def decode_identity_token(token: str) -> dict[str, Any]:
    """Verify a bearer token issued by the identity provider.

    RS256 through the provider's JWKS endpoint when one is configured,
    otherwise HS256 with the shared secret.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["sub", "exp"]}
    kwargs: dict[str, Any] = {}
    if settings.identity_audience:
        kwargs["audience"] = settings.identity_audience
    else:
        options["verify_aud"] = False
    if settings.identity_issuer:
        kwargs["issuer"] = settings.identity_issuer

    if settings.identity_jwks_url:
        signing_key = _jwks_client(settings.identity_jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(token, signing_key.key, algorithms=["RS256"], options=options, **kwargs)
    return jwt.decode(token, settings.identity_jwt_secret, algorithms=["HS256"], options=options, **kwargs)


def parse_claims(payload: dict[str, Any]) -> IdentityClaims:
    settings = get_settings()
    raw_role = payload.get(settings.identity_role_claim)
    try:
        role = Role(str(raw_role)) if raw_role else None
    except ValueError:
        role = None
    email = str(payload.get("email") or "")
    return IdentityClaims(
        subject=str(payload["sub"]),
        email=email,
        name=str(payload.get("name") or email.split("@")[0]),
        role=role,
    )


def authorize(user: HasRole | None, required_roles: Iterable[Role | str]) -> bool:
    if user is None or user.role is None:
        return False
    try:
        role = Role(str(user.role))
    except ValueError:
        return False
    if role == Role.SUPERADMIN:
        return True
    allowed = {Role(str(item)) for item in required_roles}
    return role in allowed
