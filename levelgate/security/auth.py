from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from levelgate.core.config import settings
from levelgate.security.models import AuthenticatedUser

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)

_JWKS_CACHE: dict[str, Any] = {}


# ---------------------------------------------------------------------
# JWKS handling
# ---------------------------------------------------------------------


def _issuer() -> str:
    return settings.oidc_issuer.rstrip("/")


def _jwks_url() -> str:
    if settings.oidc_jwks_uri:
        return settings.oidc_jwks_uri
    return f"{_issuer()}/protocol/openid-connect/certs"


async def _get_jwks() -> dict:
    url = _jwks_url()
    if url in _JWKS_CACHE:
        return _JWKS_CACHE[url]

    async with httpx.AsyncClient(timeout=5.0) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        jwks = resp.json()

    _JWKS_CACHE[url] = jwks
    return jwks


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


# ---------------------------------------------------------------------
# Core JWT validation
# ---------------------------------------------------------------------
async def _decode_token(token: str) -> dict[str, Any]:
    try:
        jwks = await _get_jwks()
    except httpx.HTTPError as exc:
        logger.error("Failed to fetch JWKS from %s: %s", _jwks_url(), exc)
        raise _unauthorized()

    try:
        claims = jwt.decode(
            token,
            jwks,
            algorithms=["RS256"],
            issuer=_issuer(),
            options={"verify_aud": False},
        )
    except JWTError as exc:
        logger.debug("JWT validation failed: %s", exc)
        raise _unauthorized()

    token_aud = claims.get("aud")
    if token_aud is None:
        raise _unauthorized("Token missing audience")

    if isinstance(token_aud, str):
        token_aud = [token_aud]

    if not any(aud in _expected_audiences() for aud in token_aud):
        raise _unauthorized("Invalid audience")

    if not claims.get("sub"):
        raise _unauthorized()

    return claims


def _expected_audiences() -> list[str]:
    auds = []

    if settings.oidc_audience:
        auds.append(settings.oidc_audience)

    if settings.oidc_client_id:
        auds.append(settings.oidc_client_id)

    # Keycloak default
    auds.append("account")

    return list(dict.fromkeys(auds))


def normalize_user(claims: dict[str, Any]) -> AuthenticatedUser:
    aud = claims.get("aud", [])
    if isinstance(aud, str):
        aud = [aud]

    realm_roles = claims.get("realm_access", {}).get("roles", [])
    client_roles = []
    if settings.oidc_client_id:
        client_roles = (
            claims.get("resource_access", {})
            .get(settings.oidc_client_id, {})
            .get("roles", [])
        )

    return AuthenticatedUser(
        sub=claims["sub"],
        username=claims.get("preferred_username"),
        email=claims.get("email"),
        roles=sorted(set(realm_roles + client_roles)),
        issuer=claims.get("iss"),
        audiences=aud,
        claims=claims,
    )


# ---------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    if credentials is None:
        raise _unauthorized()

    claims = await _decode_token(credentials.credentials)
    return normalize_user(claims)


async def require_admin(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    if not user.has_role(settings.admin_role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Admin access required",
        )
    return user
