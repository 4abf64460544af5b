"""Authentication boundary: bearer token verification and current-member lookup."""

from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlunparse

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.config import require_config, settings
from subway.core.database import get_db
from subway.models.member import Member

require_config("AUTH0_DOMAIN", "AUTH0_API_AUDIENCE", "AUTH0_ALGORITHMS")

# Mock JWKS for DEBUG mode (populated by tests)
_mock_jwks: dict[str, Any] | None = None

security = HTTPBearer()

# JWKS cache (JSON Web Key Set from Auth0)
_jwks_cache: dict[str, Any] | None = None
_jwks_cache_time: datetime | None = None
_jwks_cache_ttl = timedelta(hours=1)

_REQUIRED_JWK_FIELDS = ("kty", "kid", "use", "n", "e")


def set_mock_jwks(jwks: dict[str, Any]) -> None:
    """
    Set mock JWKS for DEBUG mode testing.

    Raises:
        RuntimeError: If called when DEBUG=False
    """
    if not settings.DEBUG:
        msg = "set_mock_jwks() can only be called in DEBUG mode"
        raise RuntimeError(msg)
    global _mock_jwks  # noqa: PLW0603
    _mock_jwks = jwks


def clear_jwks_cache() -> None:
    """Drop the cached JWKS so the next verification fetches it again."""
    global _jwks_cache, _jwks_cache_time  # noqa: PLW0603
    _jwks_cache = None
    _jwks_cache_time = None


async def get_jwks(domain: str) -> dict[str, Any]:
    """
    Fetch JWKS (JSON Web Key Set) from Auth0, cached for one hour.

    Args:
        domain: Auth0 domain (e.g., 'your-tenant.auth0.com')

    Returns:
        JWKS dictionary containing public keys

    Raises:
        HTTPException: 503 if JWKS cannot be fetched
    """
    global _jwks_cache, _jwks_cache_time  # noqa: PLW0603

    now = datetime.now(UTC)
    if (
        _jwks_cache is not None
        and "keys" in _jwks_cache
        and _jwks_cache_time is not None
        and now - _jwks_cache_time < _jwks_cache_ttl
    ):
        return _jwks_cache

    try:
        async with httpx.AsyncClient() as client:
            jwks_url = urlunparse(("https", domain, "/.well-known/jwks.json", "", "", ""))
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            _jwks_cache = response.json()
            _jwks_cache_time = now
            return _jwks_cache
    except httpx.HTTPError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Unable to fetch JWKS from Auth0: {e!s}",
        ) from e


async def verify_jwt(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict[str, Any]:
    """
    Verify an RS256 bearer token against the Auth0 JWKS (mock JWKS in DEBUG mode).

    Returns:
        JWT payload dictionary containing claims (e.g., 'sub', 'iat', 'exp')

    Raises:
        HTTPException: 401 if the token is invalid, 500 if key material is misconfigured
    """
    token = credentials.credentials

    try:
        kid = jwt.get_unverified_header(token).get("kid")
        if not kid:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing 'kid' in header",
            )

        if settings.DEBUG and _mock_jwks is not None:
            jwks = _mock_jwks
        elif settings.DEBUG:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Mock JWKS not configured for DEBUG mode",
            )
        else:
            jwks = await get_jwks(settings.AUTH0_DOMAIN)

        matching_key = next((key for key in jwks.get("keys", []) if key.get("kid") == kid), None)
        if not matching_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unable to find appropriate signing key",
            )

        missing_fields = [field for field in _REQUIRED_JWK_FIELDS if field not in matching_key]
        if missing_fields:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"JWKS key is missing required fields: {', '.join(missing_fields)}",
            )

        rsa_key = {field: matching_key[field] for field in _REQUIRED_JWK_FIELDS}
        issuer = urlunparse(("https", settings.AUTH0_DOMAIN, "/", "", "", ""))
        return jwt.decode(
            token,
            rsa_key,
            algorithms=settings.AUTH0_ALGORITHMS,
            audience=settings.AUTH0_API_AUDIENCE,
            issuer=issuer,
        )

    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {e!s}",
        ) from e


async def get_current_member(
    payload: dict[str, Any] = Depends(verify_jwt),
    db: AsyncSession = Depends(get_db),
) -> Member:
    """
    Resolve the token subject to a Member, creating it on first sight.

    Raises:
        HTTPException: 401 if the token has no 'sub' claim
    """
    # Import here to avoid circular dependency
    from subway.services.member_service import MemberService  # noqa: PLC0415

    external_id = payload.get("sub")
    if not external_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing 'sub' claim",
        )

    return await MemberService(db).get_or_create_member(external_id, auth_provider="auth0")
