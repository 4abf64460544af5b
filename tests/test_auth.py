"""Unit tests for authentication and member registration."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core import auth
from subway.core.auth import get_current_member, get_jwks, set_mock_jwks, verify_jwt
from subway.core.config import settings
from subway.models.member import Member
from subway.services.member_service import MemberService
from tests.helpers.jwt_helpers import MockJWTGenerator
from tests.helpers.test_data import make_unique_external_id


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestMemberService:
    """Tests for MemberService."""

    @pytest.mark.asyncio
    async def test_create_member(self, db_session: AsyncSession) -> None:
        """Test creating a new member."""
        external_id = make_unique_external_id("auth0|new_member")

        member = await MemberService(db_session).create_member(external_id=external_id)

        assert member.id is not None
        assert member.external_id == external_id
        assert member.auth_provider == "auth0"

    @pytest.mark.asyncio
    async def test_create_member_handles_race_condition(self, db_session: AsyncSession, test_member: Member) -> None:
        """Test a unique-constraint conflict returns the member that won the race."""
        member = await MemberService(db_session).create_member(test_member.external_id, test_member.auth_provider)

        assert member.id == test_member.id

    @pytest.mark.asyncio
    async def test_create_member_conflict_without_existing_member(self) -> None:
        """Test a conflict that cannot be read back raises."""
        mock_db = MagicMock(spec=AsyncSession)
        mock_db.add = MagicMock()
        mock_db.commit = AsyncMock(side_effect=IntegrityError("", "", Exception()))
        mock_db.rollback = AsyncMock()
        mock_result = MagicMock()
        mock_result.scalar_one_or_none = MagicMock(return_value=None)
        mock_db.execute = AsyncMock(return_value=mock_result)

        with pytest.raises(RuntimeError, match="could not be retrieved"):
            await MemberService(mock_db).create_member("auth0|edge_case")

        mock_db.rollback.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_or_create_returns_existing(self, db_session: AsyncSession, test_member: Member) -> None:
        """Test an existing subject is not registered twice."""
        member = await MemberService(db_session).get_or_create_member(test_member.external_id)

        assert member.id == test_member.id
        assert len(await MemberService(db_session).list_members()) == 1

    @pytest.mark.asyncio
    async def test_get_member_by_id(self, db_session: AsyncSession, test_member: Member) -> None:
        """Test retrieving a member by UUID."""
        member = await MemberService(db_session).get_member_by_id(test_member.id)

        assert member is not None
        assert member.external_id == test_member.external_id


class TestVerifyJWT:
    """Tests for bearer token verification."""

    @pytest.mark.asyncio
    async def test_valid_token(self) -> None:
        """Test a token signed with the mock key verifies."""
        payload = await verify_jwt(bearer(MockJWTGenerator.generate(subject="auth0|valid")))

        assert payload["sub"] == "auth0|valid"

    @pytest.mark.asyncio
    async def test_expired_token(self) -> None:
        """Test an expired token is rejected."""
        token = MockJWTGenerator.generate(subject="auth0|expired", expires_in=timedelta(hours=-1))

        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(bearer(token))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_audience(self) -> None:
        """Test a token for another API is rejected."""
        token = MockJWTGenerator.generate(subject="auth0|aud", audience="https://other-api")

        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(bearer(token))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_kid(self) -> None:
        """Test a token without a key id is rejected."""
        token = MockJWTGenerator.generate(subject="auth0|nokid", kid=None)

        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(bearer(token))

        assert exc_info.value.status_code == 401
        assert "kid" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_unknown_kid(self) -> None:
        """Test a token signed with an unknown key id is rejected."""
        token = MockJWTGenerator.generate(subject="auth0|kid", kid="rotated-key")

        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(bearer(token))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_token(self) -> None:
        """Test garbage is rejected with 401."""
        with pytest.raises(HTTPException) as exc_info:
            await verify_jwt(bearer("not-a-jwt"))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_incomplete_jwk_in_production_path(self) -> None:
        """Test a JWKS key missing fields is a server error."""
        incomplete_jwks = {"keys": [{"kty": "RSA", "kid": MockJWTGenerator.KID, "use": "sig", "e": "AQAB"}]}

        with (
            patch("subway.core.auth.settings.DEBUG", False),
            patch("subway.core.auth._mock_jwks", None),
            patch("subway.core.auth.get_jwks", new_callable=AsyncMock) as mock_get_jwks,
        ):
            mock_get_jwks.return_value = incomplete_jwks

            with pytest.raises(HTTPException) as exc_info:
                await verify_jwt(bearer(MockJWTGenerator.generate(subject="auth0|prod")))

        assert exc_info.value.status_code == 500
        assert "n" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_debug_without_mock_jwks(self) -> None:
        """Test DEBUG mode refuses to verify when no mock JWKS is installed."""
        with patch("subway.core.auth._mock_jwks", None), pytest.raises(HTTPException) as exc_info:
            await verify_jwt(bearer(MockJWTGenerator.generate(subject="auth0|debug")))

        assert exc_info.value.status_code == 500

    def test_set_mock_jwks_outside_debug(self) -> None:
        """Test mock keys cannot be installed in production."""
        with patch("subway.core.auth.settings.DEBUG", False), pytest.raises(RuntimeError):
            set_mock_jwks({"keys": []})


class TestJWKSFetch:
    """Tests for fetching and caching the JWKS."""

    @pytest.mark.asyncio
    async def test_get_jwks_http_error(self, reset_jwks_cache: None) -> None:
        """Test a fetch failure is reported as 503."""
        with patch("subway.core.auth.httpx.AsyncClient") as mock_client_cls:
            mock_client_instance = AsyncMock()
            mock_client_instance.get = AsyncMock(side_effect=httpx.HTTPError("Connection failed"))
            mock_client_cls.return_value.__aenter__.return_value = mock_client_instance

            with pytest.raises(HTTPException) as exc_info:
                await get_jwks("test.auth0.com")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_get_jwks_uses_cache(self, reset_jwks_cache: None) -> None:
        """Test the JWKS is fetched once within the TTL."""
        mock_jwks = {"keys": [{"kid": "cached-key"}]}

        with patch("subway.core.auth.httpx.AsyncClient") as mock_client_cls:
            mock_response = MagicMock()
            mock_response.json.return_value = mock_jwks
            mock_response.raise_for_status.return_value = None

            mock_client_instance = AsyncMock()
            mock_client_instance.get = AsyncMock(return_value=mock_response)
            mock_client_cls.return_value.__aenter__.return_value = mock_client_instance

            assert await get_jwks("test.auth0.com") == mock_jwks
            assert await get_jwks("test.auth0.com") == mock_jwks
            assert mock_client_instance.get.call_count == 1

        assert auth._jwks_cache == mock_jwks


class TestCurrentMember:
    """Tests for resolving the current member."""

    @pytest.mark.asyncio
    async def test_missing_sub(self, db_session: AsyncSession) -> None:
        """Test a payload without 'sub' is rejected."""
        with pytest.raises(HTTPException) as exc_info:
            await get_current_member(payload={"aud": settings.AUTH0_API_AUDIENCE}, db=db_session)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_first_request_registers_member(self, db_session: AsyncSession) -> None:
        """Test an unknown subject becomes a member."""
        external_id = make_unique_external_id("auth0|first_login")

        member = await get_current_member(payload={"sub": external_id}, db=db_session)

        assert member.external_id == external_id
        assert member.auth_provider == "auth0"

    @pytest.mark.asyncio
    async def test_me_endpoint(
        self, async_client: AsyncClient, test_member: Member, auth_headers_for_member: dict[str, str]
    ) -> None:
        """Test /auth/me returns the member without provider details."""
        response = await async_client.get(f"{settings.API_V1_PREFIX}/auth/me", headers=auth_headers_for_member)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(test_member.id)
        assert "external_id" not in data

    @pytest.mark.asyncio
    async def test_token_without_sub_on_endpoint(self, async_client: AsyncClient) -> None:
        """Test a valid token without a subject gets 401."""
        token = MockJWTGenerator.generate(subject="", include_subject=False)

        response = await async_client.get(
            f"{settings.API_V1_PREFIX}/auth/me", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
