"""Unit tests for API key authentication and permission checks."""

from unittest.mock import patch

import pytest
from fastapi import HTTPException

from app.core.auth import (
    ALL_PERMISSIONS,
    PERMISSION_SEND_CAMPAIGNS,
    PERMISSION_VIEW_DASHBOARD,
    Principal,
    parse_api_keys,
    require_permission,
    validate_api_key,
    verify_api_key,
)
from app.core.errors import AuthenticationAppError


class TestParseAPIKeys:
    """Test API key entry parsing."""

    def test_parse_key_and_user(self) -> None:
        """Organization and permissions fall back to defaults."""
        result = parse_api_keys("my-secret-key:alice")

        assert result == {
            "my-secret-key": Principal(user_id="alice", organization_id=1, permissions=ALL_PERMISSIONS)
        }

    def test_parse_full_entry(self) -> None:
        result = parse_api_keys("k1:bob:7:view_dashboard|send_campaigns")

        principal = result["k1"]
        assert principal.organization_id == 7
        assert principal.permissions == frozenset({"view_dashboard", "send_campaigns"})

    def test_parse_multiple_entries_with_whitespace(self) -> None:
        result = parse_api_keys(" k1:alice , k2:bob:2 ,  ")

        assert set(result) == {"k1", "k2"}
        assert result["k2"].organization_id == 2

    def test_parse_none_returns_empty_mapping(self) -> None:
        assert parse_api_keys(None) == {}

    def test_parse_whitespace_only_returns_empty_mapping(self) -> None:
        assert parse_api_keys("   ,  ,  ") == {}

    @pytest.mark.parametrize(
        "entry",
        ["key-without-user", ":alice", "k1:", "k1:alice:1:send_campaigns:extra", "k1:alice:not-a-number"],
    )
    def test_parse_rejects_malformed_entries(self, entry: str) -> None:
        with pytest.raises(ValueError):
            parse_api_keys(entry)


class TestValidateAPIKey:
    """Test core API key validation logic."""

    @patch("app.core.auth.settings")
    def test_validate_returns_anonymous_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False
        mock_settings.app.anonymous_user_id = "anonymous"

        principal = validate_api_key("any-random-key")

        assert principal.user_id == "anonymous"
        assert principal.permissions == ALL_PERMISSIONS

    @patch("app.core.auth.settings")
    def test_validate_raises_when_no_keys_configured(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = None

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("some-key")

        assert exc_info.value.code == "api_keys_not_configured"
        assert "no valid keys are configured" in exc_info.value.message

    @patch("app.core.auth.settings")
    def test_validate_raises_when_keys_malformed(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "legacy-key-without-user"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("legacy-key-without-user")

        assert exc_info.value.code == "api_keys_malformed"

    @patch("app.core.auth.settings")
    def test_validate_resolves_principal(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "k1:alice:1,k2:bob:3"

        assert validate_api_key("k1").user_id == "alice"
        assert validate_api_key("k2").organization_id == 3

    @patch("app.core.auth.settings")
    def test_validate_rejects_unknown_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "k1:alice"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("invalid-key")

        assert exc_info.value.code == "invalid_api_key"
        assert "Invalid or missing API key" in exc_info.value.message

    @patch("app.core.auth.settings")
    def test_validate_does_not_trim_provided_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = " k1:alice "

        assert validate_api_key("k1").user_id == "alice"
        with pytest.raises(AuthenticationAppError):
            validate_api_key(" k1 ")


class TestVerifyAPIKeyDependency:
    """Test FastAPI dependency for API key verification."""

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_verify_bypassed_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False
        mock_settings.app.anonymous_user_id = "dev"

        principal = await verify_api_key(x_api_key=None)

        assert principal.user_id == "dev"

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_verify_raises_403_when_header_missing(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key:alice"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key=None)

        assert exc_info.value.status_code == 403
        assert "Missing API key" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_verify_raises_403_when_key_invalid(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key:alice"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key="wrong-key")

        assert exc_info.value.status_code == 403
        assert "Invalid or missing API key" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_verify_returns_principal(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "my-valid-key:alice:4"

        principal = await verify_api_key(x_api_key="my-valid-key")

        assert (principal.user_id, principal.organization_id) == ("alice", 4)


class TestRequirePermission:
    @pytest.mark.asyncio
    async def test_principal_with_permission_passes(self) -> None:
        dependency = require_permission(PERMISSION_SEND_CAMPAIGNS)
        principal = Principal(user_id="alice", organization_id=1, permissions=ALL_PERMISSIONS)

        assert await dependency(principal=principal) is principal

    @pytest.mark.asyncio
    async def test_principal_without_permission_gets_403(self) -> None:
        dependency = require_permission(PERMISSION_SEND_CAMPAIGNS)
        principal = Principal(
            user_id="bob",
            organization_id=1,
            permissions=frozenset({PERMISSION_VIEW_DASHBOARD}),
        )

        with pytest.raises(HTTPException) as exc_info:
            await dependency(principal=principal)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Permission denied"
