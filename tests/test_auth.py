"""Unit tests for API key authentication on the governor's HTTP surface."""

from unittest.mock import patch

import pytest
from fastapi import HTTPException

from governor.core.auth import parse_api_keys, validate_api_key, verify_api_key
from governor.core.errors import AuthenticationAppError


class TestParseAPIKeys:
    """Test API key parsing utility function."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("ops-key", {"ops-key"}),
            ("ops-key,dashboard-key", {"ops-key", "dashboard-key"}),
            (" ops-key ,  dashboard-key ", {"ops-key", "dashboard-key"}),
            ("ops-key,ops-key", {"ops-key"}),
        ],
    )
    def test_parse_keys(self, raw: str, expected: set[str]) -> None:
        """Keys are split on commas, trimmed and deduplicated."""
        assert parse_api_keys(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ,  ,  "])
    def test_parse_blank_returns_empty_set(self, raw: str | None) -> None:
        assert parse_api_keys(raw) == set()


class TestValidateAPIKey:
    """Test core API key validation logic."""

    @patch("governor.core.auth.settings")
    def test_validate_bypassed_when_auth_disabled(self, mock_settings) -> None:
        """Validation is skipped when APP_API_KEY_REQUIRED=false."""
        mock_settings.app.api_key_required = False

        validate_api_key("anything")
        validate_api_key("")

    @pytest.mark.parametrize("configured", [None, "", " , "])
    @patch("governor.core.auth.settings")
    def test_validate_raises_when_no_keys_configured(self, mock_settings, configured) -> None:
        """Auth required without configured keys fails closed."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = configured

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("some-key")

        assert exc_info.value.code == "api_keys_not_configured"
        assert "APP_API_KEYS" in exc_info.value.details["hint"]

    @patch("governor.core.auth.settings")
    def test_validate_accepts_configured_keys(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = " ops-key , dashboard-key "

        validate_api_key("ops-key")
        validate_api_key("dashboard-key")

    @pytest.mark.parametrize("provided", ["wrong-key", "", " ops-key "])
    @patch("governor.core.auth.settings")
    def test_validate_rejects_unknown_keys(self, mock_settings, provided: str) -> None:
        """Unknown, empty and untrimmed keys are all rejected."""
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "ops-key"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key(provided)

        assert exc_info.value.code == "invalid_api_key"


class TestVerifyAPIKeyDependency:
    """Test the FastAPI dependency guarding governor routes."""

    @pytest.mark.asyncio
    @patch("governor.core.auth.settings")
    async def test_verify_bypassed_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False

        await verify_api_key(x_api_key=None)

    @pytest.mark.asyncio
    @patch("governor.core.auth.settings")
    async def test_verify_raises_403_when_header_missing(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "ops-key"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key=None)

        assert exc_info.value.status_code == 403
        assert "Missing API key" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("governor.core.auth.settings")
    async def test_verify_raises_403_when_key_invalid(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "ops-key"

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key="wrong-key")

        assert exc_info.value.status_code == 403
        assert "Invalid or missing API key" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("governor.core.auth.settings")
    async def test_verify_accepts_valid_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "ops-key,dashboard-key"

        await verify_api_key(x_api_key="dashboard-key")

    @pytest.mark.asyncio
    @patch("governor.core.auth.settings")
    async def test_verify_raises_403_when_keys_not_configured(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = None

        with pytest.raises(HTTPException) as exc_info:
            await verify_api_key(x_api_key="ops-key")

        assert exc_info.value.status_code == 403
        assert "no valid keys are configured" in exc_info.value.detail
