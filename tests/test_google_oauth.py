"""Tests for the Google OAuth session provider."""

import time
from unittest.mock import MagicMock, patch

import pytest

from controltime.adapters.google_oauth import (
    AuthenticationError,
    GoogleSessionProvider,
    authorization_url,
    exchange_code,
)
from controltime.config import Config, Session


@pytest.fixture
def config():
    return Config(google_client_id="client-id", google_client_secret="secret")


@pytest.fixture
def session_path(tmp_path):
    return tmp_path / ".session.json"


def response(status_code=200, data=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = data or {}
    resp.text = text
    return resp


class TestCurrentUser:
    def test_signed_out(self, config, session_path):
        assert GoogleSessionProvider(config, session_path).current_user_id() is None

    def test_valid_session(self, config, session_path):
        Session(user_id="u1", access_token="tok", expires_at=int(time.time()) + 3600).save(session_path)
        assert GoogleSessionProvider(config, session_path).current_user_id() == "u1"

    def test_refreshes_expiring_token(self, config, session_path):
        Session(user_id="u1", access_token="old", refresh_token="r", expires_at=1).save(session_path)
        provider = GoogleSessionProvider(config, session_path)
        provider._http = MagicMock()
        provider._http.post.return_value = response(data={"access_token": "new", "expires_in": 3600})

        assert provider.current_user_id() == "u1"

        saved = Session.load(session_path)
        assert saved.access_token == "new"
        assert saved.refresh_token == "r"
        assert saved.expires_at > time.time()

    def test_failed_refresh_is_signed_out(self, config, session_path):
        Session(user_id="u1", access_token="old", refresh_token="r", expires_at=1).save(session_path)
        provider = GoogleSessionProvider(config, session_path)
        provider._http = MagicMock()
        provider._http.post.return_value = response(status_code=400, text="invalid_grant")

        assert provider.current_user_id() is None

    def test_no_refresh_token_is_signed_out(self, config, session_path):
        Session(user_id="u1", access_token="old", expires_at=1).save(session_path)
        assert GoogleSessionProvider(config, session_path).current_user_id() is None


class TestExchangeCode:
    @patch("controltime.adapters.google_oauth.requests")
    def test_reads_profile(self, mock_requests, config):
        mock_requests.post.return_value = response(
            data={"access_token": "tok", "refresh_token": "r", "expires_in": 3600}
        )
        mock_requests.get.return_value = response(
            data={"sub": "1234", "email": "me@example.com", "name": "Me"}
        )

        session = exchange_code(config, "the-code")

        assert session.user_id == "1234"
        assert session.email == "me@example.com"
        assert session.refresh_token == "r"
        assert mock_requests.post.call_args.kwargs["data"]["code"] == "the-code"

    @patch("controltime.adapters.google_oauth.requests")
    def test_token_failure(self, mock_requests, config):
        mock_requests.post.return_value = response(status_code=401, text="bad code")
        with pytest.raises(AuthenticationError, match="bad code"):
            exchange_code(config, "x")


def test_authorization_url(config):
    url = authorization_url(config)
    assert url.startswith("https://accounts.google.com/")
    assert "client_id=client-id" in url
    assert "access_type=offline" in url
