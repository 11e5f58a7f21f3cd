"""Google OAuth adapter - sign-in and session management."""

import logging
import time
import webbrowser
from pathlib import Path
from urllib.parse import urlencode

import requests

from controltime.config import Config, Session, load_config

logger = logging.getLogger(__name__)

OAUTH_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
REDIRECT_URI = "http://localhost:8080/callback"
SCOPES = "openid email profile"
REFRESH_MARGIN = 300


class AuthenticationError(Exception):
    """Raised when authentication fails."""

    pass


class GoogleSessionProvider:
    """
    Session provider backed by a Google OAuth session file.

    Implements SessionProvider protocol. Refreshes the access token when it
    is about to expire; a session that cannot be refreshed counts as signed out.
    """

    def __init__(self, config: Config | None = None, session_path: Path | None = None):
        self.config = config or load_config()
        self.session_path = session_path
        self._http = requests.Session()

    def session(self) -> Session:
        return Session.load(self.session_path)

    def current_user_id(self) -> str | None:
        session = self.session()
        if not session.is_signed_in:
            return None
        try:
            self._ensure_valid_token(session)
        except AuthenticationError as e:
            logger.warning(f"Session expired for {session.email or session.user_id}: {e}")
            return None
        return session.user_id

    def _ensure_valid_token(self, session: Session) -> None:
        """Refresh token if expired or expiring soon."""
        if session.expires_at and time.time() >= session.expires_at - REFRESH_MARGIN:
            self._refresh_token(session)

    def _refresh_token(self, session: Session) -> None:
        if not session.refresh_token:
            raise AuthenticationError("No refresh token. Run 'controltime auth' again.")

        resp = self._http.post(
            OAUTH_TOKEN_URL,
            data={
                "client_id": self.config.google_client_id,
                "client_secret": self.config.google_client_secret,
                "refresh_token": session.refresh_token,
                "grant_type": "refresh_token",
            },
        )

        if resp.status_code != 200:
            raise AuthenticationError(f"Token refresh failed: {resp.text}")

        data = resp.json()
        session.access_token = data["access_token"]
        if "refresh_token" in data:
            session.refresh_token = data["refresh_token"]
        session.expires_at = int(time.time()) + data.get("expires_in", 3600)
        session.save(self.session_path)
        logger.info("Refreshed Google access token")


def authorization_url(config: Config) -> str:
    return f"{OAUTH_AUTHORIZE_URL}?" + urlencode(
        {
            "client_id": config.google_client_id,
            "redirect_uri": REDIRECT_URI,
            "response_type": "code",
            "scope": SCOPES,
            "access_type": "offline",
            "prompt": "consent",
        }
    )


def exchange_code(config: Config, code: str) -> Session:
    """Trade an authorization code for tokens and the user's profile."""
    resp = requests.post(
        OAUTH_TOKEN_URL,
        data={
            "client_id": config.google_client_id,
            "client_secret": config.google_client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": REDIRECT_URI,
        },
    )

    if resp.status_code != 200:
        raise AuthenticationError(f"Token exchange failed: {resp.text}")

    data = resp.json()
    session = Session(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token", ""),
        expires_at=int(time.time()) + data.get("expires_in", 3600),
    )

    profile = requests.get(
        USERINFO_URL,
        headers={"Authorization": f"Bearer {session.access_token}"},
    )
    if profile.status_code != 200:
        raise AuthenticationError(f"Could not read Google profile: {profile.text}")

    info = profile.json()
    session.user_id = info["sub"]
    session.email = info.get("email", "")
    session.name = info.get("name", "")
    return session


def authorize(config: Config | None = None, session_path: Path | None = None) -> Session:
    """Run OAuth authorization flow."""
    config = config or load_config()

    if not config.google_client_id or not config.google_client_secret:
        raise AuthenticationError(
            "Missing Google credentials. Add them to config/controltime.conf"
        )

    print("Opening browser for Google sign-in...")
    webbrowser.open(authorization_url(config))

    print("\nAfter signing in, you'll be redirected to a page that won't load.")
    print("Copy the 'code' parameter from the URL.\n")

    code = input("Paste the code here: ").strip()
    if not code:
        raise AuthenticationError("No code provided")

    print("Exchanging code for tokens...")
    session = exchange_code(config, code)
    session.save(session_path)

    print(f"Signed in as {session.email or session.user_id}")
    return session
