"""
Google sign-in and server-side sessions.

Only emails on the admin allow-list may sign in. A successful sign-in
upserts the user, marks it as admin, and opens a session whose token is
handed back to the browser as a cookie.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

from woodshop.db import DbClient, SessionRecord
from woodshop.errors import Forbidden, InternalError, TransientExternalError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
REQUEST_TIMEOUT = 15  # seconds


@dataclass(frozen=True)
class AdminAllowList:
    """Emails allowed to sign in as admins."""

    emails: frozenset = frozenset()

    @classmethod
    def from_csv(cls, raw: str | None) -> "AdminAllowList":
        entries = (part.strip() for part in (raw or "").split(","))
        return cls(emails=frozenset(e for e in entries if e))

    def allows(self, email: str | None) -> bool:
        # An empty allow-list denies everyone.
        return bool(email) and email in self.emails


@dataclass(frozen=True)
class GoogleUser:
    email: str
    name: Optional[str] = None


class SignInService:
    def __init__(self, db: DbClient, allow_list: AdminAllowList, session_max_age: int):
        self.db = db
        self.allow_list = allow_list
        self.session_max_age = session_max_age

    def sign_in(self, email: str, name: str | None = None) -> SessionRecord:
        if not self.allow_list.allows(email):
            logger.warning("Rejected sign-in for %s", email)
            raise Forbidden("AccessDenied")
        now = time.time()
        purged = self.db.delete_expired_sessions(now)
        if purged:
            logger.info("Purged %d expired session(s)", purged)
        user = self.db.upsert_user(email, name=name, is_admin=True)
        session = self.db.create_session(user.id, now + self.session_max_age)
        logger.info("Signed in %s", email)
        return session

    def sign_out(self, token: str | None) -> None:
        if token:
            self.db.delete_session(token)


@dataclass
class GoogleOAuthClient:
    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: str

    def _require_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise InternalError("Google sign-in is not configured")

    def authorization_url(self, state: str) -> str:
        self._require_credentials()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "prompt": "select_account",
        }
        return requests.Request("GET", GOOGLE_AUTH_URL, params=params).prepare().url

    def fetch_user(self, code: str) -> GoogleUser:
        """
        Exchanges an authorization code for the signed-in Google account.

        Raises:
            TransientExternalError: If Google cannot be reached or rejects the code.
            Forbidden: If the account's email is missing or unverified.
        """
        self._require_credentials()
        try:
            token_response = requests.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=REQUEST_TIMEOUT,
            )
            token_response.raise_for_status()
            access_token = token_response.json()["access_token"]

            userinfo_response = requests.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=REQUEST_TIMEOUT,
            )
            userinfo_response.raise_for_status()
            userinfo = userinfo_response.json()
        except (requests.RequestException, KeyError, ValueError) as exc:
            raise TransientExternalError(f"Google sign-in failed: {exc}") from exc

        email = userinfo.get("email")
        if not email or not userinfo.get("email_verified", False):
            raise Forbidden("AccessDenied")
        return GoogleUser(email=email, name=userinfo.get("name"))
