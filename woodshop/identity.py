"""
Resolves the signed-in identity behind a request's session token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from woodshop.db import DbClient


@dataclass(frozen=True)
class Identity:
    user_id: Optional[str]
    email: Optional[str]
    name: Optional[str] = None


def session_token_from_request(request: Request, cookie_name: str) -> Optional[str]:
    """Read the session token from the session cookie or a Bearer header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth_header = request.headers.get("authorization")
    if auth_header:
        parts = auth_header.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
    return None


class SessionResolver:
    """Maps a session token to the identity of the user who owns it."""

    def __init__(self, db: DbClient):
        self.db = db

    def resolve(self, token: Optional[str], now: float | None = None) -> Optional[Identity]:
        if not token:
            return None
        session = self.db.get_session(token)
        if session is None:
            return None
        if session.is_expired(now):
            self.db.delete_session(token)
            return None
        user = self.db.get_user(session.user_id)
        if user is None:
            # Session outlived its user row; keep the id so the guard can decide.
            return Identity(user_id=session.user_id, email=None)
        return Identity(user_id=user.id, email=user.email, name=user.name)
