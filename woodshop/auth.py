"""
Admin authorization guard.

``AdminGuard.authorize`` turns an optional identity into one of three
decisions. Routes consume it through the ``require_admin`` dependency,
which raises the matching API error for anything but ``Authorized``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, Request

from woodshop import errors
from woodshop.config import get_settings
from woodshop.db import DbClient
from woodshop.dependencies import get_db_client
from woodshop.identity import Identity, SessionResolver, session_token_from_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Authorized:
    identity: Identity


@dataclass(frozen=True)
class Unauthenticated:
    pass


@dataclass(frozen=True)
class Forbidden:
    pass


Decision = Union[Authorized, Unauthenticated, Forbidden]


class AdminGuard:
    """Read-and-decide check of a resolved identity's admin flag."""

    def __init__(self, db: DbClient):
        self.db = db

    def authorize(self, identity: Optional[Identity]) -> Decision:
        if identity is None:
            return Unauthenticated()

        # Storage errors propagate to the caller.
        if identity.user_id:
            user = self.db.get_user(identity.user_id)
        elif identity.email:
            user = self.db.get_user_by_email(identity.email)
        else:
            user = None

        if user is None or not user.is_admin:
            return Forbidden()
        return Authorized(identity=identity)


def current_identity(
    request: Request, db: DbClient = Depends(get_db_client)
) -> Optional[Identity]:
    """FastAPI dependency returning the signed-in identity, if any."""
    token = session_token_from_request(request, get_settings().session_cookie_name)
    return SessionResolver(db).resolve(token)


def is_admin(identity: Optional[Identity], db: DbClient) -> bool:
    return isinstance(AdminGuard(db).authorize(identity), Authorized)


def require_admin(
    identity: Optional[Identity] = Depends(current_identity),
    db: DbClient = Depends(get_db_client),
) -> Identity:
    """FastAPI dependency that only lets admins through."""
    decision = AdminGuard(db).authorize(identity)
    if isinstance(decision, Authorized):
        return decision.identity
    if isinstance(decision, Unauthenticated):
        raise errors.Unauthenticated()
    logger.info("Denied admin access to %s", identity.email if identity else None)
    raise errors.Forbidden()
