import time
import unittest
from unittest.mock import MagicMock

from starlette.requests import Request

from woodshop.auth import AdminGuard, Authorized, Forbidden, Unauthenticated
from woodshop.db import InMemoryDbClient
from woodshop import errors
from woodshop.identity import Identity, SessionResolver, session_token_from_request
from woodshop.signin import AdminAllowList, SignInService


def _request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "headers": raw})


class AdminGuardTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.guard = AdminGuard(self.db)

    def test_no_identity_is_unauthenticated(self):
        self.assertIsInstance(self.guard.authorize(None), Unauthenticated)

    def test_admin_by_id_is_authorized(self):
        user = self.db.upsert_user("owner@example.com", is_admin=True)
        identity = Identity(user_id=user.id, email=user.email)

        decision = self.guard.authorize(identity)

        self.assertIsInstance(decision, Authorized)
        self.assertEqual(decision.identity, identity)

    def test_falls_back_to_email_lookup(self):
        self.db.upsert_user("owner@example.com", is_admin=True)
        decision = self.guard.authorize(Identity(user_id=None, email="owner@example.com"))
        self.assertIsInstance(decision, Authorized)

    def test_non_admin_is_forbidden(self):
        user = self.db.upsert_user("visitor@example.com", is_admin=False)
        decision = self.guard.authorize(Identity(user_id=user.id, email=user.email))
        self.assertIsInstance(decision, Forbidden)

    def test_missing_user_is_forbidden(self):
        decision = self.guard.authorize(Identity(user_id="ghost", email=None))
        self.assertIsInstance(decision, Forbidden)

    def test_identity_without_id_or_email_is_forbidden(self):
        self.assertIsInstance(
            self.guard.authorize(Identity(user_id=None, email=None)), Forbidden
        )

    def test_storage_errors_propagate(self):
        db = MagicMock()
        db.get_user.side_effect = RuntimeError("db down")
        with self.assertRaises(RuntimeError):
            AdminGuard(db).authorize(Identity(user_id="u1", email=None))


class SessionResolverTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.user = self.db.upsert_user("owner@example.com", name="Owner")
        self.resolver = SessionResolver(self.db)

    def test_resolves_live_session(self):
        session = self.db.create_session(self.user.id, time.time() + 60)
        identity = self.resolver.resolve(session.token)
        self.assertEqual(identity.user_id, self.user.id)
        self.assertEqual(identity.email, "owner@example.com")

    def test_expired_session_resolves_to_none(self):
        session = self.db.create_session(self.user.id, time.time() - 1)
        self.assertIsNone(self.resolver.resolve(session.token))
        self.assertNotIn(session.token, self.db.sessions)

    def test_unknown_or_missing_token(self):
        self.assertIsNone(self.resolver.resolve("unknown"))
        self.assertIsNone(self.resolver.resolve(None))

    def test_token_from_cookie_then_bearer(self):
        self.assertEqual(
            session_token_from_request(_request({"cookie": "sid=abc"}), "sid"), "abc"
        )
        self.assertEqual(
            session_token_from_request(
                _request({"authorization": "Bearer xyz"}), "sid"
            ),
            "xyz",
        )
        self.assertIsNone(session_token_from_request(_request({}), "sid"))


class SignInServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        allow_list = AdminAllowList.from_csv(" owner@example.com , ,helper@example.com")
        self.service = SignInService(self.db, allow_list, session_max_age=3600)

    def test_allow_list_parsing(self):
        self.assertEqual(
            self.service.allow_list.emails,
            frozenset({"owner@example.com", "helper@example.com"}),
        )

    def test_empty_allow_list_denies_everyone(self):
        self.assertFalse(AdminAllowList.from_csv("").allows("owner@example.com"))

    def test_sign_in_marks_admin_and_opens_session(self):
        session = self.service.sign_in("owner@example.com", name="Owner")

        user = self.db.get_user_by_email("owner@example.com")
        self.assertTrue(user.is_admin)
        self.assertEqual(session.user_id, user.id)
        self.assertGreater(session.expires_at, time.time())

    def test_sign_in_rejects_unlisted_email(self):
        with self.assertRaises(errors.Forbidden):
            self.service.sign_in("stranger@example.com")
        self.assertIsNone(self.db.get_user_by_email("stranger@example.com"))

    def test_sign_out_removes_session(self):
        session = self.service.sign_in("owner@example.com")
        self.service.sign_out(session.token)
        self.assertIsNone(self.db.get_session(session.token))

    def test_sign_in_purges_expired_sessions(self):
        stale = self.db.create_session("someone", time.time() - 10)
        live = self.db.create_session("someone", time.time() + 600)

        session = self.service.sign_in("owner@example.com")

        self.assertIsNone(self.db.get_session(stale.token))
        self.assertIsNotNone(self.db.get_session(live.token))
        self.assertIsNotNone(self.db.get_session(session.token))


if __name__ == "__main__":
    unittest.main()
