import time
import unittest

from woodshop.db import PostgresDbClient, ProjectRecord
from woodshop.projects import known_project_folders


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_upsert_user_and_lookup(self):
        user = self.db.upsert_user("owner@example.com", name="Owner")
        self.assertFalse(user.is_admin)

        promoted = self.db.upsert_user("owner@example.com", is_admin=True)
        self.assertEqual(promoted.id, user.id)
        self.assertTrue(promoted.is_admin)
        self.assertEqual(promoted.name, "Owner")

        self.assertEqual(self.db.get_user(user.id).email, "owner@example.com")
        self.assertEqual(self.db.get_user_by_email("owner@example.com").id, user.id)
        self.assertIsNone(self.db.get_user("missing"))

    def test_session_lifecycle(self):
        user = self.db.upsert_user("owner@example.com")
        session = self.db.create_session(user.id, time.time() + 60)

        fetched = self.db.get_session(session.token)
        self.assertEqual(fetched.user_id, user.id)
        self.assertFalse(fetched.is_expired())

        self.db.delete_session(session.token)
        self.assertIsNone(self.db.get_session(session.token))
        # Deleting twice is harmless.
        self.db.delete_session(session.token)

    def test_site_settings_upsert(self):
        self.db.save_site_setting("about.pageTitle", "One")
        self.db.save_site_setting("about.pageTitle", "Two")
        self.db.save_site_setting("about.pageTagline", None)

        settings = self.db.get_site_settings(
            ["about.pageTitle", "about.pageTagline", "about.missing"]
        )
        self.assertEqual(
            settings, {"about.pageTitle": "Two", "about.pageTagline": None}
        )
        self.assertEqual(self.db.get_site_settings([]), {})

    def test_projects_and_folder_references(self):
        self.db.create_project(
            ProjectRecord(title="Old", cloudinary_folder="projects/a", created_at=1.0)
        )
        self.db.create_project(
            ProjectRecord(title="New", cloudinary_folder=" ", created_at=2.0)
        )
        self.db.create_project(ProjectRecord(title="Bare", tags=["x"], created_at=3.0))
        pinned = self.db.create_project(
            ProjectRecord(title="Pinned", sort_order=-1, created_at=0.5)
        )

        titles = [p.title for p in self.db.list_projects()]
        self.assertEqual(titles, ["Pinned", "Bare", "New", "Old"])
        self.assertEqual(self.db.get_project(pinned.id).sort_order, -1)
        self.assertEqual(known_project_folders(self.db), {"projects/a"})

        self.assertTrue(self.db.delete_project(pinned.id))
        self.assertFalse(self.db.delete_project(pinned.id))

    def test_expired_sessions_are_purged(self):
        user = self.db.upsert_user("owner@example.com")
        now = time.time()
        stale = self.db.create_session(user.id, now - 5)
        live = self.db.create_session(user.id, now + 60)

        self.assertEqual(self.db.delete_expired_sessions(now), 1)
        self.assertIsNone(self.db.get_session(stale.token))
        self.assertIsNotNone(self.db.get_session(live.token))

    def test_update_and_reorder_projects(self):
        first = self.db.create_project(ProjectRecord(title="First", created_at=1.0))
        second = self.db.create_project(ProjectRecord(title="Second", created_at=2.0))

        updated = self.db.update_project(
            first.id,
            {"title": "Renamed", "tags": ["oak"], "cloudinary_folder": "projects/f"},
        )
        self.assertEqual(updated.title, "Renamed")
        self.assertEqual(self.db.get_project(first.id).tags, ["oak"])
        self.assertEqual(known_project_folders(self.db), {"projects/f"})
        self.assertIsNone(self.db.update_project("missing", {"title": "x"}))

        self.db.reorder_projects([first.id, second.id])
        self.assertEqual(
            [p.title for p in self.db.list_projects()], ["Renamed", "Second"]
        )
        self.assertEqual(self.db.get_project(second.id).sort_order, 1)


if __name__ == "__main__":
    unittest.main()
