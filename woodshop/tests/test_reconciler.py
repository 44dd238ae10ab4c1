import unittest
from datetime import datetime, timedelta, timezone

from woodshop.assets import InMemoryAssetHost
from woodshop.errors import NotFound, TransientExternalError
from woodshop.reconciler import delete_asset, reconcile

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


def _host_with(**folder_ages: timedelta) -> InMemoryAssetHost:
    host = InMemoryAssetHost()
    for folder, age in folder_ages.items():
        host.add_asset(f"projects/{folder}", f"projects/{folder}/img1", NOW - age)
    return host


class ReconcileTests(unittest.TestCase):
    def test_only_unknown_old_folders_are_deleted(self):
        host = InMemoryAssetHost()
        host.add_asset("proj-A", "proj-A/1", NOW - timedelta(hours=2))
        host.add_asset("proj-B", "proj-B/1", NOW - timedelta(hours=2))
        host.add_asset("proj-C", "proj-C/1", NOW - timedelta(minutes=30))

        deleted = reconcile(host, {"proj-A"}, HOUR, namespace="", now=NOW)

        self.assertEqual(deleted, ["proj-B"])
        self.assertEqual(sorted(host.folders), ["proj-A", "proj-C"])

    def test_known_folders_are_never_touched(self):
        host = _host_with(a=timedelta(days=30), b=timedelta(days=400))

        deleted = reconcile(
            host, {"projects/a", "projects/b"}, HOUR, now=NOW
        )

        self.assertEqual(deleted, [])
        self.assertEqual(len(host.folders), 2)

    def test_age_equal_to_threshold_is_kept(self):
        host = _host_with(exact=HOUR, older=HOUR + timedelta(seconds=1))

        deleted = reconcile(host, set(), HOUR, now=NOW)

        self.assertEqual(deleted, ["projects/older"])

    def test_oldest_asset_decides_age(self):
        host = InMemoryAssetHost()
        host.add_asset("projects/mixed", "projects/mixed/new", NOW - timedelta(minutes=5))
        host.add_asset("projects/mixed", "projects/mixed/old", NOW - timedelta(hours=3))

        self.assertEqual(reconcile(host, set(), HOUR, now=NOW), ["projects/mixed"])

    def test_empty_folder_is_skipped(self):
        host = _host_with(old=timedelta(hours=5))
        host.folders["projects/empty"] = {}

        deleted = reconcile(host, set(), HOUR, now=NOW)

        self.assertEqual(deleted, ["projects/old"])
        self.assertIn("projects/empty", host.folders)

    def test_lookup_failure_is_skipped(self):
        host = _host_with(broken=timedelta(hours=5), fine=timedelta(hours=5))
        host.fail_lookup.add("projects/broken")

        deleted = reconcile(host, set(), HOUR, now=NOW)

        self.assertEqual(deleted, ["projects/fine"])
        self.assertIn("projects/broken", host.folders)

    def test_delete_failure_is_omitted_from_result(self):
        host = _host_with(stuck=timedelta(hours=5), gone=timedelta(hours=5))
        host.fail_delete.add("projects/stuck")

        with self.assertLogs("woodshop.reconciler", level="WARNING"):
            deleted = reconcile(host, set(), HOUR, now=NOW)

        self.assertEqual(deleted, ["projects/gone"])

    def test_listing_failure_is_fatal(self):
        host = _host_with(old=timedelta(hours=5))
        host.fail_listing = True

        with self.assertRaises(TransientExternalError):
            reconcile(host, set(), HOUR, now=NOW)

    def test_second_run_deletes_nothing(self):
        host = _host_with(a=timedelta(hours=2), b=timedelta(hours=3))

        first = reconcile(host, set(), HOUR, now=NOW)
        second = reconcile(host, set(), HOUR, now=NOW)

        self.assertEqual(sorted(first), ["projects/a", "projects/b"])
        self.assertEqual(second, [])

    def test_folders_outside_namespace_are_ignored(self):
        host = _host_with(old=timedelta(hours=5))
        host.add_asset("hero/banner", "hero/banner/1", NOW - timedelta(days=10))

        deleted = reconcile(host, set(), HOUR, now=NOW)

        self.assertEqual(deleted, ["projects/old"])
        self.assertIn("hero/banner", host.folders)

    def test_dry_run_reports_without_deleting(self):
        host = _host_with(old=timedelta(hours=5), young=timedelta(minutes=1))

        deleted = reconcile(host, set(), HOUR, now=NOW, dry_run=True)

        self.assertEqual(deleted, ["projects/old"])
        self.assertEqual(len(host.folders), 2)


class DeleteAssetTests(unittest.TestCase):
    def test_deletes_existing_asset(self):
        host = _host_with(a=timedelta(hours=1))
        delete_asset(host, "projects/a/img1")
        self.assertEqual(host.deleted_assets, ["projects/a/img1"])
        self.assertEqual(host.folders["projects/a"], {})

    def test_missing_asset_raises_not_found(self):
        with self.assertRaises(NotFound):
            delete_asset(InMemoryAssetHost(), "nope")


if __name__ == "__main__":
    unittest.main()
