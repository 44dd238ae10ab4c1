import importlib.util
import io
import sys
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

from woodshop.assets import InMemoryAssetHost
from woodshop.db import InMemoryDbClient, ProjectRecord

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "cleanup_orphaned_folders.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("cleanup_orphaned_folders", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class CleanupScriptTests(unittest.TestCase):
    def setUp(self):
        self.script = _load_script()
        self.db = InMemoryDbClient()
        self.host = InMemoryAssetHost()
        old = datetime.now(timezone.utc) - timedelta(hours=3)
        self.host.add_asset("projects/old", "projects/old/1", old)
        self.host.add_asset("projects/kept", "projects/kept/1", old)
        self.db.create_project(ProjectRecord(title="Kept", cloudinary_folder="projects/kept"))

    def _run(self, *args):
        out = io.StringIO()
        with patch.object(self.script, "get_asset_host", return_value=self.host), patch.object(
            self.script, "get_db_client", return_value=self.db
        ), patch.object(sys, "argv", ["cleanup_orphaned_folders.py", *args]), redirect_stdout(out):
            code = self.script.main()
        return code, out.getvalue()

    def test_dry_run_lists_without_deleting(self):
        code, output = self._run("--dry-run", "--namespace", "projects")

        self.assertEqual(code, 0)
        self.assertEqual(output.strip().splitlines(), ["Would delete projects/old"])
        self.assertIn("projects/old", self.host.folders)

    def test_deletes_orphaned_folders(self):
        code, output = self._run("--namespace", "projects", "--max-age-seconds", "60")

        self.assertEqual(code, 0)
        self.assertIn("Deleted projects/old", output)
        self.assertNotIn("projects/old", self.host.folders)
        self.assertIn("projects/kept", self.host.folders)

    def test_listing_failure_exits_non_zero(self):
        self.host.fail_listing = True
        code, output = self._run("--namespace", "projects")
        self.assertEqual(code, 1)
        self.assertEqual(output, "")

    @patch("woodshop.dependencies.get_settings")
    def test_refuses_real_host_with_fallback_database(self, mock_settings):
        mock_settings.return_value = MagicMock(use_in_memory_backends=False)
        self.host = MagicMock()

        code, _ = self._run("--namespace", "projects")

        self.assertEqual(code, 1)
        self.host.list_folders.assert_not_called()
        self.host.delete_folder.assert_not_called()


if __name__ == "__main__":
    unittest.main()
