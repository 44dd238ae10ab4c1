"""
Delete Cloudinary project folders that no saved project references.

Meant to run from cron against the same database and Cloudinary account as
the web app, as an alternative to calling ``GET /api/cleanup``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from woodshop.config import get_settings
from woodshop.dependencies import check_cleanup_backends, get_asset_host, get_db_client
from woodshop.errors import InternalError, TransientExternalError
from woodshop.projects import known_project_folders
from woodshop.reconciler import reconcile

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Orphaned project folder cleanup")
    parser.add_argument(
        "--max-age-seconds",
        type=int,
        default=settings.orphaned_folder_age_seconds,
        help="Only delete folders whose oldest image is older than this",
    )
    parser.add_argument(
        "--namespace",
        type=str,
        default=settings.cloudinary_projects_folder,
        help="Cloudinary folder holding per-project folders",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List folders that would be deleted without deleting them",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    host = get_asset_host()
    db = get_db_client()
    try:
        check_cleanup_backends(db, host)
        deleted = reconcile(
            host,
            known_project_folders(db),
            timedelta(seconds=args.max_age_seconds),
            namespace=args.namespace,
            dry_run=args.dry_run,
        )
    except (InternalError, TransientExternalError) as exc:
        logger.error("Cleanup failed: %s", exc.message)
        return 1

    verb = "Would delete" if args.dry_run else "Deleted"
    for folder in deleted:
        print(f"{verb} {folder}")
    logger.info("%s %d orphaned folder(s)", verb, len(deleted))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
