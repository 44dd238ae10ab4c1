"""
Orphaned Cloudinary folder cleanup and single-asset deletion.

Images for a new project are uploaded into a per-project folder before the
project itself is saved. If the editor is abandoned, the folder is left
behind with no project pointing at it. ``reconcile`` removes such folders
once their oldest image is older than the configured threshold.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from woodshop.assets import AssetHost, AssetHostError, AssetNotFoundError
from woodshop.errors import NotFound, TransientExternalError

logger = logging.getLogger(__name__)

DEFAULT_ORPHANED_FOLDER_AGE = timedelta(hours=1)


def reconcile(
    host: AssetHost,
    known_folders: Iterable[str],
    age_threshold: timedelta = DEFAULT_ORPHANED_FOLDER_AGE,
    *,
    namespace: str = "projects",
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> list[str]:
    """
    Delete remote folders that no project references and that are older
    than ``age_threshold``.

    Args:
        host: Remote asset host client.
        known_folders: Folder identifiers referenced by saved projects. These
            are never touched.
        age_threshold: Minimum age of a folder's oldest asset before the
            folder may be deleted.
        namespace: Parent folder holding the per-project folders.
        now: Reference time (defaults to the current UTC time).
        dry_run: Report eligible folders without deleting them.

    Returns:
        list[str]: Identifiers of deleted (or, with ``dry_run``, eligible)
        folders, in listing order.

    Raises:
        TransientExternalError: If the folder listing itself fails.
    """
    known = set(known_folders)
    current = now or datetime.now(timezone.utc)

    try:
        folders = host.list_folders(namespace)
    except AssetHostError as exc:
        raise TransientExternalError(str(exc)) from exc

    deleted: list[str] = []
    for folder in folders:
        if folder in known or folder in deleted:
            continue

        try:
            oldest = host.oldest_asset_time(folder)
        except AssetHostError as exc:
            logger.warning("Skipping folder %s: %s", folder, exc)
            continue
        if oldest is None:
            continue
        if current - oldest <= age_threshold:
            continue

        if dry_run:
            deleted.append(folder)
            continue
        try:
            host.delete_folder(folder)
        except AssetHostError as exc:
            logger.warning("Failed to delete orphaned folder %s: %s", folder, exc)
            continue
        logger.info("Deleted orphaned folder %s", folder)
        deleted.append(folder)

    return deleted


def delete_asset(host: AssetHost, asset_id: str) -> None:
    """Delete a single uploaded image. Callers must have authorized an admin."""
    try:
        host.delete_asset(asset_id)
    except AssetNotFoundError as exc:
        raise NotFound(f"Asset not found: {asset_id}") from exc
    except AssetHostError as exc:
        raise TransientExternalError(str(exc)) from exc
    logger.info("Deleted asset %s", asset_id)
