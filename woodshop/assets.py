"""
Remote asset host abstraction for Cloudinary and in-memory testing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

import cloudinary.api
import cloudinary.uploader
from cloudinary import exceptions as cloudinary_exceptions

logger = logging.getLogger(__name__)

# Cloudinary caps admin API listings at 500 entries per page.
MAX_RESULTS_PER_PAGE = 500
# Admin API listings and prefix deletes are scoped to a single resource type.
RESOURCE_TYPES = ("image", "video", "raw")


class AssetHostError(Exception):
    """A call to the remote asset host failed."""


class AssetNotFoundError(AssetHostError):
    """The requested asset does not exist on the remote host."""


class AssetHost(Protocol):
    """Defines the operations the API needs from the remote image host."""

    def list_folders(self, namespace: str) -> list[str]:
        ...

    def oldest_asset_time(self, folder: str) -> Optional[datetime]:
        ...

    def delete_folder(self, folder: str) -> None:
        ...

    def delete_asset(self, asset_id: str) -> None:
        ...


@dataclass
class InMemoryAssetHost:
    """Test double for the asset host.

    ``folders`` maps a folder path to ``{asset_id: created_at}``. The
    ``fail_*`` attributes inject errors for individual calls.
    """

    folders: dict = field(default_factory=dict)
    fail_listing: bool = False
    fail_lookup: set = field(default_factory=set)
    fail_delete: set = field(default_factory=set)
    deleted_assets: list = field(default_factory=list)

    def add_asset(self, folder: str, asset_id: str, created_at: datetime) -> None:
        self.folders.setdefault(folder, {})[asset_id] = created_at

    def list_folders(self, namespace: str) -> list[str]:
        if self.fail_listing:
            raise AssetHostError("listing failed")
        if not namespace:
            return list(self.folders)
        prefix = namespace.rstrip("/") + "/"
        return [f for f in self.folders if f.startswith(prefix)]

    def oldest_asset_time(self, folder: str) -> Optional[datetime]:
        if folder in self.fail_lookup:
            raise AssetHostError(f"lookup failed for {folder}")
        assets = self.folders.get(folder) or {}
        if not assets:
            return None
        return min(assets.values())

    def delete_folder(self, folder: str) -> None:
        if folder in self.fail_delete:
            raise AssetHostError(f"delete failed for {folder}")
        self.folders.pop(folder, None)

    def delete_asset(self, asset_id: str) -> None:
        for assets in self.folders.values():
            if asset_id in assets:
                del assets[asset_id]
                self.deleted_assets.append(asset_id)
                return
        raise AssetNotFoundError(asset_id)


def _parse_created_at(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class CloudinaryAssetHost:
    """
    Cloudinary admin API client. Credentials are passed on every call so the
    SDK's process-wide configuration is never touched.
    """

    cloud_name: str
    api_key: str
    api_secret: str

    @property
    def _options(self) -> dict:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
        }

    def list_folders(self, namespace: str) -> list[str]:
        folders: list[str] = []
        cursor = None
        try:
            while True:
                kwargs = dict(self._options, max_results=MAX_RESULTS_PER_PAGE)
                if cursor:
                    kwargs["next_cursor"] = cursor
                if namespace:
                    response = cloudinary.api.subfolders(namespace, **kwargs)
                else:
                    response = cloudinary.api.root_folders(**kwargs)
                folders.extend(f["path"] for f in response.get("folders", []))
                cursor = response.get("next_cursor")
                if not cursor:
                    return folders
        except cloudinary_exceptions.NotFound:
            # Namespace folder does not exist yet: nothing has been uploaded.
            return []
        except cloudinary_exceptions.Error as exc:
            raise AssetHostError(f"Failed to list folders under {namespace!r}: {exc}") from exc

    def oldest_asset_time(self, folder: str) -> Optional[datetime]:
        oldest: Optional[datetime] = None
        try:
            for resource_type in RESOURCE_TYPES:
                cursor = None
                while True:
                    kwargs = dict(
                        self._options,
                        resource_type=resource_type,
                        type="upload",
                        prefix=folder.rstrip("/") + "/",
                        max_results=MAX_RESULTS_PER_PAGE,
                    )
                    if cursor:
                        kwargs["next_cursor"] = cursor
                    response = cloudinary.api.resources(**kwargs)
                    for resource in response.get("resources", []):
                        created_raw = resource.get("created_at")
                        if not created_raw:
                            continue
                        created = _parse_created_at(created_raw)
                        if oldest is None or created < oldest:
                            oldest = created
                    cursor = response.get("next_cursor")
                    if not cursor:
                        break
        except cloudinary_exceptions.Error as exc:
            raise AssetHostError(f"Failed to inspect folder {folder!r}: {exc}") from exc
        return oldest

    def delete_folder(self, folder: str) -> None:
        prefix = folder.rstrip("/") + "/"
        try:
            # A folder must be empty of every resource type before it can be removed.
            for resource_type in RESOURCE_TYPES:
                # Deletion by prefix is capped per call; "partial" signals more remain.
                while True:
                    response = cloudinary.api.delete_resources_by_prefix(
                        prefix, resource_type=resource_type, **self._options
                    )
                    if not response.get("partial"):
                        break
            cloudinary.api.delete_folder(folder, **self._options)
        except cloudinary_exceptions.NotFound:
            logger.info("Folder %s already gone", folder)
        except cloudinary_exceptions.Error as exc:
            raise AssetHostError(f"Failed to delete folder {folder!r}: {exc}") from exc

    def delete_asset(self, asset_id: str) -> None:
        try:
            response = cloudinary.uploader.destroy(asset_id, **self._options)
        except cloudinary_exceptions.Error as exc:
            raise AssetHostError(f"Failed to delete asset {asset_id!r}: {exc}") from exc
        result = response.get("result")
        if result == "not found":
            raise AssetNotFoundError(asset_id)
        if result != "ok":
            raise AssetHostError(f"Unexpected delete result for {asset_id!r}: {result}")
