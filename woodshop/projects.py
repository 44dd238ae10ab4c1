"""
Project gallery listing and the folder references used by cleanup.
"""

from __future__ import annotations

from datetime import datetime, timezone

from woodshop.db import DbClient, ProjectRecord

# Number of projects per gallery page.
PAGE_SIZE = 6
# Tag filter value selecting projects without any tags.
TAG_NONE = "__none__"


def known_project_folders(db: DbClient) -> set[str]:
    """Cloudinary folders referenced by saved projects (blank values ignored)."""
    return {f.strip() for f in db.list_project_folders() if f and f.strip()}


def list_projects(
    db: DbClient, page: int = 1, tag: str | None = None, page_size: int = PAGE_SIZE
) -> tuple[list[ProjectRecord], bool]:
    """Returns one page of projects and whether more pages follow."""
    projects = db.list_projects()
    if tag == TAG_NONE:
        projects = [p for p in projects if not p.tags]
    elif tag:
        projects = [p for p in projects if tag in p.tags]

    start = (page - 1) * page_size
    end = start + page_size
    return projects[start:end], len(projects) > end


def list_tags(db: DbClient) -> list[str]:
    return sorted({t for p in db.list_projects() for t in p.tags})


def format_project_date(created_at: float, date_is_month_only: bool = False) -> str:
    """
    Formats a project date for display.

    >>> format_project_date(datetime(2026, 2, 15, tzinfo=timezone.utc).timestamp())
    'February 15, 2026'
    >>> format_project_date(datetime(2026, 2, 1, tzinfo=timezone.utc).timestamp(), True)
    'February 2026'
    """
    d = datetime.fromtimestamp(created_at, tz=timezone.utc)
    if date_is_month_only:
        return f"{d:%B} {d.year}"
    return f"{d:%B} {d.day}, {d.year}"
