"""
Key/value site settings backing the editable page sections.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from woodshop.db import DbClient
from woodshop.errors import ValidationError

logger = logging.getLogger(__name__)

# Keys are namespaced by page section, e.g. "about.pageTitle".
SETTING_KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z0-9_]+)+$")
MAX_KEY_LENGTH = 128

ABOUT_KEYS = (
    "about.pageTitle",
    "about.pageTagline",
    "about.ourStoryHeading",
    "about.ourStoryBody",
    "about.whatWeDo",
)

HOME_KEYS = (
    "home.heroTitle",
    "home.heroSubtitle",
    "home.heroImagePublicId",
)


def validate_key(key: str) -> str:
    key = (key or "").strip()
    if len(key) > MAX_KEY_LENGTH or not SETTING_KEY_PATTERN.match(key):
        raise ValidationError(f"Invalid setting key: {key!r}")
    return key


class SiteSettingsStore:
    def __init__(self, db: DbClient):
        self.db = db

    def get_many(self, keys) -> dict[str, Optional[str]]:
        """Returns every requested key; unset keys map to None."""
        keys = [validate_key(k) for k in keys]
        stored = self.db.get_site_settings(keys)
        return {k: stored.get(k) for k in keys}

    def set(self, key: str, value: Optional[str]) -> None:
        key = validate_key(key)
        self.db.save_site_setting(key, value)
        logger.info("Updated site setting %s", key)


def parse_what_we_do(raw: Optional[str]) -> Optional[dict]:
    """
    Parses the stored "What We Do" section.

    The value is a JSON object ``{"heading": str, "cards": [{"title": str,
    "description": str}, ...]}``. Cards missing either string field are
    dropped. Returns None for empty, malformed or wrongly shaped values.
    """
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    heading = parsed.get("heading")
    cards = parsed.get("cards")
    if not isinstance(heading, str) or not isinstance(cards, list):
        return None
    valid_cards = [
        {"title": c["title"], "description": c["description"]}
        for c in cards
        if isinstance(c, dict)
        and isinstance(c.get("title"), str)
        and isinstance(c.get("description"), str)
    ]
    return {"heading": heading, "cards": valid_cards}
