"""
Site header configuration stored in admin settings.
"""
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import run_with_retry
from app.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)

DEFAULT_AVATAR = "K"
DEFAULT_TITLE = "卡卡AI知识库"

# Field name -> admin settings key
HEADER_KEYS = {
    "avatar": "header_avatar",
    "avatarImage": "header_avatar_image",
    "title": "header_title",
    "contactImage": "contact_image",
    "cooperationImage": "cooperation_image",
}


def _subtitle_key(category: str) -> str:
    return f"category_subtitle_{category}"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip() == "":
        return None
    return value


class SiteConfigService:
    def __init__(self, db: Session):
        self.db = db
        self.store = SettingsStore(db)

    def get_header(self) -> Dict:
        keys = list(HEADER_KEYS.values()) + [_subtitle_key(c) for c in settings.CATEGORIES]
        values = self.store.get_many(keys)

        return {
            "avatar": values[HEADER_KEYS["avatar"]] or DEFAULT_AVATAR,
            "avatarImage": _blank_to_none(values[HEADER_KEYS["avatarImage"]]),
            "title": values[HEADER_KEYS["title"]] or DEFAULT_TITLE,
            "contactImage": _blank_to_none(values[HEADER_KEYS["contactImage"]]),
            "cooperationImage": _blank_to_none(values[HEADER_KEYS["cooperationImage"]]),
            "categorySubtitles": {
                category: _blank_to_none(values[_subtitle_key(category)])
                for category in settings.CATEGORIES
            },
        }

    def save_header(
        self,
        avatar: str,
        title: str,
        avatar_image: Optional[str] = None,
        contact_image: Optional[str] = None,
        cooperation_image: Optional[str] = None,
        category_subtitles: Optional[Dict[str, Optional[str]]] = None,
    ) -> Dict:
        """Persist the header. Empty images are cleared; unknown categories are ignored."""
        def unit():
            self.store.set(HEADER_KEYS["avatar"], avatar)
            self.store.set(HEADER_KEYS["title"], title)
            self.store.set(HEADER_KEYS["avatarImage"], avatar_image or "")
            self.store.set(HEADER_KEYS["contactImage"], contact_image or "")
            self.store.set(HEADER_KEYS["cooperationImage"], cooperation_image or "")
            if category_subtitles is not None:
                for category in settings.CATEGORIES:
                    subtitle = category_subtitles.get(category)
                    self.store.set(_subtitle_key(category), (subtitle or "").strip())
            self.db.commit()

        run_with_retry(self.db, unit)
        logger.info(f"Header config updated: title={title}")
        return self.get_header()
