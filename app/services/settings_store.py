"""
Admin settings persistence (key/value).
"""
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from app.models.admin_setting import AdminSetting


class SettingsStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.query(AdminSetting).filter(AdminSetting.key == key).first()
        return row.value if row else None

    def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        keys = list(keys)
        rows = self.db.query(AdminSetting).filter(AdminSetting.key.in_(keys)).all()
        found = {row.key: row.value for row in rows}
        return {key: found.get(key) for key in keys}

    def set(self, key: str, value: str) -> None:
        """Insert or update a setting. The caller commits."""
        row = self.db.query(AdminSetting).filter(AdminSetting.key == key).first()
        if row is None:
            self.db.add(AdminSetting(key=key, value=value))
        else:
            row.value = value
        self.db.flush()
