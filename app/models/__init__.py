"""Database models."""
from app.models.bearer_token import BearerToken
from app.models.access_key import AccessKey
from app.models.resource import Resource
from app.models.filter import Filter, TagDictionaryEntry
from app.models.admin_setting import AdminSetting

__all__ = [
    "BearerToken",
    "AccessKey",
    "Resource",
    "Filter",
    "TagDictionaryEntry",
    "AdminSetting",
]
