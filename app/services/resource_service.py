"""
Resource catalog: resources, category filters and the tag dictionary.

Listing methods return resources in canonical order (featured, newest,
title) so that visibility slicing always exposes the same prefix.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import run_with_retry
from app.core.exceptions import BadRequest
from app.models.filter import Filter, TagDictionaryEntry
from app.models.resource import Resource
from app.models.types import utcnow
from app.schemas.resource import BatchItemError, BatchResult, ResourceIn
from app.services.visibility import canonical_order

logger = logging.getLogger(__name__)


class ResourceService:
    """CRUD over the gallery catalog."""

    def __init__(self, db: Session):
        self.db = db

    # -- Resources --

    def list_by_category(self, category: str) -> List[Resource]:
        rows = self.db.query(Resource).filter(Resource.category == category).all()
        return canonical_order(rows)

    def list_all(self) -> Dict[str, List[Resource]]:
        """All resources grouped by category, each group in canonical order."""
        grouped: Dict[str, List[Resource]] = {}
        for row in self.db.query(Resource).all():
            grouped.setdefault(row.category, []).append(row)
        return {category: canonical_order(rows) for category, rows in grouped.items()}

    def get(self, resource_id: str) -> Optional[Resource]:
        return self.db.query(Resource).filter(Resource.id == resource_id).first()

    def _stage_upsert(self, data: ResourceIn) -> Resource:
        if data.category not in settings.CATEGORIES:
            raise BadRequest(f"Invalid category: {data.category}")

        resource = self.get(data.id)
        if resource is None:
            resource = Resource(id=data.id, created_at=data.created_at or utcnow())
            self.db.add(resource)

        resource.title = data.title
        resource.description = data.description
        resource.category = data.category
        resource.tags = list(data.tags)
        resource.image_url = data.image_url
        resource.link = data.link
        resource.featured = data.featured
        resource.content_type = data.content_type
        resource.content = data.content
        resource.menu = data.menu
        resource.sort_order = data.sort_order
        resource.updated_at = utcnow()
        self.db.flush()
        return resource

    def upsert(self, data: ResourceIn) -> Resource:
        """Create a resource or replace the one with the same id."""
        def unit():
            resource = self._stage_upsert(data)
            self.db.commit()
            return resource

        resource = run_with_retry(self.db, unit)
        logger.info(f"Saved resource {data.id} in {data.category}")
        return resource

    def batch_upsert(self, items: List[Any]) -> BatchResult:
        """
        Upsert many resources, one item at a time.

        An invalid item is reported in `errors` (1-based index) and does not
        stop the others.
        """
        succeeded = 0
        errors: List[BatchItemError] = []

        for index, raw in enumerate(items, start=1):
            try:
                data = ResourceIn.model_validate(raw)
                self.upsert(data)
                succeeded += 1
            except ValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(p) for p in first.get("loc", ()))
                message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid item")
                errors.append(BatchItemError(index=index, message=message))
            except BadRequest as e:
                errors.append(BatchItemError(index=index, message=e.message))

        if errors:
            logger.warning(f"Batch upsert: {succeeded} saved, {len(errors)} failed")
        return BatchResult(total=len(items), success=succeeded, failed=len(errors), errors=errors)

    def delete(self, resource_id: str) -> bool:
        def unit():
            deleted = self.db.query(Resource).filter(Resource.id == resource_id).delete(
                synchronize_session=False
            )
            self.db.commit()
            return deleted > 0

        return run_with_retry(self.db, unit)

    # -- Filters and tag dictionary --

    def _entries(self, model, category: str):
        return (
            self.db.query(model)
            .filter(model.category == category)
            .order_by(model.sort_order, model.id)
            .all()
        )

    def list_filters(self, category: str) -> List[Filter]:
        return self._entries(Filter, category)

    def list_tags(self, category: str) -> List[TagDictionaryEntry]:
        return self._entries(TagDictionaryEntry, category)

    def _upsert_entry(self, model, category: str, label: str, tag: str):
        def unit():
            entry = (
                self.db.query(model)
                .filter(model.category == category, model.tag == tag)
                .first()
            )
            if entry is None:
                next_order = (
                    self.db.query(func.count(model.id)).filter(model.category == category).scalar()
                )
                entry = model(category=category, label=label, tag=tag, sort_order=next_order)
                self.db.add(entry)
            else:
                entry.label = label
            self.db.commit()

        run_with_retry(self.db, unit)

    def upsert_filter(self, category: str, label: str, tag: str) -> List[Filter]:
        self._upsert_entry(Filter, category, label, tag)
        return self.list_filters(category)

    def upsert_tag(self, category: str, label: str, tag: str) -> List[TagDictionaryEntry]:
        self._upsert_entry(TagDictionaryEntry, category, label, tag)
        return self.list_tags(category)

    def delete_filter(self, category: str, tag: str) -> bool:
        """Delete a filter by tag, falling back to a case-insensitive tag or label match."""
        normalized = (tag or "").strip()
        match = (
            self.db.query(Filter)
            .filter(Filter.category == category, Filter.tag == normalized)
            .first()
        )
        if match is None:
            wanted = normalized.lower()
            for entry in self.list_filters(category):
                if (entry.tag or "").strip().lower() == wanted or (entry.label or "").strip().lower() == wanted:
                    match = entry
                    break
        if match is None:
            return False

        def unit():
            self.db.delete(match)
            self.db.commit()
            return True

        return run_with_retry(self.db, unit)

    def delete_tag(self, category: str, tag: str) -> bool:
        def unit():
            deleted = (
                self.db.query(TagDictionaryEntry)
                .filter(TagDictionaryEntry.category == category, TagDictionaryEntry.tag == tag)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted > 0

        return run_with_retry(self.db, unit)
