"""Workout template catalog interface.

The calendar never reads template storage directly. It asks a
TemplateCatalog for a name and an exercise count, and within a single query
goes through a TemplateLookupCache so each template is resolved once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import WorkoutTemplate

UNKNOWN_TEMPLATE_NAME = "Unknown Workout"


@dataclass(frozen=True)
class TemplateInfo:
    """Catalog facts the calendar needs about a template."""

    id: str
    name: str
    exercise_count: int


class TemplateCatalog(Protocol):
    def get_template(self, template_id: str) -> TemplateInfo | None:
        """Return template info, or None if the template does not exist."""
        ...


class SqlTemplateCatalog:
    """Catalog backed by the workout_templates table."""

    def __init__(self, session: Session):
        self._session = session

    def get_template(self, template_id: str) -> TemplateInfo | None:
        template = self._session.execute(
            select(WorkoutTemplate).where(WorkoutTemplate.id == template_id, WorkoutTemplate.is_active.is_(True))
        ).scalar_one_or_none()
        if template is None:
            return None
        return TemplateInfo(id=template.id, name=template.name, exercise_count=len(template.exercises or []))


class TemplateLookupCache:
    """Memoizes catalog lookups for the lifetime of one query.

    Create one per request; misses are cached too so an unknown template is
    only looked up once.
    """

    def __init__(self, catalog: TemplateCatalog):
        self._catalog = catalog
        self._cache: dict[str, TemplateInfo | None] = {}

    def get(self, template_id: str) -> TemplateInfo | None:
        if template_id not in self._cache:
            self._cache[template_id] = self._catalog.get_template(template_id)
        return self._cache[template_id]

    def describe(self, template_id: str) -> TemplateInfo:
        """Template info, with a placeholder for templates the catalog no longer knows."""
        info = self.get(template_id)
        if info is None:
            return TemplateInfo(id=template_id, name=UNKNOWN_TEMPLATE_NAME, exercise_count=0)
        return info


def create_template(
    session: Session,
    name: str,
    exercises: list[dict] | None = None,
    description: str | None = None,
) -> WorkoutTemplate:
    """Insert a workout template (used by the CLI and tests to seed the catalog)."""
    template = WorkoutTemplate(name=name, description=description, exercises=list(exercises or []))
    session.add(template)
    session.flush()
    return template
