"""
Project templates.

A template is a reusable partial project (document plus optional themes,
presets and export settings) with catalogue metadata. Templates are kept in
the key-value store under ``TEMPLATES_KEY``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from codereel.core.storage import TEMPLATES_KEY, KeyValueStore, read_json_list, write_json
from codereel.core.timestamps import parse_datetime, utcnow
from codereel.project.models import (
    APP_VERSION,
    Document,
    ProjectData,
    ProjectMetadata,
    new_project_id,
)

logger = logging.getLogger(__name__)


class TemplateCategory(Enum):
    TUTORIAL = "tutorial"
    PRESENTATION = "presentation"
    DEMO = "demo"
    EDUCATIONAL = "educational"
    BUSINESS = "business"
    ENTERTAINMENT = "entertainment"
    CUSTOM = "custom"


class TemplateDifficulty(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


@dataclass
class ProjectTemplate:
    """A reusable starting point for new projects."""

    id: str
    name: str
    description: str
    category: TemplateCategory
    author: str
    template_data: dict[str, Any]
    version: str = "1.0.0"
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    tags: list[str] = field(default_factory=list)
    difficulty: TemplateDifficulty = TemplateDifficulty.BEGINNER
    estimated_time: int = 0  # minutes
    usage_count: int = 0
    rating: float = 0
    rating_count: int = 0
    customizable: bool = True
    required_fields: list[str] = field(default_factory=lambda: ["metadata.name", "document"])
    optional_fields: list[str] = field(
        default_factory=lambda: ["themes", "presets", "exportSettings"]
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "author": self.author,
            "version": self.version,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "templateData": self.template_data,
            "tags": list(self.tags),
            "difficulty": self.difficulty.value,
            "estimatedTime": self.estimated_time,
            "usageCount": self.usage_count,
            "rating": self.rating,
            "ratingCount": self.rating_count,
            "customizable": self.customizable,
            "requiredFields": list(self.required_fields),
            "optionalFields": list(self.optional_fields),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectTemplate:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            category=TemplateCategory(data.get("category", "custom")),
            author=str(data.get("author", "Unknown")),
            template_data=dict(data.get("templateData") or {}),
            version=str(data.get("version", "1.0.0")),
            created_at=parse_datetime(data.get("createdAt")) or utcnow(),
            updated_at=parse_datetime(data.get("updatedAt")) or utcnow(),
            tags=list(data.get("tags") or []),
            difficulty=TemplateDifficulty(data.get("difficulty", "beginner")),
            estimated_time=int(data.get("estimatedTime", 0)),
            usage_count=int(data.get("usageCount", 0)),
            rating=data.get("rating", 0),
            rating_count=int(data.get("ratingCount", 0)),
            customizable=bool(data.get("customizable", True)),
            required_fields=list(data.get("requiredFields") or []),
            optional_fields=list(data.get("optionalFields") or []),
        )


def _merge_template_data(base: dict[str, Any], custom: dict[str, Any] | None) -> dict[str, Any]:
    if not custom:
        return dict(base)
    merged = {**base, **custom}
    merged["metadata"] = {**(base.get("metadata") or {}), **(custom.get("metadata") or {})}
    merged["document"] = custom.get("document") or base.get("document")
    merged["themes"] = [*(base.get("themes") or []), *(custom.get("themes") or [])]
    merged["presets"] = [*(base.get("presets") or []), *(custom.get("presets") or [])]
    merged["exportSettings"] = custom.get("exportSettings") or base.get("exportSettings")
    return merged


def create_project_from_template(
    template: ProjectTemplate,
    custom_data: dict[str, Any] | None = None,
) -> ProjectData:
    """Instantiate a new project from a template.

    Args:
        template: Template to instantiate
        custom_data: Partial wire-form project whose values override the
            template's (document replaces, themes/presets append)

    Returns:
        New ProjectData with fresh metadata

    Raises:
        ValueError: If neither the template nor the custom data has a document
    """
    merged = _merge_template_data(template.template_data, custom_data)
    document_data = merged.get("document")
    if not isinstance(document_data, dict):
        raise ValueError(f"Template {template.id} has no document")

    custom_meta = (custom_data or {}).get("metadata") or {}
    document = Document.from_dict(document_data)
    now = utcnow()
    metadata = ProjectMetadata(
        id=new_project_id(),
        name=custom_meta.get("name") or f"{template.name} Project",
        description=custom_meta.get("description") or template.description,
        version="1.0.0",
        author=custom_meta.get("author"),
        created_at=now,
        updated_at=now,
        tags=[*template.tags, *(custom_meta.get("tags") or [])],
        category=custom_meta.get("category"),
        license=custom_meta.get("license"),
        app_version=APP_VERSION,
        snapshot_count=len(document.snapshots),
        total_duration=document.total_duration,
    )
    project = ProjectData(
        metadata=metadata,
        document=document,
        themes=merged.get("themes") or None,
        presets=merged.get("presets") or None,
        export_settings=merged.get("exportSettings"),
    )
    return project.refresh_derived()


def template_from_project(
    project: ProjectData,
    name: str,
    description: str = "",
    category: TemplateCategory = TemplateCategory.CUSTOM,
    tags: list[str] | None = None,
    difficulty: TemplateDifficulty = TemplateDifficulty.BEGINNER,
    estimated_time: int = 0,
) -> ProjectTemplate:
    """Capture an existing project as a template."""
    return ProjectTemplate(
        id=f"template-{uuid.uuid4().hex[:12]}",
        name=name,
        description=description,
        category=category,
        author=project.metadata.author or "Unknown",
        template_data=project.to_json_dict(),
        tags=list(tags or []),
        difficulty=difficulty,
        estimated_time=estimated_time,
    )


class TemplateLibrary:
    """Template catalogue persisted in a key-value store."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def list_templates(self) -> list[ProjectTemplate]:
        templates = []
        for entry in read_json_list(self.store, TEMPLATES_KEY):
            try:
                templates.append(ProjectTemplate.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed template entry: %s", e)
        return templates

    def get(self, template_id: str) -> ProjectTemplate | None:
        for template in self.list_templates():
            if template.id == template_id:
                return template
        return None

    def save(self, template: ProjectTemplate) -> None:
        """Append a template, replacing any stored one with the same id."""
        entries = [t.to_dict() for t in self.list_templates() if t.id != template.id]
        entries.append(template.to_dict())
        write_json(self.store, TEMPLATES_KEY, entries)
        logger.debug("Saved template %s", template.id)

    def record_usage(self, template_id: str) -> None:
        templates = self.list_templates()
        for template in templates:
            if template.id == template_id:
                template.usage_count += 1
        write_json(self.store, TEMPLATES_KEY, [t.to_dict() for t in templates])
