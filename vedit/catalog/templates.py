"""
Template catalog.

Templates are named, ordered sequences of operations loaded from a versioned
YAML data file. Lookups are exact and case-sensitive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional, Union

import yaml

from vedit.core.errors import TemplateNotFoundError, ValidationError
from vedit.core.operation import Instruction, ResourceType

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_FILE = Path(__file__).with_name("templates.yaml")

CATEGORIES = ("cinematic", "vlog", "product", "social", "corporate", "creative")


@dataclass(frozen=True)
class TemplateOperation:
    """One step of a template."""
    operation: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_instruction(self, resource_type: ResourceType = ResourceType.VIDEO) -> Instruction:
        return Instruction(self.operation, dict(self.params), resource_type)

    def to_dict(self) -> dict[str, Any]:
        return {"operation": self.operation, "params": dict(self.params)}


@dataclass(frozen=True)
class Template:
    """A named operation sequence."""
    id: str
    name: str
    description: str
    category: str
    operations: tuple[TemplateOperation, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Template:
        try:
            template_id = data["id"]
            operations = tuple(
                TemplateOperation(op["operation"], dict(op.get("params") or {}))
                for op in data.get("operations") or ()
            )
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Malformed template entry: {e}") from e

        category = data.get("category", "creative")
        if category not in CATEGORIES:
            logger.warning(f"Template '{template_id}' has unknown category '{category}'")

        return cls(
            id=template_id,
            name=data.get("name", template_id),
            description=data.get("description", ""),
            category=category,
            operations=operations,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "operations": [op.to_dict() for op in self.operations],
        }


class TemplateCatalog:
    """
    Read-only collection of templates.

    Example:
        catalog = TemplateCatalog.load()
        template = catalog.get("cinematic-intro")
        for op in template.operations:
            print(op.operation, op.params)
    """

    def __init__(self, templates: Optional[list[Template]] = None, version: int = 1):
        self.version = version
        self._templates: dict[str, Template] = {}
        for template in templates or []:
            if template.id in self._templates:
                raise ValidationError(f"Duplicate template id: {template.id}")
            self._templates[template.id] = template

    @classmethod
    def load(cls, path: Optional[Union[Path, str]] = None) -> TemplateCatalog:
        """
        Load templates from a YAML file.

        Args:
            path: Template file; the bundled catalog if omitted

        Returns:
            TemplateCatalog instance
        """
        path = Path(path) if path else DEFAULT_TEMPLATE_FILE
        if not path.exists():
            raise FileNotFoundError(f"Template file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        templates = [Template.from_dict(entry) for entry in data.get("templates") or []]
        logger.debug(f"Loaded {len(templates)} templates from {path}")
        return cls(templates, version=int(data.get("version", 1)))

    def get(self, template_id: str) -> Template:
        """
        Raises:
            TemplateNotFoundError: If no template has exactly this id
        """
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def by_category(self, category: str) -> list[Template]:
        return [t for t in self._templates.values() if t.category == category]

    def categories(self) -> list[str]:
        """Categories in first-seen order."""
        return list(dict.fromkeys(t.category for t in self._templates.values()))

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    def __iter__(self) -> Iterator[Template]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)
