"""
Starter Template Catalog
========================
Read-only catalog of diagram templates bundled in ``resources/templates.json``.
"""
from __future__ import annotations

import json
import logging
from importlib.resources import files
from typing import List, Optional

from flowcraft.model.state import Template

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


def _read_bundled_catalog() -> str:
    return files("flowcraft").joinpath("resources").joinpath("templates.json").read_text(encoding="utf-8")


class TemplateCatalog:
    def __init__(self, source: Optional[str] = None) -> None:
        """
        Args:
            source: JSON text of the catalog. The bundled catalog is used when omitted.
        """
        self._source = source
        self._templates: Optional[List[Template]] = None

    def get_templates(self) -> List[Template]:
        if self._templates is None:
            self._templates = self._load()
        return list(self._templates)

    def categories(self) -> List[str]:
        """Distinct categories in catalog order."""
        seen: List[str] = []
        for template in self.get_templates():
            if template.category not in seen:
                seen.append(template.category)
        return seen

    def by_category(self, category: str) -> List[Template]:
        if category == ALL_CATEGORIES:
            return self.get_templates()
        return [t for t in self.get_templates() if t.category == category]

    def get(self, template_id: str) -> Optional[Template]:
        return next((t for t in self.get_templates() if t.id == template_id), None)

    def _load(self) -> List[Template]:
        try:
            raw = self._source if self._source is not None else _read_bundled_catalog()
            templates = [Template.from_dict(item) for item in json.loads(raw)]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load template catalog: {e}")
            return []
        logger.debug(f"Loaded {len(templates)} templates.")
        return templates
