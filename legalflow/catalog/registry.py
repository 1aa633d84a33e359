"""Document-type template registry.

Loads the ordered template catalog from YAML, expands the vocabulary
placeholders in its regexes and serves read-only lookups. The registry is
shared by the extractor, the mapper and the workflow; ``reload()`` swaps
the whole catalog in one assignment so readers never see a half-loaded
state.
"""

import difflib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from legalflow.catalog.models import (
    DocumentTypeTemplate,
    EntityKind,
    EntityPattern,
    FormSchema,
)
from legalflow.catalog.vocabulary import Vocabulary, alternation, load_vocabulary
from legalflow.errors import CatalogError
from legalflow.utils.logger import get_logger
from legalflow.utils.text import normalize_key

logger = get_logger(__name__)

DEFAULT_TEMPLATES_PATH = Path(__file__).parent / "data" / "templates.yaml"

NUMBER_PLACEHOLDER = r"(?:n\s*[°º]|num[ée]ro)"

_PLACEHOLDER = re.compile(r"%([A-Z_]+)%")
_FUZZY_CUTOFF = 0.8


@dataclass(frozen=True)
class _Catalog:
    templates: tuple[DocumentTypeTemplate, ...]
    common_patterns: tuple[EntityPattern, ...]
    fallback_schema: FormSchema


class TemplateRegistry:
    """Ordered, read-only catalog of document-type templates.

    Args:
        templates_path: Catalog YAML; the packaged catalog when ``None``.
        vocabulary: Vocabulary used for placeholder expansion and lookups.
            Loaded from the packaged file when ``None``.
    """

    def __init__(
        self,
        templates_path: str | Path | None = None,
        vocabulary: Vocabulary | None = None,
    ) -> None:
        self.templates_path = Path(templates_path) if templates_path else DEFAULT_TEMPLATES_PATH
        self.vocabulary = vocabulary or load_vocabulary()
        self._catalog = self._load(self.templates_path)

    def reload(self) -> None:
        """Re-read the catalog file, replacing the current catalog atomically."""
        self._catalog = self._load(self.templates_path)

    def _load(self, path: Path) -> _Catalog:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        data = self._expand(data)

        try:
            templates = tuple(DocumentTypeTemplate(**t) for t in data.get("templates") or [])
            common = tuple(EntityPattern(**p) for p in data.get("common_patterns") or [])
            fallback = FormSchema(**(data.get("fallback_schema") or {}))
        except ValidationError as exc:
            raise CatalogError(f"Invalid template catalog {path}: {exc}") from exc

        ids = [t.id for t in templates]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise CatalogError(f"Duplicate template ids in {path}: {duplicates}")

        logger.info("Loaded %d document templates from %s", len(templates), path)
        return _Catalog(templates=templates, common_patterns=common, fallback_schema=fallback)

    def _expand(self, node: Any) -> Any:
        """Replace ``%NAME%`` placeholders in every string of the parsed YAML."""
        if isinstance(node, dict):
            return {key: self._expand(value) for key, value in node.items()}
        if isinstance(node, list):
            return [self._expand(item) for item in node]
        if isinstance(node, str) and "%" in node:
            return _PLACEHOLDER.sub(self._placeholder_value, node)
        return node

    def _placeholder_value(self, match: re.Match[str]) -> str:
        name = match.group(1)
        if name == "NUM":
            return NUMBER_PLACEHOLDER
        if name == "GREGORIAN_MONTH":
            return f"(?:{self.vocabulary.gregorian_month_pattern()})"
        if name == "HIJRI_MONTH":
            return f"(?:{self.vocabulary.hijri_month_pattern()})"
        if name == "INSTITUTION":
            return f"(?:{self.vocabulary.institution_pattern()})"
        raise CatalogError(f"Unknown catalog placeholder: %{name}%")

    @property
    def templates(self) -> tuple[DocumentTypeTemplate, ...]:
        """Templates in declaration order."""
        return self._catalog.templates

    @property
    def fallback_schema(self) -> FormSchema:
        return self._catalog.fallback_schema

    @property
    def common_patterns(self) -> tuple[EntityPattern, ...]:
        return self._catalog.common_patterns

    def get(self, template_id: str) -> DocumentTypeTemplate | None:
        return next((t for t in self.templates if t.id == template_id), None)

    def find(self, name: str) -> DocumentTypeTemplate | None:
        """Look a template up by id, type name, code or alias.

        Matching is accent, case and spacing insensitive; a close fuzzy
        match is accepted when nothing matches exactly.

        Args:
            name: Free-form type name, e.g. ``"decret executif"``.

        Returns:
            The template, or ``None`` if nothing is close enough.
        """
        key = normalize_key(name.replace("_", " ")) if name else ""
        if not key:
            return None

        by_key: dict[str, DocumentTypeTemplate] = {}
        for template in self.templates:
            for spelling in (template.id.replace("_", " "), template.type_name, template.code, *template.aliases):
                if spelling:
                    by_key.setdefault(normalize_key(spelling), template)
        if key in by_key:
            return by_key[key]

        close = difflib.get_close_matches(key, list(by_key), n=1, cutoff=_FUZZY_CUTOFF)
        if close:
            return by_key[close[0]]
        return None

    def schema_for(self, template_id: str | None) -> FormSchema:
        """Form schema of a template, or the fallback schema for unknown types."""
        template = self.get(template_id) if template_id else None
        return template.form_schema if template else self.fallback_schema

    def patterns_for(self, template_id: str | None = None) -> list[EntityPattern]:
        """Entity patterns in precedence order.

        With a template id: that template's patterns, the common patterns,
        then its institution fragments. Without: every template's
        patterns in declaration order, then the common patterns.
        """
        if template_id is not None:
            template = self.get(template_id)
            selected = [template] if template else []
        else:
            selected = list(self.templates)

        patterns: list[EntityPattern] = []
        fragments: list[EntityPattern] = []
        for template in selected:
            patterns.extend(template.entity_patterns)
            if template_id is not None and template.institution_patterns:
                fragments.append(
                    EntityPattern(
                        name=f"{template.id}_institution",
                        kind=EntityKind.INSTITUTION,
                        pattern=rf"(?<!\w)(?:{alternation(template.institution_patterns)})(?!\w)",
                        confidence=0.85,
                    )
                )
        patterns.extend(self.common_patterns)
        patterns.extend(fragments)
        return patterns
