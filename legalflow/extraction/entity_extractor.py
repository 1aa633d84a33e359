"""Regex-driven entity extraction over legal document text.

Runs the entity patterns of the template catalog against the raw text
and turns every accepted match into a typed entity. Extraction is pure
over its inputs and the read-only registry.
"""

import re
from datetime import date

from legalflow.catalog.models import EntityKind, EntityPattern
from legalflow.catalog.registry import TemplateRegistry
from legalflow.utils.config import ExtractionConfig
from legalflow.utils.logger import get_logger
from legalflow.utils.text import collapse_whitespace, detect_language

from .entities import UNKNOWN_TYPE, ExtractedEntity, ExtractionResult
from .template_matcher import TemplateMatcher

logger = get_logger(__name__)

_TRAILING = " \t\r\n,;:.-"


class EntityExtractor:
    """Extracts numbers, dates, institutions, articles, references and
    object clauses from legal text.

    Patterns are tried in precedence order (template patterns first,
    then the catalog's common patterns). A match whose span overlaps an
    already accepted entity of the same kind is dropped, so the earlier
    pattern always wins.

    Args:
        registry: Template registry providing patterns and vocabulary.
        config: Extraction settings.
    """

    def __init__(
        self, registry: TemplateRegistry, config: ExtractionConfig | None = None
    ) -> None:
        self.registry = registry
        self.config = config or ExtractionConfig()
        self.matcher = TemplateMatcher(registry)

    def extract(
        self,
        text: str,
        type_hint: str | None = None,
        language: str | None = None,
    ) -> ExtractionResult:
        """Extract entities from text.

        Args:
            text: Raw document text.
            type_hint: Template id or type name known in advance. Restricts
                extraction to that template's patterns plus the common ones.
            language: Language code; detected from the script when ``None``.

        Returns:
            Extraction result with entities in document order.
        """
        if language is None:
            language = detect_language(text) if self.config.detect_language else "unknown"

        template_id: str | None = None
        detection_confidence = 0.0
        if type_hint:
            template = self.registry.find(type_hint)
            if template is None:
                logger.warning("Unknown type hint %r, detecting type instead", type_hint)
            else:
                template_id = template.id
                detection_confidence = 1.0
        hinted = template_id is not None

        if template_id is None and text:
            match = self.matcher.match_template(text)
            if match is not None:
                template_id = match.template_id
                detection_confidence = match.confidence

        patterns = self.registry.patterns_for(template_id if hinted else None)
        entities = self._run_patterns(text, patterns) if text else []

        logger.info(
            "Extracted %d entities (type=%s, language=%s)",
            len(entities),
            template_id or UNKNOWN_TYPE,
            language,
        )
        return ExtractionResult(
            entities=entities,
            document_type=template_id or UNKNOWN_TYPE,
            template_id=template_id,
            detection_confidence=detection_confidence,
            language=language,
        )

    def _run_patterns(
        self, text: str, patterns: list[EntityPattern]
    ) -> list[ExtractedEntity]:
        accepted: list[ExtractedEntity] = []
        spans_by_kind: dict[EntityKind, list[tuple[int, int]]] = {}

        for pattern in patterns:
            if pattern.confidence < self.config.min_confidence:
                continue
            for match in pattern.compile().finditer(text):
                entity = self._build_entity(match, pattern)
                if entity is None:
                    continue
                taken = spans_by_kind.setdefault(entity.kind, [])
                if any(_overlaps(entity.span, span) for span in taken):
                    continue
                taken.append(entity.span)
                accepted.append(entity)

        accepted.sort(key=lambda e: e.span)
        return accepted

    def _build_entity(
        self, match: re.Match[str], pattern: EntityPattern
    ) -> ExtractedEntity | None:
        try:
            raw = match.group(pattern.group)
            start, end = match.span(pattern.group)
        except IndexError:
            logger.warning("Pattern %s has no group %r", pattern.name, pattern.group)
            return None
        if raw is None:
            return None

        stripped = raw.rstrip(_TRAILING)
        leading = len(stripped) - len(stripped.lstrip())
        value = collapse_whitespace(stripped)
        if not value:
            return None

        metadata: dict[str, str] = dict(pattern.metadata)
        metadata["pattern"] = pattern.name
        metadata["matched_text"] = match.group(0)
        for name, group_value in match.groupdict().items():
            if group_value is not None:
                metadata[name] = collapse_whitespace(group_value)

        if pattern.kind == EntityKind.DATE:
            metadata.update(self._date_metadata(metadata))

        return ExtractedEntity(
            kind=pattern.kind,
            value=value,
            span=(start + leading, start + len(stripped)),
            confidence=pattern.confidence,
            metadata=metadata,
        )

    def _date_metadata(self, groups: dict[str, str]) -> dict[str, str]:
        """Derive calendar information from the named date groups."""
        vocabulary = self.registry.vocabulary
        extra: dict[str, str] = {}

        has_hijri = "hijri_month" in groups
        has_gregorian = "gregorian_month" in groups

        if has_hijri:
            month = vocabulary.hijri_month_name(groups["hijri_month"]) or groups["hijri_month"]
            extra["hijri_month"] = month
            extra["hijri"] = f"{groups.get('hijri_day', '')} {month} {groups.get('hijri_year', '')}".strip()

        if has_gregorian:
            extra["gregorian"] = " ".join(
                groups.get(k, "") for k in ("gregorian_day", "gregorian_month", "gregorian_year")
            ).strip()
            month_number = vocabulary.gregorian_month_number(groups["gregorian_month"])
            if month_number is not None:
                try:
                    extra["gregorian_iso"] = date(
                        int(groups["gregorian_year"]),
                        month_number,
                        int(groups["gregorian_day"]),
                    ).isoformat()
                except (KeyError, ValueError):
                    logger.debug("Invalid Gregorian date %r", extra["gregorian"])

        if has_hijri and has_gregorian:
            extra["calendar"] = "composite"
        elif has_hijri:
            extra["calendar"] = "hijri"
        elif has_gregorian:
            extra["calendar"] = "gregorian"
        return extra


def _overlaps(a: tuple[int, int], b: tuple[int, int]) -> bool:
    return a[0] < b[1] and b[0] < a[1]
