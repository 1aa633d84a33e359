"""Per-field mapping strategies.

Each strategy receives the mapping context and the form field and returns
at most one ``FieldMapping``. ``STRATEGIES`` is the single table that
routes a field name to its strategy; ``KIND_STRATEGIES`` covers fields
whose name has no dedicated strategy.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from legalflow.catalog.models import EntityKind, FieldKind, FormField, FormSchema
from legalflow.catalog.registry import TemplateRegistry
from legalflow.extraction.entities import DocumentStructure, ExtractedEntity
from legalflow.utils.config import MappingConfig
from legalflow.utils.text import collapse_whitespace

from .models import FieldMapping, FieldSuggestion, MappingSource

_DECREE_NUMBER = re.compile(r"^\d{2}-\d{2,3}$")
_LEGAL_ACT = re.compile(r"\b(loi|d[ée]cret|ordonnance|arr[êe]t[ée])\b", re.IGNORECASE)
_NUMERIC_DATE = re.compile(r"\b(\d{1,2})[/.](\d{1,2})[/.](\d{4})\b")
_BARE_NUMBER = re.compile(r"\bn\s*[°º]\s*(\d{1,6})\b", re.IGNORECASE)
_AMENDING = re.compile(r"\bmodifi", re.IGNORECASE)
_DURATION = re.compile(
    r"(\d+\s*(?:jours?|semaines?|mois|heures?)(?:\s+ouvrables)?)", re.IGNORECASE
)
_DURATION_LABEL = re.compile(
    r"(?:d[ée]lai(?:\s+de\s+traitement)?|dur[ée]e)\s*:\s*([^\n]+)", re.IGNORECASE
)
_FREE = re.compile(r"\bgratuit", re.IGNORECASE)
_COST = re.compile(r"(\d[\d\s.,]*\s*(?:DA|DZD|dinars?))\b", re.IGNORECASE)
_DOCUMENTS_HEADER = re.compile(
    r"(?:pi[èe]ces?\s+[àa]\s+fournir|documents?\s+requis|dossier\s+[àa]\s+constituer)[^\n]*\n",
    re.IGNORECASE,
)
_LIST_ITEM = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s*(.+?)\s*$")


@dataclass
class MappingContext:
    """Everything a strategy may read. Nothing in it is mutated."""

    entities: list[ExtractedEntity]
    structure: DocumentStructure
    schema: FormSchema
    text: str
    registry: TemplateRegistry
    config: MappingConfig = field(default_factory=MappingConfig)

    def of_kind(self, kind: EntityKind) -> list[ExtractedEntity]:
        return [e for e in self.entities if e.kind == kind]


Strategy = Callable[[MappingContext, FormField], FieldMapping | None]


def _mapping(
    form_field: FormField, value: str, confidence: float, source: MappingSource
) -> FieldMapping:
    return FieldMapping(
        field_name=form_field.name, value=value, confidence=confidence, source=source
    )


# -- legal text fields ----------------------------------------------------


def map_title(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    if ctx.structure.title:
        return _mapping(form_field, ctx.structure.title, 0.9, MappingSource.EXTRACTED_ENTITY)
    blocks = ctx.of_kind(EntityKind.TEXT_BLOCK)
    if blocks:
        return _mapping(form_field, blocks[0].value, blocks[0].confidence, MappingSource.EXTRACTED_ENTITY)
    return None


def map_type(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    if ctx.structure.declared_type:
        template = ctx.registry.find(ctx.structure.declared_type)
        value = template.type_name if template else ctx.structure.declared_type
        return _mapping(form_field, value, 0.95, MappingSource.EXTRACTED_ENTITY)

    for entity in ctx.entities:
        match = _LEGAL_ACT.search(entity.value)
        if match:
            template = ctx.registry.find(match.group(1))
            value = template.type_name if template else match.group(1).capitalize()
            return _mapping(form_field, value, 0.85, MappingSource.EXTRACTED_ENTITY)
    return None


def map_number(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    if ctx.structure.declared_number:
        return _mapping(form_field, ctx.structure.declared_number, 0.9, MappingSource.EXTRACTED_ENTITY)
    for entity in ctx.of_kind(EntityKind.NUMBER):
        if _DECREE_NUMBER.match(entity.value):
            return _mapping(form_field, entity.value, 0.8, MappingSource.EXTRACTED_ENTITY)
    return None


def map_institution(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    vocabulary = ctx.registry.vocabulary
    for entity in ctx.of_kind(EntityKind.INSTITUTION):
        canonical = vocabulary.resolve_institution(entity.value)
        if canonical:
            return _mapping(form_field, canonical, 0.85, MappingSource.EXTRACTED_ENTITY)

    found = vocabulary.find_institution(ctx.text)
    if found:
        return _mapping(form_field, found[0], 0.75, MappingSource.PATTERN_MATCH)
    return None


def map_gregorian_date(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    for entity in ctx.of_kind(EntityKind.DATE):
        iso = entity.metadata.get("gregorian_iso")
        if iso:
            return _mapping(form_field, iso, 0.9, MappingSource.EXTRACTED_ENTITY)
    return None


def map_hijri_date(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    for entity in ctx.of_kind(EntityKind.DATE):
        hijri = entity.metadata.get("hijri")
        if hijri:
            return _mapping(form_field, hijri, 0.9, MappingSource.EXTRACTED_ENTITY)
    return None


def map_description(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    paragraphs = re.split(r"\n\s*\n", ctx.text)
    if len(paragraphs) == 1:
        paragraphs = ctx.text.splitlines()
    for paragraph in paragraphs:
        candidate = collapse_whitespace(paragraph)
        if len(candidate) > ctx.config.description_min_length:
            value = candidate[: ctx.config.description_max_length].rstrip()
            return _mapping(form_field, value, 0.75, MappingSource.PATTERN_MATCH)
    return None


def map_content(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    content = ctx.text.strip()
    if not content:
        return None
    return _mapping(form_field, content, 1.0, MappingSource.PATTERN_MATCH)


def map_status(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    status = ctx.registry.vocabulary.match_status(ctx.text, form_field.options)
    if status:
        return _mapping(form_field, status, 0.8, MappingSource.PATTERN_MATCH)

    default = ctx.config.default_status
    if form_field.options and default not in form_field.options:
        default = form_field.options[0]
    return _mapping(form_field, default, 0.6, MappingSource.INFERRED)


def map_articles_count(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    if not ctx.structure.articles:
        return None
    return _mapping(form_field, str(len(ctx.structure.articles)), 0.95, MappingSource.EXTRACTED_ENTITY)


def map_references(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    references = ctx.of_kind(EntityKind.REFERENCE)
    if not references:
        return None
    values: list[str] = []
    for ref in references:
        if ref.value not in values:
            values.append(ref.value)
    confidence = sum(r.confidence for r in references) / len(references)
    return _mapping(form_field, "; ".join(values), confidence, MappingSource.EXTRACTED_ENTITY)


def map_domain(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    domain = ctx.registry.vocabulary.infer_domain(ctx.text)
    if domain:
        return _mapping(form_field, domain, 0.7, MappingSource.INFERRED)
    return None


# -- procedure fields -----------------------------------------------------


def map_category(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    category = ctx.registry.vocabulary.infer_category(ctx.text)
    if category:
        return _mapping(form_field, category, 0.8, MappingSource.PATTERN_MATCH)
    return None


def map_duration(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    labelled = _DURATION_LABEL.search(ctx.text)
    if labelled:
        return _mapping(form_field, collapse_whitespace(labelled.group(1)), 0.7, MappingSource.PATTERN_MATCH)
    bare = _DURATION.search(ctx.text)
    if bare:
        return _mapping(form_field, collapse_whitespace(bare.group(1)), 0.7, MappingSource.PATTERN_MATCH)
    return None


def map_difficulty(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    level = ctx.registry.vocabulary.infer_difficulty(ctx.text)
    if level:
        return _mapping(form_field, level, 0.6, MappingSource.PATTERN_MATCH)
    if not form_field.options or "Moyen" in form_field.options:
        return _mapping(form_field, "Moyen", 0.4, MappingSource.INFERRED)
    return None


def map_cost(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    if _FREE.search(ctx.text):
        return _mapping(form_field, "Gratuit", 0.9, MappingSource.PATTERN_MATCH)
    match = _COST.search(ctx.text)
    if match:
        return _mapping(form_field, collapse_whitespace(match.group(1)), 0.8, MappingSource.PATTERN_MATCH)
    return None


def map_required_documents(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    header = _DOCUMENTS_HEADER.search(ctx.text)
    if not header:
        return None
    items: list[str] = []
    for line in ctx.text[header.end() :].splitlines():
        if not line.strip():
            if items:
                break
            continue
        item = _LIST_ITEM.match(line)
        if item is None:
            break
        items.append(item.group(1))
    if not items:
        return None
    return _mapping(form_field, "\n".join(items), 0.8, MappingSource.PATTERN_MATCH)


# -- fallbacks ------------------------------------------------------------


def map_by_rules(ctx: MappingContext, form_field: FormField) -> FieldMapping | None:
    """Apply the field's own extraction rules; the earliest match wins."""
    best: re.Match[str] | None = None
    for rule in form_field.extraction_rules:
        match = re.search(rule, ctx.text, re.IGNORECASE)
        if match and (best is None or match.start() < best.start()):
            best = match
    if best is None:
        return None
    if form_field.kind == FieldKind.CHECKBOX:
        return _mapping(form_field, "true", 0.7, MappingSource.PATTERN_MATCH)
    value = best.group(1) if best.groups() else best.group(0)
    value = collapse_whitespace(value or "")
    if not value:
        return None
    return _mapping(form_field, value, 0.7, MappingSource.PATTERN_MATCH)


STRATEGIES: dict[str, Strategy] = {
    "title": map_title,
    "type": map_type,
    "number": map_number,
    "institution": map_institution,
    "publication_date": map_gregorian_date,
    "date_hijri": map_hijri_date,
    "description": map_description,
    "content": map_content,
    "status": map_status,
    "articles_count": map_articles_count,
    "references": map_references,
    "domain": map_domain,
    "category": map_category,
    "duration": map_duration,
    "difficulty": map_difficulty,
    "cost": map_cost,
    "required_documents": map_required_documents,
}

KIND_STRATEGIES: dict[FieldKind, Strategy] = {
    FieldKind.DATE: map_gregorian_date,
}


# -- suggestions ----------------------------------------------------------


def suggest(ctx: MappingContext, form_field: FormField) -> FieldSuggestion | None:
    """Secondary heuristics for a field left unmapped."""
    if form_field.name == "version" and _AMENDING.search(ctx.text):
        return FieldSuggestion(
            field_name=form_field.name,
            suggested_value="2.0",
            reason="Le document modifie un texte existant",
            confidence=0.6,
        )

    if form_field.name == "institution":
        for entity in ctx.of_kind(EntityKind.INSTITUTION):
            return FieldSuggestion(
                field_name=form_field.name,
                suggested_value=entity.value,
                reason="Institution détectée mais absente de la liste connue",
                confidence=0.5,
            )

    if form_field.kind == FieldKind.DATE:
        match = _NUMERIC_DATE.search(ctx.text)
        if match:
            day, month, year = match.groups()
            return FieldSuggestion(
                field_name=form_field.name,
                suggested_value=f"{year}-{int(month):02d}-{int(day):02d}",
                reason=f"Date numérique trouvée: {match.group(0)}",
                confidence=0.5,
            )

    if form_field.name == "number":
        match = _BARE_NUMBER.search(ctx.text)
        if match:
            return FieldSuggestion(
                field_name=form_field.name,
                suggested_value=match.group(1),
                reason=f"Numéro isolé trouvé: {match.group(0)}",
                confidence=0.4,
            )
    return None
