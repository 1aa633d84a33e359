"""Mapping result types and the confidence/unmapped bookkeeping rules."""

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

from legalflow.catalog.models import FormSchema
from legalflow.extraction.entities import ExtractedEntity

COMPLETENESS_WEIGHT = 0.6
MEAN_CONFIDENCE_WEIGHT = 0.4


class MappingSource(StrEnum):
    EXTRACTED_ENTITY = "extracted_entity"
    PATTERN_MATCH = "pattern_match"
    INFERRED = "inferred"


@dataclass
class FieldMapping:
    """Value assigned to one form field."""

    field_name: str
    value: str
    confidence: float
    source: MappingSource
    corrected: bool = False


@dataclass
class FieldSuggestion:
    """Hint for a field the mapper could not fill."""

    field_name: str
    suggested_value: str
    reason: str
    confidence: float


@dataclass
class MappingResult:
    """Outcome of mapping a document's entities onto a form schema."""

    mapped_fields: list[FieldMapping] = field(default_factory=list)
    unmapped_data: list[str] = field(default_factory=list)
    suggestions: list[FieldSuggestion] = field(default_factory=list)
    overall_confidence: float = 0.0

    def get(self, field_name: str) -> FieldMapping | None:
        return next((m for m in self.mapped_fields if m.field_name == field_name), None)

    def values(self) -> dict[str, str]:
        return {m.field_name: m.value for m in self.mapped_fields}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_unmapped(
    entities: list[ExtractedEntity], mapped_fields: list[FieldMapping]
) -> list[str]:
    """Entity values not contained in any mapped value.

    Order of first appearance is kept and duplicates are collapsed.
    """
    mapped_values = [str(m.value) for m in mapped_fields if m.value]
    unmapped: list[str] = []
    for entity in entities:
        if entity.value is None:
            continue
        value = str(entity.value).strip()
        if not value or value in unmapped:
            continue
        if not any(value in mapped for mapped in mapped_values):
            unmapped.append(value)
    return unmapped


def compute_overall_confidence(
    mapped_fields: list[FieldMapping], schema: FormSchema
) -> float:
    """``0.6 * completeness + 0.4 * mean mapped confidence``, clamped to [0, 1].

    Completeness is the share of required fields that are mapped (1.0 for
    a schema without required fields). The mean is 0 when nothing is
    mapped.
    """
    mapped_names = {m.field_name for m in mapped_fields}
    required = schema.required_fields
    if required:
        completeness = sum(1 for f in required if f.name in mapped_names) / len(required)
    else:
        completeness = 1.0

    if mapped_fields:
        mean = sum(m.confidence for m in mapped_fields) / len(mapped_fields)
    else:
        mean = 0.0

    overall = COMPLETENESS_WEIGHT * completeness + MEAN_CONFIDENCE_WEIGHT * mean
    return max(0.0, min(1.0, overall))
