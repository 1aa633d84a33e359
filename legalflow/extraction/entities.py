"""Result types shared by the extractor and the structure analyzer."""

from dataclasses import asdict, dataclass, field
from typing import Any

from legalflow.catalog.models import EntityKind

UNKNOWN_TYPE = "unknown"


@dataclass(frozen=True)
class ExtractedEntity:
    """A typed value found in the document text.

    ``span`` points into the text the entity was extracted from.
    """

    kind: EntityKind
    value: str
    span: tuple[int, int]
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def pattern_name(self) -> str:
        return self.metadata.get("pattern", "")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["kind"] = str(self.kind)
        data["span"] = list(self.span)
        return data


@dataclass
class ExtractionResult:
    """Entities in document order plus the detected document type."""

    entities: list[ExtractedEntity]
    document_type: str = UNKNOWN_TYPE
    template_id: str | None = None
    detection_confidence: float = 0.0
    language: str = "unknown"

    def of_kind(self, kind: EntityKind) -> list[ExtractedEntity]:
        return [e for e in self.entities if e.kind == kind]


@dataclass(frozen=True)
class Article:
    number: str
    content: str


@dataclass
class DocumentStructure:
    """Coarse skeleton of a legal text."""

    title: str | None = None
    declared_type: str | None = None
    declared_number: str | None = None
    articles: list[Article] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
