"""Review queue data model."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from legalflow.extraction.entities import DocumentStructure, ExtractedEntity
from legalflow.mapping.models import MappingResult


class ReviewStatus(StrEnum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(StrEnum):
    START_REVIEW = "start_review"
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CORRECTION = "request_correction"


class CommentKind(StrEnum):
    SUBMISSION = "submission"
    ASSIGNMENT = "assignment"
    VALIDATION = "validation"
    REJECTION = "rejection"
    CORRECTION = "correction"
    COMMENT = "comment"


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"


PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1}


@dataclass
class OriginalDocument:
    filename: str = ""
    size: int = 0
    page_count: int = 1


@dataclass
class ExtractionSnapshot:
    """What the extraction stage produced for a document.

    ``ocr_confidence`` is reported as-is and never blended into the
    mapping confidence.
    """

    text: str
    entities: list[ExtractedEntity] = field(default_factory=list)
    structure: DocumentStructure = field(default_factory=DocumentStructure)
    ocr_confidence: float = 1.0
    language: str = "unknown"
    detection_confidence: float = 0.0
    template_id: str | None = None


@dataclass
class ProcessedDocument:
    """A document ready to enter the review queue."""

    original: OriginalDocument
    document_type: str
    extraction: ExtractionSnapshot
    mapping_result: MappingResult


@dataclass
class ReviewComment:
    author: str
    content: str
    timestamp: datetime
    kind: CommentKind = CommentKind.COMMENT
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ReviewItem:
    """A document waiting for, or having gone through, human review."""

    id: str
    original_document: OriginalDocument
    document_type: str
    extraction: ExtractionSnapshot
    mapping_result: MappingResult
    submitted_at: datetime
    status: ReviewStatus = ReviewStatus.PENDING
    priority: Priority = Priority.MEDIUM
    comments: list[ReviewComment] = field(default_factory=list)
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    assigned_to: str | None = None
    sequence: int = 0

    @property
    def overall_confidence(self) -> float:
        return self.mapping_result.overall_confidence

    @property
    def is_terminal(self) -> bool:
        return self.status in (ReviewStatus.APPROVED, ReviewStatus.REJECTED)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["extraction"]["entities"] = [e.to_dict() for e in self.extraction.entities]
        return data
