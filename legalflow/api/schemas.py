"""Pydantic request/response schemas for the review API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from legalflow.workflow.models import ReviewAction


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    templates_loaded: int


class TemplateInfo(BaseModel):
    """A document type of the catalog."""

    id: str
    type_name: str
    code: str
    description: str
    fields: list[str]
    required_fields: list[str]


class TemplatesResponse(BaseModel):
    templates: list[TemplateInfo]


class DocumentSubmission(BaseModel):
    """Recognized text of one document, submitted for review."""

    text: str
    filename: str = ""
    type_hint: str | None = None
    language: str | None = None
    ocr_confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    page_count: int = Field(default=1, ge=1)
    submitted_by: str = "system"


class EntityResponse(BaseModel):
    kind: str
    value: str
    span: list[int]
    confidence: float
    metadata: dict[str, Any] = {}


class ArticleResponse(BaseModel):
    number: str
    content: str


class StructureResponse(BaseModel):
    title: str | None = None
    declared_type: str | None = None
    declared_number: str | None = None
    articles: list[ArticleResponse] = []


class ExtractionResponse(BaseModel):
    text: str
    entities: list[EntityResponse]
    structure: StructureResponse
    ocr_confidence: float
    language: str
    detection_confidence: float
    template_id: str | None = None


class FieldMappingResponse(BaseModel):
    field_name: str
    value: str
    confidence: float
    source: str
    corrected: bool = False


class SuggestionResponse(BaseModel):
    field_name: str
    suggested_value: str
    reason: str
    confidence: float


class MappingResultResponse(BaseModel):
    mapped_fields: list[FieldMappingResponse]
    unmapped_data: list[str]
    suggestions: list[SuggestionResponse]
    overall_confidence: float


class CommentResponse(BaseModel):
    author: str
    content: str
    timestamp: datetime
    kind: str
    metadata: dict[str, Any] = {}


class OriginalDocumentResponse(BaseModel):
    filename: str
    size: int
    page_count: int


class ReviewItemSummary(BaseModel):
    """Queue listing entry."""

    id: str
    document_type: str
    status: str
    priority: str
    overall_confidence: float
    filename: str
    submitted_at: datetime
    assigned_to: str | None = None


class ReviewItemResponse(BaseModel):
    """Full review item."""

    id: str
    original_document: OriginalDocumentResponse
    document_type: str
    extraction: ExtractionResponse
    mapping_result: MappingResultResponse
    status: str
    priority: str
    comments: list[CommentResponse]
    submitted_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    assigned_to: str | None = None


class ReviewRequest(BaseModel):
    action: ReviewAction
    reviewer_id: str
    comment: str = ""
    corrections: dict[str, str | None] | None = None


class CommentRequest(BaseModel):
    author: str
    content: str
    metadata: dict[str, Any] | None = None


class BatchApproveRequest(BaseModel):
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    reviewer_id: str = "system"


class BatchApproveResponse(BaseModel):
    approved: list[str]
    count: int


class ViolationResponse(BaseModel):
    field_name: str
    message: str
    rule_name: str


class StatsResponse(BaseModel):
    total: int
    pending: int
    under_review: int
    approved: int
    rejected: int
    high_priority_pending: int
    average_confidence: float
    auto_approved: int
    auto_approval_rate: float


class RecordsResponse(BaseModel):
    records: list[dict[str, Any]]
