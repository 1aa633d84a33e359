"""FastAPI application for the legal document review queue.

Exposes document submission, the review actions, batch approval and
read-only views of the queue and of the approved records.
"""

import shutil
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from legalflow.errors import (
    ApprovalBlockedError,
    InvalidTransitionError,
    ItemNotFoundError,
    PipelineError,
    PreconditionError,
)
from legalflow.pipeline import DocumentPipeline
from legalflow.utils.config import load_config
from legalflow.utils.logger import get_logger
from legalflow.workflow.models import ReviewItem, ReviewStatus

from .schemas import (
    BatchApproveRequest,
    BatchApproveResponse,
    CommentRequest,
    DocumentSubmission,
    HealthResponse,
    RecordsResponse,
    ReviewItemResponse,
    ReviewItemSummary,
    ReviewRequest,
    StatsResponse,
    TemplateInfo,
    TemplatesResponse,
    ViolationResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Legal Document Review API",
    description="Extract, map and review Algerian legal and administrative texts",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_pipeline() -> DocumentPipeline:
    """Shared pipeline (and review queue) for the lifetime of the process."""
    return DocumentPipeline(load_config())


PipelineDep = Annotated[DocumentPipeline, Depends(get_pipeline)]


def _http_error(exc: PipelineError) -> HTTPException:
    if isinstance(exc, ItemNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ApprovalBlockedError):
        return HTTPException(
            status_code=422,
            detail={
                "message": str(exc),
                "violations": [
                    ViolationResponse(
                        field_name=v.field_name, message=v.message, rule_name=v.rule_name
                    ).model_dump()
                    for v in exc.violations
                ],
            },
        )
    if isinstance(exc, PreconditionError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _item_response(item: ReviewItem) -> ReviewItemResponse:
    return ReviewItemResponse.model_validate(item.to_dict())


def _summary(item: ReviewItem) -> ReviewItemSummary:
    return ReviewItemSummary(
        id=item.id,
        document_type=item.document_type,
        status=item.status,
        priority=item.priority,
        overall_confidence=item.overall_confidence,
        filename=item.original_document.filename,
        submitted_at=item.submitted_at,
        assigned_to=item.assigned_to,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(pipeline: PipelineDep) -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        templates_loaded=len(pipeline.registry.templates),
    )


@app.get("/templates", response_model=TemplatesResponse)
async def list_templates(pipeline: PipelineDep) -> TemplatesResponse:
    """List the document types of the catalog, in detection order."""
    return TemplatesResponse(
        templates=[
            TemplateInfo(
                id=t.id,
                type_name=t.type_name,
                code=t.code,
                description=t.description,
                fields=t.form_schema.field_names,
                required_fields=[f.name for f in t.form_schema.required_fields],
            )
            for t in pipeline.registry.templates
        ]
    )


@app.post("/documents", response_model=ReviewItemResponse, status_code=201)
async def submit_document(
    submission: DocumentSubmission, pipeline: PipelineDep
) -> ReviewItemResponse:
    """Extract and map a recognized text, then queue it for review."""
    item = pipeline.submit_text(
        submission.text,
        submitted_by=submission.submitted_by,
        filename=submission.filename,
        type_hint=submission.type_hint,
        language=submission.language,
        ocr_confidence=submission.ocr_confidence,
        page_count=submission.page_count,
    )
    return _item_response(item)


@app.get("/review-items", response_model=list[ReviewItemSummary])
async def list_review_items(
    pipeline: PipelineDep,
    status: Annotated[ReviewStatus | None, Query()] = None,
) -> list[ReviewItemSummary]:
    """Review items ordered by priority, then submission time."""
    return [_summary(item) for item in pipeline.workflow.list_items(status)]


@app.get("/review-items/stats", response_model=StatsResponse)
async def review_stats(pipeline: PipelineDep) -> StatsResponse:
    return StatsResponse(**pipeline.workflow.stats())


@app.post("/review-items/batch-approve", response_model=BatchApproveResponse)
async def batch_approve(
    request: BatchApproveRequest, pipeline: PipelineDep
) -> BatchApproveResponse:
    """Approve every pending item at or above the confidence threshold."""
    approved = pipeline.workflow.batch_approve(request.min_confidence, request.reviewer_id)
    return BatchApproveResponse(approved=approved, count=len(approved))


@app.get("/review-items/{item_id}", response_model=ReviewItemResponse)
async def get_review_item(item_id: str, pipeline: PipelineDep) -> ReviewItemResponse:
    try:
        return _item_response(pipeline.workflow.get_item(item_id))
    except PipelineError as exc:
        raise _http_error(exc) from exc


@app.post("/review-items/{item_id}/review", response_model=ReviewItemResponse)
async def review_item(
    item_id: str, request: ReviewRequest, pipeline: PipelineDep
) -> ReviewItemResponse:
    """Apply a reviewer action (start_review, approve, reject, request_correction)."""
    try:
        item = pipeline.workflow.review(
            item_id,
            request.action,
            request.reviewer_id,
            comment=request.comment,
            corrections=request.corrections,
        )
    except PipelineError as exc:
        logger.info("Review of %s refused: %s", item_id, exc)
        raise _http_error(exc) from exc
    return _item_response(item)


@app.post("/review-items/{item_id}/comments", response_model=ReviewItemResponse)
async def add_comment(
    item_id: str, request: CommentRequest, pipeline: PipelineDep
) -> ReviewItemResponse:
    try:
        item = pipeline.workflow.add_comment(
            item_id, request.author, request.content, request.metadata
        )
    except PipelineError as exc:
        raise _http_error(exc) from exc
    return _item_response(item)


@app.get("/records", response_model=RecordsResponse)
async def list_records(pipeline: PipelineDep) -> RecordsResponse:
    """Records emitted by approvals, when the sink keeps them in memory."""
    return RecordsResponse(records=getattr(pipeline.workflow.sink, "records", []))
