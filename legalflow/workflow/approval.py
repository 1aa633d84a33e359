"""Human review and approval of mapped records.

Every review item moves through ``pending -> under_review ->
{approved, rejected}``; ``request_correction`` sends it back to
``pending``. Each transition appends exactly one audit comment, and an
approval emits the final record to the configured sink.
"""

import copy
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from legalflow.catalog.models import FormSchema
from legalflow.catalog.registry import TemplateRegistry
from legalflow.errors import ApprovalBlockedError, PreconditionError
from legalflow.mapping.models import (
    FieldMapping,
    MappingResult,
    MappingSource,
    compute_overall_confidence,
    compute_unmapped,
)
from legalflow.utils.config import WorkflowConfig
from legalflow.utils.logger import get_logger
from legalflow.validation.rules_engine import RulesEngine, ValidationReport, ValidationResult

from .models import (
    PRIORITY_ORDER,
    CommentKind,
    Priority,
    ProcessedDocument,
    ReviewAction,
    ReviewComment,
    ReviewItem,
    ReviewStatus,
)
from .sink import InMemoryRecordSink, RecordSink
from .state_machine import ACTION_COMMENT_KINDS, COMMENT_REQUIRED, next_status, parse_action
from .store import ReviewItemStore

logger = get_logger(__name__)

SYSTEM_REVIEWER = "system"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalWorkflow:
    """Review queue over a :class:`ReviewItemStore`.

    Args:
        registry: Template registry, used to find each item's schema and
            validation rules.
        store: Item store; a fresh in-memory store when ``None``.
        sink: Receives approved records; an in-memory sink when ``None``.
        config: Workflow settings.
        rules_engine: Approval validation; built from ``config`` when ``None``.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        store: ReviewItemStore | None = None,
        sink: RecordSink | None = None,
        config: WorkflowConfig | None = None,
        rules_engine: RulesEngine | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.registry = registry
        self.store = store or ReviewItemStore()
        self.sink = sink if sink is not None else InMemoryRecordSink()
        self.config = config or WorkflowConfig()
        self.clock = clock or _utcnow
        self.rules_engine = rules_engine or RulesEngine(
            self.config, today=lambda: self.clock().date()
        )

    # -- submission ------------------------------------------------------

    def submit(self, document: ProcessedDocument, submitted_by: str = SYSTEM_REVIEWER) -> ReviewItem:
        """Queue a processed document for review.

        Args:
            document: Extraction and mapping output for one document.
            submitted_by: Author of the submission comment.

        Returns:
            Snapshot of the new item, in ``pending``.
        """
        now = self.clock()
        document = copy.deepcopy(document)
        schema = self.registry.schema_for(document.extraction.template_id)
        item = ReviewItem(
            id=uuid.uuid4().hex,
            original_document=document.original,
            document_type=document.document_type,
            extraction=document.extraction,
            mapping_result=document.mapping_result,
            submitted_at=now,
            priority=self._priority(document.mapping_result, schema),
        )
        item.comments.append(
            ReviewComment(
                author=submitted_by,
                content=f"Document soumis pour validation ({document.document_type})",
                timestamp=now,
                kind=CommentKind.SUBMISSION,
                metadata={"overall_confidence": document.mapping_result.overall_confidence},
            )
        )
        stored = self.store.add(item)
        logger.info(
            "Submitted item %s (type=%s, confidence=%.2f, priority=%s)",
            stored.id,
            stored.document_type,
            stored.overall_confidence,
            stored.priority,
        )
        return stored

    def _priority(self, mapping: MappingResult, schema: FormSchema) -> Priority:
        mapped_names = {m.field_name for m in mapping.mapped_fields}
        required = [f.name for f in schema.required_fields]
        mapped_required = sum(1 for name in required if name in mapped_names)
        unmapped_required = len(required) - mapped_required
        if (
            mapping.overall_confidence < self.config.high_priority_threshold
            or unmapped_required > mapped_required
        ):
            return Priority.HIGH
        return Priority.MEDIUM

    # -- review ----------------------------------------------------------

    def review(
        self,
        item_id: str,
        action: str | ReviewAction,
        reviewer_id: str,
        comment: str = "",
        corrections: dict[str, Any] | None = None,
    ) -> ReviewItem:
        """Apply a reviewer action to an item.

        Args:
            item_id: Review item id.
            action: ``start_review``, ``approve``, ``reject`` or
                ``request_correction``.
            reviewer_id: Who performs the action.
            comment: Reviewer comment; required for ``reject`` and
                ``request_correction``.
            corrections: Field name to corrected value, applied by
                ``approve`` and ``request_correction``. An empty value
                clears the field.

        Returns:
            Snapshot of the item after the transition.

        Raises:
            ItemNotFoundError: Unknown item id.
            InvalidTransitionError: Action not allowed in the item's status.
            PreconditionError: Missing comment or unknown corrected field.
            ApprovalBlockedError: ``approve`` on a record failing validation.
        """
        with self.store.locked(item_id) as item:
            parsed = parse_action(action, item.status)
            target = next_status(item.status, parsed)
            if parsed in COMMENT_REQUIRED and not comment.strip():
                raise PreconditionError(f"A comment is required to {parsed} an item")

            if parsed == ReviewAction.APPROVE:
                self._approve(item, reviewer_id, comment, corrections)
            elif parsed == ReviewAction.REJECT:
                self._reject(item, reviewer_id, comment)
            elif parsed == ReviewAction.REQUEST_CORRECTION:
                self._request_correction(item, reviewer_id, comment, corrections)
            else:
                self._start_review(item, reviewer_id, comment)

            logger.info("Item %s: %s by %s -> %s", item_id, parsed, reviewer_id, target)
            return copy.deepcopy(item)

    def _start_review(self, item: ReviewItem, reviewer_id: str, comment: str) -> None:
        item.status = ReviewStatus.UNDER_REVIEW
        item.assigned_to = reviewer_id
        self._audit(item, ReviewAction.START_REVIEW, reviewer_id, comment or f"Pris en charge par {reviewer_id}")

    def _approve(
        self,
        item: ReviewItem,
        reviewer_id: str,
        comment: str,
        corrections: dict[str, Any] | None,
        auto: bool = False,
    ) -> None:
        schema = self.registry.schema_for(item.extraction.template_id)
        mapping = self._corrected(item, schema, corrections) if corrections else item.mapping_result

        violations = self._violations(item, mapping, schema)
        if violations:
            raise ApprovalBlockedError(item.id, violations)

        now = self.clock()
        self.sink.emit(self._build_record(item, mapping, schema, now, reviewer_id))

        item.mapping_result = mapping
        item.status = ReviewStatus.APPROVED
        item.reviewed_at = now
        item.reviewed_by = reviewer_id
        self._audit(
            item,
            ReviewAction.APPROVE,
            reviewer_id,
            comment or "Document approuvé",
            {"auto_approved": auto, "corrected_fields": sorted(corrections or {})},
        )

    def _reject(self, item: ReviewItem, reviewer_id: str, comment: str) -> None:
        item.status = ReviewStatus.REJECTED
        item.reviewed_at = self.clock()
        item.reviewed_by = reviewer_id
        self._audit(item, ReviewAction.REJECT, reviewer_id, comment)

    def _request_correction(
        self,
        item: ReviewItem,
        reviewer_id: str,
        comment: str,
        corrections: dict[str, Any] | None,
    ) -> None:
        schema = self.registry.schema_for(item.extraction.template_id)
        if corrections:
            item.mapping_result = self._corrected(item, schema, corrections)
        item.status = ReviewStatus.PENDING
        item.assigned_to = None
        item.priority = self._priority(item.mapping_result, schema)
        self._audit(
            item,
            ReviewAction.REQUEST_CORRECTION,
            reviewer_id,
            comment,
            {"corrected_fields": sorted(corrections or {})},
        )

    def _audit(
        self,
        item: ReviewItem,
        action: ReviewAction,
        author: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        item.comments.append(
            ReviewComment(
                author=author,
                content=content,
                timestamp=self.clock(),
                kind=ACTION_COMMENT_KINDS[action],
                metadata=metadata or {},
            )
        )

    def _corrected(
        self, item: ReviewItem, schema: FormSchema, corrections: dict[str, Any]
    ) -> MappingResult:
        """Return a copy of the item's mapping with corrections applied."""
        unknown = sorted(name for name in corrections if schema.get_field(name) is None)
        if unknown:
            raise PreconditionError(f"Unknown fields in corrections: {', '.join(unknown)}")

        by_name = {m.field_name: copy.copy(m) for m in item.mapping_result.mapped_fields}
        for name, value in corrections.items():
            text = "" if value is None else str(value).strip()
            if not text:
                by_name.pop(name, None)
            elif name in by_name:
                by_name[name].value = text
                by_name[name].confidence = 1.0
                by_name[name].corrected = True
            else:
                by_name[name] = FieldMapping(
                    field_name=name,
                    value=text,
                    confidence=1.0,
                    source=MappingSource.INFERRED,
                    corrected=True,
                )

        mapped = [by_name[name] for name in schema.field_names if name in by_name]
        return MappingResult(
            mapped_fields=mapped,
            unmapped_data=compute_unmapped(item.extraction.entities, mapped),
            suggestions=[s for s in item.mapping_result.suggestions if s.field_name not in by_name],
            overall_confidence=compute_overall_confidence(mapped, schema),
        )

    # -- validation and records -----------------------------------------

    def _violations(
        self, item: ReviewItem, mapping: MappingResult, schema: FormSchema
    ) -> list[ValidationResult]:
        template = self.registry.get(item.extraction.template_id) if item.extraction.template_id else None
        return self.rules_engine.validate(mapping.values(), schema, template).violations

    def validate(self, item_id: str) -> ValidationReport:
        """Run the approval checks on an item without changing it."""
        item = self.store.get(item_id)
        schema = self.registry.schema_for(item.extraction.template_id)
        template = self.registry.get(item.extraction.template_id) if item.extraction.template_id else None
        return self.rules_engine.validate(item.mapping_result.values(), schema, template)

    def _build_record(
        self,
        item: ReviewItem,
        mapping: MappingResult,
        schema: FormSchema,
        approved_at: datetime,
        reviewer_id: str,
    ) -> dict[str, Any]:
        values = mapping.values()
        record: dict[str, Any] = {name: values.get(name) for name in schema.field_names}
        record["workflow_status"] = str(ReviewStatus.APPROVED)
        record["approved_at"] = approved_at.isoformat()
        record["extraction_metadata"] = {
            "item_id": item.id,
            "document_type": item.document_type,
            "template_id": item.extraction.template_id,
            "original_filename": item.original_document.filename,
            "overall_confidence": mapping.overall_confidence,
            "ocr_confidence": item.extraction.ocr_confidence,
            "detection_confidence": item.extraction.detection_confidence,
            "language": item.extraction.language,
            "approved_by": reviewer_id,
            "corrected_fields": [m.field_name for m in mapping.mapped_fields if m.corrected],
            "unmapped_data": list(mapping.unmapped_data),
        }
        return record

    # -- batch and comments ---------------------------------------------

    def batch_approve(
        self, min_confidence: float | None = None, reviewer_id: str = SYSTEM_REVIEWER
    ) -> list[str]:
        """Approve every pending item at or above a confidence threshold.

        Works on the ids pending when the call starts; items submitted
        meanwhile are left for the next run. Each item is re-checked under
        its own lock. Items below the threshold or failing validation stay
        pending. Nothing is ever rejected here.

        Args:
            min_confidence: Threshold; the configured auto-approve
                threshold when ``None``.
            reviewer_id: Recorded as the approver.

        Returns:
            Ids of the approved items, in submission order.
        """
        threshold = self.config.auto_approve_threshold if min_confidence is None else min_confidence
        approved: list[str] = []

        for item_id in self.store.ids(ReviewStatus.PENDING):
            with self.store.locked(item_id) as item:
                if item.status != ReviewStatus.PENDING or item.overall_confidence < threshold:
                    continue
                try:
                    self._approve(
                        item,
                        reviewer_id,
                        f"Approbation automatique (confiance {item.overall_confidence:.0%})",
                        None,
                        auto=True,
                    )
                except ApprovalBlockedError as exc:
                    logger.info("Batch approval skipped %s: %d violation(s)", item_id, len(exc.violations))
                    continue
                approved.append(item_id)

        logger.info("Batch approval at %.2f approved %d item(s)", threshold, len(approved))
        return approved

    def add_comment(
        self,
        item_id: str,
        author: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> ReviewItem:
        """Attach a free comment; allowed in every status, terminal included."""
        if not content.strip():
            raise PreconditionError("Comment content must not be empty")
        with self.store.locked(item_id) as item:
            item.comments.append(
                ReviewComment(
                    author=author,
                    content=content,
                    timestamp=self.clock(),
                    kind=CommentKind.COMMENT,
                    metadata=metadata or {},
                )
            )
            return copy.deepcopy(item)

    # -- read side -------------------------------------------------------

    def get_item(self, item_id: str) -> ReviewItem:
        return self.store.get(item_id)

    def list_items(self, status: ReviewStatus | str | None = None) -> list[ReviewItem]:
        """Snapshots ordered by priority, then submission time."""
        wanted = ReviewStatus(status) if status is not None else None
        items = self.store.snapshots(wanted)
        return sorted(items, key=lambda i: (PRIORITY_ORDER[i.priority], i.submitted_at, i.sequence))

    def get_pending(self) -> list[ReviewItem]:
        return self.list_items(ReviewStatus.PENDING)

    def stats(self) -> dict[str, Any]:
        """Queue statistics: counts per status, mean confidence, auto-approval rate."""
        items = self.store.snapshots()
        counts = {str(status): 0 for status in ReviewStatus}
        for item in items:
            counts[str(item.status)] += 1

        auto_approved = sum(
            1
            for item in items
            if item.status == ReviewStatus.APPROVED
            and any(
                c.kind == CommentKind.VALIDATION and c.metadata.get("auto_approved")
                for c in item.comments
            )
        )
        approved = counts[str(ReviewStatus.APPROVED)]
        return {
            "total": len(items),
            **counts,
            "high_priority_pending": sum(
                1 for i in items if i.status == ReviewStatus.PENDING and i.priority == Priority.HIGH
            ),
            "average_confidence": (
                sum(i.overall_confidence for i in items) / len(items) if items else 0.0
            ),
            "auto_approved": auto_approved,
            "auto_approval_rate": auto_approved / approved if approved else 0.0,
        }
