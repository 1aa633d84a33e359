"""End-to-end processing: text -> entities -> mapping -> review queue."""

from pathlib import Path

from legalflow.catalog.registry import TemplateRegistry
from legalflow.catalog.vocabulary import load_vocabulary
from legalflow.extraction.entity_extractor import EntityExtractor
from legalflow.extraction.structure import DocumentStructureAnalyzer
from legalflow.mapping.field_mapper import FieldMapper
from legalflow.ocr.recognizer import TextRecognizer, recognizer_for
from legalflow.utils.config import AppConfig
from legalflow.utils.logger import get_logger
from legalflow.workflow.approval import ApprovalWorkflow
from legalflow.workflow.models import (
    ExtractionSnapshot,
    OriginalDocument,
    ProcessedDocument,
    ReviewItem,
)
from legalflow.workflow.sink import RecordSink

logger = get_logger(__name__)


def build_registry(config: AppConfig) -> TemplateRegistry:
    vocabulary = load_vocabulary(config.catalog.vocabulary_path)
    return TemplateRegistry(config.catalog.templates_path, vocabulary=vocabulary)


class DocumentPipeline:
    """Wires extraction, mapping and the approval workflow together.

    Args:
        config: Application configuration.
        registry: Template registry; built from ``config`` when ``None``.
        workflow: Review workflow; a new in-memory one when ``None``.
        sink: Record sink for a workflow created here.
        recognizer: Text recognizer used for every file; chosen by file
            extension when ``None``.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        registry: TemplateRegistry | None = None,
        workflow: ApprovalWorkflow | None = None,
        sink: RecordSink | None = None,
        recognizer: TextRecognizer | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.registry = registry or build_registry(self.config)
        self.extractor = EntityExtractor(self.registry, self.config.extraction)
        self.analyzer = DocumentStructureAnalyzer(self.registry)
        self.mapper = FieldMapper(self.registry, self.config.mapping)
        self.workflow = workflow or ApprovalWorkflow(
            self.registry, sink=sink, config=self.config.workflow
        )
        self.recognizer = recognizer

    def process_text(
        self,
        text: str,
        filename: str = "",
        type_hint: str | None = None,
        language: str | None = None,
        ocr_confidence: float = 1.0,
        page_count: int = 1,
    ) -> ProcessedDocument:
        """Extract and map one document without queueing it.

        Args:
            text: Document text.
            filename: Original file name, kept for the record.
            type_hint: Known document type, if any.
            language: Language code; detected when ``None``.
            ocr_confidence: Recognition confidence reported by OCR.
            page_count: Number of pages of the original document.

        Returns:
            Processed document ready for :meth:`ApprovalWorkflow.submit`.
        """
        extraction = self.extractor.extract(text, type_hint=type_hint, language=language)
        structure = self.analyzer.analyze(text, extraction.entities)
        schema = self.registry.schema_for(extraction.template_id)
        mapping = self.mapper.map(extraction.entities, structure, schema, text)

        logger.info(
            "Processed %s: type=%s, %d entities, confidence=%.2f",
            filename or "<text>",
            extraction.document_type,
            len(extraction.entities),
            mapping.overall_confidence,
        )
        return ProcessedDocument(
            original=OriginalDocument(
                filename=filename, size=len(text.encode("utf-8")), page_count=page_count
            ),
            document_type=extraction.document_type,
            extraction=ExtractionSnapshot(
                text=text,
                entities=extraction.entities,
                structure=structure,
                ocr_confidence=ocr_confidence,
                language=extraction.language,
                detection_confidence=extraction.detection_confidence,
                template_id=extraction.template_id,
            ),
            mapping_result=mapping,
        )

    def process_file(self, path: Path, type_hint: str | None = None) -> ProcessedDocument:
        """Recognize a file's text, then extract and map it."""
        path = Path(path)
        recognizer = self.recognizer or recognizer_for(path, self.config.ocr)
        recognized = recognizer.recognize(path)
        processed = self.process_text(
            recognized.text,
            filename=path.name,
            type_hint=type_hint,
            ocr_confidence=recognized.confidence,
            page_count=recognized.page_count,
        )
        processed.original.size = path.stat().st_size
        return processed

    def submit_text(self, text: str, submitted_by: str = "system", **kwargs) -> ReviewItem:
        return self.workflow.submit(self.process_text(text, **kwargs), submitted_by=submitted_by)

    def submit_file(
        self, path: Path, type_hint: str | None = None, submitted_by: str = "system"
    ) -> ReviewItem:
        return self.workflow.submit(self.process_file(path, type_hint), submitted_by=submitted_by)
