"""End-to-end tests: text in, review item and approved record out."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from legalflow.ocr.recognizer import RecognizedText
from legalflow.pipeline import DocumentPipeline, build_registry
from legalflow.utils.config import AppConfig, CatalogConfig
from legalflow.workflow.models import Priority, ReviewStatus
from legalflow.workflow.sink import InMemoryRecordSink

SHORT_DECREE = "Décret exécutif n° 23-145 du 12 mars 2023 portant création de l'agence nationale de la numérisation."


class TestDocumentPipeline:
    """Tests for the full extraction, mapping and review chain."""

    def test_short_decree_scenario(self, pipeline: DocumentPipeline, sink: InMemoryRecordSink) -> None:
        processed = pipeline.process_text(SHORT_DECREE)
        assert processed.document_type == "decret_executif"
        values = processed.mapping_result.values()
        assert values["type"] == "Décret exécutif"
        assert values["number"] == "23-145"
        assert values["publication_date"] == "2023-03-12"
        assert values["status"] == "En vigueur"

        item = pipeline.workflow.submit(processed)
        approved = pipeline.workflow.review(item.id, "approve", "amina")
        assert approved.status == ReviewStatus.APPROVED
        assert sink.records[0]["number"] == "23-145"

    def test_full_decree(self, pipeline: DocumentPipeline, decree_text: str) -> None:
        item = pipeline.submit_text(decree_text, filename="decret_23_145.txt")
        assert item.status == ReviewStatus.PENDING
        assert item.priority == Priority.MEDIUM
        assert item.original_document.filename == "decret_23_145.txt"
        assert item.original_document.size == len(decree_text.encode("utf-8"))
        assert item.extraction.template_id == "decret_executif"
        assert item.extraction.structure.declared_number == "23-145"
        assert item.extraction.language == "fr"
        assert item.overall_confidence > 0.85

    def test_full_decree_batch_approved(
        self, pipeline: DocumentPipeline, decree_text: str, sink: InMemoryRecordSink
    ) -> None:
        item = pipeline.submit_text(decree_text)
        assert pipeline.workflow.batch_approve() == [item.id]
        record = sink.records[0]
        assert record["institution"] == "Premier ministre"
        assert record["articles_count"] == "2"
        assert record["extraction_metadata"]["template_id"] == "decret_executif"

    def test_ocr_confidence_reported_not_blended(self, pipeline: DocumentPipeline) -> None:
        high = pipeline.process_text(SHORT_DECREE, ocr_confidence=0.99)
        low = pipeline.process_text(SHORT_DECREE, ocr_confidence=0.2)
        assert low.extraction.ocr_confidence == 0.2
        assert low.mapping_result.overall_confidence == high.mapping_result.overall_confidence

    def test_type_hint(self, pipeline: DocumentPipeline) -> None:
        processed = pipeline.process_text("Texte n° 12-345 du 3 mai 2021", type_hint="Décret présidentiel")
        assert processed.document_type == "decret_presidentiel"
        assert processed.extraction.detection_confidence == 1.0

    def test_unknown_document_is_queued(self, pipeline: DocumentPipeline) -> None:
        item = pipeline.submit_text("Bulletin météo régional")
        assert item.document_type == "unknown"
        assert item.extraction.template_id is None
        assert item.priority == Priority.HIGH

    def test_unknown_document_cannot_be_approved_as_is(self, pipeline: DocumentPipeline) -> None:
        item = pipeline.submit_text("Bulletin météo régional")
        report = pipeline.workflow.validate(item.id)
        assert report.all_valid is False

    def test_empty_text(self, pipeline: DocumentPipeline) -> None:
        processed = pipeline.process_text("")
        assert processed.extraction.entities == []
        assert processed.mapping_result.overall_confidence < 0.5


class TestProcessFile:
    """Tests for file input."""

    def test_text_file(self, pipeline: DocumentPipeline, tmp_path: Path, decree_text: str) -> None:
        path = tmp_path / "decret.txt"
        path.write_text(decree_text, encoding="utf-8")
        processed = pipeline.process_file(path)
        assert processed.original.filename == "decret.txt"
        assert processed.original.size == path.stat().st_size
        assert processed.extraction.ocr_confidence == 1.0

    def test_injected_recognizer(self, registry, workflow, tmp_path: Path) -> None:
        recognizer = MagicMock()
        recognizer.recognize.return_value = RecognizedText(SHORT_DECREE, confidence=0.81, page_count=3)
        pipeline = DocumentPipeline(AppConfig(), registry=registry, workflow=workflow, recognizer=recognizer)

        path = tmp_path / "scan.png"
        path.write_bytes(b"fake")
        item = pipeline.submit_file(path, submitted_by="scanner")

        recognizer.recognize.assert_called_once_with(path)
        assert item.original_document.page_count == 3
        assert item.extraction.ocr_confidence == 0.81
        assert item.comments[0].author == "scanner"

    def test_missing_file(self, pipeline: DocumentPipeline, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            pipeline.process_file(tmp_path / "absent.txt")


class TestBuildRegistry:
    """Tests for registry construction from configuration."""

    def test_packaged_catalog(self) -> None:
        registry = build_registry(AppConfig())
        assert len(registry.templates) == 7

    def test_custom_catalog(self, write_catalog) -> None:
        path = write_catalog({"templates": [{"id": "note", "type_name": "Note de service"}]})
        registry = build_registry(AppConfig(catalog=CatalogConfig(templates_path=str(path))))
        assert [t.id for t in registry.templates] == ["note"]
