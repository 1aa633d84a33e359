"""Tests for template detection and entity extraction."""

import pytest

from legalflow.catalog.models import EntityKind
from legalflow.catalog.registry import TemplateRegistry
from legalflow.extraction.entities import UNKNOWN_TYPE, ExtractedEntity
from legalflow.extraction.entity_extractor import EntityExtractor
from legalflow.extraction.template_matcher import TemplateMatcher
from legalflow.utils.config import ExtractionConfig


def _catalog(*templates: tuple[str, list[str]]) -> dict:
    return {
        "templates": [
            {"id": tid, "type_name": tid.title(), "identifying_patterns": patterns}
            for tid, patterns in templates
        ]
    }


class TestTemplateMatcher:
    """Tests for document type detection."""

    def test_detects_decree(self, registry: TemplateRegistry, decree_text: str) -> None:
        match = TemplateMatcher(registry).match_template(decree_text)
        assert match.template_id == "decret_executif"
        assert match.type_name == "Décret exécutif"
        assert match.position == 0
        assert match.confidence == 1.0

    def test_detects_law(self, registry: TemplateRegistry, law_text: str) -> None:
        match = TemplateMatcher(registry).match_template(law_text)
        assert match.template_id == "loi"
        assert match.matched_patterns == 2
        assert match.confidence == pytest.approx(2 / 3)

    def test_detects_procedure(self, registry: TemplateRegistry, procedure_text: str) -> None:
        match = TemplateMatcher(registry).match_template(procedure_text)
        assert match.template_id == "procedure_administrative"

    def test_no_match(self, registry: TemplateRegistry) -> None:
        assert TemplateMatcher(registry).match_template("Facture n° 42") is None

    def test_earliest_match_wins(self, write_catalog) -> None:
        registry = TemplateRegistry(write_catalog(_catalog(("alpha", ["alpha"]), ("gamma", ["gamma"]))))
        match = TemplateMatcher(registry).match_template("gamma then alpha")
        assert match.template_id == "gamma"

    def test_more_patterns_break_position_tie(self, write_catalog) -> None:
        registry = TemplateRegistry(
            write_catalog(_catalog(("single", ["alpha"]), ("double", ["alpha", "beta"])))
        )
        match = TemplateMatcher(registry).match_template("alpha beta")
        assert match.template_id == "double"
        assert match.confidence == 1.0

    def test_declaration_order_breaks_full_tie(self, write_catalog) -> None:
        registry = TemplateRegistry(write_catalog(_catalog(("first", ["alpha"]), ("second", ["alpha"]))))
        assert TemplateMatcher(registry).match_template("alpha").template_id == "first"

    def test_interministerial_before_ministerial(self, registry: TemplateRegistry) -> None:
        text = "Arrêté interministériel du 5 mai 2020 fixant les modalités de contrôle."
        match = TemplateMatcher(registry).match_template(text)
        assert match.template_id == "arrete_interministeriel"


class TestEntityExtractor:
    """Tests for the regex entity extractor."""

    def setup_method(self) -> None:
        self.registry = TemplateRegistry()
        self.extractor = EntityExtractor(self.registry)

    def test_decree_number_from_template_pattern(self, decree_text: str) -> None:
        result = self.extractor.extract(decree_text)
        numbers = result.of_kind(EntityKind.NUMBER)
        first = numbers[0]
        assert first.value == "23-145"
        assert first.pattern_name == "numero_decret"
        assert first.confidence == 0.95
        assert decree_text[first.span[0] : first.span[1]] == "23-145"

    def test_generic_number_dropped_on_overlap(self, decree_text: str) -> None:
        result = self.extractor.extract(decree_text)
        values = [e.value for e in result.of_kind(EntityKind.NUMBER)]
        assert values == ["23-145", "90-11", "21-275"]

    def test_detection_fields(self, decree_text: str) -> None:
        result = self.extractor.extract(decree_text)
        assert result.document_type == "decret_executif"
        assert result.template_id == "decret_executif"
        assert result.detection_confidence == 1.0
        assert result.language == "fr"

    def test_entities_in_document_order(self, decree_text: str) -> None:
        result = self.extractor.extract(decree_text)
        starts = [e.span[0] for e in result.entities]
        assert starts == sorted(starts)

    def test_spans_point_into_text(self, decree_text: str) -> None:
        result = self.extractor.extract(decree_text)
        for entity in result.entities:
            start, end = entity.span
            assert 0 <= start < end <= len(decree_text)

    def test_no_overlap_within_kind(self, law_text: str) -> None:
        result = self.extractor.extract(law_text)
        by_kind: dict[EntityKind, list[tuple[int, int]]] = {}
        for entity in result.entities:
            by_kind.setdefault(entity.kind, []).append(entity.span)
        for spans in by_kind.values():
            for a, b in zip(spans, spans[1:]):
                assert a[1] <= b[0]

    def test_gregorian_date_metadata(self, decree_text: str) -> None:
        dates = self.extractor.extract(decree_text).of_kind(EntityKind.DATE)
        first = dates[0]
        assert first.value == "12 mars 2023"
        assert first.metadata["gregorian_iso"] == "2023-03-12"
        assert first.metadata["calendar"] == "gregorian"
        assert len(dates) == 3

    def test_composite_date_is_one_entity(self, law_text: str) -> None:
        dates = self.extractor.extract(law_text).of_kind(EntityKind.DATE)
        assert len(dates) == 1
        date = dates[0]
        assert date.value == "26 Ramadhan 1410 correspondant au 21 avril 1990"
        assert date.confidence == 0.95
        assert date.metadata["calendar"] == "composite"
        assert date.metadata["hijri"] == "26 Ramadhan 1410"
        assert date.metadata["gregorian_iso"] == "1990-04-21"

    def test_hijri_month_canonicalized(self) -> None:
        dates = self.extractor.extract("Fait à Alger, le 3 ramadan 1444").of_kind(EntityKind.DATE)
        assert dates[0].metadata["hijri_month"] == "Ramadhan"
        assert dates[0].metadata["calendar"] == "hijri"

    def test_invalid_calendar_date_keeps_entity(self) -> None:
        dates = self.extractor.extract("le 31 février 2023").of_kind(EntityKind.DATE)
        assert dates[0].value == "31 février 2023"
        assert "gregorian_iso" not in dates[0].metadata

    def test_institutions(self, law_text: str) -> None:
        institutions = self.extractor.extract(law_text).of_kind(EntityKind.INSTITUTION)
        assert [e.value for e in institutions] == [
            "Président de la République",
            "Assemblée populaire nationale",
        ]
        assert all(e.pattern_name == "institution_catalog" for e in institutions)

    def test_generic_institution(self) -> None:
        text = "Le wali de la wilaya de Tlemcen, chargé de l'exécution"
        institutions = self.extractor.extract(text).of_kind(EntityKind.INSTITUTION)
        assert institutions[0].value == "wilaya de Tlemcen"
        assert institutions[0].confidence == 0.7

    def test_references_carry_relation(self, decree_text: str) -> None:
        references = self.extractor.extract(decree_text).of_kind(EntityKind.REFERENCE)
        assert [r.value for r in references] == [
            "Constitution, notamment ses articles 112 et 141",
            "loi n° 90-11 du 21 avril 1990 relative aux relations de travail",
            "décret présidentiel n° 21-275 du 30 juin 2021 portant nomination du Premier ministre",
        ]
        assert {r.metadata["relation"] for r in references} == {"vu"}

    def test_amending_reference(self) -> None:
        text = "Décret exécutif n° 20-100 modifiant le décret exécutif n° 15-12 du 3 mars 2015."
        references = self.extractor.extract(text).of_kind(EntityKind.REFERENCE)
        assert references[0].metadata["relation"] == "modifies"
        assert references[0].value.startswith("décret exécutif n° 15-12")

    def test_repealing_reference(self) -> None:
        text = "Sont abrogées les dispositions de la loi n° 84-11 du 9 juin 1984."
        references = self.extractor.extract(text).of_kind(EntityKind.REFERENCE)
        assert references[0].metadata["relation"] == "repeals"
        assert references[0].value == "loi n° 84-11 du 9 juin 1984"

    def test_articles(self, decree_text: str) -> None:
        articles = self.extractor.extract(decree_text).of_kind(EntityKind.ARTICLE)
        assert [a.value for a in articles] == ["1er", "2"]
        assert articles[0].metadata["article_content"].startswith("Il est créé")
        assert articles[1].metadata["article_content"].endswith("démocratique et populaire.")

    def test_arabic_articles(self) -> None:
        text = "مرسوم تنفيذي رقم 23-145\nالمادة 1 : يهدف هذا المرسوم إلى التنظيم\nالمادة 2 : ينشر هذا المرسوم\n"
        result = self.extractor.extract(text)
        articles = result.of_kind(EntityKind.ARTICLE)
        assert [a.value for a in articles] == ["1", "2"]
        assert result.language == "ar"

    def test_object_clause(self, decree_text: str) -> None:
        blocks = self.extractor.extract(decree_text).of_kind(EntityKind.TEXT_BLOCK)
        assert blocks[0].value == "portant création de l'agence nationale de la numérisation"

    def test_type_hint_skips_detection(self, decree_text: str) -> None:
        result = self.extractor.extract(decree_text, type_hint="Décret présidentiel")
        assert result.template_id == "decret_presidentiel"
        assert result.detection_confidence == 1.0
        names = {e.pattern_name for e in result.of_kind(EntityKind.NUMBER)}
        assert "numero_decret" not in names

    def test_unknown_type_hint_falls_back_to_detection(self, decree_text: str) -> None:
        result = self.extractor.extract(decree_text, type_hint="facture")
        assert result.template_id == "decret_executif"
        assert result.detection_confidence == 1.0

    def test_hint_adds_institution_fragments(self, procedure_text: str) -> None:
        result = self.extractor.extract(procedure_text, type_hint="procedure_administrative")
        institutions = result.of_kind(EntityKind.INSTITUTION)
        assert institutions[0].value == "Service"
        assert institutions[0].pattern_name == "procedure_administrative_institution"

    def test_explicit_language_kept(self, decree_text: str) -> None:
        assert self.extractor.extract(decree_text, language="mixed").language == "mixed"

    def test_unknown_document(self) -> None:
        result = self.extractor.extract("Facture n° 2023/45 du 4 mai 2023")
        assert result.document_type == UNKNOWN_TYPE
        assert result.template_id is None
        assert result.detection_confidence == 0.0
        assert [e.value for e in result.of_kind(EntityKind.NUMBER)] == ["2023/45"]

    def test_empty_text(self) -> None:
        result = self.extractor.extract("")
        assert result.entities == []
        assert result.document_type == UNKNOWN_TYPE
        assert result.language == "unknown"

    def test_min_confidence_filters_patterns(self, decree_text: str) -> None:
        extractor = EntityExtractor(self.registry, ExtractionConfig(min_confidence=0.9))
        result = extractor.extract(decree_text)
        assert result.of_kind(EntityKind.TEXT_BLOCK) == []
        assert all(e.confidence >= 0.9 for e in result.entities)

    def test_extraction_is_deterministic(self, decree_text: str) -> None:
        first = self.extractor.extract(decree_text)
        second = self.extractor.extract(decree_text)
        assert first.entities == second.entities


class TestExtractedEntity:
    """Tests for the entity value type."""

    def test_to_dict(self) -> None:
        entity = ExtractedEntity(
            kind=EntityKind.NUMBER,
            value="23-145",
            span=(20, 26),
            confidence=0.95,
            metadata={"pattern": "numero_decret"},
        )
        data = entity.to_dict()
        assert data["kind"] == "number"
        assert data["span"] == [20, 26]
