"""Shared test fixtures for the legal text pipeline test suite."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from legalflow.catalog.registry import TemplateRegistry
from legalflow.pipeline import DocumentPipeline
from legalflow.utils.config import AppConfig
from legalflow.workflow.approval import ApprovalWorkflow
from legalflow.workflow.sink import InMemoryRecordSink

FIXED_NOW = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)

DECREE_TEXT = """Décret exécutif n° 23-145 du 12 mars 2023 portant création de l'agence nationale de la numérisation.

Le Premier ministre,

Vu la Constitution, notamment ses articles 112 et 141 ;
Vu la loi n° 90-11 du 21 avril 1990 relative aux relations de travail ;
Vu le décret présidentiel n° 21-275 du 30 juin 2021 portant nomination du Premier ministre ;

Décrète :

Article 1er. — Il est créé une agence nationale de la numérisation.
Article 2. — Le présent décret sera publié au Journal officiel de la République algérienne démocratique et populaire.
"""

LAW_TEXT = """Loi n° 90-11 du 26 Ramadhan 1410 correspondant au 21 avril 1990 relative aux relations de travail.

Le Président de la République,

Vu la Constitution ;
Après adoption par l'Assemblée populaire nationale,

Promulgue la loi dont la teneur suit :

Article 1er. — La présente loi a pour objet de régir les relations individuelles et collectives de travail.
"""

PROCEDURE_TEXT = """Procédure de demande d'extrait de naissance

Service de l'état civil de la commune.

Délai de traitement : 3 jours ouvrables
Coût : gratuit

Pièces à fournir :
- Copie de la carte nationale d'identité
- Livret de famille
"""


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture(scope="session")
def registry() -> TemplateRegistry:
    """Registry over the packaged catalog, shared across the session."""
    return TemplateRegistry()


@pytest.fixture
def sink() -> InMemoryRecordSink:
    return InMemoryRecordSink()


@pytest.fixture
def workflow(registry: TemplateRegistry, sink: InMemoryRecordSink) -> ApprovalWorkflow:
    """Workflow with a fixed clock and an in-memory sink."""
    return ApprovalWorkflow(registry, sink=sink, clock=fixed_clock)


@pytest.fixture
def pipeline(registry: TemplateRegistry, workflow: ApprovalWorkflow) -> DocumentPipeline:
    return DocumentPipeline(AppConfig(), registry=registry, workflow=workflow)


@pytest.fixture
def decree_text() -> str:
    return DECREE_TEXT


@pytest.fixture
def law_text() -> str:
    return LAW_TEXT


@pytest.fixture
def procedure_text() -> str:
    return PROCEDURE_TEXT


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def write_catalog(tmp_path: Path):
    """Write a catalog dict to a YAML file and return its path."""

    def _write(data: dict, name: str = "templates.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
        return path

    return _write
