"""Tests for the FastAPI review endpoints."""

import pytest
from fastapi.testclient import TestClient

from legalflow.api.app import app, get_pipeline
from legalflow.pipeline import DocumentPipeline

from conftest import DECREE_TEXT

SHORT_DECREE = "Décret exécutif n° 23-145 du 12 mars 2023 portant création de l'agence nationale de la numérisation."


@pytest.fixture
def client(pipeline: DocumentPipeline):
    """Test client bound to a fresh pipeline and review queue."""
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit(client: TestClient, text: str = DECREE_TEXT, **extra) -> dict:
    response = client.post("/documents", json={"text": text, **extra})
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert isinstance(data["tesseract_available"], bool)
        assert data["templates_loaded"] == 7


class TestTemplatesEndpoint:
    """Tests for the /templates endpoint."""

    def test_list_templates(self, client: TestClient) -> None:
        response = client.get("/templates")
        assert response.status_code == 200
        templates = response.json()["templates"]
        assert templates[0]["id"] == "loi"
        decree = next(t for t in templates if t["id"] == "decret_executif")
        assert decree["code"] == "DEC"
        assert "number" in decree["required_fields"]
        assert "prime_minister" in decree["fields"]


class TestDocumentsEndpoint:
    """Tests for POST /documents."""

    def test_submit_decree(self, client: TestClient) -> None:
        data = _submit(client, filename="decret.txt", submitted_by="scanner")
        assert data["status"] == "pending"
        assert data["document_type"] == "decret_executif"
        assert data["original_document"]["filename"] == "decret.txt"
        assert data["extraction"]["structure"]["declared_number"] == "23-145"
        assert data["comments"][0]["author"] == "scanner"
        fields = {f["field_name"]: f for f in data["mapping_result"]["mapped_fields"]}
        assert fields["number"]["value"] == "23-145"
        assert fields["status"]["source"] == "inferred"

    def test_entities_serialized(self, client: TestClient) -> None:
        data = _submit(client)
        entity = next(e for e in data["extraction"]["entities"] if e["kind"] == "number")
        assert entity["value"] == "23-145"
        assert len(entity["span"]) == 2

    def test_invalid_ocr_confidence(self, client: TestClient) -> None:
        response = client.post("/documents", json={"text": "x", "ocr_confidence": 1.5})
        assert response.status_code == 422


class TestReviewEndpoints:
    """Tests for the review actions."""

    def test_get_item(self, client: TestClient) -> None:
        item_id = _submit(client)["id"]
        response = client.get(f"/review-items/{item_id}")
        assert response.status_code == 200
        assert response.json()["id"] == item_id

    def test_get_unknown_item(self, client: TestClient) -> None:
        assert client.get("/review-items/missing").status_code == 404

    def test_approve(self, client: TestClient) -> None:
        item_id = _submit(client)["id"]
        response = client.post(
            f"/review-items/{item_id}/review", json={"action": "approve", "reviewer_id": "amina"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "approved"
        assert data["reviewed_by"] == "amina"

        records = client.get("/records").json()["records"]
        assert records[0]["number"] == "23-145"
        assert records[0]["workflow_status"] == "approved"

    def test_invalid_transition_conflict(self, client: TestClient) -> None:
        item_id = _submit(client)["id"]
        client.post(f"/review-items/{item_id}/review", json={"action": "approve", "reviewer_id": "a"})
        response = client.post(
            f"/review-items/{item_id}/review",
            json={"action": "reject", "reviewer_id": "a", "comment": "trop tard"},
        )
        assert response.status_code == 409

    def test_reject_without_comment(self, client: TestClient) -> None:
        item_id = _submit(client)["id"]
        response = client.post(f"/review-items/{item_id}/review", json={"action": "reject", "reviewer_id": "a"})
        assert response.status_code == 422

    def test_unknown_action(self, client: TestClient) -> None:
        item_id = _submit(client)["id"]
        response = client.post(f"/review-items/{item_id}/review", json={"action": "publish", "reviewer_id": "a"})
        assert response.status_code == 422

    def test_blocked_approval_lists_violations(self, client: TestClient) -> None:
        item_id = _submit(client, text="Bulletin météo régional")["id"]
        response = client.post(f"/review-items/{item_id}/review", json={"action": "approve", "reviewer_id": "a"})
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert {v["field_name"] for v in detail["violations"]} >= {"type", "number"}

    def test_request_correction_with_corrections(self, client: TestClient) -> None:
        item_id = _submit(client)["id"]
        response = client.post(
            f"/review-items/{item_id}/review",
            json={
                "action": "request_correction",
                "reviewer_id": "amina",
                "comment": "Numéro à vérifier",
                "corrections": {"number": "23-146"},
            },
        )
        assert response.status_code == 200
        fields = {f["field_name"]: f for f in response.json()["mapping_result"]["mapped_fields"]}
        assert fields["number"]["value"] == "23-146"
        assert fields["number"]["corrected"] is True

    def test_add_comment(self, client: TestClient) -> None:
        item_id = _submit(client)["id"]
        response = client.post(
            f"/review-items/{item_id}/comments", json={"author": "karim", "content": "Vu au JO"}
        )
        assert response.status_code == 200
        assert response.json()["comments"][-1]["kind"] == "comment"


class TestQueueEndpoints:
    """Tests for listing, statistics and batch approval."""

    def test_list_and_filter(self, client: TestClient) -> None:
        first = _submit(client)["id"]
        second = _submit(client, text="Bulletin météo régional")["id"]
        items = client.get("/review-items").json()
        assert [i["id"] for i in items] == [second, first]

        client.post(f"/review-items/{first}/review", json={"action": "start_review", "reviewer_id": "a"})
        under_review = client.get("/review-items", params={"status": "under_review"}).json()
        assert [i["id"] for i in under_review] == [first]
        assert under_review[0]["assigned_to"] == "a"

    def test_invalid_status_filter(self, client: TestClient) -> None:
        assert client.get("/review-items", params={"status": "archived"}).status_code == 422

    def test_batch_approve_and_stats(self, client: TestClient) -> None:
        confident = _submit(client)["id"]
        _submit(client, text="Bulletin météo régional")

        response = client.post("/review-items/batch-approve", json={"min_confidence": 0.85, "reviewer_id": "batch"})
        assert response.status_code == 200
        assert response.json() == {"approved": [confident], "count": 1}

        stats = client.get("/review-items/stats").json()
        assert stats["total"] == 2
        assert stats["approved"] == 1
        assert stats["pending"] == 1
        assert stats["auto_approved"] == 1
        assert stats["auto_approval_rate"] == 1.0

    def test_short_decree_round_trip(self, client: TestClient) -> None:
        item_id = _submit(client, text=SHORT_DECREE)["id"]
        response = client.post(f"/review-items/{item_id}/review", json={"action": "approve", "reviewer_id": "a"})
        assert response.status_code == 200
        assert client.get("/records").json()["records"][0]["publication_date"] == "2023-03-12"
