"""
Test suite for scheduled pipeline entrypoints and bulk assignment.

Tests /api/v1/pipeline and /api/v1/assignments routes with a mocked
service layer.

System role: Verification of sweep and assignment HTTP API
"""

import uuid
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from knowledge_sync.api.deps import get_assignment_service, get_pipeline_service
from knowledge_sync.core.exceptions import AgentNotFoundError, ValidationError
from knowledge_sync.main import create_app
from knowledge_sync.models.assignment import AssignDocumentsResponse
from knowledge_sync.models.pipeline import (
    EmbedSweepResponse,
    ProcessQueueResponse,
    ReconcileResponse,
)


@pytest.fixture
def mock_pipeline_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_assignment_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(mock_pipeline_service, mock_assignment_service) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_pipeline_service] = lambda: mock_pipeline_service
    app.dependency_overrides[get_assignment_service] = lambda: mock_assignment_service
    return TestClient(app)


class TestPipelineEndpoints:
    """Test suite for /pipeline sweeps."""

    def test_process_queue_should_pass_batch_size(self, client, mock_pipeline_service) -> None:
        # Arrange
        mock_pipeline_service.process_queue.return_value = ProcessQueueResponse(
            processed=1, failed=1, errors=["job: timeout"]
        )

        # Act
        response = client.post("/api/v1/pipeline/process-queue", params={"batch_size": 5})

        # Assert
        assert response.status_code == 200
        assert response.json() == {"processed": 1, "failed": 1, "errors": ["job: timeout"]}
        mock_pipeline_service.process_queue.assert_called_once_with(5)

    def test_process_queue_should_map_invalid_batch_size_to_400(
        self, client, mock_pipeline_service
    ) -> None:
        mock_pipeline_service.process_queue.side_effect = ValidationError(
            "batch_size must be positive", field="batch_size"
        )

        response = client.post("/api/v1/pipeline/process-queue", params={"batch_size": 0})

        assert response.status_code == 400

    def test_embed_sweep_should_report_ready_documents(self, client, mock_pipeline_service) -> None:
        document_id = uuid.uuid4()
        mock_pipeline_service.embed_sweep.return_value = EmbedSweepResponse(
            pipeline="b", picked=20, processed=20, failed=0, skipped=0,
            documents_ready=[document_id],
        )

        response = client.post("/api/v1/pipeline/embed", params={"pipeline": "b"})

        assert response.status_code == 200
        assert response.json()["documents_ready"] == [str(document_id)]
        mock_pipeline_service.embed_sweep.assert_called_once_with("b")

    def test_reconcile_should_return_counters(self, client, mock_pipeline_service) -> None:
        mock_pipeline_service.reconcile.return_value = ReconcileResponse(
            stuck_reset=1, stuck_failed=0, failed_recovered=2,
            orphans_recovered=0, documents_reconciled=0,
        )

        response = client.post("/api/v1/pipeline/reconcile")

        assert response.status_code == 200
        assert response.json()["failed_recovered"] == 2


class TestAssignmentEndpoint:
    """Test suite for POST /assignments."""

    def test_assign_should_return_202(self, client, mock_assignment_service) -> None:
        # Arrange
        agent_id = uuid.uuid4()
        mock_assignment_service.assign.return_value = AssignDocumentsResponse(
            accepted=True, agent_id=agent_id, agent_name="Support Agent", document_count=2
        )

        # Act
        response = client.post(
            "/api/v1/assignments",
            json={"agent_id": str(agent_id), "document_ids": [str(uuid.uuid4()), str(uuid.uuid4())]},
        )

        # Assert
        assert response.status_code == 202
        assert response.json()["accepted"] is True

    def test_assign_should_map_unknown_agent_to_404(self, client, mock_assignment_service) -> None:
        agent_id = uuid.uuid4()
        mock_assignment_service.assign.side_effect = AgentNotFoundError(str(agent_id))

        response = client.post(
            "/api/v1/assignments",
            json={"agent_id": str(agent_id), "document_ids": [str(uuid.uuid4())]},
        )

        assert response.status_code == 404

    def test_assign_should_reject_empty_document_list(self, client, mock_assignment_service) -> None:
        response = client.post(
            "/api/v1/assignments", json={"agent_id": str(uuid.uuid4()), "document_ids": []}
        )

        assert response.status_code == 422
        mock_assignment_service.assign.assert_not_called()
