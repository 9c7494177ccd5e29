"""
Tests for outputs, sales, performance and the task queue.
"""
from datetime import timedelta

import pytest
from fastapi import status

from dashboard.models import Message, Output, OutputType, Sale, Sender
from dashboard.utils.clock import utcnow


@pytest.mark.unit
class TestOutputs:
    """Test output endpoints."""

    def test_review_output(self, client, project):
        """Reviewing an output marks it reviewed."""
        output = client.post(
            "/api/outputs/create",
            json={"project_id": project.id, "type": "pdf", "content": "https://cdn.example.com/guide.pdf"},
        ).json()
        assert output["approved"] is None

        assert client.put(f"/api/outputs/{output['id']}/approve").json()["approved"] is True
        assert client.put(f"/api/outputs/{output['id']}/reject").json()["approved"] is False

        outputs = client.get(f"/api/projects/{project.id}/outputs").json()
        assert outputs[0]["approved"] is False

    def test_review_missing_output(self, client):
        """Reviewing a missing output is a 404."""
        assert client.put("/api/outputs/12/approve").status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.unit
class TestSales:
    """Test sale endpoints."""

    def test_create_and_list_sales(self, client, project):
        """Sales are stored and listed per project."""
        response = client.post(
            "/api/sales/create",
            json={"project_id": project.id, "amount": 1999, "platform": "gumroad"},
        )
        assert response.status_code == status.HTTP_201_CREATED

        sales = client.get(f"/api/projects/{project.id}/sales").json()
        assert sales[0]["amount"] == 1999
        assert sales[0]["platform"] == "gumroad"

    def test_negative_amount_rejected(self, client, project):
        """Negative sale amounts are rejected."""
        response = client.post("/api/sales/create", json={"project_id": project.id, "amount": -5})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.unit
class TestPerformance:
    """Test daily performance."""

    def test_counts_only_yesterday(self, client, db_session, project):
        """Performance counts only the previous day."""
        yesterday = utcnow().replace(hour=12, minute=0, second=0, microsecond=0) - timedelta(days=1)
        two_days_ago = yesterday - timedelta(days=1)
        db_session.add_all([
            Message(project_id=project.id, sender=Sender.USER, content="a", timestamp=yesterday),
            Message(project_id=project.id, sender=Sender.ASSISTANT, content="b", timestamp=yesterday),
            Message(project_id=project.id, sender=Sender.USER, content="old", timestamp=two_days_ago),
            Output(project_id=project.id, type=OutputType.IMAGE, content="img", created_at=yesterday),
            Sale(project_id=project.id, amount=500, timestamp=yesterday),
            Sale(project_id=project.id, amount=700, timestamp=yesterday),
            Sale(project_id=project.id, amount=10000, timestamp=two_days_ago),
        ])
        db_session.commit()

        data = client.get(f"/api/projects/{project.id}/performance").json()
        assert data == {"messages": 2, "content": 1, "income": 1200}

    def test_empty_day(self, client, project):
        """A day without activity reports zeros."""
        data = client.get(f"/api/projects/{project.id}/performance").json()
        assert data == {"messages": 0, "content": 0, "income": 0}


@pytest.mark.unit
class TestTasks:
    """Test the task queue."""

    def _create(self, client, project_id):
        response = client.post("/api/tasks/create", json={"project_id": project_id, "title": "Write intro post"})
        assert response.status_code == status.HTTP_201_CREATED
        return response.json()

    def test_forward_transitions(self, client, project):
        """Tasks move forward through their statuses."""
        task = self._create(client, project.id)
        assert task["status"] == "pending"

        response = client.put(f"/api/tasks/{task['id']}/status", json={"status": "in_progress"})
        assert response.json()["status"] == "in_progress"
        response = client.put(f"/api/tasks/{task['id']}/status", json={"status": "completed"})
        assert response.json()["status"] == "completed"

    def test_backward_transition_rejected(self, client, project):
        """Tasks cannot move back to an earlier status."""
        task = self._create(client, project.id)
        client.put(f"/api/tasks/{task['id']}/status", json={"status": "completed"})

        response = client.put(f"/api/tasks/{task['id']}/status", json={"status": "pending"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error_code"] == "BUSINESS_LOGIC_ERROR"

    def test_list_tasks(self, client, project):
        """Tasks are listed per project."""
        self._create(client, project.id)
        self._create(client, project.id)
        assert len(client.get(f"/api/projects/{project.id}/tasks").json()) == 2
