# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the HTTP API.

The application runs its lifespan against the test database with the
periodic scheduler disabled.
"""

from collections.abc import AsyncGenerator
from datetime import timedelta

import httpx
import pytest
import pytest_asyncio

from src.api.app import create_app
from src.core.config.settings import DatabaseSettings, SchedulerSettings, Settings

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def client(database, clock) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create an HTTP client bound to an app using the test database."""
    settings = Settings(
        environment="development",
        log_level="WARNING",
        database=DatabaseSettings(dsn=database.settings.url),
        scheduler=SchedulerSettings(enabled=False, reconcile_on_startup=True),
    )
    app = create_app(settings=settings, database=database, clock=clock)

    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            yield http


async def _question(client: httpx.AsyncClient, marks: int, **overrides) -> dict:
    payload = {
        "text": f"Question worth {marks}",
        "type": "MULTIPLE_CHOICE",
        "options": ["Stack", "Queue"],
        "correct_answers": ["Queue"],
        "marks": marks,
        "unit_code": "CS101",
        "difficulty": "EASY",
        "approved": True,
    }
    payload.update(overrides)
    response = await client.post("/api/v1/questions", json=payload)
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: httpx.AsyncClient) -> None:
        """Test the health endpoint reports a reachable database."""
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"]["status"] == "healthy"
        assert body["scheduler"]["status"] == "disabled"

    @pytest.mark.asyncio
    async def test_ready(self, client: httpx.AsyncClient) -> None:
        """Test the readiness endpoint."""
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["ready"] is True


class TestAssessmentEndpoints:
    """Tests for assessment endpoints."""

    @pytest.mark.asyncio
    async def test_compose_flow(self, client: httpx.AsyncClient, clock) -> None:
        """Test create, compose, remove and read back."""
        created = await client.post(
            "/api/v1/assessments",
            json={
                "title": "Week 3 quiz",
                "unit_code": "CS101",
                "created_by": "teacher-1",
                "start_time": (clock() - timedelta(hours=1)).isoformat(),
                "end_time": (clock() + timedelta(hours=1)).isoformat(),
            },
        )
        assert created.status_code == 201
        assessment = created.json()
        assert assessment["title"] == "WEEK3QUIZ"

        five = await _question(client, 5)
        three = await _question(client, 3)
        for order, question in enumerate((five, three), start=1):
            response = await client.post(
                f"/api/v1/assessments/{assessment['id']}/questions",
                json={"question_id": question["id"], "order": order},
            )
            assert response.status_code == 201
        assert response.json()["total_marks"] == 8

        removed = await client.delete(
            f"/api/v1/assessments/{assessment['id']}/questions/{five['id']}"
        )
        assert removed.json()["total_marks"] == 3

        fetched = await client.get(f"/api/v1/assessments/{assessment['id']}")
        assert fetched.json()["is_active"] is True
        assert fetched.json()["total_marks"] == 3

    @pytest.mark.asyncio
    async def test_error_mapping(self, client: httpx.AsyncClient) -> None:
        """Test domain errors map onto status codes."""
        missing = await client.get("/api/v1/assessments/missing")
        assert missing.status_code == 404

        created = await client.post(
            "/api/v1/assessments",
            json={"title": "Quiz", "unit_code": "CS101", "created_by": "teacher-1"},
        )
        question = await _question(client, 2)
        path = f"/api/v1/assessments/{created.json()['id']}/questions"
        await client.post(path, json={"question_id": question["id"]})

        duplicate = await client.post(path, json={"question_id": question["id"]})
        assert duplicate.status_code == 422

        cleared = await client.patch(
            f"/api/v1/assessments/{created.json()['id']}", json={"unit_code": None}
        )
        assert cleared.status_code == 422

        inverted = await client.post(
            "/api/v1/assessments",
            json={
                "title": "Quiz",
                "unit_code": "CS101",
                "created_by": "teacher-1",
                "start_time": "2025-03-10T10:00:00Z",
                "end_time": "2025-03-10T09:00:00Z",
            },
        )
        assert inverted.status_code == 422

    @pytest.mark.asyncio
    async def test_delete(self, client: httpx.AsyncClient) -> None:
        """Test deleting an assessment."""
        created = await client.post(
            "/api/v1/assessments",
            json={"title": "Quiz", "unit_code": "CS101", "created_by": "teacher-1"},
        )
        assessment_id = created.json()["id"]

        response = await client.delete(f"/api/v1/assessments/{assessment_id}")

        assert response.status_code == 204
        assert (await client.get(f"/api/v1/assessments/{assessment_id}")).status_code == 404


class TestPracticeEndpoints:
    """Tests for the practice workflow over HTTP."""

    @pytest.mark.asyncio
    async def test_practice_workflow(self, client: httpx.AsyncClient, make_student) -> None:
        """Test generating, taking and listing a practice test."""
        student = await make_student()
        for marks in (4, 6):
            await _question(client, marks)

        created = await client.post(
            "/api/v1/practice/tests",
            json={
                "student_id": student.student_id,
                "unit_code": "CS101",
                "question_type": "Multiple Choice",
                "difficulty": "Any",
                "question_count": 5,
            },
        )
        assert created.status_code == 201
        practice = created.json()
        assert practice["selected"] == 2
        assert practice["shortfall"] == 3
        assessment_id = practice["assessment"]["id"]

        placeholder = await client.get(f"/api/v1/practice/students/{student.student_id}/results")
        assert [r["status"] for r in placeholder.json()] == ["CREATED"]

        submitted = await client.post(
            "/api/v1/attempts/submit",
            json={
                "student_id": student.student_id,
                "assessment_id": assessment_id,
                "score": 9,
            },
        )
        assert submitted.status_code == 200

        results = await client.get(f"/api/v1/practice/students/{student.student_id}/results")
        [result] = results.json()
        assert result["status"] == "COMPLETED"
        assert result["percentage"] == 90.0
        assert result["grade"] == "A"

        tests = await client.get(f"/api/v1/practice/students/{student.student_id}/tests")
        assert [t["id"] for t in tests.json()] == [assessment_id]

        attempts = await client.get("/api/v1/attempts", params={"student_id": student.student_id})
        assert len(attempts.json()) == 1

    @pytest.mark.asyncio
    async def test_question_set_preview(self, client: httpx.AsyncClient, make_student) -> None:
        """Test previewing a selection and the zero-match failure."""
        student = await make_student()
        await _question(client, 2, topic="stacks")

        preview = await client.post(
            "/api/v1/practice/question-sets",
            json={"student_id": student.student_id, "unit_code": "CS101", "question_count": 3},
        )
        assert preview.status_code == 200
        assert preview.json()["shortfall"] == 2

        empty = await client.post(
            "/api/v1/practice/question-sets",
            json={
                "student_id": student.student_id,
                "unit_code": "CS101",
                "question_count": 3,
                "topics": ["graphs"],
            },
        )
        assert empty.status_code == 422

    @pytest.mark.asyncio
    async def test_sweep_endpoint(self, client: httpx.AsyncClient) -> None:
        """Test the sweep endpoint reports counts per source."""
        response = await client.post("/api/v1/practice/reconciliation/sweep")

        assert response.status_code == 200
        assert set(response.json()) == {"legacy_attempts", "placeholders"}
