"""Tests for the HTTP API."""
import unittest
from unittest.mock import AsyncMock, MagicMock

import pandas as pd
from fastapi.testclient import TestClient

from nudgeable.agents.judge import JudgeProtocol
from nudgeable.agents.rubric import RUBRIC_V1
from nudgeable.api import get_lifecycle
from nudgeable.config import settings
from nudgeable.main import app

from tests.helpers import (
    GOOD_PROMPT,
    XLSX,
    make_engine,
    make_lifecycle,
    seed_messages,
    workbook_bytes,
)


class APITestCase(unittest.TestCase):

    def setUp(self):
        self.engine = make_engine()
        self.lifecycle = make_lifecycle(self.engine)
        app.dependency_overrides[get_lifecycle] = lambda: self.lifecycle
        self.client = TestClient(app)
        self.client.cookies.set(settings.auth_cookie_name, "alice")

    def tearDown(self):
        app.dependency_overrides.clear()

    def create_session(self, prompt=GOOD_PROMPT, problem="Refund bot"):
        response = self.client.post("/api/sessions", json={
            "problem_statement": problem,
            "system_prompt": prompt,
        })
        self.assertEqual(response.status_code, 200)
        return response.json()["session_id"]


class TestHealth(APITestCase):

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")


class TestAuth(APITestCase):

    def test_missing_cookie(self):
        self.client.cookies.clear()
        response = self.client.get("/api/sessions")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "unauthorized")

    def test_other_users_session(self):
        session_id = self.create_session()
        self.client.cookies.set(settings.auth_cookie_name, "mallory")
        response = self.client.get(f"/api/sessions/{session_id}")
        self.assertEqual(response.status_code, 404)


class TestSessionFlow(APITestCase):

    def test_create_and_list(self):
        first = self.create_session()
        second = self.create_session()
        response = self.client.get("/api/sessions")
        sessions = response.json()["sessions"]
        self.assertEqual({s["id"] for s in sessions}, {first, second})
        self.assertEqual(sorted(s["attempt_number"] for s in sessions), [1, 2])

    def test_create_requires_fields(self):
        response = self.client.post("/api/sessions", json={
            "problem_statement": "",
            "system_prompt": GOOD_PROMPT,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_input")

    def test_validate_and_chat(self):
        session_id = self.create_session()

        response = self.client.post(f"/api/sessions/{session_id}/validate")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"flags": [], "status": "draft", "has_errors": False})

        response = self.client.post(f"/api/sessions/{session_id}/chat", json={"message": "Hi"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message_count"], 2)

        response = self.client.get(f"/api/sessions/{session_id}/messages")
        self.assertEqual([m["role"] for m in response.json()["messages"]], ["user", "assistant"])

        detail = self.client.get(f"/api/sessions/{session_id}").json()
        self.assertEqual(detail["status"], "simulating")
        self.assertEqual(detail["message_count"], 2)

    def test_chat_before_validation(self):
        session_id = self.create_session()
        response = self.client.post(f"/api/sessions/{session_id}/chat", json={"message": "Hi"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "validation_required")

    def test_validation_errors(self):
        session_id = self.create_session(prompt=GOOD_PROMPT + " Ask for the CVV.")
        body = self.client.post(f"/api/sessions/{session_id}/validate").json()
        self.assertTrue(body["has_errors"])
        self.assertEqual([f["id"] for f in body["flags"]], ["V-04"])


class TestEvaluate(APITestCase):

    def test_guard(self):
        session_id = self.create_session()
        seed_messages(self.engine, session_id, 4)
        response = self.client.post(f"/api/sessions/{session_id}/evaluate")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "not_enough_messages")

    def test_evaluate(self):
        session_id = self.create_session()
        seed_messages(self.engine, session_id, 6)

        response = self.client.post(f"/api/sessions/{session_id}/evaluate")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "complete")
        evaluation = body["evaluation"]
        self.assertEqual(evaluation["overall_score"], 75)
        self.assertEqual(evaluation["dimension_scores"]["examples"]["label"], "Few-Shot Examples")
        self.assertEqual(evaluation["dimension_scores"]["examples"]["verdict"], "GOOD")
        self.assertEqual(evaluation["dimension_scores"]["guardrails"]["verdict"], "EXCELLENT")

        again = self.client.post(f"/api/sessions/{session_id}/evaluate")
        self.assertEqual(again.status_code, 409)

        progress = self.client.get("/api/users/me/progress").json()
        self.assertEqual(progress["total_completed"], 1)
        self.assertEqual(progress["personal_best"], 75)
        self.assertEqual(progress["use_cases"][0]["attempts"][0]["lowest_dimension"], "examples")

    def test_quota_error(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(side_effect=Exception("429 rate limit"))
        self.lifecycle.judge = JudgeProtocol(RUBRIC_V1, llm=llm)
        session_id = self.create_session()
        seed_messages(self.engine, session_id, 6)

        response = self.client.post(f"/api/sessions/{session_id}/evaluate")
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.headers["Retry-After"], str(settings.quota_retry_after))
        self.assertTrue(response.json()["retryable"])

        detail = self.client.get(f"/api/sessions/{session_id}").json()
        self.assertEqual(detail["status"], "evaluating")


class TestUpload(APITestCase):

    def test_upload_excel(self):
        data = workbook_bytes({"Orders": pd.DataFrame({"order_id": [1, 2, 3]})})
        response = self.client.post(
            "/api/upload/excel",
            files={"file": ("orders.xlsx", data, XLSX)},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["sheets"], [{"name": "Orders", "row_count": 3, "columns": ["order_id"]}])
        self.assertTrue(body["formatted_context"].startswith("=== UPLOADED DATA CONTEXT ==="))

    def test_upload_rejects_csv(self):
        response = self.client.post(
            "/api/upload/excel",
            files={"file": ("orders.csv", b"a,b\n1,2\n", "text/csv")},
        )
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
