# tests/test_api.py
import asyncio
import json
from unittest import mock

import pytest
import requests
from fastapi.testclient import TestClient

from data_task_orchestrator.api.main import app

SAMPLE_CSV = b"id,email,age\n1,a@x.com,30\n2,,30\n2,,30\n"

class TestAPI:

    @pytest.fixture
    def client(self):
        return TestClient(app)

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_analyze_upload(self, client):
        response = client.post("/analyze", files={"file": ("people.csv", SAMPLE_CSV, "text/csv")})

        assert response.status_code == 200
        body = response.json()
        assert body["fileName"] == "people.csv"
        assert body["rowCount"] == 3
        assert [profile["name"] for profile in body["columnProfiles"]] == ["id", "email", "age"]
        assert body["qualityScore"]["uniqueness"] == 75.0
        duplicates = [issue for issue in body["issues"] if issue["type"] == "duplicates"]
        assert duplicates[0]["affectedRows"] == [2]

    def test_analyze_rejects_unsupported_file(self, client):
        response = client.post("/analyze", files={"file": ("people.xlsx", SAMPLE_CSV, "application/octet-stream")})

        assert response.status_code == 400
        assert "Unsupported file format" in response.json()["detail"]

    def test_analyze_rejects_empty_file(self, client):
        response = client.post("/analyze", files={"file": ("empty.csv", b"", "text/csv")})
        assert response.status_code == 400

    def test_analyze_rejects_ragged_csv(self, client):
        content = b"id,name,amount\n1,Alice,10\n2,Bob,20,extra\n3,Carol,30\n"
        response = client.post("/analyze", files={"file": ("orders.csv", content, "text/csv")})

        assert response.status_code == 400
        assert "Malformed source" in response.json()["detail"]

    def test_upload_is_parsed_in_worker_thread(self, client):
        with mock.patch('data_task_orchestrator.api.main.asyncio.to_thread', wraps=asyncio.to_thread) as to_thread:
            response = client.post("/analyze", files={"file": ("people.csv", SAMPLE_CSV, "text/csv")})

        assert response.status_code == 200
        parse_calls = [call for call in to_thread.call_args_list
                       if getattr(call.args[0], "__name__", "") == "load_table_from_bytes"]
        assert len(parse_calls) == 1
        assert parse_calls[0].args[1:] == (SAMPLE_CSV, "people.csv")

    def test_analyze_stream(self, client):
        response = client.post("/analyze/stream", files={"file": ("people.csv", SAMPLE_CSV, "text/csv")})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")

        events = [json.loads(line) for line in response.text.splitlines() if line.strip()]
        assert events[0] == {"type": "progress", "progress": 5.0, "message": "Starting data analysis..."}
        assert events[-1]["type"] == "result"
        assert events[-1]["result"]["rowCount"] == 3

    def test_explain_falls_back_without_remote(self, client):
        issue = {
            "id": "duplicates-1",
            "type": "duplicates",
            "severity": "High",
            "description": "Found 1 duplicate rows (33.3%)",
            "affectedRows": [2],
            "autoFixable": True,
        }

        with mock.patch('data_task_orchestrator.services.explainer.requests.post',
                        side_effect=requests.ConnectionError("offline")):
            response = client.post("/explain", json={"issue": issue, "totalRows": 3})

        assert response.status_code == 200
        body = response.json()
        assert body["whatIsThis"] == "1 duplicate records found in the dataset"
        assert body["priority"] == "high"

    def test_export_round_trip(self, client):
        analysis = client.post("/analyze", files={"file": ("people.csv", SAMPLE_CSV, "text/csv")}).json()

        response = client.post("/export", json={
            "tasks": analysis["tasks"],
            "options": {"format": "markdown", "includeCodeSnippets": False},
        })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert 'filename="data-engineering-tasks.md"' in response.headers["content-disposition"]
        assert response.text.startswith("# Data Engineering Tasks")
        assert "```" not in response.text

    def test_export_json(self, client):
        analysis = client.post("/analyze", files={"file": ("people.csv", SAMPLE_CSV, "text/csv")}).json()

        response = client.post("/export", json={"tasks": analysis["tasks"], "options": {"format": "json"}})

        exported = {(task["title"], task["severity"], task["category"]) for task in response.json()}
        expected = {(task["title"], task["severity"], task["category"]) for task in analysis["tasks"]}
        assert exported == expected

    def test_export_rejects_unknown_format(self, client):
        response = client.post("/export", json={"tasks": [], "options": {"format": "xml"}})
        assert response.status_code == 422
