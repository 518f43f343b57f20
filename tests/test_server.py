"""Tests for the HTTP API."""

import pytest
from starlette.testclient import TestClient

from strace_diff.server import create_app


@pytest.fixture
def client():
    """Test client for the API."""
    return TestClient(create_app())


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        """Test the health check."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestParseEndpoint:
    """Tests for POST /api/parse."""

    def test_parse_strace(self, client, strace_sample):
        """Test parsing an strace log."""
        response = client.post("/api/parse", json={"content": strace_sample, "name": "a.log"})
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "a.log"
        assert data["pids"] == [0, 101]
        assert [e["name"] for e in data["events"]] == ["execve", "openat", "read", "write", "close"]

    def test_parse_perf(self, client, perf_sample):
        """Test parsing a perf trace log."""
        response = client.post("/api/parse", json={"content": perf_sample, "format": "perf"})
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "trace"
        assert data["stats"]["total_events"] == 3

    def test_unknown_format(self, client):
        """Test rejecting an unknown trace format."""
        response = client.post("/api/parse", json={"content": "", "format": "ltrace"})
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_request"

    def test_missing_content(self, client):
        """Test rejecting a body without content."""
        response = client.post("/api/parse", json={"name": "a.log"})
        assert response.status_code == 400

    def test_invalid_json(self, client):
        """Test rejecting a body that is not JSON."""
        response = client.post("/api/parse", content=b"{not json")
        assert response.status_code == 400
        assert "JSON" in response.json()["error"]["message"]


class TestDiffEndpoint:
    """Tests for POST /api/diff."""

    def test_diff(self, client, strace_sample):
        """Test diffing a trace with itself."""
        response = client.post(
            "/api/diff",
            json={
                "a": {"content": strace_sample, "name": "a.log"},
                "b": {"content": strace_sample, "name": "b.log"},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name_a"] == "a.log"
        assert data["name_b"] == "b.log"
        assert data["row_counts"] == {"match": 5, "mismatch": 0, "insert": 0, "delete": 0}
        assert all(row["kind"] == "match" for row in data["rows"])

    def test_diff_perf_with_filters(self, client, perf_sample):
        """Test diffing perf traces with a pid filter."""
        response = client.post(
            "/api/diff",
            json={
                "a": {"content": perf_sample},
                "b": {"content": perf_sample},
                "format": "perf",
                "pids": [43],
                "top": 1,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name_a"] == "A"
        assert [row["a"]["name"] for row in data["rows"]] == ["close"]
        assert len(data["top_calls"]) == 1

    def test_missing_trace(self, client, strace_sample):
        """Test rejecting a body without trace B."""
        response = client.post("/api/diff", json={"a": {"content": strace_sample}})
        assert response.status_code == 400

    def test_bad_pids(self, client):
        """Test rejecting a malformed pid filter."""
        response = client.post(
            "/api/diff",
            json={"a": {"content": ""}, "b": {"content": ""}, "pids": "1,2"},
        )
        assert response.status_code == 400

    def test_string_slow_only(self, client, strace_sample):
        """Test rejecting a slow_only flag sent as a string."""
        response = client.post(
            "/api/diff",
            json={
                "a": {"content": strace_sample},
                "b": {"content": strace_sample},
                "slow_only": "false",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "slow_only must be a boolean"

    @pytest.mark.parametrize("top", [True, -1, "3", 1.5])
    def test_bad_top(self, client, strace_sample, top):
        """Test rejecting a top count that is not a non-negative integer."""
        response = client.post(
            "/api/diff",
            json={"a": {"content": strace_sample}, "b": {"content": strace_sample}, "top": top},
        )
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_request"

    def test_slow_only_flag(self, client, perf_sample):
        """Test that a boolean slow_only keeps only slow rows."""
        response = client.post(
            "/api/diff",
            json={
                "a": {"content": perf_sample},
                "b": {"content": perf_sample},
                "format": "perf",
                "slow_only": True,
            },
        )
        assert response.status_code == 200
        assert [row["a"]["name"] for row in response.json()["rows"]] == ["openat"]
