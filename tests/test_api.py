"""Tests for the HTTP API."""

import os

import httpx
from fastapi.testclient import TestClient

from labaudit.api.v1.endpoints import audit as audit_endpoints
from labaudit.config import settings
from labaudit.main import app
from labaudit.services.audit_runner import AuditRunner

client = TestClient(app)


def test_root():
    assert client.get("/").json()["app"] == "Lab Auditor"


def test_health():
    assert client.get("/api/v1/health").json() == {"status": "ok"}
    detailed = client.get("/api/v1/health/detailed").json()
    assert detailed["status"] == "ok"
    assert detailed["circuit_breakers"] == []


def test_list_audits():
    audits = {a["name"]: a for a in client.get("/api/v1/audits").json()}
    assert "endpoint-security" in audits
    assert sum(audits["endpoint-security"]["checks"].values()) == 100


def test_unknown_audit_rejected():
    response = client.post("/api/v1/audits", json={"audit": "../../etc/passwd"})
    assert response.status_code == 404


def test_unknown_job():
    assert client.get("/api/v1/audits/missing").status_code == 404
    assert client.get("/api/v1/audits/missing/html").status_code == 404


def test_audit_job_lifecycle(monkeypatch, tmp_path):
    def lab(request):
        if request.url.path == "/api/health":
            return httpx.Response(200, headers={
                "Content-Security-Policy": "default-src 'self'",
                "X-Content-Type-Options": "nosniff",
                "X-Frame-Options": "DENY",
            })
        if request.url.path.endswith("/temp"):
            return httpx.Response(404)
        return httpx.Response(401)

    monkeypatch.setattr(settings, "AUDIT_REPORTS_DIR", str(tmp_path))
    monkeypatch.setattr(
        audit_endpoints, "AuditRunner",
        lambda target: AuditRunner(target, transport=httpx.MockTransport(lab))
    )

    started = client.post("/api/v1/audits", json={"audit": "endpoint-security", "base_url": "http://lab.test"})
    assert started.status_code == 200
    job_id = started.json()["job_id"]

    # Background tasks finish before TestClient returns the response
    job = client.get(f"/api/v1/audits/{job_id}").json()
    assert job["status"] == "completed"
    assert job["target"] == "http://lab.test"
    assert job["report"]["overall_score"] == 100
    assert job["report"]["passed"] is True
    assert len(job["report"]["checks"]) == 5
    assert os.listdir(tmp_path / "security")

    html = client.get(f"/api/v1/audits/{job_id}/html")
    assert html.status_code == 200
    assert "text/html" in html.headers["content-type"]
    assert "100/100" in html.text

    assert client.get("/api/v1/health/detailed").json()["circuit_breakers"] == []
