import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app import main
from app.main import app

BUNDLE_DIR = Path(__file__).resolve().parents[1] / "bundle"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main.settings, "BUNDLE_DIR", str(BUNDLE_DIR))
    return TestClient(app)


def _files(*items):
    return [("files", (name, data, "application/octet-stream")) for name, data in items]


def test_health_and_request_id(client):
    r = client.get("/api/health", headers={"X-Request-Id": "req-7"})
    assert r.json() == {"status": "ok"}
    assert r.headers["X-Request-Id"] == "req-7"


def test_checks_catalog(client):
    js = client.get("/api/checks").json()
    ids = [c["check_id"] for c in js["checks"]]
    assert "RULES-008" in ids
    assert ids == sorted(ids)


def test_lint_upload_reports_issues_and_decision(client):
    rules = [{"id": "A", "category": "LWC", "description": "d", "severity": "error"}, {"id": "A", "category": "LWC", "description": "d", "severity": "warn"}]
    r = client.post("/api/lint", files=_files(("rules.json", json.dumps(rules).encode()), ("x.mode.json", b"{}")))
    assert r.status_code == 200
    js = r.json()
    codes = {i["code"] for i in js["issues"]}
    assert {"rule_duplicate_id", "mode_empty", "memory_missing"} <= codes
    assert js["decision"]["status"] == "error"
    assert js["decision"]["needs_fix"] is True
    assert js["rules_summary"]["total"] == 2
    assert js["trace"]["request_id"] == r.headers["X-Request-Id"]
    dup = next(i for i in js["issues"] if i["code"] == "rule_duplicate_id")
    assert dup["domain"] == "bundle"
    assert dup["category"] == "rules"
    assert dup["details"]["check_id"] == "RULES-008"


def test_lint_upload_strict_fails_on_warnings(client):
    rules = [{"id": "A", "category": "LWC", "description": "d", "severity": "error"}]
    files = _files(("rules.json", json.dumps(rules).encode()), ("x.mode.json", b"{\"slug\": \"x\"}"))
    assert client.post("/api/lint", files=files).json()["decision"]["needs_fix"] is False
    files = _files(("rules.json", json.dumps(rules).encode()), ("x.mode.json", b"{\"slug\": \"x\"}"))
    assert client.post("/api/lint?strict=true", files=files).json()["decision"]["needs_fix"] is True


def test_lint_rejects_unsupported_file(client):
    r = client.post("/api/lint", files=_files(("script.py", b"print(1)")))
    assert r.status_code == 400
    js = r.json()
    assert js["issues"][0]["code"] == "bundle_invalid_upload"
    assert "decision" in js and "trace" in js


def test_lint_rejects_large_upload(client):
    r = client.post("/api/lint", files=_files(("memory.md", b"#" * (6 * 1024 * 1024))))
    assert r.status_code == 413
    assert r.json()["issues"][0]["code"] == "upload_too_large"


def test_shipped_bundle_lints_clean(client):
    js = client.get("/api/bundle/lint").json()
    assert js["issues"] == []
    assert js["decision"]["status"] == "ok"
    assert js["rules_summary"]["total"] == 14
    assert js["rules_summary"]["by_category"]["EnterprisePatterns"] == 3


def test_missing_bundle_dir_is_404(client, monkeypatch, tmp_path):
    monkeypatch.setattr(main.settings, "BUNDLE_DIR", str(tmp_path / "nope"))
    r = client.get("/api/bundle/lint")
    assert r.status_code == 404
    assert r.json()["issues"][0]["code"] == "bundle_not_found"


def test_bundle_prompt(client):
    js = client.get("/api/bundle/prompt").json()
    assert js["truncated"] is False
    assert js["prompt"].startswith("You are a senior Salesforce engineer.")
    assert "## Governor Limits" in js["prompt"]
    assert "- [error] GL-001:" in js["prompt"]


def test_assist_in_mock_mode(client, monkeypatch):
    monkeypatch.setenv("MOCK_MODE", "1")
    r = client.post("/api/assist", json={"question": "Where does SOQL go?"})
    assert r.status_code == 200
    assert r.json()["answer"].startswith("MOCK_MODE=1")


def test_assist_without_key_returns_error_contract(client, monkeypatch):
    monkeypatch.delenv("MOCK_MODE", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    r = client.post("/api/assist", json={"question": "hi"})
    assert r.status_code == 500
    assert r.json()["issues"][0]["code"] == "anthropic_not_configured"


def test_lint_without_files_uses_error_contract(client):
    r = client.post("/api/lint", headers={"X-Request-Id": "req-empty"})
    assert r.status_code == 400
    js = r.json()
    assert js["issues"][0]["code"] == "request_validation_error"
    assert js["issues"][0]["domain"] == "system"
    assert js["decision"]["needs_fix"] is True
    assert js["trace"]["request_id"] == "req-empty"
    assert r.headers["X-Request-Id"] == "req-empty"


def test_assist_empty_question_uses_error_contract(client):
    r = client.post("/api/assist", json={"question": ""})
    assert r.status_code == 400
    js = r.json()
    assert js["issues"][0]["code"] == "request_validation_error"
    assert "question" in js["detail"]
    assert "decision" in js and "trace" in js
