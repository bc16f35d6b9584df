from __future__ import annotations

from accredb import main


def test_health_endpoints():
    assert main.health() == {"status": "ok"}
    assert main.read_root()["status"] == "ok"


def test_accreditation_routes_are_mounted():
    app = main.app
    assert app.url_path_for("verify_token", token="abc") == "/accreditation/verify/abc"
    assert app.url_path_for("revoke_accreditation", accreditation_id="r1") == "/accreditation/records/r1/revoke"
    assert app.url_path_for("project_stats", project_id="p1") == "/accreditation/projects/p1/stats"


def test_cors_origins_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example.com, https://b.example.com,")
    assert main._allowed_origins() == ["https://a.example.com", "https://b.example.com"]
    monkeypatch.delenv("CORS_ALLOWED_ORIGINS")
    assert "http://localhost:5173" in main._allowed_origins()
