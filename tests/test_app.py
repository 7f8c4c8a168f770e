from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

import app as service
from prerenderer.runner import PrerenderError, RenderResult

SECRET = "s3cr3t"


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(service, "PRERENDER_SECRET", SECRET)
    service.app.config["TESTING"] = True
    return service.app.test_client()


def _body(site_dir: Path, **extra) -> dict:
    return {"routes": ["/a"], "staticDir": str(site_dir), "secret": SECRET, **extra}


def test_health(client) -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_rejects_non_json(client) -> None:
    resp = client.post("/prerender", data="routes=/a")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "invalid json"}


def test_rejects_missing_fields(client) -> None:
    resp = client.post("/prerender", json={"routes": ["/a"], "secret": SECRET})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "missing fields"}


def test_rejects_invalid_config(client, site_dir: Path) -> None:
    resp = client.post("/prerender", json=_body(site_dir, routes=["about"]))
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("invalid config:")


def test_rejects_string_boolean(client, site_dir: Path) -> None:
    resp = client.post("/prerender", json=_body(site_dir, skipThirdPartyRequests="false"))
    assert resp.status_code == 400


def test_wrong_secret_forbidden(client, site_dir: Path) -> None:
    resp = client.post("/prerender", json=_body(site_dir, secret="wrong"))
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "invalid secret"}


def test_missing_secret_forbidden(client, site_dir: Path) -> None:
    body = _body(site_dir)
    del body["secret"]
    resp = client.post("/prerender", json=body)
    assert resp.status_code == 403


def test_unconfigured_secret_refuses_every_request(
    client, site_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls = []
    monkeypatch.setattr(service, "PRERENDER_SECRET", "")
    monkeypatch.setattr(service, "run_prerender", lambda config, timeout=None: calls.append(config) or [])

    for secret in ("", None, "anything"):
        resp = client.post(
            "/prerender",
            json={"routes": ["/x"], "staticDir": str(site_dir), "outputDir": str(tmp_path / "elsewhere"), "secret": secret},
        )
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "prerender secret not configured"}
    assert calls == []


def test_success(client, site_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def fake_run(config, timeout=None):
        seen["config"] = config
        seen["timeout"] = timeout
        return [RenderResult(route=r, html="<html></html>") for r in config.routes]

    monkeypatch.setattr(service, "run_prerender", fake_run)
    resp = client.post("/prerender", json=_body(site_dir, routes=["/a", "/b"], maxConcurrentRoutes=1))

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["routes"] == ["/a", "/b"]
    assert body["output_dir"] == str(site_dir)
    assert seen["config"].concurrency_limit == 1
    assert seen["timeout"] == service.BROWSER_TIMEOUT


def test_render_failure_reports_route(client, site_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(config, timeout=None):
        raise PrerenderError("/b", "net::ERR_CONNECTION_REFUSED")

    monkeypatch.setattr(service, "run_prerender", fake_run)
    resp = client.post("/prerender", json=_body(site_dir, routes=["/a", "/b"]))

    assert resp.status_code == 500
    assert resp.get_json()["route"] == "/b"


def test_timeout(client, site_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(config, timeout=None):
        raise asyncio.TimeoutError()

    monkeypatch.setattr(service, "run_prerender", fake_run)
    resp = client.post("/prerender", json=_body(site_dir))

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "processing timeout"}
