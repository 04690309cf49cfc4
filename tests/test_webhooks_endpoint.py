from __future__ import annotations

import json
import logging

import httpx
from fastapi.testclient import TestClient

from release_notifier.config import Settings
from release_notifier.main import create_app
from release_notifier.observability import metrics_snapshot, reset_metrics


def _settings(**overrides) -> Settings:
    values = {
        "_env_file": None,
        "environment": "development",
        "token": None,
        "discord_webhook": "https://discordlike.example/api/webhooks/111/mod-token",
        "launcher_discord_webhook": "https://discordlike.example/api/webhooks/222/launcher-token",
        "launcher_name": "Vintage Launcher",
        "launcher_logo": "https://cdn.example/launcher.png",
        "loader_discord_webhook": "https://discordlike.example/api/webhooks/333/loader-token",
        "loader_name": "Hook Loader",
        "loader_logo": "https://cdn.example/loader.png",
    }
    values.update(overrides)
    return Settings(**values)


class RecordingReporter:
    def __init__(self):
        self.captured = []

    def capture_exception(self, exc, **context):
        self.captured.append((exc, context))


class FakeDiscord:
    def __init__(self, status_code: int = 204, error: Exception | None = None):
        self.status_code = status_code
        self.error = error
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code)

    def messages(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]


def _client(discord: FakeDiscord, reporter: RecordingReporter | None = None, **settings_overrides) -> TestClient:
    app = create_app(
        _settings(**settings_overrides),
        reporter=reporter or RecordingReporter(),
        transport=httpx.MockTransport(discord.handler),
    )
    return TestClient(app)


def _mod_payload(**overrides):
    payload = {
        "modTitle": "Better Tools",
        "modDescription": "Adds tools that are better.",
        "modBannerUrl": "https://cdn.example/banner.png",
        "modIconUrl": "https://cdn.example/icon.png",
        "modUrl": "https://mods.example/better-tools",
        "modAuthorName": "toolsmith",
        "modAuthorUrl": "https://mods.example/users/toolsmith",
        "version": "1.2.0",
        "changelog": "- fixed hammers",
        "initial": True,
    }
    payload.update(overrides)
    return payload


def test_mod_version_is_relayed_once():
    reset_metrics()
    discord = FakeDiscord()
    client = _client(discord)

    response = client.post("/webhooks/mod/version", json=_mod_payload())

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert len(discord.requests) == 1
    assert str(discord.requests[0].url).endswith("/api/webhooks/111/mod-token")
    embed = discord.messages()[0]["embeds"][0]
    assert embed["title"] == "Better Tools"
    assert embed["image"] == {"url": "https://cdn.example/banner.png"}
    assert metrics_snapshot()["release_notifications|category=mod,outcome=accepted"] == 1


def test_launcher_and_loader_endpoints_share_the_contract():
    discord = FakeDiscord()
    client = _client(discord)

    launcher = client.post(
        "/webhooks/launcher/version",
        json={"version": "2.0.1", "changelog": "faster", "url": "https://launcher.example/r/2.0.1"},
    )
    loader = client.post(
        "/webhooks/loader/version",
        json={
            "version": "0.9.3",
            "gameVersion": "Early Access 1.4",
            "changelog": "new hooks",
            "url": "https://loader.example/r/0.9.3",
        },
    )
    invalid = client.post("/webhooks/loader/version", json={"version": "0.9.3"})

    assert launcher.status_code == 200
    assert loader.status_code == 200
    assert [str(r.url).rsplit("/", 2)[-2] for r in discord.requests] == ["222", "333"]
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "ValidationError"


def test_missing_field_returns_validation_error():
    discord = FakeDiscord()
    client = _client(discord)
    payload = _mod_payload()
    del payload["modTitle"]

    response = client.post("/webhooks/mod/version", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "ValidationError", "message": "modTitle is a required field"}
    assert discord.requests == []


def test_unparseable_url_returns_validation_error_not_500():
    reporter = RecordingReporter()
    discord = FakeDiscord()
    client = _client(discord, reporter=reporter)

    for bad_url in ("http://[::1", "http://exa＃mple.com", "http://:80"):
        response = client.post("/webhooks/mod/version", json=_mod_payload(modUrl=bad_url))
        assert response.status_code == 400, bad_url
        assert response.json() == {"error": "ValidationError", "message": "modUrl must be a valid URL"}

    assert discord.requests == []
    assert reporter.captured == []


def test_empty_body_names_the_first_missing_field():
    discord = FakeDiscord()
    client = _client(discord)

    response = client.post("/webhooks/loader/version", content=b"", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "ValidationError", "message": "version is a required field"}
    assert discord.requests == []


def test_malformed_json_returns_syntax_error():
    discord = FakeDiscord()
    client = _client(discord)

    response = client.post(
        "/webhooks/mod/version",
        content=b'{"modTitle": "Better Tools",',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "SyntaxError"
    assert response.json()["message"]
    assert discord.requests == []


def test_unknown_routes_and_wrong_methods_are_not_found():
    client = _client(FakeDiscord())

    for response in (
        client.get("/webhooks/mod/version"),
        client.post("/webhooks/unknown/version", json={}),
        client.get("/nothing-here"),
    ):
        assert response.status_code == 404
        assert response.json() == {
            "error": "NotFound",
            "message": "The requested resource could not be found!",
        }


def test_delivery_failure_keeps_success_status(caplog):
    reporter = RecordingReporter()
    discord = FakeDiscord(status_code=502)
    client = _client(discord, reporter=reporter)

    with caplog.at_level(logging.ERROR, logger="release_notifier"):
        response = client.post("/webhooks/mod/version", json=_mod_payload(), headers={"X-Request-ID": "req-42"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert len(reporter.captured) == 1
    assert reporter.captured[0][1]["request_id"] == "req-42"
    failures = [record for record in caplog.records if "notification_delivery_failed" in record.getMessage()]
    assert len(failures) == 1


def test_unreachable_platform_keeps_success_status():
    reporter = RecordingReporter()
    client = _client(FakeDiscord(error=httpx.ConnectTimeout("timed out")), reporter=reporter)

    response = client.post("/webhooks/mod/version", json=_mod_payload())

    assert response.status_code == 200
    assert len(reporter.captured) == 1


def test_unexpected_failure_returns_generic_500():
    class ExplodingDispatcher:
        async def dispatch(self, category, entity, *, request_id=None):
            raise RuntimeError("database password is hunter2")

    reporter = RecordingReporter()
    app = create_app(_settings(), reporter=reporter, dispatcher=ExplodingDispatcher())
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post("/webhooks/mod/version", json=_mod_payload())

    assert response.status_code == 500
    assert response.json() == {"error": "Something went wrong on our end!"}
    assert "hunter2" not in response.text
    assert len(reporter.captured) == 1


def test_request_id_is_echoed_or_generated():
    client = _client(FakeDiscord())

    echoed = client.get("/health", headers={"X-Correlation-ID": "corr-7"})
    generated = client.get("/health")

    assert echoed.headers["X-Request-ID"] == "corr-7"
    assert generated.headers["X-Request-ID"]
    assert generated.json() == {"status": "healthy"}
