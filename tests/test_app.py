"""Tests for the helios HTTP application."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from helios.app import create_app, load_assets
from helios.cache import SnapshotCache
from helios.config import Settings, get_settings, reset_settings_cache
from helios.models import LineEntry, SystemSnapshot


class StubProbe:
    """Probe double counting its calls."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> SystemSnapshot:
        self.calls += 1
        return SystemSnapshot(
            host="helios.local",
            lines=(
                LineEntry("OS", "Arch Linux rolling"),
                LineEntry("Probe", str(self.calls)),
            ),
        )


@pytest.fixture
def probe():
    return StubProbe()


@pytest.fixture
def cache(probe):
    return SnapshotCache(probe)


@pytest.fixture
def app(cache):
    return create_app(Settings(principal="tester"), cache=cache)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_heartbeat(client):
    """Test the liveness endpoint returns its fixed document."""
    response = client.get("/__heartbeat__")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Helios is running"}


def test_status_json(client):
    """Test /s serves the cached snapshot as JSON."""
    response = client.get("/s")

    assert response.status_code == 200
    assert response.json() == {
        "host": "helios.local",
        "lines": [
            {"key": "OS", "value": "Arch Linux rolling"},
            {"key": "Probe", "value": "1"},
        ],
    }


def test_status_uses_cache(client, probe):
    """Test repeated polling within the window probes once."""
    first = client.get("/s").json()
    second = client.get("/s").json()

    assert first == second
    assert probe.calls == 1


def test_root_renders_snapshot(client):
    """Test the landing page embeds the rendered snapshot."""
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "{{first_time_html}}" not in response.text
    assert '<p class="host-header">tester<span class="host-at">@</span>helios.local</p>' in response.text
    assert '<span class="detail-line-root">OS</span>: Arch Linux rolling' in response.text


def test_root_shares_cache_with_status(client, probe):
    """Test the landing page reuses the snapshot fetched by polling."""
    client.get("/s")
    client.get("/")

    assert probe.calls == 1


@pytest.mark.parametrize(
    ("name", "content_type"),
    [("style.css", "text/css"), ("scriptlet.js", "text/javascript")],
)
def test_assets(client, name, content_type):
    """Test bundled assets are served with their content type."""
    response = client.get(f"/assets/{name}")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(content_type)
    assert response.content


@pytest.mark.parametrize("name", ["index.html", "missing.png", "..%2Fapp.py"])
def test_unknown_assets(client, name):
    """Test only bundled files with a known content type are served."""
    assert client.get(f"/assets/{name}").status_code == 404


def test_load_assets():
    """Test the template is read and only typed files are servable."""
    template, static = load_assets()

    assert "{{first_time_html}}" in template
    assert "index.html" not in static
    assert static["style.css"][1] == "text/css"


def test_app_state(app, cache):
    """Test the cache and settings are exposed on app.state."""
    assert app.state.cache is cache
    assert app.state.settings.principal == "tester"


@pytest.mark.asyncio
async def test_concurrent_polling_probes_once(app, probe):
    """Test concurrent requests on an empty cache share a single probe."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://helios") as client:
        responses = await asyncio.gather(*(client.get("/s") for _ in range(20)))

    assert all(response.status_code == 200 for response in responses)
    assert probe.calls == 1
    assert len({response.text for response in responses}) == 1


class TestSettings:
    """Tests for environment configuration."""

    def setup_method(self):
        reset_settings_cache()

    def teardown_method(self):
        reset_settings_cache()

    def test_defaults(self, monkeypatch):
        """Test settings defaults without environment overrides."""
        for name in ("PORT", "HELIOS_PORT", "HELIOS_PRINCIPAL", "HELIOS_FRESHNESS_WINDOW"):
            monkeypatch.delenv(name, raising=False)

        settings = get_settings()

        assert settings.port == 7889
        assert settings.principal == "noaione"
        assert settings.freshness_window == 15
        assert settings.display_max_age == 86400

    def test_port_from_environment(self, monkeypatch):
        """Test the listen port is read from PORT."""
        monkeypatch.setenv("PORT", "8123")

        assert get_settings().port == 8123

    def test_prefixed_environment(self, monkeypatch):
        """Test HELIOS_ prefixed variables configure the other settings."""
        monkeypatch.setenv("HELIOS_PRINCIPAL", "someone")
        monkeypatch.setenv("HELIOS_FRESHNESS_WINDOW", "30")

        settings = get_settings()

        assert settings.principal == "someone"
        assert settings.freshness_window == 30

    def test_settings_cached(self):
        """Test get_settings returns one shared instance."""
        assert get_settings() is get_settings()

    @pytest.mark.parametrize("name", ["HELIOS_FRESHNESS_WINDOW", "HELIOS_DISPLAY_MAX_AGE"])
    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_rejects_non_positive_thresholds(self, monkeypatch, name, value):
        """Test a zero or negative staleness threshold fails at startup."""
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            get_settings()
