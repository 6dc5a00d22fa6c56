"""
HTTP Adapter — Unit Tests
=========================
"""

import logging

import pytest
from fastapi.testclient import TestClient

from addon_engine import WorkerAddon, create_engine
from addon_engine.api import create_app
from addon_engine.core.config import settings


class TestAddonRoutes:

    @pytest.fixture(autouse=True)
    def _settings(self, monkeypatch):
        monkeypatch.setattr(settings, "SKIP_AUTH", True)

    @pytest.fixture(autouse=True)
    def _restore_logging(self):
        root = logging.getLogger()
        level = root.level
        yield
        for handler in [h for h in root.handlers if h.get_name() == "addon_engine"]:
            root.removeHandler(handler)
        root.setLevel(level)

    def setup_method(self):
        self.addon = WorkerAddon({"id": "example", "name": "Example", "version": "1.2.0"})

        @self.addon.action("directory")
        async def directory(input, ctx, addon):
            return {"items": [{"id": "a"}], "next_cursor": None}

    def _client(self, cache) -> TestClient:
        return TestClient(create_app(create_engine([self.addon], cache=cache), prefix="/addons"))

    def test_health(self, cache):
        with self._client(cache) as client:
            response = client.get("/addons/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "engine_state": "frozen", "addons": ["example"]}

    def test_dispatch(self, cache):
        with self._client(cache) as client:
            response = client.post("/addons/example/directory", json={"input": {"id": "top"}})
        assert response.status_code == 200
        assert response.json()["items"] == [{"id": "a"}]

    def test_addon_descriptor(self, cache):
        with self._client(cache) as client:
            response = client.post(
                "/addons/example/addon", json={"input": {"language": "en", "region": "US"}}
            )
        body = response.json()
        assert response.status_code == 200
        assert body["version"] == "1.2.0"
        assert body["actions"] == ["directory"]

    def test_unknown_addon(self, cache):
        with self._client(cache) as client:
            response = client.post("/addons/nope/directory", json={"input": {}})
        assert response.status_code == 404

    def test_unknown_action(self, cache):
        with self._client(cache) as client:
            response = client.post("/addons/example/nope", json={"input": {}})
        assert response.status_code == 404
        assert "nope" in response.json()["error"]

    def test_signature_header(self, cache, monkeypatch):
        monkeypatch.setattr(settings, "SKIP_AUTH", False)
        monkeypatch.setattr(settings, "SIGNATURE_PUBLIC_KEY", "")
        with self._client(cache) as client:
            response = client.post(
                "/addons/example/directory",
                json={"input": {}},
                headers={"x-addon-signature": "token"},
            )
        assert response.status_code == 403
        assert response.json() == {"error": "Signature verification is not configured"}

    def test_app_logging_is_installed_once(self, cache):
        self._client(cache)
        self._client(cache)
        installed = [h for h in logging.getLogger().handlers if h.get_name() == "addon_engine"]
        assert len(installed) == 1
