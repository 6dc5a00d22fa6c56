"""
Engine Lifecycle — Unit Tests
=============================

Covers:
  1. Addon validation at construction
  2. Option updates before and after freeze
  3. Recorder setup and the production guard
"""

import pytest

from addon_engine import EngineState, Middlewares, WorkerAddon, create_engine
from addon_engine.core.config import settings
from addon_engine.core.exceptions import ConfigurationError
from addon_engine.engine import DEFAULT_RESULT_REQUIRED_ACTIONS


def _addon(addon_id: str = "example", **props) -> WorkerAddon:
    return WorkerAddon({"id": addon_id, "name": "Example", **props})


# ── Construction ─────────────────────────────────────────────────────────────


class TestCreateEngine:

    def test_defaults(self, cache):
        engine = create_engine([_addon()], cache=cache)
        assert engine.state is EngineState.CONFIGURABLE
        assert engine.options.replay_mode is False
        assert engine.options.request_recorder_path is None
        assert engine.options.middlewares == Middlewares()
        assert engine.options.result_required_actions == DEFAULT_RESULT_REQUIRED_ACTIONS

    def test_default_cache_from_env(self, monkeypatch):
        monkeypatch.setattr(settings, "CACHE_ENGINE", "memory")
        engine = create_engine([_addon()])
        assert engine.options.cache.engine.name == "MemoryCacheEngine"

    def test_invalid_addon_names_the_addon(self, cache):
        with pytest.raises(ConfigurationError) as exc:
            create_engine([_addon("Bad Id")], cache=cache)
        assert 'Validation of addon "Bad Id" failed' in exc.value.detail

    def test_missing_name_fails(self, cache):
        with pytest.raises(ConfigurationError) as exc:
            create_engine([WorkerAddon({"id": "nameless"})], cache=cache)
        assert "name" in exc.value.detail

    def test_unknown_cache_defaults_fail(self, cache):
        with pytest.raises(ConfigurationError):
            create_engine([_addon(default_cache_options={"ttl": 5, "bogus": 1})], cache=cache)

    def test_duplicate_ids(self, cache):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            create_engine([_addon("same"), _addon("same")], cache=cache)

    def test_unknown_option(self, cache):
        with pytest.raises(ConfigurationError, match="Unknown engine options"):
            create_engine([_addon()], cache=cache, replay=True)

    def test_middlewares_from_mapping(self, cache):
        def init(addon, action, input):
            return input

        engine = create_engine([_addon()], cache=cache, middlewares={"init": [init]})
        assert engine.options.middlewares.init == (init,)
        assert engine.options.middlewares.response == ()

    def test_unknown_middleware_stage(self, cache):
        with pytest.raises(ConfigurationError, match="middleware stages"):
            create_engine([_addon()], cache=cache, middlewares={"before": []})

    def test_missing_middleware_stage_is_empty(self, cache):
        engine = create_engine([_addon()], cache=cache, middlewares={"init": None, "response": []})
        assert engine.options.middlewares == Middlewares()


# ── Lifecycle ────────────────────────────────────────────────────────────────


class TestLifecycle:

    def setup_method(self):
        self.addon = _addon()

    def test_update_before_freeze(self, cache):
        engine = create_engine([self.addon], cache=cache)
        engine.update_options(replay_mode=True, result_required_actions=["directory"])
        assert engine.options.replay_mode is True
        assert engine.options.result_required_actions == frozenset({"directory"})

    def test_update_after_handler_created(self, cache):
        engine = create_engine([self.addon], cache=cache)
        engine.create_addon_handler(self.addon)
        assert engine.frozen

        with pytest.raises(ConfigurationError, match="after addon handlers are created"):
            engine.update_options(replay_mode=True)
        assert engine.options.replay_mode is False

    def test_initialize_twice(self, cache):
        engine = create_engine([self.addon], cache=cache)
        engine.initialize()
        with pytest.raises(ConfigurationError):
            engine.initialize()

    def test_handlers_share_frozen_options(self, cache):
        engine = create_engine([self.addon], cache=cache)
        first = engine.create_addon_handler(self.addon)
        second = engine.create_addon_handler(self.addon)
        assert first is not second
        assert engine.state is EngineState.FROZEN

    def test_recorder_created_on_initialize(self, cache, tmp_path):
        path = tmp_path / "records" / "requests.jsonl"
        engine = create_engine([self.addon], cache=cache, request_recorder_path=str(path))
        engine.initialize()

        assert engine.request_recorder is not None
        assert path.exists()
        assert path.read_text() == ""

    def test_recording_refused_in_production(self, cache, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        engine = create_engine(
            [self.addon], cache=cache, request_recorder_path=str(tmp_path / "r.jsonl")
        )
        with pytest.raises(ConfigurationError, match="production"):
            engine.create_addon_handler(self.addon)
        assert engine.request_recorder is None
        assert not engine.frozen
