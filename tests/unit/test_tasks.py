"""
Tasks & Responder — Unit Tests
==============================

Covers:
  1. Responder at-most-once delivery and rebinding
  2. Full task round-trip: handler → 428 task → client answer → final output
  3. Task failures (unknown task, client-reported error)
  4. Test-mode behaviour of the helpers
"""

import asyncio
import contextlib
import logging

import httpx
import pytest
from conftest import Sender

from addon_engine import WorkerAddon, create_engine
from addon_engine.core.config import settings
from addon_engine.core.exceptions import ConfigurationError, ResponseAlreadySentError
from addon_engine.tasks import TASK_STATUS_CODE, Responder

# ── Responder ────────────────────────────────────────────────────────────────


class TestResponder:

    @pytest.mark.asyncio
    async def test_send_consumes_callback(self, sender):
        responder = Responder(sender)
        response_id = await responder.send(200, {"ok": True})

        assert sender.calls == [(200, {"ok": True})]
        assert responder.last_id == response_id
        assert not responder.is_bound

        with pytest.raises(ResponseAlreadySentError):
            await responder.send(200, {"ok": True})
        assert len(sender.calls) == 1

    @pytest.mark.asyncio
    async def test_rebind_after_send(self, sender):
        responder = Responder(sender)
        second = Sender()

        response_id = await responder.send(428, {"task": 1}, response_id="t-1")
        assert response_id == "t-1"

        responder.set_send_response(response_id, second)
        await responder.send(200, "final")
        assert second.calls == [(200, "final")]

    @pytest.mark.asyncio
    async def test_rebind_requires_last_id(self, sender):
        responder = Responder(sender)
        await responder.send(200, None)
        with pytest.raises(ConfigurationError):
            responder.set_send_response("someone-else", sender)

    @pytest.mark.asyncio
    async def test_detach(self, sender):
        responder = Responder(sender)
        response_id = await responder.send(200, None)
        responder.set_send_response(response_id, None)
        with pytest.raises(ResponseAlreadySentError):
            await responder.send(200, None)

    @pytest.mark.asyncio
    async def test_transport_id_is_kept(self):
        async def transport(status_code, body):
            return "transport-42"

        responder = Responder(transport)
        response_id = await responder.send(200, {"ok": True}, response_id="ignored")
        assert response_id == "transport-42"
        assert responder.last_id == "transport-42"

        responder.set_send_response("transport-42", None)
        assert not responder.is_bound


# ── Task Round-Trip ──────────────────────────────────────────────────────────


class TestTaskRoundTrip:

    @pytest.fixture(autouse=True)
    def _settings(self, monkeypatch):
        monkeypatch.setattr(settings, "SKIP_AUTH", True)
        monkeypatch.setattr(settings, "TASK_TIMEOUT_S", 2.0)

    def setup_method(self):
        self.addon = WorkerAddon({"id": "fetcher", "name": "Fetcher"})

        @self.addon.action("resolve")
        async def resolve(input, ctx, addon):
            page = await ctx.fetch(input["url"])
            return f"{input['url']}#{page['text']}"

    async def _first_send(self, sender: Sender):
        while not sender.calls:
            await asyncio.sleep(0.005)
        return sender.calls[0]

    @pytest.mark.asyncio
    async def test_fetch_task_round_trip(self, cache):
        handler = create_engine([self.addon], cache=cache).create_addon_handler(self.addon)
        original, answer = Sender(), Sender()

        pending = asyncio.create_task(
            handler(action="resolve", input={"url": "https://example.com/x"}, send_response=original)
        )
        status, task = await asyncio.wait_for(self._first_send(original), timeout=2)
        assert status == TASK_STATUS_CODE
        assert task["kind"] == "fetch"
        assert task["data"]["url"] == "https://example.com/x"

        await handler(
            action="task",
            input={"id": task["id"], "kind": "fetch", "data": {"text": "body"}},
            send_response=answer,
        )
        await pending

        assert original.calls == [(TASK_STATUS_CODE, task)]
        assert answer.calls == [(200, "https://example.com/x#body")]

    @pytest.mark.asyncio
    async def test_client_error_fails_the_action(self, cache):
        handler = create_engine([self.addon], cache=cache).create_addon_handler(self.addon)
        original, answer = Sender(), Sender()

        pending = asyncio.create_task(
            handler(action="resolve", input={"url": "https://example.com/x"}, send_response=original)
        )
        _, task = await asyncio.wait_for(self._first_send(original), timeout=2)

        await handler(
            action="task",
            input={"id": task["id"], "kind": "fetch", "error": "offline"},
            send_response=answer,
        )
        await pending
        assert answer.calls == [(500, {"error": "offline"})]

    @pytest.mark.asyncio
    async def test_unknown_task_is_404(self, cache, sender):
        handler = create_engine([self.addon], cache=cache).create_addon_handler(self.addon)
        await handler(action="task", input={"id": "nope", "kind": "fetch"}, send_response=sender)
        assert sender.status == 404

    @pytest.mark.asyncio
    async def test_task_for_other_addon_is_404(self, cache):
        other = WorkerAddon({"id": "other", "name": "Other"})
        engine = create_engine([self.addon, other], cache=cache)
        original, answer = Sender(), Sender()

        pending = asyncio.create_task(
            engine.create_addon_handler(self.addon)(
                action="resolve", input={"url": "https://example.com/x"}, send_response=original
            )
        )
        _, task = await asyncio.wait_for(self._first_send(original), timeout=2)

        await engine.create_addon_handler(other)(
            action="task", input={"id": task["id"], "kind": "fetch"}, send_response=answer
        )
        assert answer.status == 404
        pending.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pending

    @pytest.mark.asyncio
    async def test_malformed_task_result_is_400(self, cache, sender):
        handler = create_engine([self.addon], cache=cache).create_addon_handler(self.addon)
        await handler(action="task", input={"kind": "fetch"}, send_response=sender)
        assert sender.status == 400


# ── Test Mode ────────────────────────────────────────────────────────────────


class TestTestModeHelpers:

    def setup_method(self):
        self.addon = WorkerAddon({"id": "helpers", "name": "Helpers"})

    @pytest.mark.asyncio
    async def test_fetch_goes_direct(self, cache, sender, monkeypatch):
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=f"direct {request.url.path}")

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(respond), **kwargs),
        )

        @self.addon.action("page")
        async def page(input, ctx, addon):
            return (await ctx.fetch("https://example.com/p"))["text"]

        engine = create_engine([self.addon], cache=cache, replay_mode=True)
        await engine.create_addon_handler(self.addon)(action="page", input={}, send_response=sender)
        assert sender.calls == [(200, "direct /p")]

    @pytest.mark.asyncio
    async def test_toast_and_notification_only_log(self, cache, sender, caplog):
        @self.addon.action("notify")
        async def notify(input, ctx, addon):
            await ctx.toast("hello")
            await ctx.notification("Title", "body")
            return "done"

        engine = create_engine([self.addon], cache=cache, replay_mode=True)
        with caplog.at_level(logging.INFO, logger="addon_engine.tasks.helpers"):
            await engine.create_addon_handler(self.addon)(action="notify", input={}, send_response=sender)

        assert sender.calls == [(200, "done")]
        messages = [r.getMessage() for r in caplog.records]
        assert "Toast: hello" in messages
        assert "Notification: Title - body" in messages

    @pytest.mark.asyncio
    async def test_recaptcha_unavailable(self, cache, sender):
        @self.addon.action("captcha")
        async def captcha(input, ctx, addon):
            return await ctx.recaptcha(input["site_key"], input["url"])

        engine = create_engine([self.addon], cache=cache, replay_mode=True)
        await engine.create_addon_handler(self.addon)(
            action="captcha", input={"site_key": "k", "url": "https://example.com"}, send_response=sender
        )
        assert sender.status == 500
        assert "test mode" in sender.body["error"]
