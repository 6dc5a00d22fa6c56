"""Shared fixtures for the addon engine tests."""

import time
from typing import Any

import jwt
import pytest

from addon_engine.cache import CacheHandler, CacheOptions, MemoryCacheEngine
from addon_engine.core.config import settings

TEST_SECRET = "test-signing-secret-for-the-addon-engine-suite"


class Sender:
    """Records every ``send_response`` call."""

    def __init__(self):
        self.calls: list[tuple[int, Any]] = []

    async def __call__(self, status_code: int, body: Any) -> None:
        self.calls.append((status_code, body))

    @property
    def status(self) -> int:
        return self.calls[-1][0]

    @property
    def body(self) -> Any:
        return self.calls[-1][1]


@pytest.fixture
def sender() -> Sender:
    return Sender()


@pytest.fixture
def cache() -> CacheHandler:
    return CacheHandler(MemoryCacheEngine(), CacheOptions(lock_sleep=0.005, lock_timeout=2.0))


@pytest.fixture
def signing(monkeypatch):
    """Trust HS256 tokens signed with ``TEST_SECRET``."""
    monkeypatch.setattr(settings, "SIGNATURE_PUBLIC_KEY", TEST_SECRET)
    monkeypatch.setattr(settings, "SIGNATURE_ALGORITHMS", ["HS256"])
    monkeypatch.setattr(settings, "SKIP_AUTH", False)


def make_sig(sub: str = "user-1", expires_in: int = 300, **user: Any) -> str:
    claims: dict[str, Any] = {"sub": sub, "exp": int(time.time()) + expires_in}
    if user:
        claims["user"] = user
    return jwt.encode(claims, TEST_SECRET, algorithm="HS256")
