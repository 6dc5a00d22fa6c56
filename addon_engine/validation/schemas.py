"""
Action Schemas
==============

Request and response contracts for the built-in actions. Extra fields are
allowed everywhere so addons can carry their own data through.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Schema(BaseModel):
    model_config = ConfigDict(extra="allow")


# ── Addon descriptor ─────────────────────────────────────────────────────────

class AddonRequest(_Schema):
    language: str = Field(..., min_length=2, max_length=8)
    region: str = Field(..., min_length=2, max_length=4)


class AddonResponse(_Schema):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    version: str
    type: str
    actions: list[str] = Field(default_factory=list)
    description: str = ""


# ── Catalog ──────────────────────────────────────────────────────────────────

class DirectoryRequest(_Schema):
    id: str = ""
    cursor: str | int | None = None
    search: str = ""
    sort: str | None = None
    filter: dict[str, Any] = Field(default_factory=dict)


class DirectoryResponse(_Schema):
    items: list[dict[str, Any]] = Field(default_factory=list)
    next_cursor: str | int | None = None


class ItemRequest(_Schema):
    type: str
    ids: dict[str, str | int] = Field(..., min_length=1)
    name: str | None = None


class ItemResponse(_Schema):
    type: str
    ids: dict[str, str | int]
    name: str


class Source(_Schema):
    url: str = Field(..., min_length=1)
    name: str | None = None


class Subtitle(_Schema):
    url: str = Field(..., min_length=1)
    language: str | None = None


# ── Resolve / captcha ────────────────────────────────────────────────────────

class ResolveRequest(_Schema):
    url: str = Field(..., min_length=1)


class ResolvedUrl(_Schema):
    url: str = Field(..., min_length=1)
    quality: str | None = None


class CaptchaRequest(_Schema):
    site_key: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    kind: str = "recaptcha"


# ── Tasks ────────────────────────────────────────────────────────────────────

class Task(_Schema):
    """An out-of-band request the client performs on the addon's behalf."""

    id: str
    kind: str
    data: dict[str, Any] = Field(default_factory=dict)


class TaskResult(_Schema):
    """The client's answer to a ``Task``, delivered through the ``task`` action."""

    id: str = Field(..., min_length=1)
    kind: str
    data: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
