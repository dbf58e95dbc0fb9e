from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class EntityOutput(BaseModel):
    domain: str
    key: str
    name: str
    nickname: str | None = None
    pinned: bool = False
    excluded: bool = False
    priority: str | None = None
    details: dict[str, Any] = {}


class DomainResultsOutput(BaseModel):
    domain: str
    pinned: list[EntityOutput] = []
    excluded: list[EntityOutput] = []
    results: list[EntityOutput] = []


class SearchResponseOutput(BaseModel):
    query: str
    domains: list[DomainResultsOutput] = []


class RecentEntryOutput(BaseModel):
    kind: str
    value: str
    stable_key: str


class ChannelOutput(BaseModel):
    contact_id: int
    contact: str
    messaging: str
    calling: str
    phone_number: str | None = None
    display_number: str | None = None


class LaunchRequestOutput(BaseModel):
    action: str
    target: str | None = None
    data_id: int | None = None
    package_name: str | None = None


class ActionOutcomeOutput(BaseModel):
    state: str
    ok: bool
    failure: str | None = None
    numbers: list[str] = []
    request: LaunchRequestOutput | None = None
