"""Test doubles shared by the engine tests."""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from listsync.schemas.page import Page


def make_items(n: int, prefix: str = "i", start: int = 1) -> List[dict]:
    return [{"id": f"{prefix}{k}", "title": f"item {prefix}{k}"} for k in range(start, start + n)]


class Switch:
    """Connectivity flag read by a NetworkMonitor probe."""

    def __init__(self, online: bool = True) -> None:
        self.online = online

    def probe(self) -> bool:
        return self.online


class FakeListClient:
    """Synchronous stand-in for a ResourceListClient.

    `pages` maps page number to item lists; an Exception value is raised
    instead of returned.
    """

    def __init__(self, resource: str = "gallery", pages: Optional[Dict[int, object]] = None,
                 total_pages: int = 1) -> None:
        self.resource = resource
        self.pages = pages or {}
        self.total_pages = total_pages
        self.calls: List[tuple] = []

    def fetch_page(self, page: int, limit: int, filters: dict) -> Page:
        self.calls.append((page, dict(filters)))
        value = self.pages.get(page, [])
        if isinstance(value, Exception):
            raise value
        return Page(items=list(value), page_number=page, page_size=limit, total_pages=self.total_pages)


class GatedCategoryClient:
    """Async client whose responses per category wait on an asyncio.Event."""

    resource = "audio"

    def __init__(self) -> None:
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[Optional[str]] = []

    async def fetch_page(self, page: int, limit: int, filters: dict) -> Page:
        category = filters.get("category")
        self.calls.append(category)
        gate = self.gates.get(category)
        if gate is not None:
            await gate.wait()
        items = [{"id": f"{category}-{k}", "category": category} for k in range(3)]
        return Page(items=items, page_number=page, page_size=limit, total_pages=1)
