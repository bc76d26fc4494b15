"""Shared pytest fixtures."""
from __future__ import annotations

from pathlib import Path

import pytest

from helpers import Switch
from listsync.services.cache_store import CacheStore
from listsync.services.database import create_cache_engine
from listsync.services.fetch_coordinator import FetchCoordinator
from listsync.services.network_monitor import NetworkMonitor


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'cache.db'}"


@pytest.fixture
def db_engine(db_url: str):
    engine = create_cache_engine(db_url)
    yield engine
    engine.dispose()


@pytest.fixture
def cache(db_engine) -> CacheStore:
    return CacheStore(db_engine, limit=10)


@pytest.fixture
def switch() -> Switch:
    return Switch(online=True)


@pytest.fixture
def monitor(switch: Switch) -> NetworkMonitor:
    return NetworkMonitor(probe=switch.probe)


@pytest.fixture
def coordinator(monitor: NetworkMonitor, cache: CacheStore) -> FetchCoordinator:
    return FetchCoordinator(monitor, cache, fetch_timeout=2)
