"""Shared test fixtures and configuration."""

import os
from pathlib import Path

import pytest


# Complete test environment that overrides every engine setting
TEST_ENV = {
    "ITEM_SEARCH_PREFIX_MAX": "6",
    "ITEM_SEARCH_NGRAM_SIZE": "3",
    "ITEM_SEARCH_TRAILING_PREFIX_MIN": "3",
    "ITEM_SEARCH_BATCH_SIZE": "2",
    "ITEM_SEARCH_BUILD_WORKERS": "1",
    "ITEM_SEARCH_PROGRESS_EVERY": "50000",
    "ITEM_SEARCH_RESULT_CAP": "1000",
    "ITEM_SEARCH_TOTAL_ITEMS": "5",
    "ITEM_SEARCH_PAGE_SIZE": "20",
    "ITEM_SEARCH_MAX_PAGE_SIZE": "100",
    "ITEM_SEARCH_LOG_LEVEL": "info",
    "ITEM_SEARCH_LOG_JSON": "false",
    "ITEM_SEARCH_OBSERVABILITY__ENABLED": "false",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

# Now we can safely import config-dependent modules
from item_search.config import EngineSettings, get_settings
from item_search.domain.model import Item
from item_search.domain.session import SessionState
from item_search.search.indexer import IndexBuilder
from item_search.search.snapshot import SnapshotHolder
from item_search.service_layer.search_service import SearchService


SCENARIO_NAMES = [
    "alpha beta",
    "beta gamma",
    "alpha gamma delta",
    "zeta",
    "beta alpha gamma",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset engine environment variables and the cached settings before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    root = tmp_path / "staging"
    root.mkdir()
    return root


@pytest.fixture
def settings(staging_root: Path) -> EngineSettings:
    return EngineSettings(staging_dir=staging_root)


@pytest.fixture
def scenario_items() -> list[Item]:
    """Five items whose names drive the ordering and ranking scenarios."""
    return [Item(id=index, name=name) for index, name in enumerate(SCENARIO_NAMES, start=1)]


@pytest.fixture
def city_items() -> list[Item]:
    """A small dataset spread over every indexed field."""
    return [
        Item(id=1, name="Ivan Petrov", address="12 Main Street", description="Senior engineer", city="Moscow"),
        Item(id=2, name="Anna Ivanova", address="5 Lenin Avenue", description="Product manager", city="Kazan"),
        Item(id=3, name="John Smith", address="221B Baker Street", description="Detective", city="London"),
        Item(id=4, name="Mary Jones", address="10 Downing Street", description="Engineer manager", city="London"),
        Item(id=5, name="Москва Центр", address="Тверская 1", description="Офис", city="Москва", is_male=True),
    ]


@pytest.fixture
def scenario_snapshot(scenario_items, settings):
    return IndexBuilder(settings).build(scenario_items)


@pytest.fixture
def scenario_holder(scenario_snapshot) -> SnapshotHolder:
    return SnapshotHolder(scenario_snapshot)


@pytest.fixture
def scenario_service(scenario_items, settings) -> SearchService:
    service = SearchService(scenario_items, settings)
    service.rebuild()
    return service


@pytest.fixture
def session() -> SessionState:
    return SessionState()
