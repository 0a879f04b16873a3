"""Conftest for unit tests - automatically mark all tests as unit tests."""

import pytest


def pytest_collection_modifyitems(config, items):
    """Add the unit marker to every test collected under tests/unit."""
    for item in items:
        if "unit" in item.path.parts:
            item.add_marker(pytest.mark.unit)
