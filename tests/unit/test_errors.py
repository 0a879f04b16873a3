"""Unit tests for the error hierarchy."""

import pytest

from item_search.errors import (
    InputError,
    ItemSearchError,
    NotFoundError,
    SessionNotInitializedError,
    StorageError,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("error_type", "builtin"),
    [
        (InputError, ValueError),
        (NotFoundError, LookupError),
        (StorageError, OSError),
        (SessionNotInitializedError, RuntimeError),
    ],
)
def test_errors_share_base_and_builtin(error_type, builtin):
    assert issubclass(error_type, ItemSearchError)
    assert issubclass(error_type, builtin)


@pytest.mark.unit
def test_not_found_lists_missing_ids():
    error = NotFoundError([7, 9])

    assert error.missing_ids == (7, 9)
    assert str(error) == "Unknown item ids: [7, 9]"
