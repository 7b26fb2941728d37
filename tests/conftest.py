"""Shared test fixtures for the Coachie social API tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock


def make_cursor(documents):
    """
    Motor-style cursor mock: sort/skip/limit chain synchronously and
    to_list() is awaited.
    """
    cursor = MagicMock()
    cursor.sort = MagicMock(return_value=cursor)
    cursor.skip = MagicMock(return_value=cursor)
    cursor.limit = MagicMock(return_value=cursor)
    cursor.to_list = AsyncMock(return_value=list(documents))
    return cursor


@pytest.fixture
def alice():
    return "alice"


@pytest.fixture
def bob():
    return "bob"


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find(), aggregate() and watch() return cursors synchronously
    # (not coroutines), so use MagicMock for them. Async methods like
    # find_one, insert_one, update_one etc. stay as AsyncMock.
    collection.find = MagicMock(return_value=make_cursor([]))
    collection.aggregate = MagicMock(return_value=make_cursor([]))
    collection.watch = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db


@pytest.fixture
def mock_notification_service():
    return AsyncMock()
