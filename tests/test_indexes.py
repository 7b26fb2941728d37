"""Tests for the store-side index definitions."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from social.database.collections import FORUMS, FRIEND_REQUESTS
from social.database.indexes import INDEXES, ensure_indexes


def index_documents(collection_name):
    return [model.document for model in INDEXES[collection_name]]


class TestIndexDefinitions:
    def test_one_pending_request_per_pair(self):
        pending = next(doc for doc in index_documents(FRIEND_REQUESTS) if doc["name"] == "unique_pending_pair")

        assert list(pending["key"].items()) == [("pairKey", 1)]
        assert pending["unique"] is True
        assert pending["partialFilterExpression"] == {"status": "pending"}

    def test_forum_listing_is_indexed(self):
        keys = [list(doc["key"].items()) for doc in index_documents(FORUMS)]

        assert [("isActive", 1), ("lastPostAt", -1)] in keys


class TestEnsureIndexes:
    @pytest.mark.asyncio
    async def test_creates_every_declared_index(self):
        collections = {}

        def collection(name):
            collections.setdefault(name, MagicMock(create_indexes=AsyncMock(return_value=[])))
            return collections[name]

        db = MagicMock()
        db.__getitem__ = MagicMock(side_effect=collection)

        await ensure_indexes(db)

        assert set(collections) == set(INDEXES)
        collections[FRIEND_REQUESTS].create_indexes.assert_awaited_once_with(INDEXES[FRIEND_REQUESTS])
