"""Unit tests for FriendService (request state machine + derived friendships)."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from common.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from social.schemas.friends import CircleInvitePayload
from social.services.friends.friend_service import FriendService, pair_key
from tests.conftest import make_cursor


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def requests_collection():
    collection = AsyncMock()
    collection.find = MagicMock(return_value=make_cursor([]))
    # No accepted request for the pair unless a test says otherwise
    collection.find_one.return_value = None
    return collection


@pytest.fixture
def users_collection():
    collection = AsyncMock()
    collection.find = MagicMock(return_value=make_cursor([]))
    return collection


@pytest.fixture
def friend_db(requests_collection, users_collection):
    collections = {"friendrequests": requests_collection, "users": users_collection}
    db = MagicMock()
    db.__getitem__ = MagicMock(side_effect=lambda name: collections[name])
    return db


@pytest.fixture
def service(friend_db):
    return FriendService(friend_db)


def request_doc(from_user, to_user, status="pending", payload=None):
    now = datetime.now(timezone.utc)
    return {
        "_id": ObjectId(),
        "fromUserId": from_user,
        "toUserId": to_user,
        "pairKey": pair_key(from_user, to_user),
        "status": status,
        "message": None,
        "payload": payload or {"type": "friend"},
        "createdAt": now,
        "respondedAt": now if status != "pending" else None,
    }


# ─────────────────────────────────────────────────────────────────
# pair_key
# ─────────────────────────────────────────────────────────────────


class TestPairKey:
    def test_is_order_independent(self, alice, bob):
        assert pair_key(alice, bob) == pair_key(bob, alice)

    def test_distinguishes_pairs(self, alice, bob):
        assert pair_key(alice, bob) != pair_key(alice, "carol")


# ─────────────────────────────────────────────────────────────────
# send_friend_request
# ─────────────────────────────────────────────────────────────────


class TestSendFriendRequest:
    @pytest.mark.asyncio
    async def test_persists_pending_request(self, service, requests_collection, alice, bob):
        new_id = ObjectId()
        requests_collection.insert_one.return_value = MagicMock(inserted_id=new_id)

        request_id = await service.send_friend_request(alice, bob, message="hi")

        assert request_id == str(new_id)
        doc = requests_collection.insert_one.call_args[0][0]
        assert doc["fromUserId"] == alice
        assert doc["toUserId"] == bob
        assert doc["status"] == "pending"
        assert doc["pairKey"] == pair_key(alice, bob)
        assert doc["payload"] == {"type": "friend"}
        assert doc["message"] == "hi"

    @pytest.mark.asyncio
    async def test_rejects_request_to_self(self, service, requests_collection, alice):
        with pytest.raises(ConflictException) as exc_info:
            await service.send_friend_request(alice, alice)

        assert exc_info.value.code == "CANNOT_FRIEND_SELF"
        requests_collection.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_pending_request_is_conflict(self, service, requests_collection, alice, bob):
        requests_collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(ConflictException) as exc_info:
            await service.send_friend_request(alice, bob)

        assert exc_info.value.code == "REQUEST_ALREADY_SENT"

    @pytest.mark.asyncio
    async def test_reverse_direction_uses_same_pair_key(self, service, requests_collection, alice, bob):
        requests_collection.insert_one.return_value = MagicMock(inserted_id=ObjectId())

        await service.send_friend_request(alice, bob)
        await service.send_friend_request(bob, alice)

        first = requests_collection.insert_one.call_args_list[0][0][0]
        second = requests_collection.insert_one.call_args_list[1][0][0]
        assert first["pairKey"] == second["pairKey"]

    @pytest.mark.asyncio
    async def test_already_friends_is_conflict(self, service, requests_collection, alice, bob):
        requests_collection.find_one.return_value = {"_id": ObjectId()}

        with pytest.raises(ConflictException) as exc_info:
            await service.send_friend_request(alice, bob)

        assert exc_info.value.code == "ALREADY_FRIENDS"
        requests_collection.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_circle_invite_between_friends_is_allowed(self, service, requests_collection, alice, bob):
        requests_collection.find_one.return_value = {"_id": ObjectId()}
        requests_collection.insert_one.return_value = MagicMock(inserted_id=ObjectId())
        payload = CircleInvitePayload(circleId=str(ObjectId()), circleName="Morning Runners")

        await service.send_friend_request(alice, bob, payload=payload)

        doc = requests_collection.insert_one.call_args[0][0]
        assert doc["payload"]["type"] == "circle_invite"
        assert doc["payload"]["circleName"] == "Morning Runners"


# ─────────────────────────────────────────────────────────────────
# accept / reject
# ─────────────────────────────────────────────────────────────────


class TestRespondToRequest:
    @pytest.mark.asyncio
    async def test_accept_is_single_guarded_update(self, service, requests_collection, alice, bob):
        accepted = request_doc(alice, bob, status="accepted")
        requests_collection.find_one_and_update.return_value = accepted

        result = await service.accept_friend_request(str(accepted["_id"]), user_id=bob)

        guard, update = requests_collection.find_one_and_update.call_args[0][:2]
        assert guard == {"_id": accepted["_id"], "status": "pending", "toUserId": bob}
        assert update["$set"]["status"] == "accepted"
        assert result["status"] == "accepted"

    @pytest.mark.asyncio
    async def test_reject_sets_rejected(self, service, requests_collection, alice, bob):
        rejected = request_doc(alice, bob, status="rejected")
        requests_collection.find_one_and_update.return_value = rejected

        result = await service.reject_friend_request(str(rejected["_id"]), user_id=bob)

        update = requests_collection.find_one_and_update.call_args[0][1]
        assert update["$set"]["status"] == "rejected"
        assert result["status"] == "rejected"

    @pytest.mark.asyncio
    async def test_missing_request_is_not_found(self, service, requests_collection):
        requests_collection.find_one_and_update.return_value = None
        requests_collection.find_one.return_value = None

        with pytest.raises(NotFoundException) as exc_info:
            await service.accept_friend_request(str(ObjectId()))

        assert exc_info.value.code == "REQUEST_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, service, requests_collection):
        with pytest.raises(NotFoundException):
            await service.accept_friend_request("not-an-object-id")

        requests_collection.find_one_and_update.assert_not_called()

    @pytest.mark.parametrize("terminal", ["accepted", "rejected"])
    @pytest.mark.asyncio
    async def test_terminal_request_is_immutable(self, service, requests_collection, alice, bob, terminal):
        existing = request_doc(alice, bob, status=terminal)
        requests_collection.find_one_and_update.return_value = None
        requests_collection.find_one.return_value = existing

        with pytest.raises(InvalidStateException) as exc_info:
            await service.accept_friend_request(str(existing["_id"]), user_id=bob)
        assert exc_info.value.code == "REQUEST_ALREADY_PROCESSED"

        with pytest.raises(InvalidStateException):
            await service.reject_friend_request(str(existing["_id"]), user_id=bob)

    @pytest.mark.asyncio
    async def test_only_recipient_may_accept(self, service, requests_collection, alice, bob):
        pending = request_doc(alice, bob)
        requests_collection.find_one_and_update.return_value = None
        requests_collection.find_one.return_value = pending

        with pytest.raises(ForbiddenException) as exc_info:
            await service.accept_friend_request(str(pending["_id"]), user_id=alice)

        assert exc_info.value.code == "NOT_REQUEST_RECIPIENT"


# ─────────────────────────────────────────────────────────────────
# cancel_friend_request
# ─────────────────────────────────────────────────────────────────


class TestCancelFriendRequest:
    @pytest.mark.asyncio
    async def test_sender_cancels_pending(self, service, requests_collection, alice):
        request_id = ObjectId()
        requests_collection.delete_one.return_value = MagicMock(deleted_count=1)

        await service.cancel_friend_request(str(request_id), alice)

        requests_collection.delete_one.assert_called_once_with(
            {"_id": request_id, "status": "pending", "fromUserId": alice}
        )

    @pytest.mark.asyncio
    async def test_recipient_cannot_cancel(self, service, requests_collection, alice, bob):
        pending = request_doc(alice, bob)
        requests_collection.delete_one.return_value = MagicMock(deleted_count=0)
        requests_collection.find_one.return_value = pending

        with pytest.raises(ForbiddenException):
            await service.cancel_friend_request(str(pending["_id"]), bob)

    @pytest.mark.asyncio
    async def test_answered_request_cannot_be_cancelled(self, service, requests_collection, alice, bob):
        accepted = request_doc(alice, bob, status="accepted")
        requests_collection.delete_one.return_value = MagicMock(deleted_count=0)
        requests_collection.find_one.return_value = accepted

        with pytest.raises(InvalidStateException):
            await service.cancel_friend_request(str(accepted["_id"]), alice)


# ─────────────────────────────────────────────────────────────────
# Friend list / pending list
# ─────────────────────────────────────────────────────────────────


class TestFriendships:
    @pytest.mark.asyncio
    async def test_friendship_is_symmetric(self, service, requests_collection, users_collection, alice, bob):
        accepted = request_doc(alice, bob, status="accepted")
        requests_collection.find = MagicMock(side_effect=lambda *a, **k: make_cursor([accepted]))
        users_collection.find = MagicMock(side_effect=lambda query, *a, **k: make_cursor([
            {"_id": uid, "username": uid, "displayName": uid.title()}
            for uid in query["_id"]["$in"]
        ]))

        alice_friends = await service.list_friends(alice)
        bob_friends = await service.list_friends(bob)

        assert [f["uid"] for f in alice_friends] == [bob]
        assert [f["uid"] for f in bob_friends] == [alice]
        assert alice_friends[0]["displayName"] == "Bob"

    @pytest.mark.asyncio
    async def test_friend_without_profile_still_listed(self, service, requests_collection, alice, bob):
        accepted = request_doc(bob, alice, status="accepted")
        requests_collection.find = MagicMock(return_value=make_cursor([accepted]))

        friends = await service.list_friends(alice)

        assert friends == [{"uid": bob, "username": None, "displayName": None}]

    @pytest.mark.asyncio
    async def test_no_friends_skips_user_lookup(self, service, users_collection, alice):
        assert await service.list_friends(alice) == []
        users_collection.find.assert_not_called()

    @pytest.mark.asyncio
    async def test_pending_requests_carry_direction(self, service, requests_collection, alice, bob):
        incoming = request_doc(bob, alice)
        outgoing = request_doc(alice, "carol")
        requests_collection.find = MagicMock(return_value=make_cursor([incoming, outgoing]))

        requests = await service.list_pending_requests(alice)

        assert [r["direction"] for r in requests] == ["incoming", "outgoing"]
        query = requests_collection.find.call_args[0][0]
        assert query["status"] == "pending"

    @pytest.mark.asyncio
    async def test_remove_friend_is_idempotent(self, service, requests_collection, alice, bob):
        requests_collection.delete_many.side_effect = [
            MagicMock(deleted_count=1),
            MagicMock(deleted_count=0),
        ]

        assert await service.remove_friend(alice, bob) == 1
        assert await service.remove_friend(bob, alice) == 0

        for call in requests_collection.delete_many.call_args_list:
            assert call[0][0] == {"pairKey": pair_key(alice, bob), "status": "accepted"}
