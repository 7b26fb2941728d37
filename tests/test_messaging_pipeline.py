"""Unit tests for direct message pipeline functions."""

import pytest
from unittest.mock import AsyncMock

from common.utils.exceptions import ForbiddenException, ValidationException
from social.pipelines.messaging import list_conversation_messages, send_direct_message


@pytest.fixture
def mock_conversation_service():
    return AsyncMock()


def saved_message(sender, receiver, content="hello"):
    return {
        "id": "msg_abc",
        "conversationId": "_".join(sorted([sender, receiver])),
        "senderId": sender,
        "receiverId": receiver,
        "content": content,
        "createdAt": "2026-03-01T09:00:00+00:00",
    }


# ─────────────────────────────────────────────────────────────────
# send_direct_message
# ─────────────────────────────────────────────────────────────────


class TestSendDirectMessage:
    @pytest.mark.asyncio
    async def test_saves_then_notifies_receiver(
        self, mock_conversation_service, mock_notification_service, alice, bob
    ):
        mock_conversation_service.send_message.return_value = saved_message(alice, bob)

        result = await send_direct_message(
            mock_conversation_service, mock_notification_service, alice, bob, "hello"
        )

        assert result["id"] == "msg_abc"
        mock_conversation_service.send_message.assert_called_once_with(alice, bob, "hello")
        mock_notification_service.create_direct_message_notification.assert_called_once_with(
            user_id=bob,
            sender_id=alice,
            conversation_id="alice_bob",
            message_id="msg_abc",
            preview="hello",
        )

    @pytest.mark.asyncio
    async def test_notification_failure_still_returns_message(
        self, mock_conversation_service, mock_notification_service, alice, bob
    ):
        mock_conversation_service.send_message.return_value = saved_message(alice, bob)
        mock_notification_service.create_direct_message_notification.side_effect = RuntimeError("down")

        result = await send_direct_message(
            mock_conversation_service, mock_notification_service, alice, bob, "hello"
        )

        assert result["conversationId"] == "alice_bob"

    @pytest.mark.asyncio
    async def test_rejected_message_is_not_notified(
        self, mock_conversation_service, mock_notification_service, alice, bob
    ):
        mock_conversation_service.send_message.side_effect = ValidationException(
            message="Message cannot be empty", code="EMPTY_MESSAGE"
        )

        with pytest.raises(ValidationException):
            await send_direct_message(mock_conversation_service, mock_notification_service, alice, bob, "")

        mock_notification_service.create_direct_message_notification.assert_not_called()


# ─────────────────────────────────────────────────────────────────
# list_conversation_messages
# ─────────────────────────────────────────────────────────────────


class TestListConversationMessages:
    @pytest.mark.asyncio
    async def test_participant_gets_page_with_has_more(self, mock_conversation_service, alice, bob):
        mock_conversation_service.get_conversation.return_value = {
            "id": "alice_bob",
            "participants": [alice, bob],
        }
        mock_conversation_service.list_messages.return_value = [saved_message(alice, bob)] * 2
        mock_conversation_service.get_message_count.return_value = 5

        result = await list_conversation_messages(
            mock_conversation_service, alice, "alice_bob", limit=2, offset=0
        )

        assert result["total"] == 5
        assert result["hasMore"] is True
        mock_conversation_service.list_messages.assert_called_once_with("alice_bob", limit=2, offset=0)

    @pytest.mark.asyncio
    async def test_last_page_has_no_more(self, mock_conversation_service, alice, bob):
        mock_conversation_service.get_conversation.return_value = {"participants": [alice, bob]}
        mock_conversation_service.list_messages.return_value = [saved_message(alice, bob)]
        mock_conversation_service.get_message_count.return_value = 3

        result = await list_conversation_messages(
            mock_conversation_service, alice, "alice_bob", limit=2, offset=2
        )

        assert result["hasMore"] is False

    @pytest.mark.asyncio
    async def test_outsider_is_forbidden(self, mock_conversation_service, alice, bob):
        mock_conversation_service.get_conversation.return_value = {"participants": [alice, bob]}

        with pytest.raises(ForbiddenException) as exc_info:
            await list_conversation_messages(mock_conversation_service, "mallory", "alice_bob")

        assert exc_info.value.code == "NOT_CONVERSATION_PARTICIPANT"
        mock_conversation_service.list_messages.assert_not_called()
