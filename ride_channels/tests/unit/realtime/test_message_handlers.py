"""
Tests for ride channel event handlers.

Handlers only queue frames, so the tests inspect each connection's outbox
instead of a socket.
"""

import pytest

from ride_channels.error_types import ErrorMessages, ErrorType
from ride_channels.exceptions import EventValidationError
from ride_channels.realtime.message_handlers import (
    CHANNEL_JOINED_MESSAGE,
    handle_join_request,
    handle_join_ride_channel,
    handle_leave_ride_channel,
    handle_ping_message,
    handle_request_response,
)


@pytest.fixture
def registry(container):
    return container.connection_registry


@pytest.fixture
def membership(container):
    return container.channel_membership


@pytest.fixture
def driver(registry, make_connection):
    connection = make_connection("driver-1", "Dana Driver")
    registry.register(connection)
    return connection


@pytest.fixture
def rider(registry, make_connection):
    connection = make_connection("rider-1", "Riley Rider")
    registry.register(connection)
    return connection


class TestPing:
    """ping / pong heartbeat."""

    @pytest.mark.asyncio
    async def test_pong_echoes_timestamp(self, rider, driver, registry, membership, drain_outbox):
        await handle_ping_message(rider, {"timestamp": 1700000000000}, registry, membership)

        (event,) = drain_outbox(rider)
        assert event["type"] == "pong"
        assert event["data"]["timestamp"] == 1700000000000
        assert event["data"]["userId"] == "rider-1"
        assert event["data"]["connections"] == 2
        assert isinstance(event["data"]["received"], int)

    @pytest.mark.asyncio
    async def test_reply_event_override(self, rider, registry, membership, drain_outbox):
        await handle_ping_message(rider, {"timestamp": 7}, registry, membership, reply_event="pong_server")

        (event,) = drain_outbox(rider)
        assert event["type"] == "pong_server"
        assert event["data"]["timestamp"] == 7

    @pytest.mark.asyncio
    async def test_ping_requires_timestamp(self, rider, registry, membership, drain_outbox):
        with pytest.raises(EventValidationError) as exc_info:
            await handle_ping_message(rider, {}, registry, membership)

        assert exc_info.value.field_name == "timestamp"
        assert drain_outbox(rider) == []


class TestJoinRideChannel:
    """join_ride_channel subscription."""

    @pytest.mark.asyncio
    async def test_join_acknowledges_with_member_count(self, rider, driver, registry, membership, drain_outbox):
        await handle_join_ride_channel(driver, {"rideId": "ride-42"}, registry, membership)
        await handle_join_ride_channel(rider, {"rideId": "ride-42"}, registry, membership)

        (driver_ack,) = drain_outbox(driver)
        (rider_ack,) = drain_outbox(rider)
        assert driver_ack == {
            "type": "channel_joined",
            "data": {"rideId": "ride-42", "message": CHANNEL_JOINED_MESSAGE, "members": 1},
        }
        assert rider_ack["data"]["members"] == 2

    @pytest.mark.asyncio
    async def test_join_twice_is_idempotent(self, rider, registry, membership, drain_outbox):
        await handle_join_ride_channel(rider, {"rideId": "ride-42"}, registry, membership)
        await handle_join_ride_channel(rider, {"rideId": "ride-42"}, registry, membership)

        acks = drain_outbox(rider)
        assert [ack["data"]["members"] for ack in acks] == [1, 1]
        assert membership.members("ride-42") == {"rider-1"}

    @pytest.mark.asyncio
    async def test_numeric_ride_id_is_accepted(self, rider, registry, membership, drain_outbox):
        await handle_join_ride_channel(rider, {"rideId": 42}, registry, membership)

        (ack,) = drain_outbox(rider)
        assert ack["data"]["rideId"] == "42"
        assert membership.members("42") == {"rider-1"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [{}, {"rideId": ""}, {"rideId": "  "}, {"rideId": None}])
    async def test_join_requires_ride_id(self, rider, registry, membership, drain_outbox, data):
        with pytest.raises(EventValidationError) as exc_info:
            await handle_join_ride_channel(rider, data, registry, membership)

        assert exc_info.value.message == ErrorMessages.RIDE_ID_REQUIRED_TO_JOIN
        assert membership.channel_count() == 0
        assert drain_outbox(rider) == []


class TestJoinRequest:
    """join_request broadcast."""

    @pytest.mark.asyncio
    async def test_broadcast_excludes_sender(self, rider, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "driver-1")
        membership.join("ride-42", "rider-1")

        await handle_join_request(rider, {"rideId": "ride-42"}, registry, membership)

        (event,) = drain_outbox(driver)
        assert event["type"] == "join_request"
        assert event["data"]["user"] == {"id": "rider-1", "name": "Riley Rider"}
        assert event["data"]["timestamp"].endswith("Z")
        assert drain_outbox(rider) == []

    @pytest.mark.asyncio
    async def test_sender_need_not_be_member(self, rider, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "driver-1")

        await handle_join_request(rider, {"rideId": "ride-42"}, registry, membership)

        assert [e["type"] for e in drain_outbox(driver)] == ["join_request"]

    @pytest.mark.asyncio
    async def test_empty_channel_sends_nothing(self, rider, registry, membership, drain_outbox):
        await handle_join_request(rider, {"rideId": "ride-404"}, registry, membership)

        assert drain_outbox(rider) == []
        assert membership.channel_count() == 0

    @pytest.mark.asyncio
    async def test_requires_ride_id(self, rider, registry, membership):
        with pytest.raises(EventValidationError) as exc_info:
            await handle_join_request(rider, {}, registry, membership)

        assert exc_info.value.message == ErrorMessages.RIDE_ID_REQUIRED


class TestRequestResponse:
    """request_response broadcast and unicast."""

    @pytest.mark.asyncio
    async def test_accepted_broadcast_and_unicast(self, rider, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "driver-1")
        membership.join("ride-42", "rider-1")

        await handle_request_response(
            driver, {"rideId": "ride-42", "userId": "rider-1", "status": "accepted"}, registry, membership
        )

        (driver_update,) = drain_outbox(driver)
        assert driver_update["type"] == "request_update"
        assert driver_update["data"]["userId"] == "rider-1"
        assert driver_update["data"]["status"] == "accepted"
        assert driver_update["data"]["updatedAt"].endswith("Z")

        rider_events = drain_outbox(rider)
        assert [e["type"] for e in rider_events] == ["request_update", "request_status_changed"]
        assert rider_events[1]["data"] == {
            "rideId": "ride-42",
            "status": "accepted",
            "message": "Your request to join ride ride-42 was accepted",
        }

    @pytest.mark.asyncio
    async def test_target_outside_channel_still_notified(self, rider, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "driver-1")

        await handle_request_response(
            driver, {"rideId": "ride-42", "targetUserId": "rider-1", "status": "rejected"}, registry, membership
        )

        (status_changed,) = drain_outbox(rider)
        assert status_changed["type"] == "request_status_changed"
        assert status_changed["data"]["message"] == "Your request to join ride ride-42 was rejected"
        assert [e["type"] for e in drain_outbox(driver)] == ["request_update"]

    @pytest.mark.asyncio
    async def test_offline_target_is_silently_skipped(self, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "driver-1")

        await handle_request_response(
            driver, {"rideId": "ride-42", "userId": "ghost", "status": "accepted"}, registry, membership
        )

        assert [e["type"] for e in drain_outbox(driver)] == ["request_update"]

    @pytest.mark.asyncio
    async def test_status_is_case_insensitive(self, rider, driver, registry, membership, drain_outbox):
        await handle_request_response(
            driver, {"rideId": "ride-42", "userId": "rider-1", "status": "ACCEPTED"}, registry, membership
        )

        (event,) = drain_outbox(rider)
        assert event["data"]["status"] == "accepted"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data",
        [
            {"userId": "rider-1", "status": "accepted"},
            {"rideId": "ride-42", "status": "accepted"},
            {"rideId": "ride-42", "userId": "rider-1"},
            {"rideId": "ride-42", "userId": "", "status": "accepted"},
        ],
    )
    async def test_missing_fields(self, rider, driver, registry, membership, drain_outbox, data):
        membership.join("ride-42", "rider-1")

        with pytest.raises(EventValidationError) as exc_info:
            await handle_request_response(driver, data, registry, membership)

        assert exc_info.value.message == ErrorMessages.MISSING_REQUIRED_FIELDS
        assert exc_info.value.error_type == ErrorType.MISSING_REQUIRED_FIELD
        assert drain_outbox(rider) == []

    @pytest.mark.asyncio
    async def test_invalid_status(self, rider, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "rider-1")

        with pytest.raises(EventValidationError) as exc_info:
            await handle_request_response(
                driver, {"rideId": "ride-42", "userId": "rider-1", "status": "maybe"}, registry, membership
            )

        assert exc_info.value.error_type == ErrorType.INVALID_INPUT
        assert exc_info.value.field_name == "status"
        assert drain_outbox(rider) == []


class TestLeaveRideChannel:
    """leave_ride_channel without disconnecting."""

    @pytest.mark.asyncio
    async def test_leave_notifies_remaining_members(self, rider, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "driver-1")
        membership.join("ride-42", "rider-1")

        await handle_leave_ride_channel(rider, {"rideId": "ride-42"}, registry, membership)

        assert drain_outbox(rider) == [{"type": "channel_left", "data": {"rideId": "ride-42", "members": 1}}]
        (member_left,) = drain_outbox(driver)
        assert member_left["type"] == "member_left"
        assert member_left["data"]["userId"] == "rider-1"
        assert member_left["data"]["members"] == 1

    @pytest.mark.asyncio
    async def test_last_member_leaving_deletes_channel(self, rider, registry, membership, drain_outbox):
        membership.join("ride-42", "rider-1")

        await handle_leave_ride_channel(rider, {"rideId": "ride-42"}, registry, membership)

        assert drain_outbox(rider)[0]["data"]["members"] == 0
        assert membership.channel_count() == 0

    @pytest.mark.asyncio
    async def test_non_member_leave_broadcasts_nothing(self, rider, driver, registry, membership, drain_outbox):
        membership.join("ride-42", "driver-1")

        await handle_leave_ride_channel(rider, {"rideId": "ride-42"}, registry, membership)

        assert drain_outbox(rider)[0]["data"]["members"] == 1
        assert drain_outbox(driver) == []
