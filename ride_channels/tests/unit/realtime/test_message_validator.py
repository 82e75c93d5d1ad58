"""
Tests for inbound frame validation.
"""

import json

import pytest

from ride_channels.error_types import ErrorType
from ride_channels.realtime.message_validator import MessageValidationError, WebSocketMessageValidator


@pytest.fixture
def validator():
    return WebSocketMessageValidator(max_message_size=256, max_json_depth=4)


class TestWebSocketMessageValidator:
    """Test suite for WebSocketMessageValidator."""

    def test_valid_envelope(self, validator):
        message = validator.parse_and_validate(
            json.dumps({"type": "join_ride_channel", "data": {"rideId": "ride-42"}}), "rider-1"
        )

        assert message == {"type": "join_ride_channel", "data": {"rideId": "ride-42"}}

    def test_missing_data_defaults_to_empty(self, validator):
        message = validator.parse_and_validate('{"type": "ping"}', "rider-1")

        assert message["data"] == {}

    def test_defaults(self):
        validator = WebSocketMessageValidator()

        assert validator.max_message_size == 10 * 1024
        assert validator.max_json_depth == 10

    def test_size_limit(self, validator):
        frame = json.dumps({"type": "ping", "data": {"pad": "x" * 300}})

        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate(frame, "rider-1")

        assert exc_info.value.error_type == ErrorType.INVALID_INPUT

    def test_invalid_json(self, validator):
        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate("{not json", "rider-1")

        assert exc_info.value.error_type == ErrorType.INVALID_FORMAT
        assert "Invalid JSON" in exc_info.value.message

    def test_depth_limit(self, validator):
        frame = json.dumps({"type": "ping", "data": {"a": {"b": {"c": {"d": 1}}}}})

        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate(frame, "rider-1")

        assert exc_info.value.error_type == ErrorType.INVALID_INPUT

    @pytest.mark.parametrize(
        "frame",
        [
            "[1, 2, 3]",
            '"ping"',
            '{"data": {}}',
            '{"type": 5}',
            '{"type": "   "}',
            '{"type": "ping", "data": [1]}',
        ],
    )
    def test_rejects_bad_envelopes(self, validator, frame):
        with pytest.raises(MessageValidationError):
            validator.parse_and_validate(frame, "rider-1")
