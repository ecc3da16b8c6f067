"""
Tests for the response envelope codec and error formatting.

Run with: pytest tests/test_envelope.py -v
"""

import json

import pytest

from botwire.envelope import (
    Envelope,
    decode_envelope,
    encode_failure,
    encode_success,
    parse_envelope,
)
from botwire.errors import ApiError, DecodeError, NetworkError, RequestError
from botwire.types import AllowedUpdate, File, Message, ResponseParameters, Update, User

from .fakes import make_update


class TestDecodeEnvelope:

    def test_success_scalar(self):
        assert decode_envelope('{"ok": true, "result": true}', 200, bool) is True

    def test_success_model(self):
        raw = json.dumps({"ok": True, "result": {"id": 1, "is_bot": True, "first_name": "B"}})
        user = decode_envelope(raw, 200, User)
        assert user == User(id=1, is_bot=True, first_name="B")

    def test_success_list_of_updates(self):
        raw = json.dumps({"ok": True, "result": [make_update(5), make_update(6)]})
        updates = decode_envelope(raw, 200, list[Update])
        assert [update.id for update in updates] == [5, 6]
        assert updates[0].message.text == "hi"

    def test_failure_uses_boolean_false(self):
        """ok is a JSON boolean, not the string "false"."""
        raw = '{"ok": false, "error_code": 403, "description": "Forbidden: bot was blocked by the user"}'
        with pytest.raises(ApiError) as exc_info:
            decode_envelope(raw, 403, Message)
        assert exc_info.value.status_code == 403
        assert exc_info.value.description == "Forbidden: bot was blocked by the user"

    @pytest.mark.parametrize("ok_value", [False, "", 0, None])
    def test_falsy_ok_is_failure(self, ok_value):
        raw = json.dumps({"ok": ok_value, "description": "nope"})
        with pytest.raises(ApiError):
            decode_envelope(raw, 400, bool)

    def test_missing_ok_is_failure(self):
        with pytest.raises(ApiError):
            decode_envelope('{"description": "what"}', 500, bool)

    def test_non_string_description_is_stringified(self):
        raw = json.dumps({"ok": False, "description": {"reason": "flood"}})
        with pytest.raises(ApiError) as exc_info:
            decode_envelope(raw, 429, bool)
        assert exc_info.value.description == '{"reason": "flood"}'

    def test_missing_description(self):
        with pytest.raises(ApiError) as exc_info:
            decode_envelope('{"ok": false}', 500, bool)
        assert exc_info.value.description == ""

    @pytest.mark.parametrize("raw", [
        "",
        "not json",
        "<html>502 Bad Gateway</html>",
        '{"ok": true, "result": ',
    ])
    def test_malformed_body_is_decode_error(self, raw):
        with pytest.raises(DecodeError):
            decode_envelope(raw, 200, bool)

    @pytest.mark.parametrize("raw", ["[1, 2]", '"ok"', "null", "42"])
    def test_non_object_body_is_decode_error(self, raw):
        with pytest.raises(DecodeError):
            decode_envelope(raw, 200, bool)

    def test_schema_mismatch_is_decode_error(self):
        raw = json.dumps({"ok": True, "result": {"unexpected": "shape"}})
        with pytest.raises(DecodeError):
            decode_envelope(raw, 200, File)

    @pytest.mark.parametrize("error_code", ["oops", 4.5, {"code": 400}, True])
    def test_odd_error_code_still_api_error(self, error_code):
        raw = json.dumps({"ok": False, "error_code": error_code, "description": "Bad Request"})
        with pytest.raises(ApiError) as exc_info:
            decode_envelope(raw, 400, bool)
        assert exc_info.value.error_code is None
        assert exc_info.value.description == "Bad Request"

    def test_numeric_string_error_code(self):
        raw = json.dumps({"ok": False, "error_code": "403", "description": "Forbidden"})
        with pytest.raises(ApiError) as exc_info:
            decode_envelope(raw, 403, bool)
        assert exc_info.value.error_code == 403

    def test_malformed_parameters_still_api_error(self):
        raw = json.dumps({"ok": False, "description": "slow down", "parameters": "later"})
        with pytest.raises(ApiError) as exc_info:
            decode_envelope(raw, 429, bool)
        assert exc_info.value.parameters is None
        assert exc_info.value.retry_after is None

    def test_malformed_body_never_api_error(self):
        with pytest.raises(RequestError) as exc_info:
            decode_envelope("{{{", 400, bool)
        assert not isinstance(exc_info.value, ApiError)


class TestRoundTrip:
    """Encoding then decoding preserves payloads and error details."""

    def test_success_round_trip(self):
        update = Update.model_validate(make_update(101))
        raw = encode_success([update])
        assert decode_envelope(raw, 200, list[Update]) == [update]

    def test_unknown_fields_survive(self):
        payload = make_update(7)
        payload["message_reaction"] = {"chat": {"id": 1}, "new_reaction": []}
        update = Update.model_validate(payload)

        decoded = decode_envelope(encode_success(update), 200, Update)

        assert decoded == update
        assert decoded.kind is AllowedUpdate.MESSAGE
        assert decoded.model_extra["message_reaction"]["chat"] == {"id": 1}

    def test_failure_round_trip(self):
        raw = encode_failure("Bad Request: message text is empty", error_code=400)
        with pytest.raises(ApiError) as exc_info:
            decode_envelope(raw, 400, Message)
        assert exc_info.value.status_code == 400
        assert exc_info.value.description == "Bad Request: message text is empty"

    def test_failure_parameters_round_trip(self):
        raw = encode_failure(
            "Too Many Requests: retry after 3",
            error_code=429,
            parameters=ResponseParameters(retry_after=3),
        )
        envelope = parse_envelope(raw)
        assert isinstance(envelope, Envelope)
        assert envelope.parameters == {"retry_after": 3}

        with pytest.raises(ApiError) as exc_info:
            decode_envelope(raw, 429, bool)
        assert exc_info.value.error_code == 429
        assert exc_info.value.retry_after == 3


class TestErrorMessages:

    def test_api_error_str(self):
        error = ApiError(400, "Bad Request: chat not found")
        assert str(error) == "Telegram error #400: Bad Request: chat not found"
        assert error.retry_after is None

    def test_network_error_str(self):
        error = NetworkError(ConnectionResetError("reset by peer"))
        assert str(error) == "Network error: reset by peer"

    def test_decode_error_keeps_cause(self):
        cause = ValueError("Expecting value")
        error = DecodeError(cause, raw="oops")
        assert error.cause is cause
        assert error.raw == "oops"
        assert "Expecting value" in str(error)

    def test_all_kinds_share_base(self):
        for error in (ApiError(500, "x"), NetworkError(OSError()), DecodeError(ValueError())):
            assert isinstance(error, RequestError)
