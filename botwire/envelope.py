"""
Codec for the response envelope wrapped around every bot API result.

    {"ok": true, "result": ...}
    {"ok": false, "error_code": 400, "description": "...", "parameters": {...}}
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .errors import ApiError, DecodeError
from .types import ResponseParameters


class Envelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    # Left loose on purpose: only its truthiness matters
    ok: Any = False
    result: Any = None
    description: Any = None
    # Failure details are coerced in api_error_from; a malformed one must not
    # turn a server rejection into a DecodeError
    error_code: Any = None
    parameters: Any = None


@lru_cache(maxsize=None)
def _adapter(result_type: Any) -> TypeAdapter:
    return TypeAdapter(result_type)


def parse_envelope(raw: str) -> Envelope:
    """Parse raw response text into an ``Envelope``, or raise ``DecodeError``."""
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise DecodeError(e, raw=raw) from e

    if not isinstance(data, dict):
        raise DecodeError(ValueError("response body is not a JSON object"), raw=raw)

    try:
        return Envelope.model_validate(data)
    except ValidationError as e:
        raise DecodeError(e, raw=raw) from e


def api_error_from(envelope: Envelope, status_code: int) -> ApiError:
    description = envelope.description
    if description is None:
        description = ""
    elif not isinstance(description, str):
        description = json.dumps(description)

    return ApiError(
        status_code,
        description,
        error_code=_coerce_error_code(envelope.error_code),
        parameters=_coerce_parameters(envelope.parameters),
    )


def _coerce_error_code(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _coerce_parameters(value: Any) -> Optional[ResponseParameters]:
    if not isinstance(value, dict):
        return None
    try:
        return ResponseParameters.model_validate(value)
    except ValidationError:
        return None


def decode_result(result: Any, result_type: Any) -> Any:
    """Validate the ``result`` member against the operation's declared type."""
    try:
        return _adapter(result_type).validate_python(result)
    except ValidationError as e:
        # Schema mismatch between the declared type and the server: not retryable
        raise DecodeError(e) from e


def decode_envelope(raw: str, status_code: int, result_type: Any) -> Any:
    """
    Decode a full response body.

    Args:
        raw: Response body as text
        status_code: HTTP status of the call, kept for error reporting
        result_type: Type the ``result`` member must validate against

    Returns:
        The validated result

    Raises:
        DecodeError: body is not a JSON object or ``result`` has the wrong shape
        ApiError: the envelope reports failure
    """
    envelope = parse_envelope(raw)

    if not envelope.ok:
        raise api_error_from(envelope, status_code)

    return decode_result(envelope.result, result_type)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


def encode_success(result: Any) -> str:
    return json.dumps({"ok": True, "result": _jsonable(result)})


def encode_failure(
    description: str,
    error_code: Optional[int] = None,
    parameters: Optional[ResponseParameters] = None,
) -> str:
    payload: dict[str, Any] = {"ok": False, "description": description}
    if error_code is not None:
        payload["error_code"] = error_code
    if parameters is not None:
        payload["parameters"] = _jsonable(parameters)
    return json.dumps(payload)
