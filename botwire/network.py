"""
HTTP layer for the bot API.

Builds method and file URLs, sends one request through a shared
``httpx.AsyncClient`` and turns the outcome into a typed result or a
``RequestError``. Nothing here retries.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from .envelope import api_error_from, decode_envelope, parse_envelope
from .errors import ApiError, DecodeError, NetworkError
from .logging_config import get_logger
from .requests import Multipart

logger = get_logger("network")

DEFAULT_API_URL = "https://api.telegram.org"


def method_url(base: str, token: str, method_name: str) -> str:
    """URL for calling ``method_name``, see https://core.telegram.org/bots/api#making-requests"""
    return f"{base}/bot{token}/{method_name}"


def file_url(base: str, token: str, file_path: str) -> str:
    """URL for downloading a file, see https://core.telegram.org/bots/api#file"""
    return f"{base}/file/bot{token}/{file_path}"


async def request(
    client: httpx.AsyncClient,
    base: str,
    token: str,
    method_name: str,
    result_type: Any,
    *,
    json_body: Optional[dict[str, Any]] = None,
    multipart: Optional[Multipart] = None,
    timeout: Optional[float] = None,
) -> Any:
    """
    Call a bot API method and decode its result.

    Args:
        client: Shared HTTP client
        base: API root, e.g. https://api.telegram.org
        token: Bot token
        method_name: Operation name, used verbatim in the URL
        result_type: Type the envelope's ``result`` must validate against
        json_body: Parameters sent as application/json
        multipart: ``(data, files)`` sent as multipart/form-data instead
        timeout: Per-request timeout override in seconds

    Raises:
        NetworkError, DecodeError, ApiError
    """
    if not token:
        raise ValueError("Bot token is empty")

    url = method_url(base, token, method_name)

    kwargs: dict[str, Any] = {}
    if multipart is not None:
        data, files = multipart
        kwargs["data"] = data
        kwargs["files"] = files
    else:
        kwargs["json"] = json_body or {}
    if timeout is not None:
        kwargs["timeout"] = timeout

    logger.debug(f"Calling {method_name} ({'multipart' if multipart is not None else 'json'})")

    http_request = client.build_request("POST", url, **kwargs)
    try:
        response = await client.send(http_request, stream=True)
    except httpx.HTTPError as e:
        raise NetworkError(e) from e

    try:
        await response.aread()
    except httpx.HTTPError as e:
        raise NetworkError(e) from e
    finally:
        await response.aclose()

    return decode_envelope(response.text, response.status_code, result_type)


async def download(client: httpx.AsyncClient, base: str, token: str, file_path: str) -> bytes:
    """Fetch the raw content of a server-held file."""
    if not token:
        raise ValueError("Bot token is empty")

    try:
        response = await client.get(file_url(base, token, file_path))
    except httpx.HTTPError as e:
        raise NetworkError(e) from e

    if response.is_error:
        raise _download_error(response)

    return response.content


def _download_error(response: httpx.Response) -> ApiError:
    # The file endpoint answers failures with an envelope, but not always
    try:
        envelope = parse_envelope(response.text)
    except DecodeError:
        return ApiError(response.status_code, response.text)
    return api_error_from(envelope, response.status_code)
