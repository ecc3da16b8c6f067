"""
botwire: client-side transport for the Telegram bot API.

ARCHITECTURE:
- Bot: token + shared httpx connection pool, sends RemoteOperations
- network / envelope: URL building, HTTP exchange, {ok, result|description} decoding
- errors: ApiError / NetworkError / DecodeError, never retried by the transport
- UpdatePoller: getUpdates with offset bookkeeping, one call in flight
- Dispatcher: driving loop with backoff, one HandlerContext per update
- webhook: FastAPI router feeding pushed updates through the same handler path
"""

from .bot import Bot
from .context import HandlerContext
from .dispatcher import Dispatcher, calculate_backoff
from .errors import ApiError, DecodeError, NetworkError, RequestError
from .polling import UpdatePoller
from .requests import RemoteOperation
from .types import AllowedUpdate, InputFile, Message, Update

__all__ = [
    "Bot",
    "HandlerContext",
    "Dispatcher",
    "calculate_backoff",
    "ApiError",
    "DecodeError",
    "NetworkError",
    "RequestError",
    "UpdatePoller",
    "RemoteOperation",
    "AllowedUpdate",
    "InputFile",
    "Message",
    "Update",
]
