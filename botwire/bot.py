"""
Bot handle: credentials plus the shared HTTP connection pool.

One ``Bot`` is shared by the poller and every handler context. It holds no
mutable state besides the ``httpx.AsyncClient`` pool, so concurrent tasks
can use it freely.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import httpx

from . import network
from .config import Settings, get_settings
from .network import DEFAULT_API_URL
from .requests import (
    ChatId,
    DeleteWebhook,
    GetFile,
    GetMe,
    GetUpdates,
    RemoteOperation,
    SendDocument,
    SendMessage,
    SendPhoto,
    SetWebhook,
)
from .types import AllowedUpdate, InputFile

DEFAULT_TIMEOUT = 60.0


class Bot:
    """
    Client for the bot API.

    Operations are built through the helper methods and sent with
    ``await op.send()``, or passed directly to ``execute``:

        bot = Bot(token)
        message = await bot.send_message(chat_id, "hello").send()
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not token:
            raise ValueError("Bot token is empty")

        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        # An injected client belongs to the caller and is not closed here
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> Bot:
        settings = settings or get_settings()
        return cls(
            settings.bot_token,
            api_url=settings.api_url,
            timeout=settings.request_timeout,
            **kwargs,
        )

    @property
    def token(self) -> str:
        return self._token

    def __repr__(self) -> str:
        return f"Bot(api_url={self.api_url!r})"

    def method_url(self, method_name: str) -> str:
        return network.method_url(self.api_url, self._token, method_name)

    def file_url(self, file_path: str) -> str:
        return network.file_url(self.api_url, self._token, file_path)

    async def execute(self, operation: RemoteOperation) -> Any:
        """
        Send one operation and return its decoded result.

        The operation is (re)bound to this bot, so token, API root and client
        always come from the same place.
        """
        if operation._bot is not self:
            operation.bind(self)

        multipart = operation.multipart_params()
        return await network.request(
            self.client,
            self.api_url,
            self._token,
            operation.NAME,
            operation.result_type,
            json_body=None if multipart is not None else operation.json_payload(),
            multipart=multipart,
            timeout=operation.request_timeout(self.timeout),
        )

    async def download_file(self, file_path: str) -> bytes:
        """Download a file previously resolved with ``get_file``."""
        return await network.download(self.client, self.api_url, self._token, file_path)

    # Operation builders

    def get_me(self) -> GetMe:
        return GetMe().bind(self)

    def get_updates(
        self,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        timeout: Optional[int] = None,
        allowed_updates: Optional[Sequence[Union[AllowedUpdate, str]]] = None,
    ) -> GetUpdates:
        return GetUpdates(
            offset=offset,
            limit=limit,
            timeout=timeout,
            allowed_updates=list(allowed_updates) if allowed_updates is not None else None,
        ).bind(self)

    def send_message(self, chat_id: ChatId, text: str, **kwargs: Any) -> SendMessage:
        return SendMessage(chat_id=chat_id, text=text, **kwargs).bind(self)

    def send_document(self, chat_id: ChatId, document: InputFile, **kwargs: Any) -> SendDocument:
        return SendDocument(chat_id=chat_id, document=document, **kwargs).bind(self)

    def send_photo(self, chat_id: ChatId, photo: InputFile, **kwargs: Any) -> SendPhoto:
        return SendPhoto(chat_id=chat_id, photo=photo, **kwargs).bind(self)

    def get_file(self, file_id: str) -> GetFile:
        return GetFile(file_id=file_id).bind(self)

    def set_webhook(self, url: str, **kwargs: Any) -> SetWebhook:
        return SetWebhook(url=url, **kwargs).bind(self)

    def delete_webhook(self, drop_pending_updates: Optional[bool] = None) -> DeleteWebhook:
        return DeleteWebhook(drop_pending_updates=drop_pending_updates).bind(self)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> Bot:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
