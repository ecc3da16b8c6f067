"""
Remote operations understood by the request transport.

Each operation is a pydantic model whose fields are the call's parameters.
The transport only relies on the ``RemoteOperation`` surface: ``NAME``,
``result_type``, ``token``, ``json_payload()`` and ``multipart_params()``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr

from .types import AllowedUpdate, File, InputFile, Message, Update, User

if TYPE_CHECKING:
    from .bot import Bot


ChatId = Union[int, str]
Multipart = tuple[dict[str, str], dict[str, tuple[str, bytes]]]


class RemoteOperation(BaseModel):
    """A single named bot API call with a declared result type."""

    NAME: ClassVar[str]
    result_type: ClassVar[Any] = Any

    _bot: Any = PrivateAttr(default=None)

    def bind(self, bot: Bot) -> RemoteOperation:
        self._bot = bot
        return self

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError(f"{self.NAME} is not bound to a Bot")
        return self._bot

    @property
    def token(self) -> str:
        return self.bot.token

    def json_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    def multipart_params(self) -> Optional[Multipart]:
        """``(data, files)`` when the call must go out as multipart/form-data."""
        return None

    def request_timeout(self, default: Optional[float]) -> Optional[float]:
        return default

    async def send(self) -> Any:
        return await self.bot.execute(self)


class GetMe(RemoteOperation):
    NAME: ClassVar[str] = "getMe"
    result_type: ClassVar[Any] = User


class GetUpdates(RemoteOperation):
    """
    Receive incoming updates using long polling.

    An update is confirmed as soon as ``getUpdates`` is called with an
    ``offset`` higher than its id. A negative offset returns updates starting
    ``-offset`` entries from the end of the queue and forgets everything
    older.
    """

    NAME: ClassVar[str] = "getUpdates"
    result_type: ClassVar[Any] = list[Update]

    offset: Optional[int] = None
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    timeout: Optional[int] = Field(default=None, ge=0)
    # None keeps the previous server-side setting, [] means every category
    allowed_updates: Optional[list[AllowedUpdate]] = None

    def request_timeout(self, default: Optional[float]) -> Optional[float]:
        # The server holds the connection for up to `timeout` seconds
        if default is None or not self.timeout:
            return default
        return default + self.timeout


class SendMessage(RemoteOperation):
    NAME: ClassVar[str] = "sendMessage"
    result_type: ClassVar[Any] = Message

    chat_id: ChatId
    text: str
    parse_mode: Optional[str] = None
    disable_web_page_preview: Optional[bool] = None
    disable_notification: Optional[bool] = None
    reply_to_message_id: Optional[int] = None
    reply_markup: Optional[dict[str, Any]] = None


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class _SendFile(RemoteOperation):
    FILE_FIELD: ClassVar[str]
    result_type: ClassVar[Any] = Message

    chat_id: ChatId
    caption: Optional[str] = None
    parse_mode: Optional[str] = None
    disable_notification: Optional[bool] = None
    reply_to_message_id: Optional[int] = None
    reply_markup: Optional[dict[str, Any]] = None

    @property
    def input_file(self) -> InputFile:
        return getattr(self, self.FILE_FIELD)

    def json_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", exclude_none=True, exclude={self.FILE_FIELD})
        payload[self.FILE_FIELD] = self.input_file.as_param()
        return payload

    def multipart_params(self) -> Optional[Multipart]:
        if not self.input_file.is_upload:
            return None

        fields = self.model_dump(mode="json", exclude_none=True, exclude={self.FILE_FIELD})
        data = {key: _form_value(value) for key, value in fields.items()}
        files = {self.FILE_FIELD: self.input_file.read_upload()}
        return data, files


class SendDocument(_SendFile):
    NAME: ClassVar[str] = "sendDocument"
    FILE_FIELD: ClassVar[str] = "document"

    document: InputFile


class SendPhoto(_SendFile):
    NAME: ClassVar[str] = "sendPhoto"
    FILE_FIELD: ClassVar[str] = "photo"

    photo: InputFile


class GetFile(RemoteOperation):
    NAME: ClassVar[str] = "getFile"
    result_type: ClassVar[Any] = File

    file_id: str


class SetWebhook(RemoteOperation):
    NAME: ClassVar[str] = "setWebhook"
    result_type: ClassVar[Any] = bool

    url: str
    max_connections: Optional[int] = Field(default=None, ge=1, le=100)
    allowed_updates: Optional[list[AllowedUpdate]] = None
    secret_token: Optional[str] = None
    drop_pending_updates: Optional[bool] = None


class DeleteWebhook(RemoteOperation):
    NAME: ClassVar[str] = "deleteWebhook"
    result_type: ClassVar[Any] = bool

    drop_pending_updates: Optional[bool] = None
