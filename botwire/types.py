"""
Wire types exchanged with the bot API.

Only the objects the transport core and its convenience layer touch are
modelled here. Every model keeps unknown fields (``extra="allow"``) so that
an update carrying a category this module does not describe still survives
a decode/encode round trip untouched.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class TelegramObject(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class AllowedUpdate(str, Enum):
    """Update categories accepted by ``allowed_updates``."""

    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    INLINE_QUERY = "inline_query"
    CHOSEN_INLINE_RESULT = "chosen_inline_result"
    CALLBACK_QUERY = "callback_query"
    SHIPPING_QUERY = "shipping_query"
    PRE_CHECKOUT_QUERY = "pre_checkout_query"
    POLL = "poll"
    POLL_ANSWER = "poll_answer"


class User(TelegramObject):
    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None


class Chat(TelegramObject):
    id: int
    type: str = "private"
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None


class Message(TelegramObject):
    message_id: int
    date: int = 0
    chat: Chat
    from_user: Optional[User] = Field(default=None, alias="from")
    text: Optional[str] = None
    caption: Optional[str] = None
    reply_to_message: Optional[Message] = None

    @property
    def chat_id(self) -> int:
        return self.chat.id


class CallbackQuery(TelegramObject):
    id: str
    from_user: User = Field(alias="from")
    message: Optional[Message] = None
    chat_instance: str = ""
    data: Optional[str] = None

    @property
    def chat_id(self) -> Optional[int]:
        # Callbacks from inline-mode messages carry no originating chat
        if self.message is None:
            return None
        return self.message.chat.id


class File(TelegramObject):
    """A file ready to be downloaded through ``Bot.download_file``."""

    file_id: str
    file_unique_id: str = ""
    file_size: Optional[int] = None
    file_path: Optional[str] = None


class ResponseParameters(TelegramObject):
    """Extra hints attached to some failed responses."""

    retry_after: Optional[int] = None
    migrate_to_chat_id: Optional[int] = None


_MESSAGE_KINDS = (
    AllowedUpdate.MESSAGE,
    AllowedUpdate.EDITED_MESSAGE,
    AllowedUpdate.CHANNEL_POST,
    AllowedUpdate.EDITED_CHANNEL_POST,
)


class Update(TelegramObject):
    """
    One entry of the server-held update queue.

    ``id`` is assigned by the server and grows monotonically; the poller
    relies on it to compute the next offset. Exactly one of the category
    fields is populated.
    """

    id: int = Field(alias="update_id")
    message: Optional[Message] = None
    edited_message: Optional[Message] = None
    channel_post: Optional[Message] = None
    edited_channel_post: Optional[Message] = None
    callback_query: Optional[CallbackQuery] = None
    inline_query: Optional[dict[str, Any]] = None
    chosen_inline_result: Optional[dict[str, Any]] = None
    shipping_query: Optional[dict[str, Any]] = None
    pre_checkout_query: Optional[dict[str, Any]] = None
    poll: Optional[dict[str, Any]] = None
    poll_answer: Optional[dict[str, Any]] = None

    @property
    def kind(self) -> Optional[AllowedUpdate]:
        for category in AllowedUpdate:
            if getattr(self, category.value) is not None:
                return category
        return None

    @property
    def effective_message(self) -> Optional[Message]:
        for category in _MESSAGE_KINDS:
            message = getattr(self, category.value)
            if message is not None:
                return message
        if self.callback_query is not None:
            return self.callback_query.message
        return None

    @property
    def chat_id(self) -> Optional[int]:
        message = self.effective_message
        return message.chat.id if message is not None else None


@runtime_checkable
class GetChatId(Protocol):
    """Anything that can name the conversation it originated from."""

    @property
    def chat_id(self) -> Optional[int]: ...


class InputFile(BaseModel):
    """
    A file argument for send operations.

    Either a reference the server already knows (``file_id`` or ``url``),
    sent inline in a JSON body, or local content (``path`` or ``content``),
    which forces a multipart upload.
    """

    file_id: Optional[str] = None
    url: Optional[str] = None
    path: Optional[Path] = None
    content: Optional[bytes] = None
    filename: Optional[str] = None

    @classmethod
    def from_file_id(cls, file_id: str) -> InputFile:
        return cls(file_id=file_id)

    @classmethod
    def from_url(cls, url: str) -> InputFile:
        return cls(url=url)

    @classmethod
    def from_path(cls, path: str | Path) -> InputFile:
        path = Path(path)
        return cls(path=path, filename=path.name)

    @classmethod
    def from_bytes(cls, content: bytes, filename: str = "file") -> InputFile:
        return cls(content=content, filename=filename)

    @property
    def is_upload(self) -> bool:
        return self.path is not None or self.content is not None

    def as_param(self) -> str:
        """Reference string used when the file is not uploaded."""
        if self.file_id is not None:
            return self.file_id
        if self.url is not None:
            return self.url
        raise ValueError("InputFile holds local content and must be uploaded")

    def read_upload(self) -> tuple[str, bytes]:
        """Return ``(filename, content)`` for a multipart upload."""
        if self.content is not None:
            return self.filename or "file", self.content
        if self.path is not None:
            return self.filename or self.path.name, self.path.read_bytes()
        raise ValueError("InputFile has no local content to upload")
