"""
Per-update handler context.

Pairs the shared ``Bot`` with exactly one update. A context is created right
before the update is handed to application code and dropped when that code
returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .types import GetChatId, Message, Update

if TYPE_CHECKING:
    from .bot import Bot


@dataclass
class HandlerContext:
    bot: Bot
    update: Update

    @property
    def chat_id(self) -> int:
        """Originating chat; missing for updates that carry none (e.g. inline queries)."""
        chat_id = self.update.chat_id if isinstance(self.update, GetChatId) else None
        if chat_id is None:
            kind = getattr(self.update, "kind", None)
            kind = kind.value if kind else "unknown"
            raise AttributeError(f"{kind} update {self.update.id} has no chat id")
        return chat_id

    @property
    def message(self) -> Optional[Message]:
        return self.update.effective_message

    async def reply(self, text: str, **kwargs: Any) -> None:
        """Send ``text`` to the originating chat. One call, one request."""
        await self.bot.send_message(self.chat_id, text, **kwargs).send()
