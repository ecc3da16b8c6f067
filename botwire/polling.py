"""
Long-polling update retrieval with offset bookkeeping.

The poller keeps a single watermark over the server-held update queue.
After every successful ``getUpdates`` the offset moves to
``highest update id + 1``, which confirms the batch on the server so it is
never delivered again. A failed call leaves the offset alone: the next call
asks for the same window, so nothing is lost, though a batch the server
answered but we never received will be delivered again.

``poll()`` advances the offset as soon as a batch arrives; callers of
``poll()`` own the whole returned batch. ``updates()`` holds the unconsumed
rest of a batch so the confirming call waits until every update is handed out.

Retry and backoff are not handled here; see ``botwire.dispatcher``.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator, Optional, Sequence, Union

from .config import Settings, get_settings
from .logging_config import get_logger
from .types import AllowedUpdate, Update

if TYPE_CHECKING:
    from .bot import Bot

logger = get_logger("polling")

DEFAULT_LIMIT = 100
MAX_LIMIT = 100


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


class UpdatePoller:
    """
    Fetches updates one ``getUpdates`` call at a time.

    Args:
        bot: Shared bot handle
        offset: Initial watermark. None starts from the earliest unconfirmed
            update; a negative value starts ``-offset`` updates from the end
            of the queue.
        limit: Max updates per call, 1-100
        timeout: Seconds the server may hold the call open (0 = short poll)
        allowed_updates: Update categories to receive. None keeps the
            server-side setting, an empty list means all categories.
    """

    def __init__(
        self,
        bot: Bot,
        *,
        offset: Optional[int] = None,
        limit: int = DEFAULT_LIMIT,
        timeout: int = 0,
        allowed_updates: Optional[Sequence[Union[AllowedUpdate, str]]] = None,
    ):
        if not 1 <= limit <= MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")
        if timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")

        self.bot = bot
        self.limit = limit
        self.timeout = timeout
        self.allowed_updates = (
            [AllowedUpdate(item) for item in allowed_updates]
            if allowed_updates is not None
            else None
        )
        self._offset = offset
        self._state = PollerState.IDLE
        # Fetched by updates() but not yet handed to its consumer
        self._pending: list[Update] = []

    @classmethod
    def from_settings(cls, bot: Bot, settings: Optional[Settings] = None) -> UpdatePoller:
        settings = settings or get_settings()
        return cls(
            bot,
            limit=settings.polling_limit,
            timeout=settings.polling_timeout,
            allowed_updates=settings.allowed_updates,
        )

    @property
    def offset(self) -> Optional[int]:
        return self._offset

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def pending(self) -> list[Update]:
        """Updates fetched for ``updates()`` that its consumer has not received yet."""
        return list(self._pending)

    def reset_offset(self, offset: Optional[int]) -> None:
        """
        Move the watermark explicitly, e.g. to a negative tail offset.

        Updates still pending for ``updates()`` are discarded.
        """
        if self._state is PollerState.POLLING:
            raise RuntimeError("Cannot reset offset while a poll is in flight")
        self._offset = offset
        self._pending.clear()

    async def poll(self) -> list[Update]:
        """
        Run one ``getUpdates`` cycle.

        Returns:
            New updates in ascending id order (possibly empty)

        Raises:
            RequestError: the call failed; offset is unchanged
            RuntimeError: another poll is already in flight
        """
        if self._state is PollerState.POLLING:
            raise RuntimeError("A getUpdates call is already in flight")

        self._state = PollerState.POLLING
        try:
            updates = await self.bot.get_updates(
                offset=self._offset,
                limit=self.limit,
                timeout=self.timeout,
                allowed_updates=self.allowed_updates,
            ).send()
        finally:
            self._state = PollerState.IDLE

        updates = sorted(updates, key=lambda update: update.id)

        if self._offset is not None and self._offset > 0:
            fresh = [update for update in updates if update.id >= self._offset]
            if len(fresh) != len(updates):
                logger.warning(
                    f"Dropped {len(updates) - len(fresh)} update(s) below offset {self._offset}"
                )
            updates = fresh

        if updates:
            next_offset = updates[-1].id + 1
            if self._offset is None or next_offset > self._offset:
                self._offset = next_offset
            logger.debug(f"Received {len(updates)} update(s), offset -> {self._offset}")

        return updates

    async def updates(self) -> AsyncIterator[Update]:
        """
        Yield updates forever, each exactly once.

        The rest of a batch is kept on the poller until the consumer has
        received it, and the next ``getUpdates`` (which confirms the batch on
        the server) is only sent once it is drained. Breaking out of the loop
        or raising from its body therefore loses nothing: iterating again
        first yields what was left over. Request errors propagate to the
        consumer; iterating again resumes from the last confirmed offset.
        """
        while True:
            if not self._pending:
                self._pending = await self.poll()
            while self._pending:
                yield self._pending.pop(0)
