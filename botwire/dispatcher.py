"""
Dispatcher: the driving loop around ``UpdatePoller``.

- Keeps exactly one ``getUpdates`` call in flight
- Spawns one task per update, each with its own ``HandlerContext``
- Backs off on failed polls (exponential with jitter, honouring ``retry_after``)
- Isolates handler crashes: they are logged and never stop polling

Per-chat ordering is not enforced; handlers for the same chat may overlap.
"""

from __future__ import annotations

import asyncio
import random
from contextlib import suppress
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from .context import HandlerContext
from .errors import ApiError, RequestError
from .logging_config import get_logger
from .polling import UpdatePoller
from .types import Update

if TYPE_CHECKING:
    from .bot import Bot

logger = get_logger("dispatcher")

Handler = Callable[[HandlerContext], Awaitable[None]]
ErrorHandler = Callable[[BaseException, HandlerContext], Awaitable[None]]

# Pause between failed polls: 1s, 2s, 4s ... up to a minute, ±25%
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 60.0
DEFAULT_JITTER_FACTOR = 0.25


def calculate_backoff(
    attempt: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter_factor: float = DEFAULT_JITTER_FACTOR,
    retry_after: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Pause before the next ``getUpdates`` after a failed one.

    ``attempt`` counts failed polls in a row: 0 after the first failure,
    back to 0 once a poll succeeds. A flood-control ``retry_after`` from the
    server wins over the computed value, still capped at ``max_delay`` so a
    stop request is never ignored for too long. Jitter keeps several bots
    behind one proxy from retrying in lockstep; pass ``rng`` to pin it.
    """
    if retry_after is not None and retry_after > 0:
        return min(float(retry_after), max_delay)

    delay = min(base_delay * 2**attempt, max_delay)
    if jitter_factor:
        spread = delay * jitter_factor
        delay += (rng or random).uniform(-spread, spread)
    return max(delay, 0.0)


class Dispatcher:
    """
    Polls for updates and hands each one to ``handler``.

        async def echo(ctx: HandlerContext) -> None:
            if ctx.message and ctx.message.text:
                await ctx.reply(ctx.message.text)

        await Dispatcher(bot, echo).start_polling()
    """

    def __init__(
        self,
        bot: Bot,
        handler: Handler,
        *,
        poller: Optional[UpdatePoller] = None,
        error_handler: Optional[ErrorHandler] = None,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter_factor: float = DEFAULT_JITTER_FACTOR,
    ):
        self.bot = bot
        self.handler = handler
        self.poller = poller or UpdatePoller.from_settings(bot)
        self.error_handler = error_handler
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter_factor = jitter_factor

        self._tasks: set[asyncio.Task] = set()
        self._stop_event: Optional[asyncio.Event] = None
        self._failures = 0

    @property
    def is_running(self) -> bool:
        return self._stop_event is not None

    async def start_polling(self) -> None:
        """Poll until ``stop()`` is called. Outstanding handlers are awaited on exit."""
        if self._stop_event is not None:
            raise RuntimeError("Dispatcher is already polling")

        self._stop_event = asyncio.Event()
        self._failures = 0
        logger.info("Polling started")

        try:
            while not self._stop_event.is_set():
                updates = await self._poll_or_stop()
                if updates is None:
                    break
                for update in updates:
                    self._spawn(update)
        finally:
            self._stop_event = None
            await self._drain()
            logger.info("Polling stopped")

    def stop(self) -> None:
        """Ask the polling loop to exit; an in-flight poll is abandoned."""
        if self._stop_event is not None:
            self._stop_event.set()

    async def feed_update(self, update: Update) -> None:
        """Run the handler for an update received outside polling (e.g. webhook)."""
        await self._run_handler(HandlerContext(self.bot, update))

    async def _poll_or_stop(self) -> Optional[list[Update]]:
        """One poll cycle. None means stop was requested."""
        assert self._stop_event is not None

        poll_task = asyncio.ensure_future(self.poller.poll())
        stop_task = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({poll_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            poll_task.cancel()
            raise
        finally:
            stop_task.cancel()
            with suppress(asyncio.CancelledError):
                await stop_task

        if not poll_task.done():
            # Shutdown: the long-poll timeout bounds how long this would have taken
            poll_task.cancel()
            with suppress(asyncio.CancelledError):
                await poll_task
            return None

        try:
            updates = poll_task.result()
        except RequestError as e:
            await self._backoff(e)
            return []

        self._failures = 0
        return updates

    async def _backoff(self, error: RequestError) -> None:
        retry_after = error.retry_after if isinstance(error, ApiError) else None
        delay = calculate_backoff(
            self._failures,
            self.base_delay,
            self.max_delay,
            self.jitter_factor,
            retry_after,
        )
        self._failures += 1
        logger.warning(f"getUpdates failed ({error}); retrying in {delay:.1f}s")

        assert self._stop_event is not None
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)

    def _spawn(self, update: Update) -> None:
        task = asyncio.create_task(self._run_handler(HandlerContext(self.bot, update)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_handler(self, ctx: HandlerContext) -> None:
        try:
            await self.handler(ctx)
        except Exception as e:
            logger.error(f"Handler failed for update {ctx.update.id}: {e}", exc_info=True)
            if self.error_handler is not None:
                try:
                    await self.error_handler(e, ctx)
                except Exception as handler_error:
                    logger.error(f"Error handler failed: {handler_error}", exc_info=True)

    async def _drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
