"""Request coalescing for the translation path.

Single-text translation requests are collected in a pending map keyed by
(language, normalized text). A trailing-edge debounce timer is re-armed on
every enqueue; once it stays quiet for the debounce window the pending map
is flushed as one bulk call per language. While the rate limiter reports an
active cooldown the flush waits it out. Items arriving while a flush is in
flight are collected for the next one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from hustleai.domain.events.api_events import BatchFlushed, EventDispatcher
from hustleai.domain.models.common import LanguageCode, TranslationKey
from hustleai.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5

# Receives the distinct texts for one language; returns translations in the same order
BatchHandler = Callable[[List[str], LanguageCode], Awaitable[List[str]]]


def normalize_text(text: str) -> str:
    return text.strip()


class BatchCoalescer:
    """Debounces and merges translation requests into bulk calls."""

    def __init__(
        self,
        handler: BatchHandler,
        rate_limiter: Optional[RateLimiter] = None,
        debounce_s: float = DEFAULT_DEBOUNCE_SECONDS,
        events: Optional[EventDispatcher] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the coalescer.

        Args:
            handler: Coroutine performing one bulk call. It is expected to
                degrade on its own; an exception here resolves the batch to
                the original texts.
            rate_limiter: Consulted for an active cooldown before flushing.
            debounce_s: Quiet period that triggers a flush.
            events: Dispatcher for `BatchFlushed` events.
            sleep: Coroutine used for the debounce and cooldown waits.
        """
        self._handler = handler
        self._rate_limiter = rate_limiter
        self.debounce_s = debounce_s
        self.events = events or EventDispatcher()
        self._sleep = sleep
        self._pending: Dict[TranslationKey, asyncio.Future] = {}
        self._timer: Optional[asyncio.Task] = None
        self._flushing = False
        logger.info(f"BatchCoalescer initialized (debounce={debounce_s}s)")

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def flushing(self) -> bool:
        return self._flushing

    async def enqueue(self, text: str, language: LanguageCode) -> str:
        """Queues a text for translation and waits for its batch to resolve.

        Identical (language, text) pairs share one slot and one result.
        Blank text resolves immediately to itself.
        """
        normalized = normalize_text(text)
        if not normalized:
            return text

        key: TranslationKey = (language, normalized)
        future = self._pending.get(key)
        if future is None:
            future = asyncio.get_running_loop().create_future()
            self._pending[key] = future
            logger.debug(f"Queued text for '{language}' (pending: {len(self._pending)})")
        self._arm()
        result = await asyncio.shield(future)
        return text if result == normalized else result

    def _arm(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.ensure_future(self._fire_after_quiet_period())

    async def _fire_after_quiet_period(self) -> None:
        await self._sleep(self.debounce_s)

        if self._rate_limiter is not None:
            remaining = self._rate_limiter.cooldown_remaining()
            while remaining > 0:
                logger.info(f"Batch flush deferred {remaining:.1f}s for rate-limit cooldown")
                await self._sleep(remaining)
                remaining = self._rate_limiter.cooldown_remaining()

        if self._flushing:
            # The running flush re-arms when it finishes if anything is left
            logger.debug("Flush already in progress; batch waits for the next cycle")
            return

        # Detach so a later enqueue re-arms instead of cancelling this flush
        self._timer = None
        await self.flush()

    async def flush(self) -> None:
        """Sends everything pending now, one bulk call per language."""
        if self._flushing or not self._pending:
            return

        self._flushing = True
        batch, self._pending = self._pending, {}
        try:
            by_language: Dict[LanguageCode, List[str]] = {}
            for language, text in batch:
                by_language.setdefault(language, []).append(text)

            for language, texts in by_language.items():
                results = await self._run_handler(texts, language)
                translated = results != texts
                for text, result in zip(texts, results):
                    future = batch[(language, text)]
                    if not future.done():
                        future.set_result(result)
                self.events.dispatch(BatchFlushed(language=language, item_count=len(texts), translated=translated))
                logger.info(f"Flushed {len(texts)} text(s) for '{language}'")
        finally:
            # Anything not settled above (e.g. cancellation) falls back to identity
            for (_, text), future in batch.items():
                if not future.done():
                    future.set_result(text)
            self._flushing = False

        if self._pending:
            self._arm()

    async def _run_handler(self, texts: List[str], language: LanguageCode) -> List[str]:
        try:
            results = await self._handler(texts, language)
        except Exception as e:
            logger.error(f"Batch translation to '{language}' failed: {e}", exc_info=True)
            return list(texts)
        if len(results) != len(texts):
            logger.warning(f"Batch translation returned {len(results)} item(s) for {len(texts)}; using originals")
            return list(texts)
        return list(results)

    async def aclose(self) -> None:
        """Cancels the timer and resolves anything still pending to its original text."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        for (_, text), future in self._pending.items():
            if not future.done():
                future.set_result(text)
        self._pending = {}
