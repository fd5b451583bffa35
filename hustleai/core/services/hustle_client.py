"""Core client facade for the HustleAI backend.

Every domain operation runs the same pipeline: optional cache lookup, the
shared rate-limiter gate, one transport call, then shaping of the payload
into a domain model. Failures never reach the caller as exceptions:
best-effort operations degrade to the local `FallbackEngine`, side-effecting
ones report an explicit FAILED result, and translation retries within its
budget before returning the texts unchanged.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import quote

# Domain Layer Imports
from hustleai.domain.errors import BackendError, RateLimitedError, ResponseParseError
from hustleai.domain.events.api_events import (
    ApiCallDeferred,
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    CacheHit,
    CooldownStarted,
    EventDispatcher,
    EventListener,
    FallbackTriggered,
)
from hustleai.domain.interfaces.cache import CacheService
from hustleai.domain.interfaces.transport import Transport
from hustleai.domain.interfaces.translation_store import TranslationStore
from hustleai.domain.models.ai import (
    ChatReply,
    CoachingAdvice,
    ExperimentEvent,
    FeedbackSubmission,
    FraudReport,
    MatchSet,
    Receipt,
    TaskDraft,
    TaskSummary,
    TranslationBatch,
    WorkerCandidate,
)
from hustleai.domain.models.common import CacheKey, Endpoint, HttpMethod, LanguageCode, UserId
from hustleai.domain.models.requests import DEFAULT_REQUEST_TIMEOUT_S, RequestDescriptor
from hustleai.domain.models.results import OperationResult

# Infrastructure Layer Imports
from hustleai.infrastructure.cache.caching_service import ResponseCache
from hustleai.infrastructure.config.settings import ClientSettings
from hustleai.infrastructure.fallback.fallback_engine import FallbackEngine
from hustleai.infrastructure.resilience.api_retry import MaxRetryError, RetryPolicy
from hustleai.infrastructure.resilience.batch_coalescer import DEFAULT_DEBOUNCE_SECONDS, BatchCoalescer
from hustleai.infrastructure.resilience.rate_limiter import RateLimiter
from hustleai.infrastructure.storage.translation_store import DiskTranslationStore
from hustleai.infrastructure.transport.http_transport import HttpTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

# --- Endpoints ---
CHAT_ENDPOINT = Endpoint("/agent/chat")
PARSE_TASK_ENDPOINT = Endpoint("/tasks/parse")
TRANSLATE_ENDPOINT = Endpoint("/translate")
MATCH_ENDPOINT = Endpoint("/trades/match")
FEEDBACK_ENDPOINT = Endpoint("/feedback")
EXPERIMENT_ENDPOINT = Endpoint("/experiments/track")
FRAUD_ENDPOINT = Endpoint("/fraud/report")
HEALTH_ENDPOINT = Endpoint("/health")
COACHING_ENDPOINT = "/users/{user_id}/coaching"

GET = HttpMethod("GET")
POST = HttpMethod("POST")

DEFAULT_SOURCE_LANGUAGE = LanguageCode("en")
TRANSLATION_CONTEXT = "Gig economy app UI text"


def translation_cache_key(text: str, target: LanguageCode, source: LanguageCode) -> CacheKey:
    return CacheKey(f"translate {source}->{target} {text.strip()}")


class HustleAIClient:
    """The single entry point for the backend's domain operations."""

    def __init__(
        self,
        transport: Transport,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[CacheService] = None,
        fallback: Optional[FallbackEngine] = None,
        retry_policy: Optional[RetryPolicy] = None,
        translation_store: Optional[TranslationStore] = None,
        events: Optional[EventDispatcher] = None,
        request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        debounce_s: float = DEFAULT_DEBOUNCE_SECONDS,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        """Initializes the client.

        Components left as None get their defaults. Tests inject a fake
        `sleep` (and a limiter built on a fake clock) to control time.

        Args:
            transport: Executes single requests.
            rate_limiter: Shared gate in front of every backend call.
            cache: Response cache for read-style operations.
            fallback: Local stand-in for best-effort operations.
            retry_policy: Retry budget for the translation path.
            translation_store: Persisted translations consulted after the response cache.
            events: Dispatcher receiving the call lifecycle events.
            request_timeout_s: Timeout applied to each request.
            debounce_s: Quiet period before coalesced translations are sent.
            sleep: Coroutine used by the default limiter, retry policy and coalescer.
        """
        self.transport = transport
        self.events = events or EventDispatcher()
        self.rate_limiter = rate_limiter or RateLimiter(sleep=sleep)
        self.cache = cache if cache is not None else ResponseCache()
        self.fallback = fallback or FallbackEngine()
        self.retry_policy = retry_policy or RetryPolicy(self.rate_limiter, events=self.events, sleep=sleep)
        self.translation_store = translation_store
        self.request_timeout_s = request_timeout_s
        self.coalescer = BatchCoalescer(
            self._translate_for_coalescer,
            rate_limiter=self.rate_limiter,
            debounce_s=debounce_s,
            events=self.events,
            sleep=sleep,
        )
        logger.info(f"HustleAIClient initialized (timeout={request_timeout_s}s)")

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        listener: Optional[EventListener] = None,
        transport: Optional[Transport] = None,
    ) -> "HustleAIClient":
        """Builds a client and its collaborators from typed settings."""
        events = EventDispatcher(listener)
        rate_limiter = RateLimiter(min_interval=settings.min_interval_s)
        return cls(
            transport=transport or HttpTransport(settings.base_url),
            rate_limiter=rate_limiter,
            cache=ResponseCache(max_items=settings.cache_max_items, ttl=settings.cache_ttl_s),
            retry_policy=RetryPolicy(rate_limiter, max_retries=settings.max_retries, events=events),
            translation_store=DiskTranslationStore(settings.state_dir / "translations"),
            events=events,
            request_timeout_s=settings.request_timeout_s,
            debounce_s=settings.debounce_s,
        )

    async def aclose(self) -> None:
        """Resolves pending translations to their originals and releases the transport and store."""
        await self.coalescer.aclose()
        await self.transport.aclose()
        if self.translation_store is not None:
            self.translation_store.close()
        logger.info("HustleAIClient closed")

    async def __aenter__(self) -> "HustleAIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Request pipeline ---

    def _request(
        self,
        endpoint: Endpoint,
        method: HttpMethod = POST,
        body: Optional[Dict[str, Any]] = None,
        cache_eligible: bool = False,
    ) -> RequestDescriptor:
        return RequestDescriptor(
            endpoint=endpoint,
            method=method,
            body=body,
            cache_eligible=cache_eligible,
            timeout_s=self.request_timeout_s,
        )

    async def _send(self, request: RequestDescriptor) -> Any:
        """One transport call with lifecycle events; no gate, no cache."""
        self.events.dispatch(ApiCallInitiated(endpoint=request.endpoint, method=request.method))
        start_time = time.perf_counter()
        try:
            payload = await self.transport.execute(request)
        except BackendError as e:
            self.events.dispatch(ApiCallFailed(endpoint=request.endpoint, error_kind=e.kind.value, error_message=str(e)))
            raise
        latency_ms = (time.perf_counter() - start_time) * 1000
        self.events.dispatch(ApiCallSucceeded(endpoint=request.endpoint, latency_ms=latency_ms))
        return payload

    async def _gated_send(self, request: RequestDescriptor) -> Any:
        waited = await self.rate_limiter.acquire()
        if waited > 0:
            self.events.dispatch(ApiCallDeferred(endpoint=request.endpoint, wait_time_seconds=waited))
        try:
            return await self._send(request)
        except RateLimitedError as e:
            self._note_rate_limited(request.endpoint, e)
            raise

    def _note_rate_limited(self, endpoint: Endpoint, error: RateLimitedError) -> None:
        self.rate_limiter.note_rate_limited(error.retry_after)
        self.events.dispatch(CooldownStarted(endpoint=endpoint, retry_after_seconds=error.retry_after))

    async def _fetch(
        self,
        request: RequestDescriptor,
        shape: Callable[[Any], T],
        bypass_cache: bool = False,
        cache_ttl: Optional[float] = None,
    ) -> Tuple[T, bool]:
        """Cache lookup, gated call and shaping. Returns (value, served_from_cache).

        Only payloads that shape cleanly are cached.

        Raises:
            BackendError: Classified failure of the call or of the shaping step.
        """
        key = request.cache_key()
        use_cache = request.cache_eligible and not bypass_cache
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                self.events.dispatch(CacheHit(endpoint=request.endpoint))
                return shape(cached), True

        payload = await self._gated_send(request)
        value = shape(payload)
        if request.cache_eligible:
            self.cache.set(key, payload, ttl=cache_ttl)
        return value, False

    async def _best_effort(
        self,
        operation: str,
        request: RequestDescriptor,
        shape: Callable[[Any], T],
        fallback: Callable[[], T],
        bypass_cache: bool = False,
        cache_ttl: Optional[float] = None,
    ) -> OperationResult[T]:
        try:
            value, cached = await self._fetch(request, shape, bypass_cache, cache_ttl)
        except BackendError as e:
            logger.warning(f"{operation} falling back to local answer ({e.kind.value}): {e}")
            self.events.dispatch(FallbackTriggered(operation=operation, reason=e.kind.value))
            return OperationResult.fallback(fallback(), e.kind)
        return OperationResult.success(value, cached=cached)

    async def _recorded(self, operation: str, request: RequestDescriptor) -> OperationResult[Receipt]:
        try:
            receipt, _ = await self._fetch(request, Receipt.from_payload)
        except BackendError as e:
            logger.error(f"{operation} was not recorded ({e.kind.value}): {e}")
            return OperationResult.failure(Receipt.not_recorded(str(e)), e.kind)
        if not receipt.recorded:
            logger.warning(f"{operation} rejected by backend: {receipt.message}")
            return OperationResult.failure(receipt, None)
        return OperationResult.success(receipt)

    # --- Best-effort operations ---

    async def chat(self, user_id: UserId, message: str) -> OperationResult[ChatReply]:
        """Sends a chat message to the assistant agent."""
        if not message or not message.strip():
            raise ValueError("message must not be empty")
        request = self._request(CHAT_ENDPOINT, body={"userId": user_id, "message": message})
        return await self._best_effort("chat", request, ChatReply.from_payload, lambda: self.fallback.chat(message))

    async def parse_task(
        self,
        user_id: UserId,
        text: str,
        bypass_cache: bool = False,
        cache_ttl: Optional[float] = None,
    ) -> OperationResult[TaskDraft]:
        """Turns a free-text request into a task draft."""
        if not text or not text.strip():
            raise ValueError("text must not be empty")
        request = self._request(PARSE_TASK_ENDPOINT, body={"userId": user_id, "input": text}, cache_eligible=True)
        return await self._best_effort(
            "parse_task",
            request,
            TaskDraft.from_payload,
            lambda: self.fallback.parse_task(text),
            bypass_cache=bypass_cache,
            cache_ttl=cache_ttl,
        )

    async def match_trades(
        self,
        task: TaskSummary,
        candidates: Sequence[WorkerCandidate],
        bypass_cache: bool = False,
        cache_ttl: Optional[float] = None,
    ) -> OperationResult[MatchSet]:
        """Ranks candidate workers for a task."""
        body = {"task": task.to_payload(), "candidates": [c.to_payload() for c in candidates]}
        request = self._request(MATCH_ENDPOINT, body=body, cache_eligible=True)
        return await self._best_effort(
            "match_trades",
            request,
            MatchSet.from_payload,
            lambda: self.fallback.match_trades(task, candidates),
            bypass_cache=bypass_cache,
            cache_ttl=cache_ttl,
        )

    async def get_coaching(
        self,
        user_id: UserId,
        context: Optional[str] = None,
        bypass_cache: bool = False,
        cache_ttl: Optional[float] = None,
    ) -> OperationResult[CoachingAdvice]:
        """Fetches personal coaching for a worker."""
        body = {"context": context} if context else {}
        request = self._request(Endpoint(COACHING_ENDPOINT.format(user_id=quote(user_id, safe=""))), body=body, cache_eligible=True)
        return await self._best_effort(
            "get_coaching",
            request,
            CoachingAdvice.from_payload,
            lambda: self.fallback.coaching(context),
            bypass_cache=bypass_cache,
            cache_ttl=cache_ttl,
        )

    # --- Translation (bulk path) ---

    async def _send_translation(
        self,
        texts: List[str],
        target: LanguageCode,
        source: LanguageCode,
        context: str,
    ) -> List[Optional[str]]:
        body = {"text": texts, "targetLanguage": target, "sourceLanguage": source, "context": context}
        payload = await self._send(self._request(TRANSLATE_ENDPOINT, body=body))
        translations = TranslationBatch.parse_translations(payload)
        if len(translations) != len(texts):
            raise ResponseParseError(
                f"Expected {len(texts)} translation(s), got {len(translations)}", TRANSLATE_ENDPOINT
            )
        return translations

    async def translate(
        self,
        texts: Sequence[str],
        target: LanguageCode,
        source: LanguageCode = DEFAULT_SOURCE_LANGUAGE,
        context: str = TRANSLATION_CONTEXT,
        bypass_cache: bool = False,
    ) -> OperationResult[TranslationBatch]:
        """Translates texts in one bulk call, with retries.

        Texts already cached are not sent again. When the retry budget runs
        out the texts that could not be translated come back unchanged and
        the result is tagged DEGRADED.
        """
        if target == source:
            return OperationResult.success(TranslationBatch(self.fallback.translate(texts), target, source))

        known: Dict[str, str] = {}
        missing: List[str] = []
        for text in texts:
            normalized = text.strip()
            if not normalized or normalized in known or normalized in missing:
                continue
            cached = None if bypass_cache else self._lookup_translation(normalized, target, source)
            if cached is not None:
                known[normalized] = cached
            else:
                missing.append(normalized)

        if not missing:
            return OperationResult.success(self._assemble(texts, known, target, source), cached=bool(texts))

        try:
            translations = await self.retry_policy.execute_with_retry(
                self._send_translation, missing, target, source, context, endpoint_name=TRANSLATE_ENDPOINT
            )
        except MaxRetryError as e:
            kind = e.original_exception.kind
            logger.warning(f"Translation to '{target}' gave up after {e.attempts} attempt(s); returning originals")
            self.events.dispatch(FallbackTriggered(operation="translate", reason=kind.value))
            return OperationResult.fallback(self._assemble(texts, known, target, source), kind)

        for normalized, value in zip(missing, translations):
            if value is not None:
                known[normalized] = value
                self._remember_translation(normalized, value, target, source)

        return OperationResult.success(self._assemble(texts, known, target, source))

    def _assemble(
        self,
        texts: Sequence[str],
        known: Dict[str, str],
        target: LanguageCode,
        source: LanguageCode,
    ) -> TranslationBatch:
        """Known translations in input order; the local fallback fills the gaps."""
        originals = self.fallback.translate(texts)
        results = [known.get(text.strip(), original) for text, original in zip(texts, originals)]
        return TranslationBatch(results, target, source)

    def _lookup_translation(self, text: str, target: LanguageCode, source: LanguageCode) -> Optional[str]:
        key = translation_cache_key(text, target, source)
        cached = self.cache.get(key)
        if cached is not None or self.translation_store is None:
            return cached
        stored = self.translation_store.get(text, target, source)
        if stored is not None:
            self.cache.set(key, stored)
        return stored

    def _remember_translation(self, text: str, value: str, target: LanguageCode, source: LanguageCode) -> None:
        self.cache.set(translation_cache_key(text, target, source), value)
        if self.translation_store is not None:
            self.translation_store.set(text, value, target, source)

    async def preload_language(
        self,
        target: LanguageCode,
        texts: Sequence[str],
        source: LanguageCode = DEFAULT_SOURCE_LANGUAGE,
    ) -> OperationResult[TranslationBatch]:
        """Translates a set of common phrases ahead of time so later lookups hit the cache."""
        logger.info(f"Preloading {len(texts)} phrase(s) for '{target}'")
        return await self.translate(texts, target, source=source)

    def clear_translation_cache(self, language: Optional[LanguageCode] = None) -> None:
        """Forgets stored translations, all of them or only those into `language`.

        The short-lived response cache is emptied as a whole.
        """
        if self.translation_store is not None:
            self.translation_store.clear(language)
        self.cache.clear()

    async def _translate_for_coalescer(self, texts: List[str], target: LanguageCode) -> List[str]:
        result = await self.translate(texts, target)
        return result.value.translations

    async def translate_text(self, text: str, target: LanguageCode) -> str:
        """Translates one text through the coalescing queue.

        Requests arriving within the debounce window share one bulk call.
        Returns the text unchanged when it cannot be translated.
        """
        if target == DEFAULT_SOURCE_LANGUAGE:
            return text
        cached = self._lookup_translation(text.strip(), target, DEFAULT_SOURCE_LANGUAGE)
        if cached is not None:
            return cached
        return await self.coalescer.enqueue(text, target)

    # --- Side-effecting operations ---

    async def submit_feedback(self, feedback: FeedbackSubmission) -> OperationResult[Receipt]:
        request = self._request(FEEDBACK_ENDPOINT, body=feedback.to_payload())
        return await self._recorded("submit_feedback", request)

    async def track_experiment(self, event: ExperimentEvent) -> OperationResult[Receipt]:
        request = self._request(EXPERIMENT_ENDPOINT, body=event.to_payload())
        return await self._recorded("track_experiment", request)

    async def report_fraud(self, report: FraudReport) -> OperationResult[Receipt]:
        request = self._request(FRAUD_ENDPOINT, body=report.to_payload())
        return await self._recorded("report_fraud", request)

    # --- Health ---

    async def check_health(self, timeout_s: Optional[float] = None) -> Dict[str, Any]:
        """Issues the lightweight health request.

        Skips the limiter's request spacing and the cache so the monitor sees
        the backend as it is right now, but never goes out during a 429
        cooldown. A 429 on the health endpoint opens the cooldown like any
        other.

        Raises:
            RateLimitedError: A cooldown is in force; nothing was sent.
            BackendError: The classified failure; the health monitor turns it
                into an offline status.
        """
        remaining = self.rate_limiter.cooldown_remaining()
        if remaining > 0:
            logger.info(f"Skipping health request, rate limit cooldown has {remaining:.1f}s left")
            raise RateLimitedError(remaining, HEALTH_ENDPOINT)

        request = RequestDescriptor(
            endpoint=HEALTH_ENDPOINT,
            method=GET,
            timeout_s=timeout_s if timeout_s is not None else self.request_timeout_s,
        )
        try:
            payload = await self._send(request)
        except RateLimitedError as e:
            self._note_rate_limited(HEALTH_ENDPOINT, e)
            raise
        if not isinstance(payload, dict):
            raise ResponseParseError("Health response is not a JSON object", HEALTH_ENDPOINT)
        return payload
