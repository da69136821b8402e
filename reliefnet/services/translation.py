"""Translation cache with debounced, batched fills.

UI strings are translated lazily. `translate()` answers from the cache when
it can; on a miss it returns the source text as a placeholder, queues the
text, and (re)starts a short debounce timer. When the timer fires, every
queued text for that language goes out in ONE request to the text-generation
API. Results are written to the cache, persisted, and subscribers are told to
re-read.

Per key:      MISS -> QUEUED -> IN_FLIGHT -> HIT
                       ^            |
                       +-- failure -+   (bounded retries, then dropped)

Per language: IDLE -> QUEUED(deadline) -> FLUSHING -> IDLE
At most one flush is in flight per language.
"""
import hashlib
import json
import logging
import threading
import time
from enum import Enum

from flask import current_app

from reliefnet.services.gemini import (
    GenerationError,
    GenerationOutcome,
    MalformedResponseError,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.8


class KeyState(Enum):
    MISS = 'miss'
    QUEUED = 'queued'
    IN_FLIGHT = 'in_flight'
    HIT = 'hit'


class FlushState(Enum):
    IDLE = 'idle'
    QUEUED = 'queued'
    FLUSHING = 'flushing'


def get_text_hash(text: str) -> str:
    """Generate a hash for the text to use as cache key."""
    return hashlib.sha256(text.encode('utf-8')).hexdigest()[:32]  # Shorter hash is fine


def start_thread_timer(delay, callback):
    """Default timer: a daemon threading.Timer, already started."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


def load_entries(blob) -> dict:
    """Parse a persisted cache blob. Anything malformed yields an empty cache."""
    if not blob:
        return {}
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        logger.warning(f"Translation cache blob is not valid JSON, starting empty: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning("Translation cache blob is not an object, starting empty")
        return {}

    entries = {}
    for text_hash, by_language in data.items():
        if not isinstance(by_language, dict) or not all(
            isinstance(lang, str) and isinstance(value, str)
            for lang, value in by_language.items()
        ):
            logger.warning(f"Translation cache entry {text_hash!r} is malformed, starting empty")
            return {}
        entries[text_hash] = dict(by_language)
    return entries


class _LanguageQueue:
    """Pending work and flush state for one target language."""

    def __init__(self):
        self.pending = {}      # hash -> source text, in arrival order
        self.in_flight = {}    # hash -> source text of the batch being translated
        self.attempts = {}     # hash -> failed attempts so far
        self.state = FlushState.IDLE
        self.deadline = None
        self.not_before = 0.0  # earliest flush time after a failure (backoff)
        self.timer = None
        self.watchdog = None
        self.flight_id = 0
        self.flight_started = None


class TranslationCache:
    """Process-wide (text, language) -> translation cache.

    Args:
        translator: callable(texts, language) -> list of translations in the
            same order; raises GenerationError subclasses on failure
        store: object with read() -> str | None and write(blob)
        default_language: source language; translating into it is a no-op
        debounce_seconds: quiet period before a batch is sent
        max_retries: how many times a failed text is retried before it is dropped
        max_backoff_seconds: cap for the exponential retry delay
        flight_timeout_seconds: a batch running longer than this is abandoned
            and its texts go back to the queue
        quota_cooldown_seconds: pause after the API reports quota exhaustion
        timer_factory: callable(delay, callback) -> started timer with cancel()
        clock: monotonic time source
    """

    def __init__(self, translator, store, default_language='en',
                 debounce_seconds=DEFAULT_DEBOUNCE_SECONDS, max_retries=3,
                 max_backoff_seconds=60.0, flight_timeout_seconds=30.0,
                 quota_cooldown_seconds=300.0, timer_factory=None, clock=time.monotonic):
        self.default_language = default_language
        self.debounce_seconds = debounce_seconds
        self.max_retries = max_retries
        self.max_backoff_seconds = max_backoff_seconds
        self.flight_timeout_seconds = flight_timeout_seconds
        self.quota_cooldown_seconds = quota_cooldown_seconds

        self._translator = translator
        self._store = store
        self._timer_factory = timer_factory or start_thread_timer
        self._clock = clock

        self._lock = threading.RLock()
        self._queues = {}
        self._listeners = []
        self._last_outcome = {}
        self._auth_failed = False
        self._cooldown_until = 0.0

        try:
            blob = store.read()
        except Exception as e:
            logger.warning(f"Could not read translation cache, starting empty: {e}")
            blob = None
        self._entries = load_entries(blob)
        logger.info(f"Translation cache loaded with {len(self._entries)} source text(s)")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def translate(self, text, language):
        """Return the cached translation, or the original text while one is fetched."""
        if not text or language == self.default_language:
            return text

        text_hash = get_text_hash(text)
        with self._lock:
            cached = self._cached(text_hash, language)
            if cached is not None:
                return cached

            # API key known to be invalid: nothing would ever fill the queue
            if self._auth_failed:
                return text

            queue = self._queue(language)
            self._recover_stalled(language, queue)
            if text_hash in queue.pending or text_hash in queue.in_flight:
                return text

            queue.pending[text_hash] = text
            self._schedule(language, queue, self.debounce_seconds)

        return text

    def get_cached(self, text, language):
        """Cached translation or the original text. Never queues anything."""
        if not text or language == self.default_language:
            return text
        with self._lock:
            cached = self._cached(get_text_hash(text), language)
        return text if cached is None else cached

    def subscribe(self, listener):
        """Call listener() after every successful batch fill. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def flush(self, language):
        """Send every queued text for language in one batch.

        Normally called by the debounce timer. Returns the outcome, or None
        when there was nothing to send or a batch is already in flight (the
        running batch reschedules the queue when it finishes).
        """
        with self._lock:
            queue = self._queues.get(language)
            if queue is None:
                return None

            self._recover_stalled(language, queue)
            if queue.state is FlushState.FLUSHING:
                return None

            self._cancel_timer(queue)
            if self._auth_failed:
                queue.pending.clear()
                queue.state = FlushState.IDLE
                return None
            if not queue.pending:
                queue.state = FlushState.IDLE
                return None

            batch = list(queue.pending.items())
            queue.pending = {}
            queue.in_flight = dict(batch)
            queue.state = FlushState.FLUSHING
            queue.flight_id += 1
            flight_id = queue.flight_id
            queue.flight_started = self._clock()
            if self.flight_timeout_seconds:
                queue.watchdog = self._timer_factory(
                    self.flight_timeout_seconds,
                    lambda: self._on_flight_timeout(language, flight_id),
                )

        texts = [text for _, text in batch]
        translated = None
        try:
            translated = self._translator(texts, language)
            if not isinstance(translated, list) or len(translated) != len(texts) \
                    or not all(isinstance(t, str) for t in translated):
                raise MalformedResponseError(
                    f"Expected {len(texts)} translated strings for '{language}'"
                )
            outcome = GenerationOutcome.SUCCESS
        except GenerationError as e:
            logger.warning(f"Translation batch of {len(texts)} for '{language}' failed: {e}")
            outcome = e.outcome
        except Exception as e:
            logger.error(f"Unexpected error translating batch for '{language}': {e}")
            outcome = GenerationOutcome.TRANSIENT_FAILURE

        with self._lock:
            current = queue.flight_id == flight_id and queue.state is FlushState.FLUSHING

            if outcome is GenerationOutcome.SUCCESS:
                self._store_batch(language, queue, batch, translated)
            elif current:
                self._requeue_failed(language, queue, batch, outcome)

            if current:
                if queue.watchdog is not None:
                    queue.watchdog.cancel()
                    queue.watchdog = None
                queue.in_flight = {}
                queue.flight_started = None
                queue.state = FlushState.IDLE
                self._last_outcome[language] = outcome
                # Misses that arrived mid-flight
                if queue.pending:
                    self._schedule(language, queue, self.debounce_seconds)

        if outcome is GenerationOutcome.SUCCESS:
            self._notify()
        return outcome

    def key_state(self, text, language):
        if not text or language == self.default_language:
            return KeyState.HIT
        text_hash = get_text_hash(text)
        with self._lock:
            if self._cached(text_hash, language) is not None:
                return KeyState.HIT
            queue = self._queues.get(language)
            if queue is not None:
                if text_hash in queue.in_flight:
                    return KeyState.IN_FLIGHT
                if text_hash in queue.pending:
                    return KeyState.QUEUED
        return KeyState.MISS

    def flush_state(self, language):
        with self._lock:
            queue = self._queues.get(language)
            return queue.state if queue is not None else FlushState.IDLE

    def deadline(self, language):
        """Clock time at which the queued batch will be sent, or None."""
        with self._lock:
            queue = self._queues.get(language)
            return queue.deadline if queue is not None else None

    def pending(self, language):
        """Source texts waiting to be sent for language, in queue order."""
        with self._lock:
            queue = self._queues.get(language)
            return list(queue.pending.values()) if queue is not None else []

    def last_outcome(self, language):
        with self._lock:
            return self._last_outcome.get(language)

    @property
    def translation_disabled(self):
        return self._auth_failed

    def reset_auth(self):
        """Re-enable translation after the API key has been fixed."""
        with self._lock:
            self._auth_failed = False
        logger.info("Translation re-enabled")

    def cancel(self):
        """Stop every pending timer. In-flight requests are left to finish."""
        with self._lock:
            for queue in self._queues.values():
                self._cancel_timer(queue)
                if queue.state is FlushState.QUEUED:
                    queue.state = FlushState.IDLE

    # ------------------------------------------------------------------
    # Internals (call with self._lock held)
    # ------------------------------------------------------------------

    def _cached(self, text_hash, language):
        return self._entries.get(text_hash, {}).get(language)

    def _queue(self, language):
        queue = self._queues.get(language)
        if queue is None:
            queue = self._queues[language] = _LanguageQueue()
        return queue

    def _cancel_timer(self, queue):
        if queue.timer is not None:
            queue.timer.cancel()
            queue.timer = None
        queue.deadline = None

    def _schedule(self, language, queue, delay):
        """(Re)start the debounce timer. A running flush reschedules on completion."""
        if queue.state is FlushState.FLUSHING:
            return
        if queue.timer is not None:
            queue.timer.cancel()

        now = self._clock()
        delay = max(delay, queue.not_before - now, self._cooldown_until - now)
        queue.deadline = now + delay
        queue.state = FlushState.QUEUED
        queue.timer = self._timer_factory(delay, lambda: self._on_timer(language))

    def _on_timer(self, language):
        self.flush(language)

    def _on_flight_timeout(self, language, flight_id):
        with self._lock:
            queue = self._queues.get(language)
            if queue is None or queue.flight_id != flight_id:
                return
            self._recover_stalled(language, queue, force=True)

    def _recover_stalled(self, language, queue, force=False):
        """Abandon a batch that has been in flight too long and re-arm the timer."""
        if queue.state is not FlushState.FLUSHING or queue.flight_started is None:
            return
        elapsed = self._clock() - queue.flight_started
        if not force and (not self.flight_timeout_seconds or elapsed < self.flight_timeout_seconds):
            return

        logger.warning(
            f"Translation batch for '{language}' timed out after {elapsed:.1f}s, "
            f"re-queueing {len(queue.in_flight)} text(s)"
        )
        queue.pending = {**queue.in_flight, **queue.pending}
        queue.in_flight = {}
        queue.flight_started = None
        if queue.watchdog is not None:
            queue.watchdog.cancel()
            queue.watchdog = None
        # A late answer from the abandoned batch must not touch the state
        queue.flight_id += 1
        queue.state = FlushState.IDLE
        self._last_outcome[language] = GenerationOutcome.TRANSIENT_FAILURE
        if queue.pending:
            self._schedule(language, queue, self.debounce_seconds)

    def _store_batch(self, language, queue, batch, translated):
        for (text_hash, _), value in zip(batch, translated):
            self._entries.setdefault(text_hash, {})[language] = value
            queue.attempts.pop(text_hash, None)
            # Possible after a timed-out batch was re-queued
            queue.pending.pop(text_hash, None)
        queue.not_before = 0.0
        self._persist()
        logger.info(f"Cached {len(batch)} translation(s) for '{language}'")

    def _requeue_failed(self, language, queue, batch, outcome):
        if outcome is GenerationOutcome.AUTH_ERROR:
            self._auth_failed = True
            for text_hash, _ in batch:
                queue.attempts.pop(text_hash, None)
            queue.pending.clear()
            logger.error(
                "Translation API rejected the credentials. Translation is now DISABLED. "
                "Set a valid GEMINI_API_KEY and restart."
            )
            return

        if outcome is GenerationOutcome.QUOTA_EXCEEDED:
            self._cooldown_until = self._clock() + self.quota_cooldown_seconds
            logger.warning(
                f"Translation quota exceeded. Pausing batches for {self.quota_cooldown_seconds}s."
            )

        retried = {}
        dropped = 0
        highest_attempt = 0
        for text_hash, text in batch:
            attempts = queue.attempts.get(text_hash, 0) + 1
            if attempts > self.max_retries:
                queue.attempts.pop(text_hash, None)
                dropped += 1
                continue
            queue.attempts[text_hash] = attempts
            retried[text_hash] = text
            highest_attempt = max(highest_attempt, attempts)

        if dropped:
            logger.warning(
                f"Dropped {dropped} text(s) for '{language}' after {self.max_retries} retries"
            )
        if retried:
            queue.pending = {**retried, **queue.pending}
            queue.not_before = self._clock() + self._backoff(highest_attempt)

    def _backoff(self, attempt):
        return min(self.max_backoff_seconds, self.debounce_seconds * (2 ** attempt))

    def _persist(self):
        """Write the cache, folding in entries other workers stored meanwhile."""
        def merge(blob):
            for text_hash, by_language in load_entries(blob).items():
                mine = self._entries.setdefault(text_hash, {})
                for lang, value in by_language.items():
                    mine.setdefault(lang, value)
            return json.dumps(self._entries, ensure_ascii=False)

        try:
            self._store.update(merge)
        except Exception as e:
            logger.warning(f"Could not persist translation cache: {e}")

    def _notify(self):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.error(f"Translation listener failed: {e}")


class CacheVersion:
    """Counter bumped once per successful fill.

    HTTP clients cannot be called back, so they poll this number and
    re-request their strings when it changes.
    """

    def __init__(self, cache):
        self.value = 0
        self._lock = threading.Lock()
        self.unsubscribe = cache.subscribe(self.bump)

    def bump(self):
        with self._lock:
            self.value += 1


# ----------------------------------------------------------------------
# Flask wiring
# ----------------------------------------------------------------------

def init_translation_cache(app, translator=None, store=None, timer_factory=None):
    """Build the app's TranslationCache from config and keep it in app.extensions.

    translator, store and timer_factory default to Gemini, the configured
    store and background threads.
    """
    from reliefnet.services import gemini
    from reliefnet.services.translation_store import build_store

    previous = app.extensions.get('translation_cache')
    if previous is not None:
        previous.cancel()

    cache = TranslationCache(
        translator=translator or gemini.translate_batch,
        store=store if store is not None else build_store(app.config),
        default_language=app.config['DEFAULT_LANGUAGE'],
        debounce_seconds=app.config['TRANSLATION_DEBOUNCE_MS'] / 1000.0,
        max_retries=app.config['TRANSLATION_MAX_RETRIES'],
        flight_timeout_seconds=app.config['TRANSLATION_FLIGHT_TIMEOUT'],
        timer_factory=timer_factory,
    )
    app.extensions['translation_cache'] = cache
    app.extensions['translation_version'] = CacheVersion(cache)
    return cache


def get_translation_cache() -> TranslationCache:
    return current_app.extensions['translation_cache']


def get_cache_version() -> CacheVersion:
    return current_app.extensions['translation_version']


def translate_report(report_dict: dict, target_lang: str) -> dict:
    """Translate report title and description (placeholders until the batch lands)."""
    if not target_lang:
        return report_dict

    cache = get_translation_cache()
    for field in ('title', 'description'):
        if report_dict.get(field):
            report_dict[field] = cache.translate(report_dict[field], target_lang)

    return report_dict
