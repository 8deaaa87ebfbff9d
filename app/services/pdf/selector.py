"""
Render strategy selector.

State machine trying, for every candidate in priority order, a native embed
and then an iframe:

    IDLE -> TRYING_EMBED -> TRYING_IFRAME -> (next candidate) ... -> LOADED | EXHAUSTED

An embed error or timeout falls back to an iframe on the same candidate; an
iframe error or timeout advances to the next candidate. Closing the view
(``cancel()``) moves to CANCELLED, cancels every pending timeout and detaches
the last element.

All entry points are serialized by one re-entrant lock. Callbacks arriving
while a transition is running (for example a surface reporting an error from
inside ``attach``) are queued and handled once the running transition is
complete, so there is never more than one attached element.
"""

import enum
import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.services.pdf.errors import (
    CandidatesExhausted, ContainerUnavailable, EmbedFailed, IframeFailed, PdfDeliveryError,
)
from app.services.pdf.references import Candidate, CandidateList
from app.services.pdf.surfaces import STRATEGY_EMBED, STRATEGY_IFRAME
from app.services.pdf.timers import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_EMBED_TIMEOUT = 3.0
DEFAULT_IFRAME_TIMEOUT = 5.0


class RenderState(enum.Enum):
    IDLE = 'idle'
    TRYING_EMBED = 'trying_embed'
    TRYING_IFRAME = 'trying_iframe'
    LOADED = 'loaded'
    EXHAUSTED = 'exhausted'
    CANCELLED = 'cancelled'

    @property
    def terminal(self):
        return self in (RenderState.LOADED, RenderState.EXHAUSTED, RenderState.CANCELLED)


class AttemptStatus(enum.Enum):
    PENDING = 'pending'
    LOADED = 'loaded'
    TIMED_OUT = 'timedOut'
    ERRORED = 'errored'


@dataclass
class RenderAttempt:
    candidate: Candidate
    strategy: str
    deadline: float
    token: CancellationToken
    status: AttemptStatus = AttemptStatus.PENDING
    handle: Optional[object] = None
    error: Optional[str] = None

    def to_dict(self):
        return {
            'url': self.candidate.url,
            'source': self.candidate.source,
            'strategy': self.strategy,
            'status': self.status.value,
            'error': self.error,
        }


@dataclass
class RenderEvent:
    """Item of the selector's event stream.

    ``kind`` is ``state`` for every transition, ``loaded`` when a document is
    displayed and ``error`` for the single terminal failure.
    """
    kind: str
    state: RenderState
    candidate: Optional[Candidate] = None
    strategy: Optional[str] = None
    error: Optional[PdfDeliveryError] = None

    @property
    def message(self):
        return self.error.message if self.error is not None else None


class RenderStrategySelector:
    """Drives one view's attempts to display a PDF from a ``CandidateList``."""

    def __init__(
        self,
        candidates: CandidateList,
        surface,
        timer,
        embed_timeout: float = DEFAULT_EMBED_TIMEOUT,
        iframe_timeout: float = DEFAULT_IFRAME_TIMEOUT,
    ):
        self.candidates = candidates
        self.surface = surface
        self.timer = timer
        self.embed_timeout = embed_timeout
        self.iframe_timeout = iframe_timeout

        self.state = RenderState.IDLE
        self.attempt: Optional[RenderAttempt] = None
        self.attempts: List[RenderAttempt] = []
        self.events: List[RenderEvent] = []
        self.error: Optional[PdfDeliveryError] = None

        self._index = 0
        self._token = CancellationToken()
        self._listeners: List[Callable[[RenderEvent], None]] = []
        self._lock = threading.RLock()
        self._queue = deque()
        self._busy = False
        self._settled = threading.Event()

    # -- public interface -------------------------------------------------

    def subscribe(self, listener):
        """Register ``listener(event)``; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def start(self):
        """Begin with the first candidate. Only valid from IDLE."""
        with self._lock:
            if self.state is not RenderState.IDLE:
                raise RuntimeError(f"Selector already started (state: {self.state.value})")
            self._dispatch(self._begin)

    def cancel(self):
        """Tear down: no callback fires and nothing stays attached afterwards."""
        with self._lock:
            if self.state is RenderState.CANCELLED:
                return
            self._queue.clear()
            self._token.cancel()
            self._detach_current()
            self._set_state(RenderState.CANCELLED)
            self._settled.set()

    def wait(self, timeout=None):
        """Block until the selector is LOADED, EXHAUSTED or CANCELLED."""
        return self._settled.wait(timeout)

    @property
    def tried(self):
        """Number of distinct candidates an attempt was made against."""
        return len({a.candidate.url for a in self.attempts})

    # -- dispatching ------------------------------------------------------

    def _dispatch(self, func, *args):
        with self._lock:
            if self._busy:
                self._queue.append((func, args))
                return
            self._busy = True
            try:
                func(*args)
                while self._queue:
                    queued, queued_args = self._queue.popleft()
                    queued(*queued_args)
            finally:
                self._busy = False

    def _guard(self, attempt, func):
        """Wrap a callback so it only acts for the live, current attempt."""
        def callback(*args):
            with self._lock:
                if attempt.token.cancelled:
                    return
                self._dispatch(self._run_if_current, attempt, func, args)
        return callback

    def _run_if_current(self, attempt, func, args):
        if attempt is not self.attempt or attempt.token.cancelled:
            return
        if attempt.status is not AttemptStatus.PENDING:
            return
        func(attempt, *args)

    # -- transitions ------------------------------------------------------

    def _begin(self):
        if not self.surface.available:
            self._fail(ContainerUnavailable())
            return
        if not self.candidates:
            self._fail(CandidatesExhausted(tried=0))
            return
        self._index = 0
        self._try(RenderState.TRYING_EMBED)

    def _try(self, state):
        if self._token.cancelled:
            return
        candidate = self.candidates[self._index]
        strategy = STRATEGY_EMBED if state is RenderState.TRYING_EMBED else STRATEGY_IFRAME
        timeout = self.embed_timeout if strategy == STRATEGY_EMBED else self.iframe_timeout

        self._detach_current()

        attempt = RenderAttempt(
            candidate=candidate,
            strategy=strategy,
            deadline=self.timer.now() + timeout,
            token=self._token.child(),
        )
        self.attempt = attempt
        self.attempts.append(attempt)
        self._set_state(state, candidate=candidate, strategy=strategy)
        if self._token.cancelled:
            # a listener closed the view
            return
        logger.debug(f"PDF render: trying {strategy} for {candidate.url}")

        try:
            attempt.handle = self.surface.attach(
                strategy,
                candidate.url,
                on_load=self._guard(attempt, self._on_load),
                on_error=self._guard(attempt, self._on_error),
            )
        except ContainerUnavailable as e:
            attempt.status = AttemptStatus.ERRORED
            attempt.error = e.message
            self._fail(e)
            return
        except Exception as e:
            logger.warning(f"PDF render: could not attach {strategy} for {candidate.url}: {e}")
            self._on_error(attempt, str(e))
            return

        if attempt.token.cancelled:
            # torn down while attaching
            attempt.handle.detach()
            return

        handle = self.timer.call_later(timeout, self._guard(attempt, self._on_timeout))
        attempt.token.register(handle.cancel)

    def _on_load(self, attempt):
        attempt.status = AttemptStatus.LOADED
        attempt.token.cancel()
        logger.info(f"PDF render: {attempt.strategy} loaded {attempt.candidate.url}")
        self._set_state(RenderState.LOADED, candidate=attempt.candidate, strategy=attempt.strategy)
        if self._token.cancelled:
            return
        self._emit(RenderEvent('loaded', self.state, attempt.candidate, attempt.strategy))
        self._settled.set()

    def _on_error(self, attempt, reason=None):
        attempt.status = AttemptStatus.ERRORED
        attempt.error = reason
        self._escalate(attempt)

    def _on_timeout(self, attempt):
        attempt.status = AttemptStatus.TIMED_OUT
        attempt.error = 'timed out'
        self._escalate(attempt)

    def _escalate(self, attempt):
        attempt.token.cancel()
        url = attempt.candidate.url
        if attempt.strategy == STRATEGY_EMBED:
            logger.info(f"PDF render: {EmbedFailed(url, attempt.error)} ({attempt.error}), trying iframe")
            self._try(RenderState.TRYING_IFRAME)
            return

        logger.info(f"PDF render: {IframeFailed(url, attempt.error)} ({attempt.error})")
        self._index += 1
        if self._index < len(self.candidates):
            self._try(RenderState.TRYING_EMBED)
        else:
            self._fail(CandidatesExhausted(tried=self.tried))

    def _fail(self, error):
        self._detach_current()
        self.error = error
        logger.warning(f"PDF render failed: {error.message}")
        self._set_state(RenderState.EXHAUSTED)
        if self._token.cancelled:
            return
        self._emit(RenderEvent('error', self.state, error=error))
        self._settled.set()

    # -- helpers ----------------------------------------------------------

    def _detach_current(self):
        attempt = self.attempt
        if attempt is None:
            return
        if attempt.status is AttemptStatus.PENDING:
            attempt.token.cancel()
        if attempt.handle is not None:
            attempt.handle.detach()

    def _set_state(self, state, candidate=None, strategy=None):
        self.state = state
        self._emit(RenderEvent('state', state, candidate, strategy))

    def _emit(self, event):
        if self._silenced(event):
            return
        self.events.append(event)
        for listener in list(self._listeners):
            # an earlier listener may have cancelled
            if self._silenced(event):
                break
            try:
                listener(event)
            except Exception:
                logger.exception("PDF render: event listener failed")

    def _silenced(self, event):
        """Once cancelled, only the CANCELLED state event is delivered."""
        return self.state is RenderState.CANCELLED and event.state is not RenderState.CANCELLED
