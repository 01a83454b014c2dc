"""
In-flight fetches.

A PendingFetch follows one logical request through its redirect hops and
completes exactly once with a FetchResult. Two implementations share the
hop logic and differ only in how a hop's outcome gets back to them:

- BlockingFetch: a driver thread waits on a one-shot channel per hop,
  bounded by the remaining timeout.
- PolledFetch: each hop writes into a single-slot cell which the owner reads
  from poll(), e.g. once per UI tick or from an asyncio loop. Nothing
  blocks; the timeout is measured against wall-clock time.
"""
from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
import urllib.parse
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar

from wikigraph.clients.transport import HopOutcome, HttpTransport
from wikigraph.errors import (
    NoBody,
    NotFound,
    Timeout,
    TooManyRedirects,
    UnknownStatus,
    WikiGraphError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """The terminal outcome of a fetch: a value or an error, never both."""
    value: Optional[T] = None
    error: Optional[WikiGraphError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


OnComplete = Callable[[FetchResult], None]


@dataclass(frozen=True)
class FetchRequest:
    """
    url: first URL to request
    follow_up: turns a successful body into the URL of one more hop, which
        does not count against the redirect budget
    transform: turns the final body into the result value
    """
    url: str
    follow_up: Optional[Callable[[str], str]] = None
    transform: Optional[Callable[[str], Any]] = None


class CompletionCell:
    """Single-slot mailbox shared between a transport worker and a poller."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcome: Optional[HopOutcome] = None

    def put(self, outcome: HopOutcome) -> None:
        # A writer arriving after the reader gave up just overwrites.
        with self._lock:
            self._outcome = outcome

    def take(self) -> Optional[HopOutcome]:
        with self._lock:
            outcome, self._outcome = self._outcome, None
        return outcome


def _response_text(response) -> Optional[str]:
    content = response.content
    if not content:
        return None
    try:
        return content.decode(response.encoding or "utf-8")
    except (UnicodeDecodeError, LookupError):
        return None


class _Hops:
    """Redirect budget, deadline and current URL of one request."""

    def __init__(self, request: FetchRequest, timeout: Optional[float], redirects: int):
        self.url = request.url
        self.follow_up = request.follow_up
        self.transform = request.transform
        self.timeout = timeout
        self.redirects = redirects
        self.budget = redirects
        self.deadline = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def timed_out(self) -> FetchResult:
        return FetchResult(error=Timeout(self.timeout))

    def advance(self, outcome: HopOutcome) -> Optional[FetchResult]:
        """
        Classify one hop. Returns the terminal result, or None when another
        hop to self.url is due.
        """
        if outcome.error is not None:
            return FetchResult(error=outcome.error)

        response = outcome.response
        status = response.status_code
        logger.debug("%s -> %d", self.url, status)

        if 300 <= status < 400 and "location" in response.headers:
            if self.budget == 0:
                return FetchResult(error=TooManyRedirects(self.redirects))
            self.budget -= 1
            self.url = urllib.parse.urljoin(self.url, response.headers["location"])
            logger.info("Redirecting to %s", self.url)
            return None

        if status == 404:
            return FetchResult(error=NotFound(self.url))

        if not 200 <= status < 300:
            return FetchResult(error=UnknownStatus(status))

        text = _response_text(response)
        if text is None:
            return FetchResult(error=NoBody())

        try:
            if self.follow_up is not None:
                self.url, self.follow_up = self.follow_up(text), None
                logger.info("Loading page from url '%s'", self.url)
                return None
            value = self.transform(text) if self.transform is not None else text
        except WikiGraphError as e:
            return FetchResult(error=e)
        return FetchResult(value=value)


class PendingFetch(ABC):
    """One logical fetch in flight. Completes exactly once."""

    def __init__(
        self,
        transport: HttpTransport,
        request: FetchRequest,
        *,
        headers: Dict[str, str],
        timeout: Optional[float],
        redirects: int,
        on_complete: Optional[OnComplete] = None,
    ) -> None:
        self._transport = transport
        self._headers = headers
        self._hops = _Hops(request, timeout, redirects)
        self._on_complete = on_complete
        self._lock = threading.Lock()
        self._result: Optional[FetchResult] = None

    @property
    def url(self) -> str:
        """URL of the current (or last) hop."""
        return self._hops.url

    @abstractmethod
    def start(self) -> "PendingFetch":
        """Issue the first hop."""

    @abstractmethod
    def poll(self) -> Optional[FetchResult]:
        """The result if finished, else None. Never blocks."""

    def done(self) -> bool:
        return self._result is not None

    def result(self) -> Optional[FetchResult]:
        return self._result

    def wait(self, timeout: Optional[float] = None, interval: float = 0.01) -> Optional[FetchResult]:
        """Block until finished or `timeout` seconds pass."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            result = self.poll()
            if result is not None:
                return result
            if deadline is not None and time.monotonic() >= deadline:
                return None
            time.sleep(interval)

    async def wait_async(self, interval: float = 0.01) -> FetchResult:
        """Poll once per event-loop tick until finished."""
        while True:
            result = self.poll()
            if result is not None:
                return result
            await asyncio.sleep(interval)

    def _send(self, deliver: Callable[[HopOutcome], None]) -> None:
        self._transport.send(self._hops.url, self._headers, self._hops.remaining(), deliver)

    def _complete(self, result: FetchResult) -> None:
        with self._lock:
            if self._result is not None:
                raise RuntimeError(f"Fetch of '{self.url}' completed twice")
            self._result = result
        if result.ok:
            logger.debug("Response received from %s", self.url)
        else:
            logger.info("Request to %s failed: %s", self.url, result.error)
        if self._on_complete is not None:
            self._on_complete(result)


class BlockingFetch(PendingFetch):

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._finished = threading.Event()

    def start(self) -> "BlockingFetch":
        thread = threading.Thread(target=self._drive, name="wikigraph-fetch", daemon=True)
        thread.start()
        return self

    def _drive(self) -> None:
        try:
            self._complete(self._run())
        finally:
            self._finished.set()

    def _run(self) -> FetchResult:
        while True:
            if self._hops.expired():
                return self._hops.timed_out()
            # One channel per hop; a reply after the timeout lands in an
            # abandoned queue.
            channel: "queue.Queue[HopOutcome]" = queue.Queue(maxsize=1)
            self._send(channel.put_nowait)
            try:
                outcome = channel.get(timeout=self._hops.remaining())
            except queue.Empty:
                return self._hops.timed_out()
            result = self._hops.advance(outcome)
            if result is not None:
                return result

    def poll(self) -> Optional[FetchResult]:
        return self._result

    def wait(self, timeout: Optional[float] = None, interval: float = 0.01) -> Optional[FetchResult]:
        self._finished.wait(timeout)
        return self._result


class PolledFetch(PendingFetch):
    """Advanced only by poll(); call it from the owning thread."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._cell = CompletionCell()

    def start(self) -> "PolledFetch":
        self._issue()
        return self

    def _issue(self) -> None:
        self._cell = CompletionCell()
        self._send(self._cell.put)

    def poll(self) -> Optional[FetchResult]:
        if self._result is not None:
            return self._result

        outcome = self._cell.take()
        if outcome is None:
            if self._hops.expired():
                self._complete(self._hops.timed_out())
            return self._result

        result = self._hops.advance(outcome)
        if result is None:
            if self._hops.expired():
                self._complete(self._hops.timed_out())
            else:
                self._issue()
            return self._result

        self._complete(result)
        return result


class CompletionMode(str, Enum):
    """How fetch completions reach the caller; chosen when a client is built."""
    BLOCKING = "blocking"
    POLLED = "polled"


PENDING_TYPES: Dict[CompletionMode, Type[PendingFetch]] = {
    CompletionMode.BLOCKING: BlockingFetch,
    CompletionMode.POLLED: PolledFetch,
}
