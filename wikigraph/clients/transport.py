from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import httpx

from wikigraph.errors import BackendError, FetchError, Timeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HopOutcome:
    """What one GET produced: a response, or a transport-level failure."""
    response: Optional[httpx.Response] = None
    error: Optional[FetchError] = None


Deliver = Callable[[HopOutcome], None]


class HttpTransport:
    """
    Runs single GET requests on a worker pool and hands each outcome to a
    `deliver` callable on the worker thread. Never follows redirects.
    """

    def __init__(self, client: httpx.Client, *, max_workers: int = 8) -> None:
        self._client = client
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="wikigraph-http"
        )

    def send(
        self,
        url: str,
        headers: Dict[str, str],
        timeout: Optional[float],
        deliver: Deliver,
    ) -> None:
        """
        Queue a GET. `deliver` is called exactly once, with a BackendError if
        the transport is closed before the request runs.
        """
        try:
            future = self._executor.submit(self._get, url, headers, timeout, deliver)
        except RuntimeError:
            deliver(HopOutcome(error=BackendError("Transport is closed")))
            return

        def on_done(done: Future) -> None:
            if done.cancelled():
                deliver(HopOutcome(error=BackendError("Transport closed before the request was sent")))

        future.add_done_callback(on_done)

    def _get(
        self,
        url: str,
        headers: Dict[str, str],
        timeout: Optional[float],
        deliver: Deliver,
    ) -> None:
        try:
            response = self._client.get(
                url, headers=headers, timeout=timeout, follow_redirects=False
            )
            outcome = HopOutcome(response=response)
        except httpx.TimeoutException:
            outcome = HopOutcome(error=Timeout(timeout))
        except httpx.HTTPError as e:
            outcome = HopOutcome(error=BackendError(str(e) or type(e).__name__))
        except Exception as e:
            # Anything else escaping httpx (e.g. from a custom transport) still
            # has to reach the waiting request.
            logger.exception("Unexpected error requesting %s", url)
            outcome = HopOutcome(error=BackendError(f"{type(e).__name__}: {e}"))
        deliver(outcome)

    def close(self) -> None:
        """Stop accepting work. Queued requests fail with BackendError; running ones finish."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._client.close()
