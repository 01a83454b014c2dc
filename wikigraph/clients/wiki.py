from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional, Union

import httpx

from wikigraph.clients.config import ClientConfig
from wikigraph.clients.pending import (
    PENDING_TYPES,
    CompletionMode,
    FetchRequest,
    OnComplete,
    PendingFetch,
)
from wikigraph.clients.transport import HttpTransport
from wikigraph.core.languages import Language
from wikigraph.core.page import Page, PageBody
from wikigraph.core.urls import RANDOM_PATHINFO, RequestKind, api_url, random_url, resolve
from wikigraph.errors import DeserializationError, NoBody

logger = logging.getLogger(__name__)

PageRef = Union[Page, str]


def _random_title(text: str) -> str:
    """Title out of an action=query&list=random response."""
    try:
        data = json.loads(text)
        title = data["query"]["random"][0]["title"]
    except (ValueError, KeyError, IndexError, TypeError):
        raise NoBody("Random page response has no title") from None
    if not isinstance(title, str):
        raise NoBody("Random page response has no title")
    return title


class WikiClient:
    """
    Fetches Wikipedia pages for one language edition.

    - fetch(): raw text of any URL, following redirects up to the budget
    - fetch_body() / fetch_page(): a page's API payload, parsed
    - get() / load_page(): blocking versions that raise on failure

    Every fetch returns a PendingFetch straight away; its result (or the
    on_complete callback) carries either the value or a FetchError. Whether
    completion arrives through a blocking channel or a polled cell is fixed
    by `mode`.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        client: Optional[httpx.Client] = None,
        mode: CompletionMode = CompletionMode.BLOCKING,
        max_workers: int = 8,
    ) -> None:
        self.config = config or ClientConfig()
        self.mode = CompletionMode(mode)
        self._pending_type = PENDING_TYPES[self.mode]
        self._transport = HttpTransport(client or httpx.Client(), max_workers=max_workers)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "WikiClient":
        return cls(config, **kwargs)

    @property
    def language(self) -> Language:
        return self.config.language

    @property
    def headers(self) -> Dict[str, str]:
        return self.config.header_dict()

    def request_url(self, pathinfo: str, kind: Optional[RequestKind] = None) -> str:
        return resolve(self.language, kind or self.config.kind, pathinfo)

    # --- Fetching ---

    def _start(self, request: FetchRequest, on_complete: Optional[OnComplete]) -> PendingFetch:
        logger.info("Loading page from url '%s'", request.url)
        pending = self._pending_type(
            self._transport,
            request,
            headers=self.headers,
            timeout=self.config.timeout,
            redirects=self.config.redirects,
            on_complete=on_complete,
        )
        return pending.start()

    def _body_request(
        self,
        pathinfo: str,
        kind: Optional[RequestKind],
        wrap: Optional[Callable[[PageBody], Any]] = None,
    ) -> FetchRequest:
        kind = RequestKind(kind or self.config.kind)
        if not kind.is_api:
            raise DeserializationError(
                f"Can't deserialize a page body from a '{kind.value}' response"
            )

        def parse(text: str) -> Any:
            body = PageBody.from_wire_shape(kind, text)
            return wrap(body) if wrap is not None else body

        if kind is RequestKind.WIKITEXT_API and pathinfo == RANDOM_PATHINFO:
            # The parse API has no random generator: ask for a title first.
            return FetchRequest(
                random_url(self.language),
                follow_up=lambda text: resolve(self.language, kind, _random_title(text)),
                transform=parse,
            )
        return FetchRequest(resolve(self.language, kind, pathinfo), transform=parse)

    def fetch(self, url: str, on_complete: Optional[OnComplete] = None) -> PendingFetch:
        """Response text of `url`."""
        return self._start(FetchRequest(url), on_complete)

    def fetch_body(
        self,
        page: PageRef,
        on_complete: Optional[OnComplete] = None,
        kind: Optional[RequestKind] = None,
    ) -> PendingFetch:
        """
        The parsed PageBody of a page.

        Raises DeserializationError right away for BASIC_PAGE, which has no
        structured payload, and LanguageUnsupported if no URL can be built.
        Everything that goes wrong later arrives through the result.
        """
        source = page if isinstance(page, Page) else Page(page)
        return self._start(self._body_request(source.pathinfo, kind), on_complete)

    def fetch_page(
        self,
        page: PageRef,
        on_complete: Optional[OnComplete] = None,
        kind: Optional[RequestKind] = None,
    ) -> PendingFetch:
        """
        Like fetch_body, but the value is a new Page with the body attached
        and its identity canonicalized. The given page is left untouched.
        """
        source = page if isinstance(page, Page) else Page(page)
        request = self._body_request(
            source.pathinfo, kind, wrap=lambda body: Page(source.pathinfo, body)
        )
        return self._start(request, on_complete)

    def random_title(self, on_complete: Optional[OnComplete] = None) -> PendingFetch:
        """Title of a random article, from the Wikimedia API."""
        return self._start(FetchRequest(random_url(self.language), transform=_random_title), on_complete)

    def ping(self, on_complete: Optional[OnComplete] = None) -> PendingFetch:
        """
        Request the bare API endpoint. Failure means either a client side
        error or Wikipedia being down.
        """
        return self._start(
            FetchRequest(api_url(self.language), transform=lambda text: None), on_complete
        )

    # --- Blocking helpers ---

    def get(self, page: PageRef, kind: Optional[RequestKind] = None) -> PageBody:
        """The body of a page. Raises the fetch error on failure."""
        return self.fetch_body(page, kind=kind).wait().unwrap()

    def load_page(self, page: Page, force: bool = False) -> Page:
        """
        Load the body into `page` unless it is already loaded (or `force`).
        """
        if page.is_loaded() and not force:
            return page
        return page.set_body(self.get(page))

    # --- Lifecycle ---

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "WikiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
