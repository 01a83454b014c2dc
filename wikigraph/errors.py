"""
Exceptions shared by the client, the page model and the graph.
"""
from __future__ import annotations

from typing import Optional


class WikiGraphError(Exception):
    """Base class for every error raised by wikigraph."""

    retryable: bool = False


class LanguageUnsupported(WikiGraphError):
    """
    Raised when a language code has no Wikipedia domain.
    """
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Language '{code}' has no Wikipedia edition")


class HeaderError(WikiGraphError):
    """
    Raised while building a client configuration when a header name or value
    is not a legal HTTP token, or when a header name is given twice.
    """


# --- Fetch errors ---
# These are never raised by WikiClient.fetch itself; they travel inside
# a FetchResult and are raised by FetchResult.unwrap().

class FetchError(WikiGraphError):
    """A request failed after it was issued."""


class BackendError(FetchError):
    """The HTTP transport failed before a status code was available."""
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Error with HTTP backend: {detail}")


class NotFound(FetchError):
    """Basically a 404 for Wikipedia pages."""
    def __init__(self, url: Optional[str] = None):
        self.url = url
        super().__init__(f"Page not found at URL '{url}'" if url else "Page not found")


class UnknownStatus(FetchError):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Unknown response code: '{status_code}'")


class TooManyRedirects(FetchError):
    retryable = True

    def __init__(self, budget: int):
        self.budget = budget
        super().__init__(f"Too many redirects (budget was {budget})")


class Timeout(FetchError):
    retryable = True

    def __init__(self, seconds: Optional[float] = None):
        self.seconds = seconds
        if seconds is None:
            super().__init__("Failed to get page before timeout")
        else:
            super().__init__(f"Failed to get page within {seconds:g}s")


class NoBody(FetchError):
    """A 2xx response whose body was empty or could not be decoded."""
    def __init__(self, detail: str = "Failed to find page body"):
        super().__init__(detail)


# --- Payload errors ---

class DeserializationError(WikiGraphError):
    """The response text is not a payload of the requested kind."""


class PathinfoParseError(WikiGraphError):
    """
    Raised when the canonical page identity cannot be read from a payload,
    e.g. an API error object returned for a page that does not exist.
    """
    def __init__(self, detail: str = "Failed to parse pathinfo from body"):
        super().__init__(detail)


class WikipediaUrlError(WikiGraphError):
    """A URL or path does not point at a Wikipedia article."""


class InvalidHost(WikipediaUrlError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"URL host is not the wikipedia domain: '{url}'")


class InvalidPath(WikipediaUrlError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"URL path does not lead to a wiki: '{url}'")


# --- Graph errors ---

class ExpansionError(WikiGraphError):
    """Misuse of the expand operation. Not retried automatically."""


class NodeNotFound(ExpansionError):
    def __init__(self, index: int):
        self.index = index
        super().__init__(f"No node at index {index}")


class PageNotLoaded(ExpansionError):
    '''
    Raised when expanding a node whose page body has not been fetched yet.
    The caller is expected to load the page and try again.
    '''
    def __init__(self, index: int, pathinfo: str):
        self.index = index
        self.pathinfo = pathinfo
        super().__init__(f"Page '{pathinfo}' at index {index} has no body loaded")
