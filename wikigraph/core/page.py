"""
Page identity and the two API payload shapes a page body can take.

A Page is identified by its pathinfo, the part of an article URL after
"/wiki/". Its body is optional and is one of:

- LinksPayload: response of action=query&prop=links
- WikitextPayload: response of action=parse&prop=wikitext
"""
from __future__ import annotations

import json
import logging
import re
import urllib.parse
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Optional, Set, Tuple, Type, Union

from wikigraph.core.languages import Language
from wikigraph.core.urls import RequestKind, resolve
from wikigraph.errors import (
    DeserializationError,
    InvalidHost,
    InvalidPath,
    PathinfoParseError,
)

logger = logging.getLogger(__name__)

# Titles never reported as linked pages.
FILTERED_PAGES: Tuple[str, ...] = (
    "Wayback Machine",  # almost every citation links through it
)

# [[Target]], [[Target|Label]], [[Target#Section|Label]]
_WIKILINK_RE = re.compile(
    r"\[\[\s*([^\[\]\|#{}<>\n]+?)\s*(?:#[^\[\]\|\n]*)?(?:\|[^\[\]]*)?\]\]"
)


def normalize_pathinfo(text: str) -> str:
    """
    Canonical form of a page identifier.

    Examples:
      "Norwegian cuisine"   =>   "Norwegian_cuisine"
      "Caf%C3%A9"           =>   "Café"
    """
    return urllib.parse.unquote(text).strip().replace(" ", "_")


def _capitalize_words(text: str) -> str:
    # Whitespace runs collapse to their first character.
    chars = []
    at_word_start = True
    for char in text.strip():
        if char.isspace():
            if not at_word_start:
                chars.append(char)
                at_word_start = True
        elif at_word_start:
            chars.append(char.upper())
            at_word_start = False
        else:
            chars.append(char)
    return "".join(chars)


class PageBody(ABC):
    """A parsed API response for one page."""

    kind: RequestKind

    def __init__(self, data: Dict[str, Any]):
        self.data = data

    @staticmethod
    def from_wire_shape(kind: RequestKind, text: str) -> "PageBody":
        """Parse response text of the given kind.

        Raises DeserializationError for anything that is not a JSON object,
        and always for BASIC_PAGE, which has no structured payload.
        """
        body_type = _BODY_TYPES.get(kind)
        if body_type is None:
            raise DeserializationError(
                f"Can't deserialize a page body from a '{kind.value}' response"
            )
        return body_type.from_text(text)

    @classmethod
    def from_text(cls, text: str) -> "PageBody":
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"Failed to deserialize response: {e}") from e
        if not isinstance(data, dict):
            raise DeserializationError(
                f"Expected a JSON object, got {type(data).__name__}"
            )
        return cls(data)

    @abstractmethod
    def canonical_identity(self) -> str:
        """The pathinfo the payload says it belongs to."""

    @abstractmethod
    def _link_candidates(self) -> Iterator[Tuple[str, str]]:
        """Yields (target title, text to check against FILTERED_PAGES)."""

    def _is_filtered(self, target: str, context: str) -> bool:
        return any(page in context for page in FILTERED_PAGES)

    def linked_pages(self) -> Iterator[str]:
        """
        Lazily yields the pathinfo of every linked page, first occurrence
        only, skipping FILTERED_PAGES. Missing link containers yield nothing.
        """
        seen: Set[str] = set()
        for target, context in self._link_candidates():
            pathinfo = normalize_pathinfo(target)
            if not pathinfo or pathinfo in seen:
                continue
            seen.add(pathinfo)
            if self._is_filtered(target, context):
                continue
            yield pathinfo

    def to_string(self) -> str:
        return json.dumps(self.data)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.data == other.data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(...)"


class LinksPayload(PageBody):
    """
    query.pages is an object keyed by page id, or a list when the request
    used formatversion=2. Only the first entry is read.
    """

    kind = RequestKind.LINKS_API

    def _page_entry(self) -> Optional[Dict[str, Any]]:
        query = self.data.get("query")
        if not isinstance(query, dict):
            return None
        pages = query.get("pages")
        if isinstance(pages, dict):
            pages = list(pages.values())
        if not isinstance(pages, list) or not pages or not isinstance(pages[0], dict):
            return None
        return pages[0]

    def canonical_identity(self) -> str:
        entry = self._page_entry()
        title = entry.get("title") if entry else None
        if not isinstance(title, str) or not title:
            raise PathinfoParseError("Links payload has no query.pages[].title")
        return normalize_pathinfo(title)

    def _link_candidates(self) -> Iterator[Tuple[str, str]]:
        entry = self._page_entry()
        links = entry.get("links") if entry else None
        if not isinstance(links, list):
            return
        for link in links:
            title = link.get("title") if isinstance(link, dict) else None
            if isinstance(title, str):
                yield title, title

    def _is_filtered(self, target: str, context: str) -> bool:
        # Titles are exact; "Wayback Machine (band)" is a real article
        return target.strip() in FILTERED_PAGES


class WikitextPayload(PageBody):
    """
    parse.wikitext is either the markup itself (formatversion=2) or an
    object holding it under "*".
    """

    kind = RequestKind.WIKITEXT_API

    def canonical_identity(self) -> str:
        parse = self.data.get("parse")
        title = parse.get("title") if isinstance(parse, dict) else None
        if not isinstance(title, str) or not title:
            raise PathinfoParseError("Wikitext payload has no parse.title")
        return normalize_pathinfo(title)

    def wikitext(self) -> Optional[str]:
        parse = self.data.get("parse")
        wikitext = parse.get("wikitext") if isinstance(parse, dict) else None
        if isinstance(wikitext, dict):
            wikitext = next(iter(wikitext.values()), None)
        return wikitext if isinstance(wikitext, str) else None

    def _link_candidates(self) -> Iterator[Tuple[str, str]]:
        text = self.wikitext()
        if text is None:
            return
        for match in _WIKILINK_RE.finditer(text):
            target = match.group(1)
            # Namespaced and interwiki links (File:, Category:, fr:) are not articles
            if ":" in target:
                continue
            # MediaWiki capitalizes the first letter of every link target
            yield target[:1].upper() + target[1:], match.group(0)


_BODY_TYPES: Dict[RequestKind, Type[PageBody]] = {
    RequestKind.LINKS_API: LinksPayload,
    RequestKind.WIKITEXT_API: WikitextPayload,
}


class Page:
    """A Wikipedia page: an identity and, once fetched, a body."""

    def __init__(self, pathinfo: str, body: Optional[PageBody] = None):
        self._pathinfo = normalize_pathinfo(pathinfo)
        self._body: Optional[PageBody] = None
        if body is not None:
            self.set_body(body)

    # --- Construction ---

    @classmethod
    def from_title(cls, title: str) -> "Page":
        """`Waffle` to get the Waffle page."""
        return cls(title)

    @classmethod
    def from_path(cls, path: str) -> "Page":
        """`/wiki/Waffle` to get the Waffle page."""
        return cls.from_url(urllib.parse.urljoin("https://wikipedia.org/wiki/", path))

    @classmethod
    def from_url(cls, url: str) -> "Page":
        """`https://en.wikipedia.org/wiki/Waffle` to get the Waffle page."""
        parts = urllib.parse.urlsplit(url)
        host = (parts.hostname or "").lower()
        if parts.scheme not in ("http", "https") or not (
            host == "wikipedia.org" or host.endswith(".wikipedia.org")
        ):
            raise InvalidHost(url)

        if not parts.path.startswith("/wiki/"):
            raise InvalidPath(url)
        pathinfo = parts.path[len("/wiki/"):].rstrip("/")
        if not pathinfo:
            raise InvalidPath(url)

        return cls(pathinfo)

    @classmethod
    def parse(cls, text: str) -> "Page":
        """A page from whatever a user typed: a title, a /wiki/ path or a URL."""
        text = text.strip()
        if "://" in text:
            return cls.from_url(text)
        if text.startswith("/"):
            return cls.from_path(text)
        return cls.from_title(text)

    # --- Identity ---

    @property
    def pathinfo(self) -> str:
        return self._pathinfo

    def title(self) -> str:
        """Best guess at the display title, e.g. "list_of_desserts" => "List Of Desserts"."""
        return _capitalize_words(urllib.parse.unquote(self._pathinfo).replace("_", " "))

    def url(self, language: Union[Language, str]) -> str:
        return resolve(language, RequestKind.BASIC_PAGE, self._pathinfo)

    # --- Body ---

    @property
    def body(self) -> Optional[PageBody]:
        return self._body

    def is_loaded(self) -> bool:
        return self._body is not None

    def set_body(self, body: PageBody, follow_identity: bool = True) -> "Page":
        """
        Attach a body. If the body names a different canonical page (a
        redirect resolved by the server, or Special:Random) the identity
        follows it unless `follow_identity` is False; if it names none, the
        identity is left alone.
        """
        try:
            canonical: Optional[str] = body.canonical_identity()
        except PathinfoParseError as e:
            logger.warning("Keeping pathinfo '%s': %s", self._pathinfo, e)
            canonical = None

        self._body = body

        if follow_identity and canonical and canonical != self._pathinfo:
            logger.debug("Pathinfo '%s' resolved to '%s'", self._pathinfo, canonical)
            self._pathinfo = canonical

        return self

    def unload_body(self) -> "Page":
        self._body = None
        return self

    def linked_pages(self) -> Optional[Iterator["Page"]]:
        """Unbound pages for every link, or None if the body is not loaded."""
        if self._body is None:
            return None
        return (Page(pathinfo) for pathinfo in self._body.linked_pages())

    def copy(self) -> "Page":
        page = Page(self._pathinfo)
        page._body = self._body
        return page

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Page):
            return NotImplemented
        return self._pathinfo == other._pathinfo

    __hash__ = None  # identity can change when a body is attached

    def __repr__(self) -> str:
        state = "loaded" if self._body is not None else "unloaded"
        return f"Page({self._pathinfo!r}, {state})"
