"""
URL construction for Wikipedia pages and the MediaWiki action API.
"""
from __future__ import annotations

import urllib.parse
from enum import Enum
from typing import Union

from wikigraph.core.languages import Language

RANDOM_PATHINFO: str = "Special:Random"

# Characters that appear literally in Wikipedia article paths.
_PATH_SAFE = ":/()_,!'*-.~@$;"


class RequestKind(str, Enum):
    """What a request asks for; decides the URL shape and the payload variant."""
    BASIC_PAGE = "basic_page"
    WIKITEXT_API = "wikitext_api"
    LINKS_API = "links_api"

    @property
    def is_api(self) -> bool:
        return self is not RequestKind.BASIC_PAGE


def _language(language: Union[Language, str]) -> Language:
    if isinstance(language, Language):
        return language
    return Language.from_code(language)


def quote_pathinfo(pathinfo: str, safe: str = _PATH_SAFE) -> str:
    """Percent-encode a pathinfo exactly once.

    Already-encoded input is decoded first, so "Caf%C3%A9" and "Café"
    produce the same URL.
    """
    return urllib.parse.quote(urllib.parse.unquote(pathinfo), safe=safe)


def base_url(language: Union[Language, str], kind: RequestKind) -> str:
    lang = _language(language)
    if kind is RequestKind.BASIC_PAGE:
        return f"https://{lang.host}/wiki/"
    return f"https://{lang.host}/w/api.php"


def resolve(language: Union[Language, str], kind: RequestKind, pathinfo: str) -> str:
    """
    Build the absolute URL for `pathinfo` on the given language edition.

    Raises LanguageUnsupported when `language` is a code with no edition.
    For WIKITEXT_API the random page has no single-request form; the client
    resolves it through random_url() first.
    """
    root = base_url(language, kind)

    if kind is RequestKind.BASIC_PAGE:
        return root + quote_pathinfo(pathinfo)

    if kind is RequestKind.LINKS_API and pathinfo == RANDOM_PATHINFO:
        return (
            f"{root}?action=query&format=json&prop=links&pllimit=500&origin=*"
            "&generator=random&grnnamespace=0&grnlimit=1"
        )

    # Query values must also escape '&', '=', '+' and '/'.
    title = quote_pathinfo(pathinfo, safe=":()_,!'*-.~")

    if kind is RequestKind.WIKITEXT_API:
        return f"{root}?origin=*&action=parse&prop=wikitext&format=json&page={title}"

    return f"{root}?action=query&format=json&prop=links&pllimit=500&origin=*&titles={title}"


def api_url(language: Union[Language, str]) -> str:
    """The bare API endpoint, useful as a network test."""
    return base_url(language, RequestKind.LINKS_API) + "?origin=*"


def random_url(language: Union[Language, str]) -> str:
    return (
        base_url(language, RequestKind.LINKS_API)
        + "?action=query&format=json&list=random&rnnamespace=0&rnlimit=1&origin=*"
    )
