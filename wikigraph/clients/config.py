from __future__ import annotations

import re
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wikigraph.core.languages import DEFAULT_LANGUAGE, Language
from wikigraph.core.urls import RequestKind
from wikigraph.errors import HeaderError

VERSION: str = "0.3.0"
USER_AGENT: str = f"wikigraph/{VERSION}"

DEFAULT_TIMEOUT_SECONDS: float = 5.0
DEFAULT_REDIRECTS: int = 2

# RFC 9110 token; values restricted to visible ASCII
_HEADER_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_HEADER_VALUE_RE = re.compile(r"^[\t\x20-\x7e]*$")

Header = Tuple[str, str]


def validate_header(name: str, value: str) -> Header:
    name, value = str(name), str(value)
    if not _HEADER_NAME_RE.match(name):
        raise HeaderError(f"Invalid header name: {name!r}")
    if not _HEADER_VALUE_RE.match(value) or value != value.strip():
        raise HeaderError(f"Invalid value for header '{name}': {value!r}")
    return name, value


class ClientConfig(BaseModel):
    """Settings for a WikiClient.

    Instances are frozen; the with_* methods return modified copies:

        config = ClientConfig().with_language("nb").with_timeout(10)
    """

    model_config = ConfigDict(frozen=True)

    language: Language = Field(DEFAULT_LANGUAGE, description="Edition to request pages from")
    timeout: Optional[float] = Field(
        DEFAULT_TIMEOUT_SECONDS, description="Seconds to wait for a request; None waits indefinitely"
    )
    headers: Tuple[Header, ...] = Field(
        (("User-Agent", USER_AGENT),), description="Headers sent with every request"
    )
    kind: RequestKind = Field(RequestKind.LINKS_API, description="Request kind used for page bodies")
    redirects: int = Field(DEFAULT_REDIRECTS, ge=0, description="Redirect budget per request")

    @field_validator("language", mode="before")
    @classmethod
    def language_from_code(cls, value):
        if isinstance(value, str):
            return Language.from_code(value)
        return value

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("headers", mode="before")
    @classmethod
    def check_headers(cls, value):
        if isinstance(value, dict):
            value = tuple(value.items())
        seen = set()
        headers = []
        for name, header_value in value:
            header = validate_header(name, header_value)
            if header[0].lower() in seen:
                raise HeaderError(f"Header '{header[0]}' is set more than once")
            seen.add(header[0].lower())
            headers.append(header)
        if "user-agent" not in seen:
            headers.insert(0, ("User-Agent", USER_AGENT))
        return tuple(headers)

    def header_dict(self) -> Dict[str, str]:
        return dict(self.headers)

    # --- Builders ---

    def with_language(self, language: Union[Language, str]) -> "ClientConfig":
        if isinstance(language, str):
            language = Language.from_code(language)
        return self.model_copy(update={"language": language})

    def with_timeout(self, timeout: Optional[float]) -> "ClientConfig":
        return ClientConfig(**{**self._fields(), "timeout": timeout})

    def with_kind(self, kind: RequestKind) -> "ClientConfig":
        return self.model_copy(update={"kind": RequestKind(kind)})

    def with_redirects(self, redirects: int) -> "ClientConfig":
        return ClientConfig(**{**self._fields(), "redirects": redirects})

    def with_header(self, name: str, value: str) -> "ClientConfig":
        """
        Add a header. Raises HeaderError for an illegal name or value, or if
        a header with the same name (case-insensitive) is already set.
        """
        return ClientConfig(**{**self._fields(), "headers": self.headers + (validate_header(name, value),)})

    def with_user_agent(self, user_agent: str) -> "ClientConfig":
        """Replace the User-Agent. Recommended when making many requests."""
        name, value = validate_header("User-Agent", user_agent)
        headers = tuple(h for h in self.headers if h[0].lower() != "user-agent")
        return ClientConfig(**{**self._fields(), "headers": headers + ((name, value),)})

    def _fields(self) -> dict:
        return {
            "language": self.language,
            "timeout": self.timeout,
            "headers": self.headers,
            "kind": self.kind,
            "redirects": self.redirects,
        }
