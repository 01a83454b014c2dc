from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from wikigraph.core.languages import Language
from wikigraph.core.page import Page
from wikigraph.core.store import NodeAction, NodeUpdate


class LanguageOut(BaseModel):
    code: str = Field(..., description="Language code accepted by the client")
    name: str
    wiki_code: str = Field(..., description="Subdomain of the Wikipedia edition")

    @classmethod
    def from_language(cls, language: Language) -> "LanguageOut":
        return cls(code=language.code, name=language.name, wiki_code=language.wiki_code)


class NodeOut(BaseModel):
    """A page on the graph."""
    index: int = Field(..., ge=0)
    pathinfo: str
    title: str
    url: str
    loaded: bool = Field(..., description="Whether the page body has been fetched")

    @classmethod
    def from_page(cls, index: int, page: Page, language: Language) -> "NodeOut":
        return cls(
            index=index,
            pathinfo=page.pathinfo,
            title=page.title(),
            url=page.url(language),
            loaded=page.is_loaded(),
        )


class EdgeOut(BaseModel):
    source: int
    target: int


class GraphOut(BaseModel):
    nodes: List[NodeOut]
    edges: List[EdgeOut]


class AddNodeRequest(BaseModel):
    """Request body for POST /graph/nodes."""
    page: str = Field(..., min_length=1, description="Page title, /wiki/ path or Wikipedia URL")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"page": "Multekrem"},
                {"page": "https://en.wikipedia.org/wiki/Waffle"},
            ]
        }
    }


class AddNodeResponse(BaseModel):
    node: NodeOut
    created: bool = Field(..., description="False if a node with this identity already existed")


class ScheduleResponse(BaseModel):
    """Loads started in the background; results arrive via POST /graph/tick."""
    scheduled: List[int]
    pending: int = Field(..., ge=0, description="Fetches still in flight")


class ExpandResponse(BaseModel):
    index: int
    scheduled: bool = Field(
        ..., description="True if the page had to be loaded first; expansion happens on a later tick"
    )
    new_nodes: List[NodeOut] = Field(default_factory=list)


class NodeUpdateOut(BaseModel):
    index: int
    action: NodeAction
    new_nodes: List[int] = Field(default_factory=list)
    error: Optional[str] = None
    retryable: bool = False

    @classmethod
    def from_update(cls, update: NodeUpdate) -> "NodeUpdateOut":
        return cls(
            index=update.index,
            action=update.action,
            new_nodes=update.new_nodes,
            error=str(update.error) if update.error is not None else None,
            retryable=bool(update.error is not None and update.error.retryable),
        )


class TickResponse(BaseModel):
    updates: List[NodeUpdateOut]
    pending: int = Field(..., ge=0)


class PageLinksResponse(BaseModel):
    pathinfo: str
    title: str
    links: List[str] = Field(default_factory=list, description="Pathinfos of linked pages")
