from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from wikigraph.api.schemas import (
    AddNodeRequest,
    AddNodeResponse,
    EdgeOut,
    ExpandResponse,
    GraphOut,
    LanguageOut,
    NodeOut,
    NodeUpdateOut,
    PageLinksResponse,
    ScheduleResponse,
    TickResponse,
)
from wikigraph.core.languages import LANGUAGES
from wikigraph.core.page import Page
from wikigraph.core.store import NodeAction
from wikigraph.di import get_session
from wikigraph.errors import NodeNotFound, NotFound, PageNotLoaded, WikipediaUrlError
from wikigraph.session import ExplorerSession

router = APIRouter()

# Graph routes are `async def` so they all run on the event loop thread,
# which is the only thread that mutates the graph.


def _node_out(session: ExplorerSession, index: int) -> NodeOut:
    page = session.graph.node(index)
    if page is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(NodeNotFound(index)))
    return NodeOut.from_page(index, page, session.client.language)


def _parse_page(text: str) -> Page:
    try:
        return Page.parse(text)
    except WikipediaUrlError as e:
        raise HTTPException(422, detail=str(e))


@router.get("/languages", response_model=List[LanguageOut], summary="Supported Wikipedia editions")
async def list_languages():
    return [LanguageOut.from_language(language) for language in LANGUAGES.values()]


@router.get("/graph", response_model=GraphOut)
async def get_graph(session: ExplorerSession = Depends(get_session)):
    language = session.client.language
    return GraphOut(
        nodes=[NodeOut.from_page(index, page, language) for index, page in session.graph.nodes()],
        edges=[EdgeOut(source=source, target=target) for source, target in session.graph.edges()],
    )


@router.post("/graph/nodes", response_model=AddNodeResponse)
async def add_node(request: AddNodeRequest, session: ExplorerSession = Depends(get_session)):
    """Put a page on the graph, or find the node it already has."""
    index, created = session.graph.add_or_find(_parse_page(request.page))
    return AddNodeResponse(node=_node_out(session, index), created=created)


@router.delete("/graph/nodes/{index}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_node(index: int, session: ExplorerSession = Depends(get_session)):
    try:
        session.graph.remove_node(index)
    except NodeNotFound as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/graph/nodes/{index}/load",
    response_model=ScheduleResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def load_node(index: int, session: ExplorerSession = Depends(get_session)):
    """Fetch the page body in the background; it is applied on a later tick."""
    try:
        session.store.load(session.graph, session.client, index)
    except NodeNotFound as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(e))
    return ScheduleResponse(scheduled=[index], pending=session.store.pending)


@router.post("/graph/nodes/{index}/expand", response_model=ExpandResponse)
async def expand_node(
    index: int,
    schedule: bool = Query(True, description="Load an unloaded page first instead of failing"),
    session: ExplorerSession = Depends(get_session),
):
    """
    Expand a loaded node right away. An unloaded node is loaded first and
    expanded on the tick that applies its body.
    """
    page = session.graph.node(index)
    if page is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(NodeNotFound(index)))

    if not page.is_loaded() and schedule:
        session.store.load(session.graph, session.client, index, NodeAction.EXPAND)
        return ExpandResponse(index=index, scheduled=True)

    try:
        new_nodes = session.graph.expand(index)
    except PageNotLoaded as e:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(e))
    return ExpandResponse(
        index=index,
        scheduled=False,
        new_nodes=[_node_out(session, new_index) for new_index in new_nodes],
    )


@router.post(
    "/graph/nodes/{index}/expand-connected",
    response_model=ScheduleResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def expand_connected(index: int, session: ExplorerSession = Depends(get_session)):
    try:
        scheduled = session.store.expand_connected(session.graph, session.client, index)
    except NodeNotFound as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(e))
    return ScheduleResponse(scheduled=scheduled, pending=session.store.pending)


@router.post("/graph/tick", response_model=TickResponse)
async def tick(session: ExplorerSession = Depends(get_session)):
    """Drain finished loads into the graph. Front ends call this once per frame."""
    updates = session.tick()
    return TickResponse(
        updates=[NodeUpdateOut.from_update(update) for update in updates],
        pending=session.store.pending,
    )


@router.get(
    "/pages/links",
    response_model=PageLinksResponse,
    summary="Fetch one page and list the pages it links to",
)
async def get_page_links(
    page: str = Query(..., min_length=1, description="Page title, /wiki/ path or Wikipedia URL"),
    session: ExplorerSession = Depends(get_session),
):
    pending = session.client.fetch_page(_parse_page(page))
    result = await pending.wait_async()

    if isinstance(result.error, NotFound):
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=str(result.error))
    if result.error is not None:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail=str(result.error))

    loaded: Page = result.value
    return PageLinksResponse(
        pathinfo=loaded.pathinfo,
        title=loaded.title(),
        links=[linked.pathinfo for linked in loaded.linked_pages()],
    )
