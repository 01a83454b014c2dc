"""
Buffer between background fetches and the graph.

Fetch completions arrive on worker threads in any order. They are queued
here under a lock, tagged with the node they belong to, and applied to the
graph in one drain() call made by whoever owns the graph (once per UI tick).
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from wikigraph.core.graph import WikiGraph
from wikigraph.errors import NodeNotFound, WikiGraphError

if TYPE_CHECKING:
    from wikigraph.clients.pending import FetchResult, PendingFetch
    from wikigraph.clients.wiki import WikiClient

logger = logging.getLogger(__name__)


class NodeAction(str, Enum):
    """What to do with a node once its body arrives."""
    NONE = "none"
    EXPAND = "expand"


@dataclass
class NodeUpdate:
    """One drained completion, after it was applied to the graph."""
    index: int
    action: NodeAction
    new_nodes: List[int] = field(default_factory=list)
    error: Optional[WikiGraphError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class NodeStore:

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: List[Tuple[int, "FetchResult"]] = []
        # Owner-thread only
        self._in_flight: Dict[int, Tuple["PendingFetch", NodeAction]] = {}

    @property
    def pending(self) -> int:
        return len(self._in_flight)

    def is_loading(self, index: int) -> bool:
        return index in self._in_flight

    def load(
        self,
        graph: WikiGraph,
        client: "WikiClient",
        index: int,
        action: NodeAction = NodeAction.NONE,
    ) -> "PendingFetch":
        """
        Start fetching the body of node `index`. A second request for a node
        already in flight reuses that fetch, upgrading its action to EXPAND
        if asked.
        """
        page = graph.node(index)
        if page is None:
            raise NodeNotFound(index)

        if index in self._in_flight:
            pending, _ = self._in_flight[index]
            if action is NodeAction.EXPAND:
                self._in_flight[index] = (pending, NodeAction.EXPAND)
            return pending

        pending = client.fetch_body(page, on_complete=lambda result: self._push(index, result))
        self._in_flight[index] = (pending, action)
        logger.debug("Loading node %d ('%s') then %s", index, page.pathinfo, action.value)
        return pending

    def expand_connected(self, graph: WikiGraph, client: "WikiClient", index: int) -> List[int]:
        """Load and expand every page node `index` links to. Returns their indices."""
        successors = graph.successors(index)
        for successor in successors:
            self.load(graph, client, successor, NodeAction.EXPAND)
        return successors

    def _push(self, index: int, result: "FetchResult") -> None:
        # Runs on whatever thread completed the fetch
        with self._lock:
            self._results.append((index, result))

    def drain(self, graph: WikiGraph) -> List[NodeUpdate]:
        """Apply every completion received so far to `graph`."""
        # Polled fetches only make progress when polled
        for pending, _ in list(self._in_flight.values()):
            pending.poll()

        with self._lock:
            results, self._results = self._results, []

        updates: List[NodeUpdate] = []
        for index, result in results:
            _, action = self._in_flight.pop(index, (None, NodeAction.NONE))
            updates.append(self._apply(graph, index, result, action))
        return updates

    def _apply(
        self, graph: WikiGraph, index: int, result: "FetchResult", action: NodeAction
    ) -> NodeUpdate:
        update = NodeUpdate(index=index, action=action)

        if not result.ok:
            logger.warning("Request failed for node %d: %s", index, result.error)
            update.error = result.error
            return update

        if graph.node(index) is None:
            logger.warning("Unable to find the node at index '%d' for a loaded page", index)
            update.error = NodeNotFound(index)
            return update

        page = graph.set_body(index, result.value)
        if action is NodeAction.EXPAND:
            update.new_nodes = graph.expand(index)
            logger.info("Expanded '%s' into %d new pages", page.pathinfo, len(update.new_nodes))
        return update
