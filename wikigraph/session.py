from __future__ import annotations

from wikigraph.clients.wiki import WikiClient
from wikigraph.core.graph import WikiGraph
from wikigraph.core.store import NodeStore


class ExplorerSession:
    """
    State behind one explorer view: the graph, the loads in flight for it
    and the client that serves them. Only the owner of the UI loop (the
    event loop, for the HTTP API) touches the graph.
    """

    def __init__(self, client: WikiClient) -> None:
        self.client = client
        self.graph = WikiGraph()
        self.store = NodeStore()

    def tick(self):
        """Apply finished loads to the graph. Call once per UI frame."""
        return self.store.drain(self.graph)

    def close(self) -> None:
        self.client.close()
