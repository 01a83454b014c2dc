"""
Directed graph of Wikipedia pages.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

import networkx as nx

from wikigraph.core.page import Page, PageBody, normalize_pathinfo
from wikigraph.errors import NodeNotFound, PageNotLoaded, PathinfoParseError

logger = logging.getLogger(__name__)


class WikiGraph:
    """
    Pages as nodes, links as unlabeled edges.

    Nodes are addressed by integer indices which are never reused, so an
    index held by a caller stays valid (or becomes unknown) across removals.
    Two nodes are the same page when their pathinfos are equal.
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()
        self._next_index = 0

    # --- Nodes ---

    def add_node(self, page: Page) -> int:
        index = self._next_index
        self._next_index += 1
        self.graph.add_node(index, page=page)
        return index

    def remove_node(self, index: int) -> Page:
        page = self.node(index)
        if page is None:
            raise NodeNotFound(index)
        self.graph.remove_node(index)
        return page

    def node(self, index: int) -> Optional[Page]:
        if index not in self.graph:
            return None
        return self.graph.nodes[index]["page"]

    def nodes(self) -> Iterator[Tuple[int, Page]]:
        return iter(self.graph.nodes(data="page"))

    def find(self, pathinfo: str) -> Optional[int]:
        """Index of the node whose identity equals `pathinfo`, if any."""
        pathinfo = normalize_pathinfo(pathinfo)
        for index, page in self.nodes():
            if page.pathinfo == pathinfo:
                return index
        return None

    def add_or_find(self, page: Page) -> Tuple[int, bool]:
        """(index, created) for `page`, reusing a node with the same identity."""
        existing = self.find(page.pathinfo)
        if existing is not None:
            return existing, False
        return self.add_node(page), True

    def set_body(self, index: int, body: PageBody) -> Page:
        """
        Attach `body` to node `index`. The node keeps its old identity if the
        body names a page another node already holds.
        """
        page = self.node(index)
        if page is None:
            raise NodeNotFound(index)

        try:
            canonical: Optional[str] = body.canonical_identity()
        except PathinfoParseError:
            canonical = None

        if canonical and canonical != page.pathinfo:
            other = self.find(canonical)
            if other is not None and other != index:
                logger.warning(
                    "Node %d resolved to '%s', already held by node %d; keeping '%s'",
                    index, canonical, other, page.pathinfo,
                )
                return page.set_body(body, follow_identity=False)

        return page.set_body(body)

    def node_count(self) -> int:
        return self.graph.number_of_nodes()

    # --- Edges ---

    def add_edge(self, source: int, target: int) -> bool:
        """Add source -> target. Returns False for self-edges and existing edges."""
        for index in (source, target):
            if index not in self.graph:
                raise NodeNotFound(index)
        if source == target or self.graph.has_edge(source, target):
            return False
        self.graph.add_edge(source, target)
        return True

    def has_edge(self, source: int, target: int) -> bool:
        return self.graph.has_edge(source, target)

    def successors(self, index: int) -> List[int]:
        if index not in self.graph:
            raise NodeNotFound(index)
        return list(self.graph.successors(index))

    def edges(self) -> Iterator[Tuple[int, int]]:
        return iter(self.graph.edges())

    def edge_count(self) -> int:
        return self.graph.number_of_edges()

    # --- Expansion ---

    def expand(self, index: int) -> List[int]:
        """
        Place every page linked from node `index` on the graph.

        Links to pages already on the graph become edges to the existing
        node; other links become new unbound nodes. Returns the indices of
        the newly created nodes in link order. Calling it again with no
        other changes creates nothing.

        Raises NodeNotFound for an unknown index and PageNotLoaded when the
        page has no body. Never fetches.
        """
        page = self.node(index)
        if page is None:
            raise NodeNotFound(index)
        if page.body is None:
            raise PageNotLoaded(index, page.pathinfo)

        # Built once per call and kept current as nodes are added
        known: Dict[str, int] = {}
        for node_index, node_page in self.nodes():
            known.setdefault(node_page.pathinfo, node_index)
        # A page always matches itself, even if another node shares its identity
        known[page.pathinfo] = index

        created: List[int] = []
        for pathinfo in page.body.linked_pages():
            existing = known.get(pathinfo)
            if existing is None:
                existing = self.add_node(Page(pathinfo))
                known[pathinfo] = existing
                created.append(existing)
            self.add_edge(index, existing)

        logger.debug(
            "Expanded '%s': %d new nodes, %d total", page.pathinfo, len(created), self.node_count()
        )
        return created

    def __repr__(self) -> str:
        return f"WikiGraph(nodes={self.node_count()}, edges={self.edge_count()})"
