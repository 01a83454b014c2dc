import time
import unittest

import httpx

from wikigraph.clients.config import ClientConfig
from wikigraph.clients.pending import CompletionMode
from wikigraph.clients.wiki import WikiClient
from wikigraph.core.graph import WikiGraph
from wikigraph.core.page import Page
from wikigraph.core.store import NodeAction, NodeStore
from wikigraph.errors import NodeNotFound, NotFound
from wikigraph.session import ExplorerSession

PAGES = {
    "Multekrem": ["Cloudberry", "Whipped cream"],
    "Cloudberry": ["Multekrem", "Rubus"],
    "Whipped cream": ["Cream"],
}


def respond(request: httpx.Request) -> httpx.Response:
    title = request.url.params.get("titles", "").replace("_", " ")
    if title not in PAGES:
        return httpx.Response(404)
    links = [{"ns": 0, "title": t} for t in PAGES[title]]
    return httpx.Response(200, json={"query": {"pages": {"1": {"title": title, "links": links}}}})


class _StoreCases:
    MODE: CompletionMode

    def setUp(self):
        http = httpx.Client(transport=httpx.MockTransport(respond))
        self.session = ExplorerSession(
            WikiClient(ClientConfig().with_timeout(2), client=http, mode=self.MODE)
        )
        self.addCleanup(self.session.close)
        self.graph = self.session.graph
        self.store = self.session.store

    def drain_all(self, deadline=2.0):
        updates = []
        end = time.monotonic() + deadline
        while self.store.pending and time.monotonic() < end:
            updates.extend(self.session.tick())
            time.sleep(0.01)
        self.assertEqual(self.store.pending, 0)
        return updates

    def test_load_sets_body(self):
        index = self.graph.add_node(Page("Multekrem"))
        self.store.load(self.graph, self.session.client, index)
        self.assertTrue(self.store.is_loading(index))

        (update,) = self.drain_all()
        self.assertTrue(update.ok)
        self.assertEqual(update.action, NodeAction.NONE)
        self.assertEqual(update.new_nodes, [])
        self.assertTrue(self.graph.node(index).is_loaded())
        self.assertEqual(self.graph.node_count(), 1)

    def test_load_then_expand(self):
        index = self.graph.add_node(Page("Multekrem"))
        self.store.load(self.graph, self.session.client, index, NodeAction.EXPAND)

        (update,) = self.drain_all()
        self.assertEqual(update.action, NodeAction.EXPAND)
        self.assertEqual(
            [self.graph.node(i).pathinfo for i in update.new_nodes],
            ["Cloudberry", "Whipped_cream"],
        )
        self.assertEqual(self.graph.successors(index), update.new_nodes)

    def test_second_load_reuses_fetch(self):
        index = self.graph.add_node(Page("Multekrem"))
        first = self.store.load(self.graph, self.session.client, index)
        second = self.store.load(self.graph, self.session.client, index, NodeAction.EXPAND)

        self.assertIs(first, second)
        self.assertEqual(self.store.pending, 1)
        (update,) = self.drain_all()
        self.assertEqual(update.action, NodeAction.EXPAND)

    def test_expand_connected(self):
        root = self.graph.add_node(Page("Multekrem"))
        self.store.load(self.graph, self.session.client, root, NodeAction.EXPAND)
        self.drain_all()

        scheduled = self.store.expand_connected(self.graph, self.session.client, root)
        self.assertEqual(len(scheduled), 2)
        updates = self.drain_all()

        self.assertEqual(sorted(u.index for u in updates), sorted(scheduled))
        self.assertTrue(all(u.ok for u in updates))
        # Cloudberry links back to Multekrem, which is reused
        self.assertIsNotNone(self.graph.find("Rubus"))
        self.assertIsNotNone(self.graph.find("Cream"))
        self.assertEqual(self.graph.node_count(), 5)
        cloudberry = self.graph.find("Cloudberry")
        self.assertTrue(self.graph.has_edge(cloudberry, root))

    def test_failed_load_is_reported(self):
        index = self.graph.add_node(Page("Nonexistent"))
        self.store.load(self.graph, self.session.client, index, NodeAction.EXPAND)

        with self.assertLogs("wikigraph.core.store", level="WARNING"):
            (update,) = self.drain_all()
        self.assertIsInstance(update.error, NotFound)
        self.assertFalse(self.graph.node(index).is_loaded())

    def test_removed_node_is_reported(self):
        index = self.graph.add_node(Page("Multekrem"))
        self.store.load(self.graph, self.session.client, index)
        self.graph.remove_node(index)

        with self.assertLogs("wikigraph.core.store", level="WARNING"):
            (update,) = self.drain_all()
        self.assertIsInstance(update.error, NodeNotFound)

    def test_load_unknown_node(self):
        with self.assertRaises(NodeNotFound):
            self.store.load(self.graph, self.session.client, 3)


class TestNodeStoreBlocking(_StoreCases, unittest.TestCase):
    MODE = CompletionMode.BLOCKING


class TestNodeStorePolled(_StoreCases, unittest.TestCase):
    MODE = CompletionMode.POLLED


class TestNodeStoreDrain(unittest.TestCase):
    def test_drain_with_nothing_pending(self):
        store = NodeStore()
        self.assertEqual(store.drain(WikiGraph()), [])
        self.assertEqual(store.pending, 0)


if __name__ == "__main__":
    unittest.main()
