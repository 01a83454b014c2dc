import time
import unittest
import warnings

import httpx
from fastapi.testclient import TestClient

from wikigraph.clients.config import ClientConfig
from wikigraph.clients.pending import CompletionMode
from wikigraph.clients.wiki import WikiClient
from wikigraph.di import get_session
from wikigraph.main import app
from wikigraph.session import ExplorerSession

PAGES = {
    "Multekrem": ["Cloudberry", "Whipped cream", "Wayback Machine"],
    "Cloudberry": ["Multekrem"],
}


def respond(request: httpx.Request) -> httpx.Response:
    title = request.url.params.get("titles", "").replace("_", " ")
    if title == "Broken":
        return httpx.Response(500)
    if title not in PAGES:
        return httpx.Response(404)
    links = [{"ns": 0, "title": t} for t in PAGES[title]]
    return httpx.Response(200, json={"query": {"pages": {"1": {"title": title, "links": links}}}})


class TestAPI(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        http = httpx.Client(transport=httpx.MockTransport(respond))
        self.session = ExplorerSession(
            WikiClient(ClientConfig().with_timeout(2), client=http, mode=CompletionMode.POLLED)
        )
        app.dependency_overrides[get_session] = lambda: self.session

    def tearDown(self):
        app.dependency_overrides.clear()
        self.session.close()

    def add(self, page):
        resp = self.client.post("/graph/nodes", json={"page": page})
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def tick_until_idle(self):
        updates = []
        for _ in range(200):
            payload = self.client.post("/graph/tick").json()
            updates.extend(payload["updates"])
            if payload["pending"] == 0:
                break
            time.sleep(0.01)
        return updates

    def test_healthcheck(self):
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_languages(self):
        resp = self.client.get("/languages")
        self.assertEqual(resp.status_code, 200)
        by_code = {lang["code"]: lang for lang in resp.json()}
        self.assertEqual(by_code["nb"]["wiki_code"], "no")
        self.assertNotIn("tlh", by_code)

    def test_add_node_twice(self):
        first = self.add("Multekrem")
        self.assertTrue(first["created"])
        self.assertEqual(first["node"]["pathinfo"], "Multekrem")
        self.assertEqual(first["node"]["url"], "https://en.wikipedia.org/wiki/Multekrem")
        self.assertFalse(first["node"]["loaded"])

        second = self.add("https://en.wikipedia.org/wiki/Multekrem")
        self.assertFalse(second["created"])
        self.assertEqual(second["node"]["index"], first["node"]["index"])

    def test_add_node_validation(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            resp = self.client.post("/graph/nodes", json={"page": "https://example.com/wiki/Waffle"})
        self.assertEqual(resp.status_code, 422)
        self.assertIn("example.com", resp.json()["detail"])
        self.assertFalse([w for w in caught if "422" in str(w.message)])
        resp = self.client.post("/graph/nodes", json={"page": ""})
        self.assertEqual(resp.status_code, 422)
        resp = self.client.post("/graph/nodes")
        self.assertEqual(resp.status_code, 422)

    def test_remove_node(self):
        index = self.add("Multekrem")["node"]["index"]
        self.assertEqual(self.client.delete(f"/graph/nodes/{index}").status_code, 204)
        self.assertEqual(self.client.delete(f"/graph/nodes/{index}").status_code, 404)
        self.assertEqual(self.client.get("/graph").json()["nodes"], [])

    def test_load_node(self):
        index = self.add("Multekrem")["node"]["index"]
        resp = self.client.post(f"/graph/nodes/{index}/load")
        self.assertEqual(resp.status_code, 202)
        self.assertEqual(resp.json()["scheduled"], [index])

        updates = self.tick_until_idle()
        self.assertEqual(len(updates), 1)
        self.assertEqual(updates[0]["action"], "none")
        self.assertIsNone(updates[0]["error"])

        graph = self.client.get("/graph").json()
        self.assertEqual(len(graph["nodes"]), 1)
        self.assertTrue(graph["nodes"][0]["loaded"])

    def test_expand_unloaded_node_schedules_load(self):
        index = self.add("Multekrem")["node"]["index"]
        resp = self.client.post(f"/graph/nodes/{index}/expand")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["scheduled"])
        self.assertEqual(resp.json()["new_nodes"], [])

        (update,) = self.tick_until_idle()
        self.assertEqual(update["action"], "expand")
        self.assertEqual(len(update["new_nodes"]), 2)

        graph = self.client.get("/graph").json()
        self.assertEqual(
            sorted(node["pathinfo"] for node in graph["nodes"]),
            ["Cloudberry", "Multekrem", "Whipped_cream"],
        )
        self.assertEqual(len(graph["edges"]), 2)

    def test_expand_unloaded_without_scheduling(self):
        index = self.add("Multekrem")["node"]["index"]
        resp = self.client.post(f"/graph/nodes/{index}/expand", params={"schedule": "false"})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(self.client.post("/graph/tick").json()["pending"], 0)

    def test_expand_loaded_node_is_immediate(self):
        index = self.add("Multekrem")["node"]["index"]
        self.client.post(f"/graph/nodes/{index}/load")
        self.tick_until_idle()

        resp = self.client.post(f"/graph/nodes/{index}/expand")
        payload = resp.json()
        self.assertFalse(payload["scheduled"])
        self.assertEqual([n["pathinfo"] for n in payload["new_nodes"]], ["Cloudberry", "Whipped_cream"])

        again = self.client.post(f"/graph/nodes/{index}/expand").json()
        self.assertEqual(again["new_nodes"], [])

    def test_expand_connected(self):
        index = self.add("Multekrem")["node"]["index"]
        self.client.post(f"/graph/nodes/{index}/expand")
        self.tick_until_idle()

        resp = self.client.post(f"/graph/nodes/{index}/expand-connected")
        self.assertEqual(resp.status_code, 202)
        self.assertEqual(len(resp.json()["scheduled"]), 2)

        updates = self.tick_until_idle()
        errors = {u["index"]: u["error"] for u in updates}
        # Whipped cream is not served by the fake wiki
        self.assertEqual(sum(1 for e in errors.values() if e is None), 1)
        self.assertEqual(len(self.client.get("/graph").json()["nodes"]), 3)

    def test_unknown_node(self):
        for path in ("load", "expand", "expand-connected"):
            resp = self.client.post(f"/graph/nodes/99/{path}")
            self.assertEqual(resp.status_code, 404, path)

    def test_page_links(self):
        resp = self.client.get("/pages/links", params={"page": "Multekrem"})
        self.assertEqual(resp.status_code, 200)
        payload = resp.json()
        self.assertEqual(payload["title"], "Multekrem")
        self.assertEqual(payload["links"], ["Cloudberry", "Whipped_cream"])

    def test_page_links_errors(self):
        self.assertEqual(self.client.get("/pages/links", params={"page": "Nonexistent"}).status_code, 404)
        self.assertEqual(self.client.get("/pages/links", params={"page": "Broken"}).status_code, 502)
        self.assertEqual(self.client.get("/pages/links").status_code, 422)


if __name__ == "__main__":
    unittest.main()
