import unittest

from pydantic import ValidationError

from wikigraph.clients.config import (
    DEFAULT_REDIRECTS,
    DEFAULT_TIMEOUT_SECONDS,
    USER_AGENT,
    ClientConfig,
    validate_header,
)
from wikigraph.core.urls import RequestKind
from wikigraph.errors import HeaderError, LanguageUnsupported


class TestClientConfig(unittest.TestCase):
    def test_defaults(self):
        config = ClientConfig()
        self.assertEqual(config.language.code, "en")
        self.assertEqual(config.timeout, DEFAULT_TIMEOUT_SECONDS)
        self.assertEqual(config.redirects, DEFAULT_REDIRECTS)
        self.assertEqual(config.kind, RequestKind.LINKS_API)
        self.assertEqual(config.header_dict(), {"User-Agent": USER_AGENT})

    def test_builders_return_copies(self):
        config = ClientConfig()
        changed = config.with_language("nb").with_timeout(10).with_kind(RequestKind.WIKITEXT_API)

        self.assertEqual(config.language.code, "en")
        self.assertEqual(changed.language.wiki_code, "no")
        self.assertEqual(changed.timeout, 10)
        self.assertEqual(changed.kind, RequestKind.WIKITEXT_API)

    def test_language_by_code(self):
        self.assertEqual(ClientConfig(language="de").language.host, "de.wikipedia.org")
        with self.assertRaises(LanguageUnsupported):
            ClientConfig().with_language("tlh")

    def test_timeout(self):
        self.assertIsNone(ClientConfig().with_timeout(None).timeout)
        with self.assertRaises(ValidationError):
            ClientConfig().with_timeout(0)

    def test_redirects_must_not_be_negative(self):
        self.assertEqual(ClientConfig().with_redirects(0).redirects, 0)
        with self.assertRaises(ValidationError):
            ClientConfig().with_redirects(-1)

    def test_with_header(self):
        config = ClientConfig().with_header("Api-User-Agent", "tests/1.0")
        self.assertEqual(config.header_dict()["Api-User-Agent"], "tests/1.0")

    def test_duplicate_header_is_rejected(self):
        with self.assertRaises(HeaderError):
            ClientConfig().with_header("user-agent", "other")

    def test_with_user_agent_replaces(self):
        config = ClientConfig().with_user_agent("explorer/2.0")
        self.assertEqual(config.header_dict(), {"User-Agent": "explorer/2.0"})

    def test_headers_from_dict(self):
        config = ClientConfig(headers={"User-Agent": "a", "Accept": "application/json"})
        self.assertEqual(len(config.headers), 2)

    def test_caller_headers_keep_default_user_agent(self):
        config = ClientConfig(headers={"Accept": "application/json"})
        self.assertEqual(
            config.header_dict(),
            {"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        self.assertEqual(ClientConfig(headers=()).header_dict(), {"User-Agent": USER_AGENT})

    def test_caller_user_agent_is_not_duplicated(self):
        config = ClientConfig(headers={"user-agent": "explorer/2.0"})
        self.assertEqual(config.headers, (("user-agent", "explorer/2.0"),))

    def test_frozen(self):
        with self.assertRaises(ValidationError):
            ClientConfig().redirects = 5


class TestValidateHeader(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(validate_header("X-Test", "value 1"), ("X-Test", "value 1"))

    def test_invalid_name(self):
        for name in ("", "Bad Header", "Bad:Header", "Bäd"):
            with self.assertRaises(HeaderError):
                validate_header(name, "value")

    def test_invalid_value(self):
        for value in ("line\nbreak", " padded", "café"):
            with self.assertRaises(HeaderError):
                validate_header("X-Test", value)


if __name__ == "__main__":
    unittest.main()
