import unittest

import httpx

from spider.config import LimitsConfig
from spider.fetcher import PageFetcher

NO_BACKOFF = LimitsConfig(max_retries=2, backoff_base_ms=0, backoff_cap_ms=0)


class PageFetcherTests(unittest.TestCase):
    def make_fetcher(self, handler, limits: LimitsConfig = NO_BACKOFF) -> PageFetcher:
        fetcher = PageFetcher("TestAgent/1.0", limits, transport=httpx.MockTransport(handler))
        self.addCleanup(fetcher.close)
        return fetcher

    def test_html_page(self) -> None:
        seen_agents = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen_agents.append(request.headers["user-agent"])
            return httpx.Response(200, html="<a href='/next'>next</a>")

        result = self.make_fetcher(handler).fetch("https://example.com/")

        self.assertTrue(result.ok)
        self.assertEqual(200, result.status)
        self.assertIn("href='/next'", result.html)
        self.assertEqual(0, result.retries)
        self.assertEqual(["TestAgent/1.0"], seen_agents)

    def test_non_html_page_has_no_body(self) -> None:
        handler = lambda request: httpx.Response(200, json={"a": 1})

        result = self.make_fetcher(handler).fetch("https://example.com/data.json")

        self.assertTrue(result.ok)
        self.assertEqual("", result.html)
        self.assertEqual("application/json", result.content_type)

    def test_any_2xx_is_success(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(204)

        result = self.make_fetcher(handler).fetch("https://example.com/empty")

        self.assertTrue(result.ok)
        self.assertEqual(204, result.status)
        self.assertEqual("", result.html)
        self.assertEqual(1, len(calls))

    def test_reports_final_url_after_redirect(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/docs":
                return httpx.Response(301, headers={"location": "https://example.com/docs/"})
            return httpx.Response(200, html="<a href='intro'>intro</a>")

        result = self.make_fetcher(handler).fetch("https://example.com/docs")

        self.assertTrue(result.ok)
        self.assertEqual("https://example.com/docs", result.url)
        self.assertEqual("https://example.com/docs/", result.final_url)

    def test_not_found_is_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(404)

        fetcher = self.make_fetcher(handler)
        result = fetcher.fetch("https://example.com/missing")

        self.assertFalse(result.ok)
        self.assertEqual(404, result.status)
        self.assertEqual("HTTP 404", result.error)
        self.assertEqual(1, len(calls))
        self.assertEqual(1, fetcher.failed_fetches)

    def test_server_error_is_retried(self) -> None:
        statuses = iter([503, 429, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            status = next(statuses)
            if status == 200:
                return httpx.Response(200, html="<p>ok</p>")
            return httpx.Response(status)

        result = self.make_fetcher(handler).fetch("https://example.com/flaky")

        self.assertTrue(result.ok)
        self.assertEqual(2, result.retries)

    def test_gives_up_after_max_retries(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = self.make_fetcher(handler)
        result = fetcher.fetch("https://example.com/down")

        self.assertFalse(result.ok)
        self.assertEqual(0, result.status)
        self.assertEqual(2, result.retries)
        self.assertEqual(3, len(calls))
        self.assertIn("connection refused", result.error)
        self.assertEqual(1, fetcher.total_fetches)
        self.assertEqual(1, fetcher.failed_fetches)


if __name__ == "__main__":
    unittest.main()
