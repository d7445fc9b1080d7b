import asyncio
import json
import unittest

import httpx

from ai_agent.errors import ToolArgumentsError
from ai_agent.tools import build_tools
from ai_agent.tools.firecrawl import firecrawl_scrape, firecrawl_search
from ai_agent.tools.web import NO_RESULTS, web_search


class BuildToolsTests(unittest.TestCase):
    def test_selection_order_is_kept_and_unknown_names_skipped(self) -> None:
        tools = build_tools(["calculate", "teleport", "web_search", "calculate"])
        self.assertEqual(list(tools), ["calculate", "web_search"])

    def test_definitions_expose_input_schema(self) -> None:
        definition = build_tools(["http_request"])["http_request"].definition()
        self.assertEqual(definition.name, "http_request")
        self.assertEqual(definition.json_schema["required"], ["url", "method"])
        self.assertEqual(definition.json_schema["properties"]["method"]["enum"], ["GET", "POST", "PUT", "DELETE"])

    def test_premium_tools_fall_back_to_native_under_same_name(self) -> None:
        tools = build_tools(["firecrawl_search", "firecrawl_scrape"], {})
        self.assertEqual(list(tools), ["firecrawl_search", "firecrawl_scrape"])
        self.assertEqual(tools["firecrawl_search"].name, "firecrawl_search")
        self.assertIs(tools["firecrawl_search"].execute.func, web_search)

    def test_premium_tools_use_firecrawl_when_keyed(self) -> None:
        tools = build_tools(["firecrawl_search"], {"FIRECRAWL_API_KEY": "fc-key"})
        self.assertIs(tools["firecrawl_search"].execute.func, firecrawl_search)
        self.assertEqual(tools["firecrawl_search"].execute.keywords["api_key"], "fc-key")

    def test_invalid_arguments_are_rejected(self) -> None:
        tool = build_tools(["scrape_url"])["scrape_url"]
        with self.assertRaises(ToolArgumentsError) as ctx:
            asyncio.run(tool.run({"url": "not a url"}))
        self.assertIn("scrape_url", str(ctx.exception))

    def test_urls_are_validated_but_passed_through_unchanged(self) -> None:
        tools = build_tools(["scrape_url", "http_request"])
        scraped = tools["scrape_url"].parse_arguments({"url": "https://example.com"})
        self.assertEqual(scraped, {"url": "https://example.com"})
        url = "https://API.example.com/v1?q=caf%C3%A9"
        arguments = tools["http_request"].parse_arguments({"url": url, "method": "GET"})
        self.assertEqual(arguments, {"url": url, "method": "GET"})
        with self.assertRaises(ToolArgumentsError) as ctx:
            tools["scrape_url"].parse_arguments({"url": "ftp://example.com/file"})
        self.assertIn("http(s) URL", str(ctx.exception))

    def test_calculate_runs_through_the_tool(self) -> None:
        tool = build_tools(["calculate"])["calculate"]
        self.assertEqual(asyncio.run(tool.run({"expression": "6*7"})), "42")


class FirecrawlTests(unittest.TestCase):
    def _run(self, handler, coro_factory):
        async def _main():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await coro_factory(client)

        return asyncio.run(_main())

    def test_search_sends_bearer_key_and_formats_results(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"success": True, "data": [{"url": "https://a.example", "title": "A", "description": "About A"}]},
            )

        result = self._run(handler, lambda c: firecrawl_search("a", api_key="fc-key", client=c))
        self.assertEqual(result, "1. A\n   About A\n   Source: https://a.example")
        self.assertEqual(seen[0].headers["Authorization"], "Bearer fc-key")
        self.assertEqual(str(seen[0].url), "https://api.firecrawl.dev/v1/search")
        self.assertEqual(json.loads(seen[0].content)["query"], "a")

    def test_search_failure_returns_sentinel(self) -> None:
        result = self._run(lambda r: httpx.Response(401), lambda c: firecrawl_search("a", api_key="bad", client=c))
        self.assertEqual(result, NO_RESULTS)

    def test_unexpected_json_shapes_are_handled(self) -> None:
        result = self._run(lambda r: httpx.Response(200, json=[]), lambda c: firecrawl_search("a", api_key="k", client=c))
        self.assertEqual(result, NO_RESULTS)
        result = self._run(
            lambda r: httpx.Response(200, json={"data": [{"url": None}, "x"]}),
            lambda c: firecrawl_search("a", api_key="k", client=c),
        )
        self.assertEqual(result, NO_RESULTS)
        result = self._run(
            lambda r: httpx.Response(200, json=["markdown"]),
            lambda c: firecrawl_scrape("https://example.com", api_key="k", client=c),
        )
        self.assertEqual(result, "Failed to scrape URL: invalid response from Firecrawl")
        result = self._run(
            lambda r: httpx.Response(200, json={"data": "# Hello"}),
            lambda c: firecrawl_scrape("https://example.com", api_key="k", client=c),
        )
        self.assertEqual(result, "Could not extract content from URL")

    def test_scrape_returns_markdown(self) -> None:
        body = {"success": True, "data": {"markdown": "# Hello", "metadata": {"title": "Greeting"}}}
        result = self._run(
            lambda r: httpx.Response(200, json=body),
            lambda c: firecrawl_scrape("https://example.com", api_key="k", client=c),
        )
        self.assertEqual(result, "Title: Greeting\n\n# Hello")

    def test_scrape_errors_are_strings(self) -> None:
        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        result = self._run(unreachable, lambda c: firecrawl_scrape("https://example.com", api_key="k", client=c))
        self.assertEqual(result, "Failed to scrape URL: timed out")
        result = self._run(
            lambda r: httpx.Response(402), lambda c: firecrawl_scrape("https://example.com", api_key="k", client=c)
        )
        self.assertEqual(result, "Failed to scrape URL: HTTP 402 Payment Required")


if __name__ == "__main__":
    unittest.main()
