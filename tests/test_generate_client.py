from __future__ import annotations

import json
import unittest

import httpx

from services.generate_client import GenerateClient, GenerateError


def _client(handler) -> GenerateClient:
    return GenerateClient(base_url="http://127.0.0.1:11434/", transport=httpx.MockTransport(handler))


class GenerateClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_posts_non_streaming_request_and_returns_text(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/api/generate")
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"model": "local-assistant", "response": "  Hello there.\n", "done": True})

        text = await _client(handler).generate("local-assistant", "Say hi", options={"temperature": 0.1})

        self.assertEqual(text, "Hello there.")
        self.assertEqual(
            seen,
            [{"model": "local-assistant", "prompt": "Say hi", "stream": False, "options": {"temperature": 0.1}}],
        )

    async def test_http_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "model 'x' not found"})

        with self.assertRaises(GenerateError):
            await _client(handler).generate("x", "hi")

    async def test_error_payload_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "out of memory"})

        with self.assertRaises(GenerateError) as ctx:
            await _client(handler).generate("m", "hi")
        self.assertIn("out of memory", str(ctx.exception))

    async def test_invalid_json_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"not json")

        with self.assertRaises(GenerateError):
            await _client(handler).generate("m", "hi")

    async def test_connection_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(GenerateError):
            await _client(handler).generate("m", "hi")


if __name__ == "__main__":
    unittest.main()
