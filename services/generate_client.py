from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

JSONDict = dict[str, Any]


class GenerateError(RuntimeError):
    pass


@dataclass
class GenerateClient:
    """Async client for the serving endpoint's non-streaming generate call."""

    base_url: str
    timeout_s: float = 120.0
    transport: httpx.AsyncBaseTransport | None = None

    @property
    def generate_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/api/generate"

    def _build_payload(self, model: str, prompt: str, options: JSONDict | None) -> JSONDict:
        payload: JSONDict = {"model": model, "prompt": prompt, "stream": False}
        if options:
            payload["options"] = dict(options)
        return payload

    @staticmethod
    def _parse_response(data: Any) -> str:
        if not isinstance(data, dict):
            raise GenerateError(f"Unexpected generate payload: {data!r}")
        if data.get("error"):
            raise GenerateError(f"Model server error: {data['error']}")
        text = data.get("response")
        if not isinstance(text, str):
            raise GenerateError("Generate payload has no 'response' text.")
        return text.strip()

    async def generate(self, model: str, prompt: str, options: JSONDict | None = None) -> str:
        payload = self._build_payload(model, prompt, options)
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
            try:
                response = await client.post(self.generate_url, json=payload)
                # Raises httpx.HTTPStatusError if response is 4xx or 5xx
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPError as exc:
                raise GenerateError(f"Model server request failed: {exc}") from exc
            except ValueError as exc:
                raise GenerateError(f"Model server returned invalid JSON: {exc}") from exc
        return self._parse_response(data)
