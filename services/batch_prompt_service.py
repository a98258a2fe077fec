from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import time
from typing import Any, Sequence

from services.generate_client import GenerateClient
from services.prompt_cache import PromptCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BatchReport:
    model: str
    prompts: list[str]
    outputs: list[str | Exception]
    elapsed_s: float
    max_concurrency: int
    cache_hits: int
    cache_coalesced: int

    @property
    def success_count(self) -> int:
        return sum(1 for out in self.outputs if isinstance(out, str))

    @property
    def failure_count(self) -> int:
        return sum(1 for out in self.outputs if isinstance(out, Exception))

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "task_count": len(self.prompts),
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "max_concurrency": self.max_concurrency,
            "elapsed_s": self.elapsed_s,
            "cache_hits": self.cache_hits,
            "cache_coalesced": self.cache_coalesced,
            "items": [
                {
                    "index": i,
                    "prompt": prompt,
                    "ok": isinstance(out, str),
                    "output": out if isinstance(out, str) else None,
                    "error": None if isinstance(out, str) else f"{type(out).__name__}: {out}",
                }
                for i, (prompt, out) in enumerate(zip(self.prompts, self.outputs))
            ],
        }


@dataclass
class BatchPromptService:
    """
    Runs many prompts against one model with a bounded number in flight.

    Results come back in input order, one str or Exception per prompt.
    Identical prompts are served from the cache or share a single request.
    """

    client: GenerateClient
    cache: PromptCache = field(default_factory=PromptCache)
    max_concurrency: int = 4

    async def run_many(
        self,
        model: str,
        prompts: Sequence[str],
        *,
        max_concurrency: int | None = None,
    ) -> list[str | Exception]:
        if not prompts:
            return []

        concurrency = max_concurrency or self.max_concurrency
        if concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        semaphore = asyncio.Semaphore(concurrency)

        async def _request(prompt: str) -> str:
            async with semaphore:
                return await self.client.generate(model, prompt)

        async def _one(idx: int, prompt: str) -> str | Exception:
            try:
                return await self.cache.get_or_compute(model, prompt, lambda: _request(prompt))
            except Exception as exc:
                logger.warning("Prompt %d failed: %s", idx, exc)
                return exc

        return list(await asyncio.gather(*(_one(i, p) for i, p in enumerate(prompts))))

    async def run_batch(
        self,
        model: str,
        prompts: Sequence[str],
        *,
        max_concurrency: int | None = None,
    ) -> BatchReport:
        hits_before = self.cache.hits
        coalesced_before = self.cache.coalesced
        started = time.perf_counter()
        outputs = await self.run_many(model, prompts, max_concurrency=max_concurrency)
        return BatchReport(
            model=model,
            prompts=list(prompts),
            outputs=outputs,
            elapsed_s=time.perf_counter() - started,
            max_concurrency=max_concurrency or self.max_concurrency,
            cache_hits=self.cache.hits - hits_before,
            cache_coalesced=self.cache.coalesced - coalesced_before,
        )
