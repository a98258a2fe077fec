from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
import hashlib
import json
from typing import Awaitable, Callable


def prompt_fingerprint(model: str, prompt: str) -> str:
    """SHA-256 over an unambiguous encoding of (model, prompt)."""
    encoded = json.dumps([model, prompt], ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _consume_exception(fut: asyncio.Future) -> None:
    # Mark the exception retrieved even when no other caller was waiting.
    if not fut.cancelled():
        fut.exception()


@dataclass
class PromptCache:
    """
    Maps prompt fingerprints to generated text, with single-flight per key.

    Concurrent callers asking for the same fingerprint share one in-flight
    computation. Failures reach every waiter and are not cached, so a later
    call computes again. With max_entries set, the least recently used
    result is evicted first.
    """

    max_entries: int | None = None
    hits: int = 0
    coalesced: int = 0
    misses: int = 0
    _results: OrderedDict[str, str] = field(default_factory=OrderedDict)
    _inflight: dict[str, asyncio.Future] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __len__(self) -> int:
        return len(self._results)

    def peek(self, model: str, prompt: str) -> str | None:
        return self._results.get(prompt_fingerprint(model, prompt))

    def _store(self, key: str, value: str) -> None:
        self._results[key] = value
        self._results.move_to_end(key)
        if self.max_entries is not None:
            while len(self._results) > self.max_entries:
                self._results.popitem(last=False)

    async def get_or_compute(
        self,
        model: str,
        prompt: str,
        compute: Callable[[], Awaitable[str]],
    ) -> str:
        key = prompt_fingerprint(model, prompt)

        async with self._lock:
            if key in self._results:
                self._results.move_to_end(key)
                self.hits += 1
                return self._results[key]
            fut = self._inflight.get(key)
            owner = fut is None
            if owner:
                fut = asyncio.get_running_loop().create_future()
                fut.add_done_callback(_consume_exception)
                self._inflight[key] = fut
                self.misses += 1
            else:
                self.coalesced += 1

        if not owner:
            # shield: a cancelled waiter must not cancel the shared computation
            return await asyncio.shield(fut)

        try:
            result = await compute()
        except asyncio.CancelledError:
            async with self._lock:
                self._inflight.pop(key, None)
            fut.cancel()
            raise
        except Exception as exc:
            async with self._lock:
                self._inflight.pop(key, None)
            fut.set_exception(exc)
            raise

        async with self._lock:
            self._store(key, result)
            self._inflight.pop(key, None)
        fut.set_result(result)
        return result
