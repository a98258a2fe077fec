from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BatchConfig:
    max_concurrency: int = 4
    request_timeout_s: float = 120.0
    cache_max_entries: int | None = 512

    @staticmethod
    def from_values(
        max_concurrency: int | str = 4,
        request_timeout_s: float | str = 120.0,
        cache_max_entries: int | str | None = 512,
    ) -> "BatchConfig":
        max_entries = None
        if cache_max_entries is not None and str(cache_max_entries).strip():
            max_entries = int(cache_max_entries)
        cfg = BatchConfig(
            max_concurrency=int(max_concurrency),
            request_timeout_s=float(request_timeout_s),
            cache_max_entries=max_entries,
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if isinstance(self.max_concurrency, bool) or not isinstance(self.max_concurrency, int):
            raise ValueError("BatchConfig.max_concurrency must be an integer.")
        if self.max_concurrency < 1:
            raise ValueError("BatchConfig.max_concurrency must be >= 1.")
        if self.request_timeout_s <= 0:
            raise ValueError("BatchConfig.request_timeout_s must be > 0.")
        if self.cache_max_entries is not None and self.cache_max_entries < 1:
            raise ValueError("BatchConfig.cache_max_entries must be >= 1 when provided.")
