from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 11434
    wait_s: float = 60.0

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @staticmethod
    def from_strings(
        host: str = "127.0.0.1",
        port: int | str = 11434,
        wait_s: float | str = 60.0,
    ) -> "ServerConfig":
        cfg = ServerConfig(host=host.strip(), port=int(port), wait_s=float(wait_s))
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise ValueError("ServerConfig.host must be a non-empty string.")
        if not (1 <= self.port <= 65535):
            raise ValueError("ServerConfig.port must be between 1 and 65535.")
        if self.wait_s <= 0:
            raise ValueError("ServerConfig.wait_s must be > 0.")
