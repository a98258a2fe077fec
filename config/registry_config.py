from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RegistryConfig:
    registry_bin: str = "ollama"
    command_timeout_s: float | None = None
    list_attempts: int = 3

    @staticmethod
    def from_values(
        registry_bin: str = "ollama",
        command_timeout_s: float | str | None = None,
        list_attempts: int | str = 3,
    ) -> "RegistryConfig":
        timeout = None
        if command_timeout_s is not None and str(command_timeout_s).strip():
            timeout = float(command_timeout_s)
        cfg = RegistryConfig(
            registry_bin=registry_bin,
            command_timeout_s=timeout,
            list_attempts=int(list_attempts),
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if not isinstance(self.registry_bin, str) or not self.registry_bin.strip():
            raise ValueError("RegistryConfig.registry_bin must be a non-empty string.")
        if self.command_timeout_s is not None and self.command_timeout_s <= 0:
            raise ValueError("RegistryConfig.command_timeout_s must be > 0 when provided.")
        if isinstance(self.list_attempts, bool) or not isinstance(self.list_attempts, int):
            raise ValueError("RegistryConfig.list_attempts must be an integer.")
        if self.list_attempts < 1:
            raise ValueError("RegistryConfig.list_attempts must be >= 1.")
