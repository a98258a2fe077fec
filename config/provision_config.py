from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ProvisionConfig:
    derived_model_name: str
    config_path: Path
    verify_max_attempts: int = 10
    verify_interval_s: float = 1.0
    verify_deadline_s: float | None = None

    @staticmethod
    def from_strings(
        derived_model_name: str,
        config_path: str | Path,
        verify_max_attempts: int | str = 10,
        verify_interval_s: float | str = 1.0,
        verify_deadline_s: float | str | None = None,
    ) -> "ProvisionConfig":
        deadline = None
        if verify_deadline_s is not None and str(verify_deadline_s).strip():
            deadline = float(verify_deadline_s)
        cfg = ProvisionConfig(
            derived_model_name=derived_model_name.strip(),
            config_path=ProvisionConfig._norm(config_path),
            verify_max_attempts=int(verify_max_attempts),
            verify_interval_s=float(verify_interval_s),
            verify_deadline_s=deadline,
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        name = self.derived_model_name
        if not isinstance(name, str) or not name.strip():
            raise ValueError("ProvisionConfig.derived_model_name must be a non-empty string.")
        if any(ch.isspace() for ch in name):
            raise ValueError("ProvisionConfig.derived_model_name must not contain whitespace.")

        if self.config_path.exists() and self.config_path.is_dir():
            raise ValueError(f"ProvisionConfig.config_path is a directory: {self.config_path}")

        if isinstance(self.verify_max_attempts, bool) or not isinstance(self.verify_max_attempts, int):
            raise ValueError("ProvisionConfig.verify_max_attempts must be an integer.")
        if self.verify_max_attempts < 1:
            raise ValueError("ProvisionConfig.verify_max_attempts must be >= 1.")
        if self.verify_interval_s < 0:
            raise ValueError("ProvisionConfig.verify_interval_s must be >= 0.")
        if self.verify_deadline_s is not None and self.verify_deadline_s <= 0:
            raise ValueError("ProvisionConfig.verify_deadline_s must be > 0 when provided.")

    @staticmethod
    def _norm(p: str | Path) -> Path:
        return Path(p).expanduser().resolve()
