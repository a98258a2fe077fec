from __future__ import annotations

from dataclasses import dataclass
import math

DEFAULT_SYSTEM_PREAMBLE = (
    "You are a helpful assistant running entirely on this machine.\n"
    "Answer concisely and say so when you are unsure."
)


@dataclass(frozen=True, slots=True)
class ModelTemplateConfig:
    """
    Parameters rendered into the generated model config document.
    The base model reference comes from the selected descriptor, not from here.
    """

    num_ctx: int = 4096
    temperature: float = 0.7
    top_p: float = 0.9
    system_preamble: str = DEFAULT_SYSTEM_PREAMBLE

    @staticmethod
    def from_values(
        num_ctx: int | str = 4096,
        temperature: float | str = 0.7,
        top_p: float | str = 0.9,
        system_preamble: str = DEFAULT_SYSTEM_PREAMBLE,
    ) -> "ModelTemplateConfig":
        cfg = ModelTemplateConfig(
            num_ctx=int(num_ctx),
            temperature=float(temperature),
            top_p=float(top_p),
            system_preamble=system_preamble,
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if isinstance(self.num_ctx, bool) or not isinstance(self.num_ctx, int):
            raise ValueError("ModelTemplateConfig.num_ctx must be an integer.")
        if self.num_ctx <= 0:
            raise ValueError("ModelTemplateConfig.num_ctx must be > 0.")

        for field_name, value in [("temperature", self.temperature), ("top_p", self.top_p)]:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"ModelTemplateConfig.{field_name} must be a finite number.")
        if self.temperature < 0:
            raise ValueError("ModelTemplateConfig.temperature must be >= 0.")
        if not (0 < self.top_p <= 1):
            raise ValueError("ModelTemplateConfig.top_p must be in (0, 1].")

        if not isinstance(self.system_preamble, str) or not self.system_preamble.strip():
            raise ValueError("ModelTemplateConfig.system_preamble must be a non-empty string.")
        # The preamble is emitted inside a triple-quoted block.
        if '"""' in self.system_preamble:
            raise ValueError('ModelTemplateConfig.system_preamble must not contain \'"""\'.')
