from __future__ import annotations

from dataclasses import dataclass
import json
import math
from pathlib import Path
from typing import Any, Iterable

from app.errors import CatalogError

CATALOG_FORMAT_VERSION = 1
_ALLOWED_KEYS = {"name", "min_ram_gib", "requires_gpu"}


@dataclass(frozen=True, slots=True)
class ModelDescriptor:
    name: str
    min_ram_gib: float
    requires_gpu: bool = False


DEFAULT_CATALOG: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(name="qwen2.5:0.5b", min_ram_gib=1.2),
    ModelDescriptor(name="llama3.2:1b", min_ram_gib=1.5),
    ModelDescriptor(name="qwen2.5:1.5b", min_ram_gib=1.8),
    ModelDescriptor(name="llama3.2:3b", min_ram_gib=3.5),
    ModelDescriptor(name="llama3.1:8b", min_ram_gib=5.5),
    ModelDescriptor(name="qwen2.5:14b", min_ram_gib=10.0, requires_gpu=True),
)


def validate_catalog(entries: Iterable[ModelDescriptor]) -> tuple[ModelDescriptor, ...]:
    """
    Check every descriptor and return the catalog as an immutable tuple.
    Malformed entries raise CatalogError; nothing is skipped.
    """
    catalog = tuple(entries)
    if not catalog:
        raise CatalogError("Model catalog is empty.")

    seen: set[str] = set()
    for idx, desc in enumerate(catalog):
        if not isinstance(desc, ModelDescriptor):
            raise CatalogError(f"Catalog entry {idx} is not a ModelDescriptor: {desc!r}")
        if not isinstance(desc.name, str) or not desc.name.strip():
            raise CatalogError(f"Catalog entry {idx}: name must be a non-empty string.")
        # The listing is split on whitespace, so such a name could never be found there.
        if any(ch.isspace() for ch in desc.name):
            raise CatalogError(f"Catalog entry {idx}: name must not contain whitespace: {desc.name!r}")
        if desc.name in seen:
            raise CatalogError(f"Catalog entry {idx}: duplicate model name '{desc.name}'.")
        seen.add(desc.name)

        ram = desc.min_ram_gib
        # bool is a subclass of int; reject it explicitly.
        if isinstance(ram, bool) or not isinstance(ram, (int, float)):
            raise CatalogError(f"Catalog entry '{desc.name}': min_ram_gib must be a number.")
        try:
            ram_f = float(ram)
        except OverflowError as exc:
            raise CatalogError(f"Catalog entry '{desc.name}': min_ram_gib is too large.") from exc
        if not math.isfinite(ram_f) or ram_f <= 0:
            raise CatalogError(f"Catalog entry '{desc.name}': min_ram_gib must be > 0, got {ram!r}.")
        if not isinstance(desc.requires_gpu, bool):
            raise CatalogError(f"Catalog entry '{desc.name}': requires_gpu must be a boolean.")
    return catalog


def _descriptor_from_mapping(idx: int, raw: Any) -> ModelDescriptor:
    if not isinstance(raw, dict):
        raise CatalogError(f"Catalog entry {idx} must be an object, got {type(raw).__name__}.")
    unknown = set(raw) - _ALLOWED_KEYS
    if unknown:
        raise CatalogError(f"Catalog entry {idx} has unknown keys: {sorted(unknown)}")
    if "name" not in raw:
        raise CatalogError(f"Catalog entry {idx} is missing 'name'.")
    if "min_ram_gib" not in raw:
        raise CatalogError(f"Catalog entry {idx} is missing 'min_ram_gib'.")
    return ModelDescriptor(
        name=raw["name"],
        min_ram_gib=raw["min_ram_gib"],
        requires_gpu=raw.get("requires_gpu", False),
    )


def parse_catalog(payload: Any) -> tuple[ModelDescriptor, ...]:
    """Build a validated catalog from decoded JSON (an object with 'models', or a bare list)."""
    if isinstance(payload, dict):
        version = payload.get("version", CATALOG_FORMAT_VERSION)
        if version != CATALOG_FORMAT_VERSION:
            raise CatalogError(f"Unsupported catalog version: {version!r}")
        models = payload.get("models")
    else:
        models = payload
    if not isinstance(models, list):
        raise CatalogError("Catalog must be a list of models or an object with a 'models' list.")
    return validate_catalog(_descriptor_from_mapping(i, raw) for i, raw in enumerate(models))


def load_catalog(path: str | Path | None = None) -> tuple[ModelDescriptor, ...]:
    """
    Load the model catalog.
    With no path the embedded defaults are validated and returned.
    """
    if path is None:
        return validate_catalog(DEFAULT_CATALOG)

    catalog_path = Path(path).expanduser().resolve()
    try:
        payload = json.loads(catalog_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogError(f"Failed to read catalog {catalog_path}: {exc}") from exc
    except ValueError as exc:
        # JSONDecodeError, UnicodeDecodeError and over-long integer literals
        raise CatalogError(f"Catalog {catalog_path} is not valid UTF-8 JSON: {exc}") from exc
    return parse_catalog(payload)


def catalog_to_payload(catalog: Iterable[ModelDescriptor]) -> dict[str, Any]:
    return {
        "version": CATALOG_FORMAT_VERSION,
        "models": [
            {"name": d.name, "min_ram_gib": d.min_ram_gib, "requires_gpu": d.requires_gpu}
            for d in catalog
        ],
    }
