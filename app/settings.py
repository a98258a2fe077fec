from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from config.batch_config import BatchConfig
from config.model_catalog import ModelDescriptor, load_catalog
from config.model_template_config import ModelTemplateConfig
from config.provision_config import ProvisionConfig
from config.registry_config import RegistryConfig
from config.server_config import ServerConfig


@dataclass(frozen=True, slots=True)
class AppConfig:
    catalog: tuple[ModelDescriptor, ...]
    registry: RegistryConfig
    provision: ProvisionConfig
    template: ModelTemplateConfig
    server: ServerConfig
    batch: BatchConfig


def get_app_base_dir() -> Path:
    # Base directory is .appdata relative to the working directory
    return Path(".appdata").resolve()


def build_settings(catalog_path: str | Path | None = None) -> AppConfig:
    # Catalog errors are fatal; load_catalog raises CatalogError
    catalog = load_catalog(catalog_path)

    registry = RegistryConfig.from_values(
        registry_bin="ollama",
        command_timeout_s=None,
        list_attempts=3,
    )

    provision = ProvisionConfig.from_strings(
        derived_model_name="local-assistant",
        config_path=get_app_base_dir() / "config" / "Modelfile",
        verify_max_attempts=10,
        verify_interval_s=1.0,
        verify_deadline_s=None,
    )

    template = ModelTemplateConfig.from_values(
        num_ctx=4096,
        temperature=0.7,
        top_p=0.9,
    )

    server = ServerConfig.from_strings(
        host="127.0.0.1",
        port=11434,
        wait_s=60.0,
    )

    batch = BatchConfig.from_values(
        max_concurrency=4,
        request_timeout_s=120.0,
        cache_max_entries=512,
    )

    return AppConfig(
        catalog=catalog,
        registry=registry,
        provision=provision,
        template=template,
        server=server,
        batch=batch,
    )
