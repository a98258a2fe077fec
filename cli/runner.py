from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from app.pipeline import ProvisionOutcome, ProvisionPipeline
from app.probe import Capabilities, probe
from app.runtime_lifecycle import RuntimeLifecycle
from app.select_model import Selected, fits, select
from app.settings import AppConfig, build_settings, get_app_base_dir
from app.verifier import CancellationToken
from services.batch_prompt_service import BatchPromptService, BatchReport
from services.generate_client import GenerateClient
from services.model_registry import ModelRegistry
from services.model_server_process import ModelServerProcess
from services.prompt_cache import PromptCache


@dataclass
class CliSession:
    runtime_lifecycle: RuntimeLifecycle = field(default_factory=RuntimeLifecycle)
    catalog_path: str | Path | None = None
    registry_bin: str | None = None
    app_cfg: AppConfig | None = None
    server_proc: ModelServerProcess | None = None

    def config(self) -> AppConfig:
        if self.app_cfg is None:
            cfg = build_settings(self.catalog_path)
            if self.registry_bin:
                registry = replace(cfg.registry, registry_bin=self.registry_bin)
                registry.validate()
                cfg = replace(cfg, registry=registry)
            self.app_cfg = cfg
        return self.app_cfg

    def override_verification(
        self,
        max_attempts: int | None = None,
        interval_s: float | None = None,
        deadline_s: float | None = None,
    ) -> None:
        cfg = self.config()
        changes: dict[str, Any] = {}
        if max_attempts is not None:
            changes["verify_max_attempts"] = max_attempts
        if interval_s is not None:
            changes["verify_interval_s"] = interval_s
        if deadline_s is not None:
            changes["verify_deadline_s"] = deadline_s
        if not changes:
            return
        provision = replace(cfg.provision, **changes)
        provision.validate()
        self.app_cfg = replace(cfg, provision=provision)

    def registry(self) -> ModelRegistry:
        cfg = self.config()
        return ModelRegistry(
            registry_bin=cfg.registry.registry_bin,
            timeout_s=cfg.registry.command_timeout_s,
        )

    def probe(self) -> Capabilities:
        return probe()

    def catalog_rows(self, caps: Capabilities | None = None) -> list[dict[str, Any]]:
        cfg = self.config()
        caps = caps or probe()
        result = select(cfg.catalog, caps)
        selected_name = result.descriptor.name if isinstance(result, Selected) else None
        return [
            {
                "name": d.name,
                "min_ram_gib": d.min_ram_gib,
                "requires_gpu": d.requires_gpu,
                "fits": fits(d, caps),
                "selected": d.name == selected_name,
            }
            for d in cfg.catalog
        ]

    def provision(
        self,
        cancel: CancellationToken | None = None,
        show_progress: bool = True,
    ) -> ProvisionOutcome:
        pipeline = ProvisionPipeline(
            app_cfg=self.config(),
            registry=self.registry(),
            cancel=cancel,
            show_progress=show_progress,
        )
        return pipeline.run()

    def _server(self) -> ModelServerProcess:
        if self.server_proc is None:
            cfg = self.config()
            self.server_proc = ModelServerProcess(
                server_cfg=cfg.server,
                log_path=get_app_base_dir() / "logs" / "model-server.log",
                registry_bin=cfg.registry.registry_bin,
            )
        return self.server_proc

    def start_server(self) -> ModelServerProcess:
        server = self._server()
        self.runtime_lifecycle.register_server(server)
        server.start()
        return server

    def stop_server(self) -> bool:
        if self.server_proc is None or not self.server_proc.is_running():
            return False
        self.server_proc.stop()
        return True

    def ask(self, prompt: str, model: str | None = None) -> str:
        if not prompt.strip():
            raise ValueError("Prompt is empty.")
        cfg = self.config()
        return self.registry().run(model or cfg.provision.derived_model_name, prompt)

    def batch(
        self,
        prompts_file: str | Path,
        *,
        model: str | None = None,
        max_concurrency: int | None = None,
    ) -> BatchReport:
        src = Path(prompts_file).expanduser().resolve()
        if not src.exists():
            raise FileNotFoundError(f"File not found: {src}")
        prompts = [
            line.strip()
            for line in src.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        if not prompts:
            raise ValueError(f"No prompts found in: {src}")

        cfg = self.config()
        self.start_server()
        service = BatchPromptService(
            client=GenerateClient(
                base_url=cfg.server.base_url,
                timeout_s=cfg.batch.request_timeout_s,
            ),
            cache=PromptCache(max_entries=cfg.batch.cache_max_entries),
            max_concurrency=cfg.batch.max_concurrency,
        )
        return asyncio.run(
            service.run_batch(
                model or cfg.provision.derived_model_name,
                prompts,
                max_concurrency=max_concurrency,
            )
        )
