from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from app.errors import ProvisioningError
from app.pipeline import ProvisionOutcome
from app.probe import Capabilities
from app.select_model import NoCandidate
from app.verifier import VerificationState
from services.batch_prompt_service import BatchReport
from utils.terminal_ui import Color, color_print


def print_capabilities(caps: Capabilities) -> None:
    print("Host capabilities")
    print(f"  {caps.summary}")


def print_catalog_rows(rows: list[dict[str, Any]]) -> None:
    print("Model catalog")
    for row in rows:
        markers: list[str] = []
        if row.get("selected"):
            markers.append("selected")
        if row.get("fits"):
            markers.append("fits")
        if row.get("requires_gpu"):
            markers.append("gpu")
        marker_str = f" ({', '.join(markers)})" if markers else ""
        print(f"  - {row['name']}: min RAM {row['min_ram_gib']:.1f} GiB{marker_str}")


def print_provision_outcome(outcome: ProvisionOutcome) -> None:
    print(outcome.capabilities.summary)
    if isinstance(outcome.selection, NoCandidate):
        color_print(outcome.selection.message, color=Color.YELLOW)
        return

    descriptor = outcome.selection.descriptor
    print(f"Selected model: {descriptor.name} (min RAM {descriptor.min_ram_gib:.1f} GiB)")
    if outcome.artifact is not None:
        print(f"Model config: {outcome.artifact.path}")
    if outcome.verification is VerificationState.CONFIRMED:
        color_print(f"Model ready: {outcome.derived_model}", color=Color.GREEN)
    elif outcome.verification is VerificationState.TIMED_OUT:
        color_print(
            f"Could not confirm {outcome.derived_model} in time. It may still be usable; "
            "check the model list and re-run provision if it is missing.",
            color=Color.YELLOW,
        )


def print_provisioning_error(exc: ProvisioningError) -> None:
    color_print(f"Error at stage {exc.stage}: {exc}", color=Color.RED)


def print_batch_report(report: BatchReport, json_out: Path | None = None) -> None:
    print("Batch complete")
    print(f"Model: {report.model}")
    print(
        f"Prompts: {len(report.prompts)} | ok: {report.success_count} | "
        f"failed: {report.failure_count} | cache hits: {report.cache_hits} | "
        f"shared: {report.cache_coalesced} | {report.elapsed_s:.1f}s"
    )
    for idx, out in enumerate(report.outputs):
        if isinstance(out, Exception):
            print(f"[{idx}] error: {out}")
        else:
            print(f"[{idx}] {out}")
    if json_out is not None:
        print(f"JSON: {json_out}")


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=True), encoding="utf-8")
