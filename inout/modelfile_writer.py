from __future__ import annotations

from dataclasses import dataclass
import hashlib
import os
from pathlib import Path
import tempfile

from config.model_template_config import ModelTemplateConfig

ENCODING = "utf-8"


@dataclass(frozen=True, slots=True)
class ConfigArtifact:
    path: Path
    content: str
    sha256: str


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _format_number(value: float) -> str:
    # repr() gives the shortest round-tripping form, so output is stable across runs
    return repr(float(value))


def render_modelfile(base_model: str, params: ModelTemplateConfig) -> str:
    """
    Render the config document in the directive order the serving tool expects:
    FROM, PARAMETER num_ctx, PARAMETER temperature, PARAMETER top_p, SYSTEM.
    """
    preamble = _normalize_newlines(params.system_preamble).strip("\n")
    lines = [
        f"FROM {base_model}",
        f"PARAMETER num_ctx {int(params.num_ctx)}",
        f"PARAMETER temperature {_format_number(params.temperature)}",
        f"PARAMETER top_p {_format_number(params.top_p)}",
        'SYSTEM """',
        preamble,
        '"""',
    ]
    return "\n".join(lines) + "\n"


def write_atomic(path: Path, content: str) -> None:
    """
    Replace `path` with `content` in one step.

    The bytes go to a temp file in the same directory, are fsynced, then
    renamed over the target. If anything fails before the rename, the prior
    file is untouched and the temp file is removed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = _normalize_newlines(content).encode(ENCODING)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_modelfile(path: Path, base_model: str, params: ModelTemplateConfig) -> ConfigArtifact:
    content = render_modelfile(base_model, params)
    write_atomic(path, content)
    return ConfigArtifact(
        path=Path(path),
        content=content,
        sha256=hashlib.sha256(content.encode(ENCODING)).hexdigest(),
    )
