"""Load pipeline and env configuration."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from hirepipe.log import get_logger
from hirepipe.models import STAGES

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
PIPELINE_CONFIG_PATH: Path = CONFIG_DIR / "pipeline.yaml"
DATA_DIR: Path = ROOT_DIR / "data"

DEFAULTS: dict[str, Any] = {
    "actor": "Current User",
    "trend_window_days": 7,
    "recent_activity_limit": 50,
    "data_file": "pipeline.json",
    "seed_file": "sample_pipeline.yaml",
    "stages": {},
}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def load_pipeline_config(path: Path | None = None) -> dict[str, Any]:
    """Read pipeline.yaml merged over DEFAULTS; env vars win over both."""
    path = path or PIPELINE_CONFIG_PATH
    data: dict[str, Any] = dict(DEFAULTS)
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            log.warning("Ignoring %s: expected a mapping, got %s", path.name, type(loaded).__name__)
            loaded = {}
        data.update(loaded)
    else:
        log.debug("No pipeline config at %s, using defaults", path)

    stages = dict(data.get("stages") or {})
    unknown = [s for s in stages if s not in STAGES]
    for s in unknown:
        log.warning("Config lists unknown stage %r; ignoring it", s)
        stages.pop(s)
    data["stages"] = stages

    actor = get_env("PIPELINE_ACTOR")
    if actor:
        data["actor"] = actor
    return data


def stage_caps(config: dict[str, Any]) -> dict[str, int | None]:
    """Per-stage max_applicants from config; stages without a cap map to None."""
    caps: dict[str, int | None] = {}
    for stage in STAGES:
        entry = config.get("stages", {}).get(stage) or {}
        cap = entry.get("max_applicants")
        caps[stage] = int(cap) if cap is not None else None
    return caps


def data_path(config: dict[str, Any]) -> Path:
    override = get_env("PIPELINE_DATA_PATH")
    if override:
        return Path(override)
    return DATA_DIR / config.get("data_file", DEFAULTS["data_file"])


def seed_path(config: dict[str, Any]) -> Path:
    return DATA_DIR / config.get("seed_file", DEFAULTS["seed_file"])


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
