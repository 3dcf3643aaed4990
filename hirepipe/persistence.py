"""Snapshot persistence (JSON) with file locking, plus seed-file loading."""
from __future__ import annotations

import fcntl
import json
import os
from datetime import datetime, timezone
from pathlib import Path

import yaml

from hirepipe.log import get_logger
from hirepipe.models import Application, Job
from hirepipe.store import EntityStore

log = get_logger(__name__)


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _parse_records(data: dict, source: str) -> tuple[list[Application], list[Job]]:
    apps: list[Application] = []
    jobs: list[Job] = []
    for raw in data.get("applications") or []:
        try:
            apps.append(Application.from_dict(raw))
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping malformed application in %s: %s", source, exc)
    for raw in data.get("jobs") or []:
        try:
            jobs.append(Job.from_dict(raw))
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping malformed job in %s: %s", source, exc)
    return apps, jobs


class JsonSnapshotStore:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def save(self, snapshot: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"saved_at": datetime.now(timezone.utc).isoformat(), **snapshot}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            _lock(f)
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
            _unlock(f)
        os.replace(tmp, self.path)
        log.debug(
            "Saved %d applications, %d jobs → %s",
            len(snapshot.get("applications", [])), len(snapshot.get("jobs", [])), self.path.name,
        )

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> tuple[list[Application], list[Job]]:
        """Read the snapshot; a missing or unreadable file yields empty collections."""
        if not self.path.exists():
            return [], []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                _lock(f, exclusive=False)
                data = json.load(f)
                _unlock(f)
        except json.JSONDecodeError as exc:
            log.error("Snapshot %s is not valid JSON: %s", self.path, exc)
            return [], []
        if not isinstance(data, dict):
            log.error("Snapshot %s has unexpected shape", self.path)
            return [], []
        return _parse_records(data, self.path.name)


def load_seed(path: Path | str) -> tuple[list[Application], list[Job]]:
    """Load applications and jobs from a YAML or JSON seed file."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Seed file {path} must contain a mapping")
    apps, jobs = _parse_records(data, path.name)
    log.info("Loaded seed %s: %d applications, %d jobs", path.name, len(apps), len(jobs))
    return apps, jobs


def open_store(
    data_path: Path | str,
    seed_path: Path | str | None = None,
    recent_limit: int = 50,
) -> EntityStore:
    """Store backed by the snapshot at *data_path*, seeded on first use."""
    snapshots = JsonSnapshotStore(data_path)
    if snapshots.exists():
        apps, jobs = snapshots.load()
        log.info("Loaded %d applications, %d jobs from %s", len(apps), len(jobs), snapshots.path.name)
    elif seed_path is not None and Path(seed_path).exists():
        apps, jobs = load_seed(seed_path)
    else:
        log.warning("No snapshot or seed found; starting with an empty pipeline")
        apps, jobs = [], []
    return EntityStore(apps, jobs, persistence=snapshots, recent_limit=recent_limit)
