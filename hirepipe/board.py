"""Pipeline board: search + filters → view → stage buckets → metrics."""
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any, Iterable, Mapping

from hirepipe.config import load_pipeline_config, stage_caps as caps_from_config
from hirepipe.filters import active_filter_count, available_options, filter_applications
from hirepipe.grouping import group_by_stage, stage_capacity
from hirepipe.log import get_logger
from hirepipe.metrics import MetricsCache, compute_stage_metrics
from hirepipe.models import (
    ApplicantFilters,
    Application,
    BulkResult,
    CapacityStatus,
    StageMetrics,
)
from hirepipe.store import EntityStore
from hirepipe.transitions import TransitionController

log = get_logger(__name__)


class PipelineBoard:
    """Read path over an EntityStore, optionally scoped to one job.

    Stage metrics are cached and dropped whenever the store commits a change
    or the search/filters change.
    """

    def __init__(
        self,
        store: EntityStore,
        controller: TransitionController | None = None,
        stage_caps: Mapping[str, int | None] | None = None,
        job_id: str | None = None,
        trend_window_days: int = 7,
    ) -> None:
        self.store = store
        self.controller = controller or TransitionController(store)
        self.stage_caps = dict(stage_caps or {})
        self.job_id = job_id
        self.trend_window_days = trend_window_days
        self.query = ""
        self.filters = ApplicantFilters()
        self._metrics = MetricsCache(store)

    @classmethod
    def from_config(
        cls,
        store: EntityStore,
        config: dict[str, Any] | None = None,
        job_id: str | None = None,
        clock=None,
    ) -> PipelineBoard:
        config = config or load_pipeline_config()
        kwargs = {"actor": config["actor"]}
        if clock is not None:
            kwargs["clock"] = clock
        return cls(
            store,
            controller=TransitionController(store, **kwargs),
            stage_caps=caps_from_config(config),
            job_id=job_id,
            trend_window_days=int(config.get("trend_window_days", 7)),
        )

    # ── Search and filters ───────────────────────────────────────────────

    def set_query(self, query: str) -> None:
        self.query = query or ""
        self._metrics.invalidate("search changed")

    def set_filters(self, filters: ApplicantFilters | None = None, **changes) -> None:
        base = filters if filters is not None else self.filters
        self.filters = dataclasses.replace(base, **changes)
        log.debug("Filters now %s (%d active)", self.filters, self.active_filters)
        self._metrics.invalidate("filters changed")

    def clear_filter(self, name: str) -> None:
        if name not in {f.name for f in dataclasses.fields(ApplicantFilters)}:
            raise ValueError(f"Unknown filter {name!r}")
        self.set_filters(**{name: None})

    def clear_filters(self) -> None:
        self.filters = ApplicantFilters()
        self._metrics.invalidate("filters cleared")

    @property
    def active_filters(self) -> int:
        return active_filter_count(self.filters)

    # ── Reads ────────────────────────────────────────────────────────────

    def scope(self) -> list[Application]:
        if self.job_id is None:
            return self.store.applications()
        return self.store.applications_for_job(self.job_id)

    def view(self) -> list[Application]:
        return filter_applications(self.scope(), self.query, self.filters)

    def groups(self) -> dict[str, list[Application]]:
        return group_by_stage(self.view())

    def metrics(self, now: datetime | None = None) -> dict[str, StageMetrics]:
        if now is None:
            now = self.controller.clock()
        return self._metrics.get(
            lambda: compute_stage_metrics(self.groups(), now=now, trend_window_days=self.trend_window_days),
            key=now,
        )

    def capacity(self) -> dict[str, CapacityStatus]:
        return stage_capacity(self.groups(), self.stage_caps)

    def options(self) -> dict[str, list[str]]:
        """Filter choices offered to the user, taken from the unfiltered scope."""
        return available_options(self.scope())

    # ── Writes ───────────────────────────────────────────────────────────

    def move(self, application_id: str, stage: str, expected_version: int | None = None) -> Application:
        app, _ = self.controller.move_to_stage(application_id, stage, expected_version)
        return app

    def bulk_move(self, application_ids: Iterable[str], stage: str) -> BulkResult:
        return self.controller.bulk_move(application_ids, stage)

    def bulk_reject(self, application_ids: Iterable[str]) -> BulkResult:
        return self.controller.bulk_reject(application_ids)
