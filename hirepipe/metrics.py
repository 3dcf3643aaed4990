"""Per-stage pipeline metrics derived from the activity log.

Estimation policy
-----------------
An application's stage history starts with ("new", applied_at) and continues
with one entry per status_change activity, in log order. If the stored status
disagrees with the last logged stage (data written outside the controller),
the application is taken to have entered its current stage at its last
logged transition.

* average_time_in_stage: mean length in hours of every stint any application
  in the view spent in the stage; a stint still open ends at ``now``.
* conversion_rate: of the applications that reached the stage, the percentage
  that later reached a further funnel stage. Terminal stages report 0.
* drop_off_rate: of the applications that reached the stage, the percentage
  rejected directly from it. Terminal stages report 0.
* trend: entries into the stage during the last window compared with the
  window before it.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Iterable, Mapping

from hirepipe.log import get_logger
from hirepipe.models import (
    STAGES,
    TERMINAL_STAGES,
    Application,
    EmployerStats,
    StageMetrics,
    parse_timestamp,
    utc_now,
)
from hirepipe.store import EntityStore

log = get_logger(__name__)

# new → hired; rejected sits outside the forward funnel
FUNNEL: tuple[str, ...] = tuple(s for s in STAGES if s != "rejected")
_MOVED_PREFIX = "Moved to "


def stage_history(app: Application) -> list[tuple[str, datetime]]:
    history = [("new", parse_timestamp(app.applied_at))]
    for activity in app.status_changes():
        stage = activity.to_stage
        if stage is None and activity.description.startswith(_MOVED_PREFIX):
            stage = activity.description[len(_MOVED_PREFIX):].strip()
        if stage not in STAGES:
            continue
        history.append((stage, parse_timestamp(activity.timestamp)))
    if app.status in STAGES and history[-1][0] != app.status:
        history.append((app.status, history[-1][1]))
    return history


def _furthest_reached(history: list[tuple[str, datetime]]) -> int:
    return max(FUNNEL.index(stage) for stage, _ in history if stage in FUNNEL)


def _rejected_from(history: list[tuple[str, datetime]]) -> set[str]:
    return {
        history[i - 1][0]
        for i in range(1, len(history))
        if history[i][0] == "rejected" and history[i - 1][0] != "rejected"
    }


def _pct(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def compute_stage_metrics(
    groups: Mapping[str, list[Application]],
    now: datetime | None = None,
    trend_window_days: int = 7,
) -> dict[str, StageMetrics]:
    """Metrics for every stage in ``groups``; see the module docstring for the formulas."""
    now = now or utc_now()
    window = timedelta(days=trend_window_days)

    stint_hours: dict[str, list[float]] = {s: [] for s in STAGES}
    reached: dict[str, int] = dict.fromkeys(STAGES, 0)
    converted: dict[str, int] = dict.fromkeys(STAGES, 0)
    dropped: dict[str, int] = dict.fromkeys(STAGES, 0)
    recent: dict[str, int] = dict.fromkeys(STAGES, 0)
    previous: dict[str, int] = dict.fromkeys(STAGES, 0)

    for stage in STAGES:
        for app in groups.get(stage, []):
            try:
                history = stage_history(app)
            except (AttributeError, TypeError, ValueError) as exc:
                log.warning("Skipping application %s in metrics: %s", app.id, exc)
                continue

            for i, (entered, at) in enumerate(history):
                left = history[i + 1][1] if i + 1 < len(history) else now
                stint_hours[entered].append(max((left - at).total_seconds(), 0.0) / 3600)
                if now - window < at <= now:
                    recent[entered] += 1
                elif now - 2 * window < at <= now - window:
                    previous[entered] += 1

            furthest = _furthest_reached(history)
            for idx, funnel_stage in enumerate(FUNNEL[: furthest + 1]):
                reached[funnel_stage] += 1
                if idx < furthest:
                    converted[funnel_stage] += 1
            for origin in _rejected_from(history):
                dropped[origin] += 1

    metrics: dict[str, StageMetrics] = {}
    for stage in STAGES:
        hours = stint_hours[stage]
        terminal = stage in TERMINAL_STAGES
        if recent[stage] > previous[stage]:
            trend = "up"
        elif recent[stage] < previous[stage]:
            trend = "down"
        else:
            trend = "stable"
        metrics[stage] = StageMetrics(
            stage_id=stage,
            total_applicants=len(groups.get(stage, [])),
            average_time_in_stage=round(sum(hours) / len(hours), 2) if hours else 0.0,
            conversion_rate=0.0 if terminal else _pct(converted[stage], reached[stage]),
            drop_off_rate=0.0 if terminal else _pct(dropped[stage], reached[stage]),
            trend=trend,
        )
    return metrics


class MetricsCache:
    """Holds the last computed metrics until the store commits a change.

    Results are keyed by the reference time they were computed for; a
    different key recomputes.
    """

    def __init__(self, store: EntityStore | None = None) -> None:
        self._value: dict[str, StageMetrics] | None = None
        self._key: object = None
        if store is not None:
            store.subscribe(self.invalidate)

    def invalidate(self, reason: str = "") -> None:
        if self._value is not None:
            log.debug("Stage metrics invalidated: %s", reason or "manual")
        self._value = None

    @property
    def is_valid(self) -> bool:
        return self._value is not None

    def get(
        self,
        compute: Callable[[], dict[str, StageMetrics]],
        key: object = None,
    ) -> dict[str, StageMetrics]:
        if self._value is None or key != self._key:
            self._value = compute()
            self._key = key
        return self._value


def _hired_at(app: Application) -> datetime | None:
    for activity in app.status_changes():
        if activity.to_stage == "hired" or activity.description == f"{_MOVED_PREFIX}hired":
            return parse_timestamp(activity.timestamp)
    return None


def compute_employer_stats(store: EntityStore, applications: Iterable[Application] | None = None) -> EmployerStats:
    """Dashboard totals over the store's jobs and applications."""
    jobs = store.jobs()
    apps = list(applications) if applications is not None else store.applications()

    hire_days: list[float] = []
    for app in apps:
        if app.status != "hired":
            continue
        hired = _hired_at(app)
        if hired is None:
            continue
        delta = hired - parse_timestamp(app.applied_at)
        hire_days.append(max(delta.total_seconds(), 0.0) / 86400)

    views = sum(j.views for j in jobs)
    return EmployerStats(
        total_jobs=len(jobs),
        active_jobs=sum(1 for j in jobs if j.status == "active"),
        total_applications=len(apps),
        pending_applications=sum(1 for a in apps if a.status == "new"),
        hired_count=sum(1 for a in apps if a.status == "hired"),
        average_time_to_hire=round(sum(hire_days) / len(hire_days), 2) if hire_days else 0.0,
        job_views=views,
        application_rate=_pct(len(apps), views),
    )
