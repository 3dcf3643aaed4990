"""In-memory entity store for applications and jobs."""
from __future__ import annotations

import dataclasses
from collections import deque
from typing import Callable, Iterable

from hirepipe.errors import (
    ApplicationNotFound,
    DuplicateEntityError,
    InvalidJobStatusError,
    JobNotFound,
)
from hirepipe.log import activity_logger, get_logger
from hirepipe.models import JOB_STATUSES, Activity, Application, Job, new_id, to_iso, utc_now

log = get_logger(__name__)
audit = activity_logger()

Listener = Callable[[str], None]


class EntityStore:
    """Applications and jobs keyed by id, kept in insertion order.

    Reads hand back the stored objects; audited changes to applications go
    through TransitionController, which calls record_activity and commit.
    """

    def __init__(
        self,
        applications: Iterable[Application] = (),
        jobs: Iterable[Job] = (),
        persistence=None,
        recent_limit: int = 50,
    ) -> None:
        self._applications: dict[str, Application] = {}
        self._jobs: dict[str, Job] = {}
        self._listeners: list[Listener] = []
        self._recent: deque[tuple[str, Activity]] = deque(maxlen=recent_limit)
        self.persistence = persistence
        for app in applications:
            self.add_application(app, commit=False)
        for job in jobs:
            self.add_job(job, commit=False)

    # ── Reads ────────────────────────────────────────────────────────────

    def applications(self) -> list[Application]:
        return list(self._applications.values())

    def jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def get_application(self, application_id: str) -> Application:
        try:
            return self._applications[application_id]
        except KeyError:
            raise ApplicationNotFound(application_id) from None

    def get_job(self, job_id: str) -> Job:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise JobNotFound(job_id) from None

    def has_application(self, application_id: str) -> bool:
        return application_id in self._applications

    def applications_for_job(self, job_id: str) -> list[Application]:
        """Applications linked to *job_id*.

        Records carrying a job_id match on it exactly; records without one
        fall back to title equality.
        """
        job = self.get_job(job_id)
        out: list[Application] = []
        for app in self._applications.values():
            if app.job_id is not None:
                if app.job_id == job_id:
                    out.append(app)
            elif app.job_title == job.title:
                out.append(app)
        return out

    def recent_activity(self) -> list[tuple[str, Activity]]:
        """(application_id, activity) pairs, newest first."""
        return list(reversed(self._recent))

    # ── Writes ───────────────────────────────────────────────────────────

    def add_application(self, app: Application, *, commit: bool = True) -> Application:
        if app.id in self._applications:
            raise DuplicateEntityError("application", app.id)
        self._applications[app.id] = app
        if commit:
            self.commit(f"application {app.id} added")
        return app

    def add_job(self, job: Job, *, commit: bool = True) -> Job:
        if job.id in self._jobs:
            raise DuplicateEntityError("job", job.id)
        if job.status not in JOB_STATUSES:
            raise InvalidJobStatusError(job.status)
        self._jobs[job.id] = job
        if commit:
            self.commit(f"job {job.id} added")
        return job

    def update_job(self, job_id: str, **changes) -> Job:
        job = self.get_job(job_id)
        if "status" in changes and changes["status"] not in JOB_STATUSES:
            raise InvalidJobStatusError(changes["status"])
        if "id" in changes and changes["id"] != job_id:
            raise ValueError("Job id is immutable")
        updated = dataclasses.replace(job, **changes)
        self._jobs[job_id] = updated
        log.debug("Updated job %s: %s", job_id, ", ".join(sorted(changes)))
        self.commit(f"job {job_id} updated")
        return updated

    def delete_job(self, job_id: str) -> Job:
        job = self.get_job(job_id)
        del self._jobs[job_id]
        self.commit(f"job {job_id} deleted")
        return job

    def duplicate_job(self, job_id: str, now=None) -> Job:
        """Copy a job as a fresh draft with counters reset."""
        source = self.get_job(job_id)
        copy = dataclasses.replace(
            source,
            id=new_id("job"),
            title=f"{source.title} (Copy)",
            status="draft",
            applications=0,
            views=0,
            created_at=to_iso(now or utc_now()),
            expires_at=None,
            skills=list(source.skills),
            requirements=list(source.requirements),
            responsibilities=list(source.responsibilities),
        )
        self._jobs[copy.id] = copy
        self.commit(f"job {job_id} duplicated as {copy.id}")
        return copy

    def record_activity(self, app: Application, activity: Activity) -> None:
        app.activities.append(activity)
        app.last_activity_at = activity.timestamp
        app.version += 1
        self._recent.append((app.id, activity))
        audit.info("%s  %s  %s  %s", app.id, activity.actor, activity.type, activity.description)

    # ── Change propagation ───────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def commit(self, reason: str = "") -> None:
        """Notify listeners and hand a snapshot to the persistence collaborator.

        Persistence is fire-and-forget: a failed save is logged and the
        in-memory state stays authoritative.
        """
        for listener in list(self._listeners):
            listener(reason)
        if self.persistence is None:
            return
        try:
            self.persistence.save(self.snapshot())
        except Exception as exc:
            log.error("Persisting snapshot failed (%s): %s", reason or "commit", exc)

    def snapshot(self) -> dict:
        return {
            "applications": [a.to_dict() for a in self._applications.values()],
            "jobs": [j.to_dict() for j in self._jobs.values()],
        }
