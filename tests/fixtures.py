"""Shared builders for the test suite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from hirepipe.models import Activity, Application, Job, Note

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


def make_application(app_id: str, **overrides) -> Application:
    fields = {
        "id": app_id,
        "candidate_name": f"Candidate {app_id}",
        "candidate_email": f"{app_id}@example.com",
        "job_title": "Backend Engineer",
        "status": "new",
        "applied_at": "2026-09-01T10:00:00+00:00",
    }
    fields.update(overrides)
    return Application(**fields)


def make_job(job_id: str, **overrides) -> Job:
    fields = {
        "id": job_id,
        "title": f"Job {job_id}",
        "status": "active",
        "location": "Remote",
        "employment_type": "Full-time",
        "created_at": "2026-09-01T00:00:00+00:00",
    }
    fields.update(overrides)
    return Job(**fields)


def moved(to_stage: str, at: datetime, from_stage: str | None = None) -> Activity:
    return Activity(
        id=f"act-{to_stage}-{at.isoformat()}",
        type="status_change",
        description=f"Moved to {to_stage}",
        actor="tester",
        timestamp=at.isoformat(),
        from_stage=from_stage,
        to_stage=to_stage,
    )


def note(content: str) -> Note:
    return Note(id=f"note-{content[:5]}", content=content, author="tester", created_at=T0.isoformat())
