"""Data models for applications, jobs, and pipeline metrics."""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any

STAGES: tuple[str, ...] = (
    "new", "reviewed", "shortlisted", "interviewed", "offered", "hired", "rejected",
)
UNRECOGNIZED = "unrecognized"
# Stages that end an application's run through the funnel
TERMINAL_STAGES: frozenset[str] = frozenset({"hired", "rejected"})
STAGE_NAMES: dict[str, str] = {s: s.capitalize() for s in STAGES}

JOB_STATUSES: tuple[str, ...] = ("active", "paused", "closed", "draft", "expired")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    return dt.isoformat()


def parse_timestamp(value: str | datetime | date, *, end_of_day: bool = False) -> datetime:
    """Parse an ISO timestamp or plain date into an aware UTC datetime.

    Naive values are taken as UTC. A plain date resolves to midnight, or to
    the last instant of that day when *end_of_day* is set.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.max if end_of_day else time.min)
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        if len(text) == 10:
            d = date.fromisoformat(text)
            dt = datetime.combine(d, time.max if end_of_day else time.min)
        else:
            dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _pick(data: dict, snake: str, camel: str | None = None, default: Any = None) -> Any:
    """Read a key in snake_case, falling back to the camelCase browser-storage name."""
    if snake in data:
        return data[snake]
    if camel and camel in data:
        return data[camel]
    return default


def _require(data: dict, snake: str, camel: str | None = None) -> Any:
    """Like _pick, but a missing or blank value raises ValueError."""
    value = _pick(data, snake, camel)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"Record {data.get('id', '?')!r} is missing {snake}")
    return value


def _ts(value: Any) -> Any:
    """YAML turns unquoted timestamps into datetimes; store them as ISO strings."""
    if isinstance(value, (datetime, date)):
        return to_iso(parse_timestamp(value))
    return value


@dataclass
class Activity:
    id: str
    type: str
    description: str
    actor: str
    timestamp: str
    from_stage: str | None = None
    to_stage: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Activity:
        return cls(
            id=data["id"],
            type=data["type"],
            description=data.get("description", ""),
            actor=data.get("actor", ""),
            timestamp=_ts(data["timestamp"]),
            from_stage=_pick(data, "from_stage", "fromStage"),
            to_stage=_pick(data, "to_stage", "toStage"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Note:
    id: str
    content: str
    author: str
    created_at: str
    is_private: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> Note:
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            author=data.get("author", ""),
            created_at=_ts(_pick(data, "created_at", "createdAt")),
            is_private=bool(_pick(data, "is_private", "isPrivate", True)),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Application:
    id: str
    candidate_name: str
    candidate_email: str
    job_title: str
    status: str
    applied_at: str
    job_id: str | None = None
    match_score: int | None = None
    skills: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    assigned_recruiter: str | None = None
    location: str | None = None
    experience: str | None = None
    resume_url: str | None = None
    notes: list[Note] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)
    has_unread_notes: bool = False
    last_activity_at: str | None = None
    version: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> Application:
        score = _pick(data, "match_score", "matchScore")
        return cls(
            id=data["id"],
            candidate_name=_require(data, "candidate_name", "candidateName"),
            candidate_email=_require(data, "candidate_email", "candidateEmail"),
            job_title=_pick(data, "job_title", "jobTitle", ""),
            status=data.get("status", "new"),
            applied_at=_ts(_require(data, "applied_at", "appliedAt")),
            job_id=_pick(data, "job_id", "jobId"),
            match_score=int(score) if score is not None else None,
            skills=list(data.get("skills") or []),
            tags=list(data.get("tags") or []),
            assigned_recruiter=_pick(data, "assigned_recruiter", "assignedRecruiter"),
            location=data.get("location"),
            experience=data.get("experience"),
            resume_url=_pick(data, "resume_url", "resumeUrl"),
            notes=[Note.from_dict(n) for n in data.get("notes") or []],
            activities=[Activity.from_dict(a) for a in data.get("activities") or []],
            has_unread_notes=bool(_pick(data, "has_unread_notes", "hasUnreadNotes", False)),
            last_activity_at=_ts(_pick(data, "last_activity_at", "lastActivityAt")),
            version=int(data.get("version", 0)),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def status_changes(self) -> list[Activity]:
        return [a for a in self.activities if a.type == "status_change"]


@dataclass
class Job:
    id: str
    title: str
    status: str
    location: str
    employment_type: str
    created_at: str
    applications: int = 0
    views: int = 0
    expires_at: str | None = None
    skills: list[str] = field(default_factory=list)
    description: str = ""
    requirements: list[str] = field(default_factory=list)
    responsibilities: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> Job:
        return cls(
            id=data["id"],
            title=data["title"],
            status=data.get("status", "draft"),
            location=data.get("location", ""),
            employment_type=_pick(data, "employment_type", "employmentType", ""),
            created_at=_ts(_pick(data, "created_at", "createdAt")),
            applications=int(data.get("applications", 0)),
            views=int(data.get("views", 0)),
            expires_at=_ts(_pick(data, "expires_at", "expiresAt")),
            skills=list(data.get("skills") or []),
            description=data.get("description") or "",
            requirements=list(data.get("requirements") or []),
            responsibilities=list(data.get("responsibilities") or []),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ApplicantFilters:
    stage: list[str] | None = None
    match_score_min: int | None = None
    match_score_max: int | None = None
    date_applied_from: str | None = None
    date_applied_to: str | None = None
    assigned_recruiter: list[str] | None = None
    location: list[str] | None = None
    skills: list[str] | None = None
    tags: list[str] | None = None


@dataclass
class JobFilters:
    status: list[str] | None = None
    employment_type: list[str] | None = None
    location: str | None = None
    posted_within_days: int | None = None


@dataclass
class StageMetrics:
    stage_id: str
    total_applicants: int
    average_time_in_stage: float  # hours
    conversion_rate: float  # percent
    drop_off_rate: float  # percent
    trend: str = "stable"


@dataclass
class CapacityStatus:
    ratio: float
    near_capacity: bool
    at_capacity: bool


@dataclass
class BulkResult:
    """Outcome of a bulk operation: ids processed, ids missing, ids in conflict."""
    succeeded: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.not_found and not self.conflicts


@dataclass
class EmployerStats:
    total_jobs: int
    active_jobs: int
    total_applications: int
    pending_applications: int
    hired_count: int
    average_time_to_hire: float  # days
    job_views: int
    application_rate: float  # percent
