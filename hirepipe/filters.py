"""Search, filter and sort applications and jobs."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Iterable

from hirepipe.log import get_logger
from hirepipe.models import (
    STAGES,
    ApplicantFilters,
    Application,
    Job,
    JobFilters,
    parse_timestamp,
    utc_now,
)

log = get_logger(__name__)

Predicate = Callable[[Application], bool]

APPLICATION_SORTS: tuple[str, ...] = ("date", "name", "match", "job", "status")
JOB_SORTS: tuple[str, ...] = (
    "newest", "oldest", "most_applications", "least_applications",
    "most_views", "least_views", "title_asc", "title_desc",
    "expiry_soonest", "expiry_latest",
)


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def _matches_query(app: Application, needle: str) -> bool:
    return (
        _contains(app.candidate_name, needle)
        or _contains(app.candidate_email, needle)
        or _contains(app.job_title, needle)
        or any(_contains(s, needle) for s in app.skills)
        or any(_contains(t, needle) for t in app.tags)
        or any(_contains(n.content, needle) for n in app.notes)
    )


def build_predicates(query: str = "", filters: ApplicantFilters | None = None) -> list[Predicate]:
    """One predicate per active dimension; an application must pass all of them."""
    preds: list[Predicate] = []
    needle = (query or "").strip().lower()
    if needle:
        preds.append(lambda app: _matches_query(app, needle))

    if filters is None:
        return preds

    if filters.stage:
        stages = set(filters.stage)
        preds.append(lambda app: app.status in stages)

    lo, hi = filters.match_score_min, filters.match_score_max
    if lo is not None:
        preds.append(lambda app: app.match_score is None or app.match_score >= lo)
    if hi is not None:
        preds.append(lambda app: app.match_score is None or app.match_score <= hi)

    if filters.date_applied_from:
        start = parse_timestamp(filters.date_applied_from)
        preds.append(lambda app: parse_timestamp(app.applied_at) >= start)
    if filters.date_applied_to:
        end = parse_timestamp(filters.date_applied_to, end_of_day=True)
        preds.append(lambda app: parse_timestamp(app.applied_at) <= end)

    if filters.assigned_recruiter:
        recruiters = set(filters.assigned_recruiter)
        preds.append(lambda app: app.assigned_recruiter in recruiters)

    if filters.location:
        locations = set(filters.location)
        preds.append(lambda app: app.location in locations)

    if filters.skills:
        skills = set(filters.skills)
        preds.append(lambda app: not skills.isdisjoint(app.skills))

    if filters.tags:
        tags = set(filters.tags)
        preds.append(lambda app: not tags.isdisjoint(app.tags))

    return preds


def filter_applications(
    applications: Iterable[Application],
    query: str = "",
    filters: ApplicantFilters | None = None,
) -> list[Application]:
    """Applications matching the search text and every active filter, input order kept."""
    preds = build_predicates(query, filters)
    out: list[Application] = []
    for app in applications:
        try:
            if all(p(app) for p in preds):
                out.append(app)
        except (AttributeError, TypeError, ValueError) as exc:
            log.warning("Skipping application %s during filtering: %s", getattr(app, "id", "?"), exc)
    return out


def active_filter_count(filters: ApplicantFilters | None) -> int:
    if filters is None:
        return 0
    count = 0
    for value in vars(filters).values():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set, str)) and not value:
            continue
        count += 1
    return count


def available_options(applications: Iterable[Application]) -> dict[str, list[str]]:
    """Distinct recruiters, locations, skills and tags, in first-seen order."""
    recruiters: dict[str, None] = {}
    locations: dict[str, None] = {}
    skills: dict[str, None] = {}
    tags: dict[str, None] = {}
    for app in applications:
        if app.assigned_recruiter:
            recruiters[app.assigned_recruiter] = None
        if app.location:
            locations[app.location] = None
        skills.update(dict.fromkeys(app.skills))
        tags.update(dict.fromkeys(app.tags))
    return {
        "recruiters": list(recruiters),
        "locations": list(locations),
        "skills": list(skills),
        "tags": list(tags),
    }


def _stage_rank(status: str) -> int:
    return STAGES.index(status) if status in STAGES else len(STAGES)


def sort_applications(
    applications: Iterable[Application],
    by: str = "date",
    order: str = "desc",
) -> list[Application]:
    """Sorted copy. "status" sorts in pipeline order; missing scores count as 0."""
    keys: dict[str, Callable[[Application], object]] = {
        "date": lambda a: parse_timestamp(a.applied_at),
        "name": lambda a: a.candidate_name.lower(),
        "match": lambda a: a.match_score or 0,
        "job": lambda a: a.job_title.lower(),
        "status": lambda a: _stage_rank(a.status),
    }
    if by not in keys:
        raise ValueError(f"Unknown sort {by!r}; expected one of {', '.join(APPLICATION_SORTS)}")
    if order not in ("asc", "desc"):
        raise ValueError(f"Unknown sort order {order!r}")
    return sorted(applications, key=keys[by], reverse=order == "desc")


# ── Jobs ─────────────────────────────────────────────────────────────────


def _job_matches_query(job: Job, needle: str) -> bool:
    return (
        _contains(job.title, needle)
        or _contains(job.location, needle)
        or _contains(job.description, needle)
        or any(_contains(s, needle) for s in job.skills)
    )


def filter_jobs(
    jobs: Iterable[Job],
    query: str = "",
    filters: JobFilters | None = None,
    now: datetime | None = None,
) -> list[Job]:
    needle = (query or "").strip().lower()
    filters = filters or JobFilters()
    now = now or utc_now()
    cutoff = None
    if filters.posted_within_days is not None:
        cutoff = now - timedelta(days=filters.posted_within_days)
    location = (filters.location or "").strip().lower()

    out: list[Job] = []
    for job in jobs:
        if needle and not _job_matches_query(job, needle):
            continue
        if filters.status and job.status not in filters.status:
            continue
        if filters.employment_type and job.employment_type not in filters.employment_type:
            continue
        if location and location not in (job.location or "").lower():
            continue
        if cutoff is not None:
            try:
                if parse_timestamp(job.created_at) < cutoff:
                    continue
            except (TypeError, ValueError) as exc:
                log.warning("Job %s has unreadable created_at: %s", job.id, exc)
                continue
        out.append(job)
    return out


def sort_jobs(jobs: Iterable[Job], by: str = "newest") -> list[Job]:
    jobs = list(jobs)
    if by in ("newest", "oldest"):
        return sorted(jobs, key=lambda j: parse_timestamp(j.created_at), reverse=by == "newest")
    if by in ("most_applications", "least_applications"):
        return sorted(jobs, key=lambda j: j.applications, reverse=by == "most_applications")
    if by in ("most_views", "least_views"):
        return sorted(jobs, key=lambda j: j.views, reverse=by == "most_views")
    if by in ("title_asc", "title_desc"):
        return sorted(jobs, key=lambda j: j.title.lower(), reverse=by == "title_desc")
    if by in ("expiry_soonest", "expiry_latest"):
        dated = [j for j in jobs if j.expires_at]
        undated = [j for j in jobs if not j.expires_at]
        dated.sort(key=lambda j: parse_timestamp(j.expires_at), reverse=by == "expiry_latest")
        return dated + undated
    raise ValueError(f"Unknown sort {by!r}; expected one of {', '.join(JOB_SORTS)}")
