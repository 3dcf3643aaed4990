"""Small rendering helpers for the Streamlit pages."""
from __future__ import annotations

import html
from datetime import date

from hirepipe.models import ApplicantFilters, Application, parse_timestamp


def applicant_card(app: Application) -> str:
    """HTML for one applicant card; user-supplied text is escaped."""
    score = f"{app.match_score}%" if app.match_score is not None else "n/a"
    return (
        f"<div class='applicant-card'><span class='score'>{score}</span>"
        f"<b>{html.escape(app.candidate_name)}</b><br/>{html.escape(app.job_title or '')}</div>"
    )


def _as_date(value: str | None) -> date | None:
    if not value:
        return None
    return parse_timestamp(value).date()


def applied_date_range(filters: ApplicantFilters) -> tuple[date | None, date | None]:
    """Current applied-date bounds as dates, to prefill the sidebar inputs."""
    return _as_date(filters.date_applied_from), _as_date(filters.date_applied_to)
