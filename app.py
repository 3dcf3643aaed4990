"""Streamlit UI for the applicant pipeline."""
from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from hirepipe.board import PipelineBoard
from hirepipe.config import data_path, ensure_dirs, load_pipeline_config, seed_path
from hirepipe.errors import PipelineError
from hirepipe.filters import JOB_SORTS, filter_jobs, sort_jobs
from hirepipe.log import get_logger
from hirepipe.metrics import compute_employer_stats
from hirepipe.models import JOB_STATUSES, STAGE_NAMES, STAGES, UNRECOGNIZED, JobFilters
from hirepipe.persistence import open_store
from hirepipe.store import EntityStore
from hirepipe.ui import applicant_card, applied_date_range

log = get_logger(__name__)

_CARD_CSS = """
<style>
.applicant-card {
    padding: 0.5rem 0.75rem; margin-bottom: 0.5rem;
    background: rgba(255,255,255,0.7); border-radius: 8px;
    border: 1px solid rgba(0,0,0,0.08); font-size: 0.9rem;
}
.applicant-card .score { float: right; font-weight: 600; }
</style>
"""

# ── Helpers ──────────────────────────────────────────────────────────────


def _config() -> dict:
    if "_config" not in st.session_state:
        st.session_state["_config"] = load_pipeline_config()
    return st.session_state["_config"]


def _store() -> EntityStore:
    if "_store" not in st.session_state:
        config = _config()
        ensure_dirs()
        st.session_state["_store"] = open_store(
            data_path(config), seed_path(config), recent_limit=int(config["recent_activity_limit"])
        )
    return st.session_state["_store"]


def _board(job_id: str | None) -> PipelineBoard:
    key = f"_board_{job_id or 'all'}"
    if key not in st.session_state:
        st.session_state[key] = PipelineBoard.from_config(_store(), _config(), job_id=job_id)
    return st.session_state[key]


def _iso(d: date | None) -> str | None:
    return d.isoformat() if d else None


# ── Page: Pipeline ───────────────────────────────────────────────────────


def _filters_sidebar(board: PipelineBoard) -> None:
    opts = board.options()
    with st.sidebar:
        st.subheader(f"Filters ({board.active_filters})")
        stage = st.multiselect("Stage", STAGES, default=board.filters.stage or [], format_func=STAGE_NAMES.get)
        lo, hi = st.slider("Match score", 0, 100, (
            board.filters.match_score_min or 0, board.filters.match_score_max or 100,
        ))
        current_from, current_to = applied_date_range(board.filters)
        applied_from = st.date_input("Applied from", value=current_from)
        applied_to = st.date_input("Applied to", value=current_to)
        recruiters = st.multiselect("Recruiter", opts["recruiters"], default=board.filters.assigned_recruiter or [])
        locations = st.multiselect("Location", opts["locations"], default=board.filters.location or [])
        skills = st.multiselect("Skills", opts["skills"], default=board.filters.skills or [])
        tags = st.multiselect("Tags", opts["tags"], default=board.filters.tags or [])
        c1, c2 = st.columns(2)
        if c1.button("Apply", type="primary", use_container_width=True):
            board.set_filters(
                stage=stage or None,
                match_score_min=lo if lo > 0 else None,
                match_score_max=hi if hi < 100 else None,
                date_applied_from=_iso(applied_from),
                date_applied_to=_iso(applied_to),
                assigned_recruiter=recruiters or None,
                location=locations or None,
                skills=skills or None,
                tags=tags or None,
            )
            st.rerun()
        if c2.button("Clear", use_container_width=True):
            board.clear_filters()
            st.rerun()


def page_pipeline() -> None:
    store = _store()
    jobs = {j.id: j.title for j in store.jobs()}
    job_id = st.selectbox(
        "Job", [None, *jobs], format_func=lambda j: "All jobs" if j is None else jobs[j],
    )
    board = _board(job_id)

    query = st.text_input("Search", value=board.query, placeholder="Name, email, skill, tag or note")
    if query != board.query:
        board.set_query(query)

    _filters_sidebar(board)

    groups = board.groups()
    metrics = board.metrics()
    capacity = board.capacity()
    st.caption(f"{len(board.view())} applicant(s)")

    cols = st.columns(len(STAGES))
    for col, stage in zip(cols, STAGES):
        with col:
            m, cap = metrics[stage], capacity[stage]
            st.metric(STAGE_NAMES[stage], m.total_applicants, help=(
                f"Avg {m.average_time_in_stage:.1f}h in stage · "
                f"{m.conversion_rate:.0f}% convert · {m.drop_off_rate:.0f}% drop · trend {m.trend}"
            ))
            cap_limit = board.stage_caps.get(stage)
            if cap_limit:
                st.progress(min(cap.ratio, 1.0), text=f"{m.total_applicants}/{cap_limit}")
                if cap.at_capacity:
                    st.error("At capacity")
                elif cap.near_capacity:
                    st.warning("Near capacity")
            for app in groups[stage]:
                st.markdown(applicant_card(app), unsafe_allow_html=True)

    if groups[UNRECOGNIZED]:
        st.warning(
            f"{len(groups[UNRECOGNIZED])} applicant(s) have an unrecognized status: "
            + ", ".join(a.candidate_name for a in groups[UNRECOGNIZED])
        )

    st.divider()
    st.subheader("Move applicants")
    view = board.view()
    names = {a.id: f"{a.candidate_name} ({STAGE_NAMES.get(a.status, a.status)})" for a in view}
    with st.form("move"):
        selected = st.multiselect("Applicants", list(names), format_func=names.get)
        target = st.selectbox("To stage", STAGES, format_func=STAGE_NAMES.get)
        submitted = st.form_submit_button("Move", type="primary")
    if submitted and selected:
        try:
            result = board.bulk_move(selected, target)
        except PipelineError as exc:
            st.error(str(exc))
        else:
            st.success(f"Moved {len(result.succeeded)} applicant(s) to {STAGE_NAMES[target]}")
            if result.not_found:
                st.warning(f"Not found: {', '.join(result.not_found)}")
            st.rerun()


# ── Page: Jobs ───────────────────────────────────────────────────────────


def page_jobs() -> None:
    store = _store()
    stats = compute_employer_stats(store)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Active jobs", f"{stats.active_jobs}/{stats.total_jobs}")
    c2.metric("Applications", stats.total_applications, help=f"{stats.pending_applications} pending review")
    c3.metric("Hired", stats.hired_count, help=f"{stats.average_time_to_hire:.1f} days to hire on average")
    c4.metric("Application rate", f"{stats.application_rate:.1f}%", help=f"{stats.job_views} views")

    query = st.text_input("Search jobs")
    c1, c2, c3 = st.columns(3)
    status = c1.multiselect("Status", JOB_STATUSES)
    within = c2.selectbox("Posted", [None, 7, 30, 90], format_func=lambda d: "Any time" if d is None else f"Last {d} days")
    sort_by = c3.selectbox("Sort", JOB_SORTS)
    jobs = sort_jobs(filter_jobs(store.jobs(), query, JobFilters(status=status or None, posted_within_days=within)), sort_by)

    st.caption(f"{len(jobs)} job(s) found")
    for job in jobs:
        with st.expander(f"{job.title} · {job.status}"):
            st.write(f"{job.location} · {job.employment_type} · {job.applications} applications · {job.views} views")
            if job.skills:
                st.write(", ".join(job.skills))
            b1, b2 = st.columns(2)
            if b1.button("Duplicate", key=f"dup_{job.id}"):
                store.duplicate_job(job.id)
                st.rerun()
            if job.status == "active" and b2.button("Pause", key=f"pause_{job.id}"):
                store.update_job(job.id, status="paused")
                st.rerun()


# ── Page: Activity ───────────────────────────────────────────────────────


def page_activity() -> None:
    recent = _store().recent_activity()
    if not recent:
        st.info("No activity yet this session.")
        return
    for app_id, activity in recent:
        st.write(f"**{activity.actor}**: {activity.description} · `{app_id}` · {activity.timestamp}")


def _wrap(page):
    def run() -> None:
        st.markdown(_CARD_CSS, unsafe_allow_html=True)
        page()
    run.__name__ = page.__name__
    return run


pages = [
    st.Page(_wrap(page_pipeline), title="Pipeline", icon="🧭", url_path="pipeline", default=True),
    st.Page(_wrap(page_jobs), title="Jobs", icon="💼", url_path="jobs"),
    st.Page(_wrap(page_activity), title="Activity", icon="📝", url_path="activity"),
]

nav = st.navigation(pages)
nav.run()
