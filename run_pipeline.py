#!/usr/bin/env python3
"""Entry point: log a per-stage summary of the applicant pipeline."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from hirepipe.board import PipelineBoard
from hirepipe.config import data_path, ensure_dirs, load_pipeline_config, seed_path
from hirepipe.log import get_logger
from hirepipe.metrics import compute_employer_stats
from hirepipe.models import STAGE_NAMES, STAGES, UNRECOGNIZED
from hirepipe.persistence import open_store

log = get_logger(__name__)


def main(argv: list[str]) -> int:
    config = load_pipeline_config()
    ensure_dirs()
    store = open_store(
        data_path(config), seed_path(config), recent_limit=int(config["recent_activity_limit"])
    )
    job_id = argv[1] if len(argv) > 1 else None
    if job_id is not None and job_id not in {j.id for j in store.jobs()}:
        log.error("Unknown job id %s", job_id)
        return 1

    board = PipelineBoard.from_config(store, config, job_id=job_id)
    groups = board.groups()
    metrics = board.metrics()
    capacity = board.capacity()

    log.info("Pipeline%s: %d applicant(s)", f" for {job_id}" if job_id else "", len(board.view()))
    for stage in STAGES:
        m, cap = metrics[stage], capacity[stage]
        flag = " [AT CAPACITY]" if cap.at_capacity else " [near capacity]" if cap.near_capacity else ""
        log.info(
            "  %-12s %3d  avg %6.1fh  conv %5.1f%%  drop %5.1f%%  %s%s",
            STAGE_NAMES[stage], m.total_applicants, m.average_time_in_stage,
            m.conversion_rate, m.drop_off_rate, m.trend, flag,
        )
    if groups[UNRECOGNIZED]:
        log.warning("  %d applicant(s) with unrecognized status", len(groups[UNRECOGNIZED]))

    stats = compute_employer_stats(store)
    log.info(
        "Jobs: %d (%d active) | Applications: %d (%d pending) | Hired: %d | Avg time to hire: %.1f days",
        stats.total_jobs, stats.active_jobs, stats.total_applications,
        stats.pending_applications, stats.hired_count, stats.average_time_to_hire,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
