"""Bucket applications by pipeline stage and track stage capacity."""
from __future__ import annotations

from typing import Iterable, Mapping

from hirepipe.log import get_logger
from hirepipe.models import STAGES, UNRECOGNIZED, Application, CapacityStatus

log = get_logger(__name__)

NEAR_CAPACITY = 0.8
AT_CAPACITY = 1.0


def group_by_stage(applications: Iterable[Application]) -> dict[str, list[Application]]:
    """Partition applications into every stage bucket plus ``unrecognized``.

    All seven stage keys are always present, in pipeline order. Records whose
    status is not a known stage land in the ``unrecognized`` bucket and are
    logged, so the bucket sizes always add up to the input size.
    """
    groups: dict[str, list[Application]] = {stage: [] for stage in STAGES}
    groups[UNRECOGNIZED] = []
    for app in applications:
        bucket = groups.get(app.status) if isinstance(app.status, str) else None
        if bucket is None or app.status == UNRECOGNIZED:
            log.warning("Application %s has unrecognized status %r", app.id, app.status)
            groups[UNRECOGNIZED].append(app)
        else:
            bucket.append(app)
    return groups


def classify_capacity(count: int, max_applicants: int | None = None) -> CapacityStatus:
    """Capacity ratio for a stage; without a positive cap a stage is never full."""
    if not max_applicants or max_applicants <= 0:
        return CapacityStatus(ratio=0.0, near_capacity=False, at_capacity=False)
    ratio = count / max_applicants
    return CapacityStatus(
        ratio=ratio,
        near_capacity=ratio >= NEAR_CAPACITY,
        at_capacity=ratio >= AT_CAPACITY,
    )


def stage_capacity(
    groups: Mapping[str, list[Application]],
    caps: Mapping[str, int | None] | None = None,
) -> dict[str, CapacityStatus]:
    caps = caps or {}
    return {stage: classify_capacity(len(groups.get(stage, [])), caps.get(stage)) for stage in STAGES}
