"""Exception types raised by the pipeline engine."""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ApplicationNotFound(PipelineError, LookupError):
    def __init__(self, application_id: str) -> None:
        super().__init__(f"Application not found: {application_id}")
        self.application_id = application_id


class JobNotFound(PipelineError, LookupError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class InvalidStageError(PipelineError, ValueError):
    def __init__(self, stage: object) -> None:
        super().__init__(f"Invalid pipeline stage: {stage!r}")
        self.stage = stage


class InvalidJobStatusError(PipelineError, ValueError):
    def __init__(self, status: object) -> None:
        super().__init__(f"Invalid job status: {status!r}")
        self.status = status


class VersionConflictError(PipelineError):
    """The record changed since the caller last read it."""

    def __init__(self, application_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Application {application_id} is at version {actual}, expected {expected}"
        )
        self.application_id = application_id
        self.expected = expected
        self.actual = actual


class DuplicateEntityError(PipelineError, ValueError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"Duplicate {kind} id: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id
