"""Audited changes to applications: stage moves, notes, tags, recruiter assignment.

Every change made here appends exactly one activity entry to the application
it touches, inside the same unit of work as the change itself. Requests that
would change nothing (re-adding an existing tag) record nothing. Any stage may
move to any other stage; there is no transition graph.
"""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Iterable, Mapping

from hirepipe.errors import ApplicationNotFound, InvalidStageError, VersionConflictError
from hirepipe.log import get_logger
from hirepipe.models import (
    STAGES,
    Activity,
    Application,
    BulkResult,
    Note,
    new_id,
    to_iso,
    utc_now,
)
from hirepipe.store import EntityStore

log = get_logger(__name__)

Clock = Callable[[], datetime]


def _validate_stage(stage: str) -> None:
    if stage not in STAGES:
        raise InvalidStageError(stage)


class TransitionController:
    def __init__(
        self,
        store: EntityStore,
        actor: str = "Current User",
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.actor = actor
        self.clock = clock
        self._lock = threading.RLock()

    def _activity(self, type_: str, description: str, **extra) -> Activity:
        return Activity(
            id=new_id("activity"),
            type=type_,
            description=description,
            actor=self.actor,
            timestamp=to_iso(self.clock()),
            **extra,
        )

    def _checked(self, application_id: str, expected_version: int | None) -> Application:
        app = self.store.get_application(application_id)
        if expected_version is not None and app.version != expected_version:
            raise VersionConflictError(application_id, expected_version, app.version)
        return app

    def _move(self, app: Application, new_stage: str) -> Activity:
        activity = self._activity(
            "status_change",
            f"Moved to {new_stage}",
            from_stage=app.status,
            to_stage=new_stage,
        )
        app.status = new_stage
        self.store.record_activity(app, activity)
        return activity

    # ── Stage moves ──────────────────────────────────────────────────────

    def move_to_stage(
        self,
        application_id: str,
        new_stage: str,
        expected_version: int | None = None,
    ) -> tuple[Application, Activity]:
        """Set the application's stage and log one status_change activity.

        Raises InvalidStageError, ApplicationNotFound or VersionConflictError
        before anything is changed.
        """
        _validate_stage(new_stage)
        with self._lock:
            app = self._checked(application_id, expected_version)
            previous = app.status
            activity = self._move(app, new_stage)
            self.store.commit(f"{application_id} moved to {new_stage}")
        log.info("%s: %s → %s (by %s)", application_id, previous, new_stage, self.actor)
        return app, activity

    def bulk_move(
        self,
        application_ids: Iterable[str],
        new_stage: str,
        expected_versions: Mapping[str, int] | None = None,
    ) -> BulkResult:
        """Move each id independently; missing or stale ids are reported, not raised."""
        _validate_stage(new_stage)
        expected_versions = expected_versions or {}
        result = BulkResult()
        with self._lock:
            for app_id in application_ids:
                try:
                    app = self._checked(app_id, expected_versions.get(app_id))
                except ApplicationNotFound:
                    log.warning("Bulk move skipped unknown application %s", app_id)
                    result.not_found.append(app_id)
                    continue
                except VersionConflictError as exc:
                    log.warning("Bulk move skipped %s: %s", app_id, exc)
                    result.conflicts.append(app_id)
                    continue
                self._move(app, new_stage)
                result.succeeded.append(app_id)
            if result.succeeded:
                self.store.commit(f"{len(result.succeeded)} moved to {new_stage}")
        log.info(
            "Bulk move to %s: %d moved, %d not found, %d conflicts",
            new_stage, len(result.succeeded), len(result.not_found), len(result.conflicts),
        )
        return result

    def bulk_reject(self, application_ids: Iterable[str]) -> BulkResult:
        return self.bulk_move(application_ids, "rejected")

    # ── Notes, tags, recruiters ──────────────────────────────────────────

    def add_note(
        self,
        application_id: str,
        content: str,
        *,
        is_private: bool = True,
        author: str | None = None,
    ) -> Note:
        if not content or not content.strip():
            raise ValueError("Note content must not be empty")
        with self._lock:
            app = self.store.get_application(application_id)
            note = Note(
                id=new_id("note"),
                content=content.strip(),
                author=author or self.actor,
                created_at=to_iso(self.clock()),
                is_private=is_private,
            )
            app.notes.append(note)
            app.has_unread_notes = True
            self.store.record_activity(app, self._activity("note_added", "Added a note"))
            self.store.commit(f"note added to {application_id}")
        return note

    def _bulk_apply(
        self,
        application_ids: Iterable[str],
        change: Callable[[Application], Activity | None],
        reason: str,
    ) -> BulkResult:
        result = BulkResult()
        with self._lock:
            for app_id in application_ids:
                try:
                    app = self.store.get_application(app_id)
                except ApplicationNotFound:
                    log.warning("%s skipped unknown application %s", reason, app_id)
                    result.not_found.append(app_id)
                    continue
                activity = change(app)
                if activity is not None:
                    self.store.record_activity(app, activity)
                result.succeeded.append(app_id)
            if result.succeeded:
                self.store.commit(f"{reason}: {len(result.succeeded)} application(s)")
        return result

    def assign_recruiter(self, application_ids: Iterable[str], recruiter: str) -> BulkResult:
        def change(app: Application) -> Activity | None:
            if app.assigned_recruiter == recruiter:
                return None
            app.assigned_recruiter = recruiter
            return self._activity("recruiter_assigned", f"Assigned to {recruiter}")

        return self._bulk_apply(application_ids, change, "assign recruiter")

    def add_tags(self, application_ids: Iterable[str], tags: Iterable[str]) -> BulkResult:
        tags = list(dict.fromkeys(tags))

        def change(app: Application) -> Activity | None:
            added = [t for t in tags if t not in app.tags]
            if not added:
                return None
            app.tags.extend(added)
            return self._activity("tags_added", f"Tagged {', '.join(added)}")

        return self._bulk_apply(application_ids, change, "add tags")

    def remove_tags(self, application_ids: Iterable[str], tags: Iterable[str]) -> BulkResult:
        drop = set(tags)

        def change(app: Application) -> Activity | None:
            removed = [t for t in app.tags if t in drop]
            if not removed:
                return None
            app.tags = [t for t in app.tags if t not in drop]
            return self._activity("tags_removed", f"Removed tags {', '.join(removed)}")

        return self._bulk_apply(application_ids, change, "remove tags")
