"""Draft, version-history and conflict persistence for the deal room editor.

Rules:
  - Functions flush, never commit; deal_room_service owns the transaction.
  - Draft expiry is enforced lazily: an expired draft reads as missing and
    is replaced by the next save. cleanup_expired_drafts() deletes the rows
    for the scheduled job.
  - Version history is pruned to ``limit`` rows per project on every insert,
    always dropping the lowest numbers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select

from dealroom.core.exceptions import NotFoundError
from dealroom.models import db
from dealroom.models.deal_room_draft import (
    DEFAULT_DRAFT_TTL_HOURS,
    DealRoomConflict,
    DealRoomDraft,
    DealRoomVersion,
    draft_expiry,
)

logger = logging.getLogger(__name__)

DEFAULT_VERSION_LIMIT = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _is_expired(draft: DealRoomDraft, now: datetime) -> bool:
    return _as_utc(draft.expires_at) <= now


# ═════════════════════════════════════════════════════════════════════════
# Drafts
# ═════════════════════════════════════════════════════════════════════════


def _find_draft_row(project_id: str, session_id: str) -> DealRoomDraft | None:
    return db.session.execute(
        select(DealRoomDraft).where(
            DealRoomDraft.project_id == project_id,
            DealRoomDraft.session_id == session_id,
        )
    ).scalar_one_or_none()


def find_draft(project_id: str, session_id: str) -> DealRoomDraft | None:
    """Return the live draft for (project, session); expired rows read as None."""
    draft = _find_draft_row(project_id, session_id)
    if draft is None or _is_expired(draft, _utcnow()):
        return None
    return draft


def find_drafts_by_project(project_id: str) -> list[DealRoomDraft]:
    now = _utcnow()
    drafts = db.session.execute(
        select(DealRoomDraft)
        .where(DealRoomDraft.project_id == project_id)
        .order_by(DealRoomDraft.updated_at.desc())
    ).scalars().all()
    return [d for d in drafts if not _is_expired(d, now)]


def create_draft(
    project_id: str,
    session_id: str,
    draft_data: dict,
    *,
    is_auto_save: bool = True,
    user_id: str | None = None,
    ttl_hours: int = DEFAULT_DRAFT_TTL_HOURS,
) -> DealRoomDraft:
    """Insert a draft, or replace the existing one for (project, session) in place.

    Replacing keeps id, created_at and last_saved_version and bumps version.
    An expired row is discarded first so the new draft starts over at 1.
    """
    now = _utcnow()
    draft = _find_draft_row(project_id, session_id)
    if draft is not None and _is_expired(draft, now):
        logger.info("Discarding expired draft project=%s session=%s", project_id, session_id)
        db.session.delete(draft)
        db.session.flush()
        draft = None
    if draft is None:
        draft = DealRoomDraft(
            project_id=project_id,
            session_id=session_id,
            version=1,
            created_at=now,
        )
        db.session.add(draft)
    else:
        draft.version = draft.version + 1

    draft.draft_data = dict(draft_data or {})
    draft.is_auto_save = is_auto_save
    draft.user_id = user_id or draft.user_id
    draft.updated_at = now
    draft.expires_at = draft_expiry(ttl_hours)
    db.session.flush()
    return draft


def update_draft(
    project_id: str,
    session_id: str,
    *,
    draft_data: dict | None = None,
    is_auto_save: bool | None = None,
    last_saved_version: int | None = None,
    ttl_hours: int = DEFAULT_DRAFT_TTL_HOURS,
) -> DealRoomDraft:
    """Merge changes into an existing draft and renew its expiry.

    New draft_data keys overwrite old ones; keys not sent are kept. The
    version only moves when content changes, so recording the published
    version does not count as an edit. Recording it also stamps the draft's
    current version as published.

    Raises:
        NotFoundError: No live draft for (project, session).
    """
    draft = find_draft(project_id, session_id)
    if draft is None:
        raise NotFoundError("Draft", f"{project_id}/{session_id}")

    if draft_data is not None:
        draft.draft_data = {**(draft.draft_data or {}), **draft_data}
        draft.version = draft.version + 1
    if is_auto_save is not None:
        draft.is_auto_save = is_auto_save
    if last_saved_version is not None:
        draft.last_saved_version = last_saved_version
        draft.published_draft_version = draft.version

    draft.updated_at = _utcnow()
    draft.expires_at = draft_expiry(ttl_hours)
    db.session.flush()
    return draft


def delete_draft(project_id: str, session_id: str) -> bool:
    result = db.session.execute(
        delete(DealRoomDraft).where(
            DealRoomDraft.project_id == project_id,
            DealRoomDraft.session_id == session_id,
        )
    )
    db.session.flush()
    return result.rowcount > 0


def cleanup_expired_drafts() -> int:
    """Delete every expired draft. Returns the number removed."""
    result = db.session.execute(
        delete(DealRoomDraft)
        .where(DealRoomDraft.expires_at <= _utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.expire_all()
    return result.rowcount or 0


# ═════════════════════════════════════════════════════════════════════════
# Versions
# ═════════════════════════════════════════════════════════════════════════


def _next_version_number(project_id: str) -> int:
    highest = db.session.execute(
        select(func.max(DealRoomVersion.version)).where(DealRoomVersion.project_id == project_id)
    ).scalar()
    return (highest or 0) + 1


def create_version(
    project_id: str,
    data: dict,
    *,
    change_description: str | None = None,
    created_by: str | None = None,
    limit: int = DEFAULT_VERSION_LIMIT,
) -> DealRoomVersion:
    """Append a snapshot and prune the project's history to ``limit`` rows."""
    version = DealRoomVersion(
        project_id=project_id,
        version=_next_version_number(project_id),
        data=data,
        change_description=change_description,
        created_by=created_by,
    )
    db.session.add(version)
    db.session.flush()

    stale = db.session.execute(
        select(DealRoomVersion)
        .where(DealRoomVersion.project_id == project_id)
        .order_by(DealRoomVersion.version.desc())
        .offset(limit)
    ).scalars().all()
    for row in stale:
        db.session.delete(row)
    if stale:
        db.session.flush()
        logger.debug("Pruned %d old versions project=%s", len(stale), project_id)
    return version


def get_versions_by_project(project_id: str, limit: int = DEFAULT_VERSION_LIMIT) -> list[DealRoomVersion]:
    """Newest first."""
    return db.session.execute(
        select(DealRoomVersion)
        .where(DealRoomVersion.project_id == project_id)
        .order_by(DealRoomVersion.version.desc())
        .limit(limit)
    ).scalars().all()


def get_latest_version(project_id: str) -> DealRoomVersion | None:
    versions = get_versions_by_project(project_id, limit=1)
    return versions[0] if versions else None


def get_version_by_id(version_id: str) -> DealRoomVersion | None:
    return db.session.get(DealRoomVersion, version_id)


# ═════════════════════════════════════════════════════════════════════════
# Conflicts
# ═════════════════════════════════════════════════════════════════════════


def create_conflict(
    *,
    project_id: str,
    session_id: str,
    local_version: int,
    server_version: int,
    local_data: dict,
    server_data: dict,
    conflict_fields: list[str],
    conflict_type: str = "concurrent_edit",
) -> DealRoomConflict:
    conflict = DealRoomConflict(
        project_id=project_id,
        session_id=session_id,
        conflict_type=conflict_type,
        local_version=local_version,
        server_version=server_version,
        local_data=local_data,
        server_data=server_data,
        conflict_fields=list(conflict_fields),
    )
    db.session.add(conflict)
    db.session.flush()
    return conflict


def resolve_conflict(conflict_id: str, resolution: str, resolved_data: dict | None) -> DealRoomConflict:
    """Stamp the resolution columns.

    Raises:
        NotFoundError: Unknown conflict id.
    """
    conflict = get_conflict_by_id(conflict_id)
    if conflict is None:
        raise NotFoundError("Conflict", conflict_id)
    conflict.resolution = resolution
    conflict.resolved_data = resolved_data
    conflict.resolved_at = _utcnow()
    db.session.flush()
    return conflict


def get_unresolved_conflicts(project_id: str) -> list[DealRoomConflict]:
    """Open conflicts for a project, oldest first."""
    return db.session.execute(
        select(DealRoomConflict)
        .where(
            DealRoomConflict.project_id == project_id,
            DealRoomConflict.resolved_at.is_(None),
        )
        .order_by(DealRoomConflict.created_at.asc())
    ).scalars().all()


def get_conflict_by_id(conflict_id: str) -> DealRoomConflict | None:
    return db.session.get(DealRoomConflict, conflict_id)
