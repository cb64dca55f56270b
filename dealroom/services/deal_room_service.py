"""Deal room service layer.

All business logic for the published deal room and its draft / version /
conflict workflow lives here.

Rules:
  - project_id and session_id are always explicit parameters.
  - db.session.commit() happens only in this file; repositories flush.
  - Errors are raised as dealroom.core.exceptions types. The blueprint maps
    them to HTTP status codes.
  - showcasePhoto changes only through upload_showcase_photo and
    remove_showcase_photo.

Editing model:
  Sessions autosave into their own draft (save_draft). publish_draft copies
  the draft's fields onto the canonical deal room and appends a version
  snapshot. If another session published since this draft's
  last_saved_version and the two disagree on a field, a conflict record is
  stored and EditConflictError is raised instead; resolve_conflict settles it.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dealroom.core.exceptions import (
    ConflictError,
    EditConflictError,
    NotFoundError,
    ValidationError,
)
from dealroom.models import db
from dealroom.models.deal_room import CONTENT_FIELDS, DealRoom, strip_item_ids
from dealroom.models.deal_room_draft import (
    VALID_RESOLUTIONS,
    DealRoomConflict,
    DealRoomDraft,
    DealRoomVersion,
    detect_conflicts,
    merge_data,
)
from dealroom.repositories import deal_room_draft_repository as drafts
from dealroom.repositories import deal_room_repository as rooms
from dealroom.utils.validation import (
    is_blank,
    is_valid_image_mime_type,
    validate_blurb,
    validate_deal_room_fields,
    validate_external_links,
    validate_key_info,
    validate_summary,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PHOTO_BYTES = 10 * 1024 * 1024


# ── Internal helpers ─────────────────────────────────────────────────────────


def _setting(name: str, default):
    return current_app.config.get(name, default)


def _draft_ttl_hours() -> int:
    return int(_setting("DRAFT_TTL_HOURS", 24))


def _version_limit() -> int:
    return int(_setting("VERSION_HISTORY_LIMIT", drafts.DEFAULT_VERSION_LIMIT))


def _require(value, label: str) -> str:
    if is_blank(value):
        raise ValidationError(f"{label} is required")
    return value.strip()


def _raise_if_invalid(errors: list[str], prefix: str = "Validation failed") -> None:
    if errors:
        raise ValidationError(f"{prefix}: {', '.join(errors)}", details=errors)


def _content_updates(data: dict | None) -> dict:
    """Keep only content fields that carry a value."""
    data = data or {}
    return {field: data[field] for field in CONTENT_FIELDS if data.get(field) is not None}


def _commit() -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on commit")
        raise


def _get_or_create(project_id: str) -> DealRoom:
    deal_room = rooms.find_by_project_id(project_id)
    if deal_room is None:
        deal_room = rooms.create(project_id)
        logger.info("Created default deal room project=%s", project_id)
    return deal_room


def _record_version(deal_room: DealRoom, description: str | None, created_by: str | None = None) -> DealRoomVersion:
    return drafts.create_version(
        deal_room.project_id,
        deal_room.content(),
        change_description=description,
        created_by=created_by,
        limit=_version_limit(),
    )


# ═════════════════════════════════════════════════════════════════════════
# Canonical deal room
# ═════════════════════════════════════════════════════════════════════════


def get_deal_room_by_project_id(project_id: str) -> DealRoom | None:
    return rooms.find_by_project_id(_require(project_id, "Project ID"))


def get_or_create_deal_room(project_id: str) -> DealRoom:
    """Return the project's deal room, creating an empty one on first access.

    Two first requests racing on the unique project_id: the loser re-reads
    the winner's row.
    """
    project_id = _require(project_id, "Project ID")
    deal_room = rooms.find_by_project_id(project_id)
    if deal_room is not None:
        return deal_room
    try:
        deal_room = rooms.create(project_id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        deal_room = rooms.find_by_project_id(project_id)
        if deal_room is None:
            raise
    else:
        logger.info("Created default deal room project=%s", project_id)
    return deal_room


def create_deal_room(project_id: str, data: dict | None = None) -> DealRoom:
    """Create a deal room with initial content.

    Raises:
        ValidationError: Invalid content.
        ConflictError: The project already has a deal room.
    """
    project_id = _require(project_id, "Project ID")
    content = _content_updates(data)
    _raise_if_invalid(validate_deal_room_fields(content))

    try:
        deal_room = rooms.create(project_id, content)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Deal room", "project", project_id)
    logger.info("Deal room created project=%s", project_id)
    return deal_room


def update_deal_room(project_id: str, data: dict) -> DealRoom:
    """Overwrite the content fields present in ``data``.

    Raises:
        ValidationError: Invalid content.
        NotFoundError: No deal room for the project.
    """
    project_id = _require(project_id, "Project ID")
    content = _content_updates(data)
    _raise_if_invalid(validate_deal_room_fields(content))

    deal_room = rooms.update(project_id, content)
    _commit()
    logger.info("Deal room updated project=%s fields=%s", project_id, sorted(content))
    return deal_room


def delete_deal_room(project_id: str) -> bool:
    deleted = rooms.delete(_require(project_id, "Project ID"))
    _commit()
    if deleted:
        logger.info("Deal room deleted project=%s", project_id)
    return deleted


def _set_field(project_id: str, field: str, value) -> DealRoom:
    deal_room = _get_or_create(project_id)
    rooms.apply_update(deal_room, {field: value})
    _commit()
    logger.info("Deal room %s updated project=%s", field, project_id)
    return deal_room


def update_investment_blurb(project_id: str, investment_blurb) -> DealRoom:
    project_id = _require(project_id, "Project ID")
    errors = validate_blurb(investment_blurb)
    if errors:
        raise ValidationError(errors[0])
    return _set_field(project_id, "investmentBlurb", investment_blurb)


def update_investment_summary(project_id: str, investment_summary) -> DealRoom:
    project_id = _require(project_id, "Project ID")
    errors = validate_summary(investment_summary)
    if errors:
        raise ValidationError(errors[0])
    return _set_field(project_id, "investmentSummary", investment_summary)


def update_key_info(project_id: str, key_info) -> DealRoom:
    """Replace the key-info list. Items keep the submitted order values."""
    project_id = _require(project_id, "Project ID")
    errors = validate_key_info(key_info)
    if errors:
        raise ValidationError(errors[0], details=errors)
    return _set_field(project_id, "keyInfo", key_info)


def update_external_links(project_id: str, external_links) -> DealRoom:
    project_id = _require(project_id, "Project ID")
    errors = validate_external_links(external_links)
    if errors:
        raise ValidationError(errors[0], details=errors)
    return _set_field(project_id, "externalLinks", external_links)


def get_completion_status(project_id: str) -> dict:
    """Which of the five sections have content, and the rounded percentage."""
    deal_room = get_deal_room_by_project_id(project_id)
    content = deal_room.content() if deal_room else {}

    section_status = {
        "showcasePhoto": bool(content.get("showcasePhoto")),
        "investmentBlurb": bool((content.get("investmentBlurb") or "").strip()),
        "investmentSummary": bool((content.get("investmentSummary") or "").strip()),
        "keyInfo": bool(content.get("keyInfo")),
        "externalLinks": bool(content.get("externalLinks")),
    }
    completed = [name for name, done in section_status.items() if done]
    total = len(section_status)
    return {
        "completionPercentage": round(len(completed) / total * 100),
        "completedSections": completed,
        "totalSections": total,
        "sectionStatus": section_status,
    }


# ── Showcase photo ───────────────────────────────────────────────────────────


def upload_showcase_photo(project_id: str, content: bytes, original_name: str, mime_type: str) -> DealRoom:
    """Store a new showcase photo and point the deal room at it.

    The previous file is removed only after the new reference is committed.
    """
    project_id = _require(project_id, "Project ID")
    if not content:
        raise ValidationError("File is required")
    original_name = _require(original_name, "Original filename")
    if not is_valid_image_mime_type(mime_type):
        raise ValidationError("Invalid image format. Only JPEG, PNG, and WebP are supported")
    max_bytes = int(_setting("MAX_SHOWCASE_PHOTO_BYTES", DEFAULT_MAX_PHOTO_BYTES))
    if len(content) > max_bytes:
        raise ValidationError(
            f"File size too large. Maximum size is {max_bytes // (1024 * 1024)}MB"
        )

    deal_room = _get_or_create(project_id)
    previous = (deal_room.showcase_photo or {}).get("filename")

    photo = rooms.save_showcase_photo(content, original_name, mime_type)
    try:
        rooms.apply_update(deal_room, {"showcasePhoto": photo}, set_photo=True)
        _commit()
    except SQLAlchemyError:
        rooms.delete_showcase_photo_file(photo["filename"])
        raise

    if previous:
        rooms.delete_showcase_photo_file(previous)
    logger.info("Showcase photo uploaded project=%s file=%s", project_id, photo["filename"])
    return deal_room


def remove_showcase_photo(project_id: str) -> DealRoom:
    """Clear the showcase photo reference and delete the file.

    Raises:
        NotFoundError: No deal room for the project.
    """
    project_id = _require(project_id, "Project ID")
    deal_room = rooms.find_by_project_id(project_id)
    if deal_room is None:
        raise NotFoundError("Deal room", project_id)

    filename = (deal_room.showcase_photo or {}).get("filename")
    rooms.apply_update(deal_room, {"showcasePhoto": None}, set_photo=True)
    _commit()
    if filename:
        rooms.delete_showcase_photo_file(filename)
    return deal_room


def get_showcase_photo_path(project_id: str) -> str | None:
    deal_room = get_deal_room_by_project_id(project_id)
    if deal_room is None or not deal_room.showcase_photo:
        return None
    return rooms.showcase_photo_path(deal_room.showcase_photo["filename"])


# ═════════════════════════════════════════════════════════════════════════
# Drafts
# ═════════════════════════════════════════════════════════════════════════


def get_draft(project_id: str, session_id: str) -> DealRoomDraft | None:
    return drafts.find_draft(_require(project_id, "Project ID"), _require(session_id, "Session ID"))


def save_draft(
    project_id: str,
    session_id: str,
    draft_data: dict | None,
    is_auto_save: bool = True,
    user_id: str | None = None,
) -> DealRoomDraft:
    """Create or extend the session's draft.

    Sent fields are merged over the existing draft data, the draft version
    goes up by one and the expiry is pushed DRAFT_TTL_HOURS ahead.

    Raises:
        ValidationError: Missing ids or invalid field values.
    """
    project_id = _require(project_id, "Project ID")
    session_id = _require(session_id, "Session ID")
    if draft_data is not None and not isinstance(draft_data, dict):
        raise ValidationError("Draft data must be an object")

    content = {field: draft_data[field] for field in CONTENT_FIELDS if field in (draft_data or {})}
    _raise_if_invalid(validate_deal_room_fields(content), prefix="Draft validation failed")

    existing = drafts.find_draft(project_id, session_id)
    if existing is not None:
        draft = drafts.update_draft(
            project_id,
            session_id,
            draft_data=content,
            is_auto_save=is_auto_save,
            ttl_hours=_draft_ttl_hours(),
        )
    else:
        draft = drafts.create_draft(
            project_id,
            session_id,
            content,
            is_auto_save=is_auto_save,
            user_id=user_id,
            ttl_hours=_draft_ttl_hours(),
        )
    _commit()
    logger.debug(
        "Draft saved project=%s session=%s version=%d auto=%s",
        project_id, session_id, draft.version, is_auto_save,
    )
    return draft


def publish_draft(
    project_id: str,
    session_id: str,
    change_description: str | None = None,
) -> tuple[DealRoom, DealRoomVersion]:
    """Publish the session's draft onto the canonical deal room.

    When the draft was based on a published version and a newer version
    exists, the draft's fields are compared with the current content. Any
    difference stores a conflict and aborts: the deal room is not touched.

    Returns:
        (deal_room, new_version)

    Raises:
        NotFoundError: The session has no draft.
        EditConflictError: Another session published diverging content.
    """
    project_id = _require(project_id, "Project ID")
    session_id = _require(session_id, "Session ID")

    draft = drafts.find_draft(project_id, session_id)
    if draft is None:
        raise NotFoundError("Draft", session_id, message="No draft found to publish")

    draft_data = dict(draft.draft_data or {})
    deal_room = rooms.find_by_project_id(project_id)

    if deal_room is not None and draft.last_saved_version is not None:
        latest = drafts.get_latest_version(project_id)
        if latest is not None and latest.version > draft.last_saved_version:
            server_data = deal_room.content(include_item_ids=False)
            conflict_fields = detect_conflicts(draft_data, server_data)
            if conflict_fields:
                conflict = drafts.create_conflict(
                    project_id=project_id,
                    session_id=session_id,
                    local_version=draft.version,
                    server_version=latest.version,
                    local_data=draft_data,
                    server_data=server_data,
                    conflict_fields=conflict_fields,
                )
                _commit()
                logger.warning(
                    "Publish conflict project=%s session=%s base=%d server=%d fields=%s conflict=%s",
                    project_id, session_id, draft.last_saved_version, latest.version,
                    conflict_fields, conflict.conflict_id,
                )
                raise EditConflictError(conflict.conflict_id)

    deal_room = deal_room or _get_or_create(project_id)
    rooms.apply_update(deal_room, _content_updates(draft_data))
    version = _record_version(deal_room, change_description, created_by=draft.user_id)
    drafts.update_draft(
        project_id,
        session_id,
        last_saved_version=version.version,
        ttl_hours=_draft_ttl_hours(),
    )
    _commit()
    logger.info(
        "Draft published project=%s session=%s version=%d",
        project_id, session_id, version.version,
    )
    return deal_room, version


def recover_unsaved_changes(project_id: str, session_id: str) -> DealRoomDraft | None:
    """Return the session's draft only while it holds unpublished edits."""
    draft = get_draft(project_id, session_id)
    if draft is None or not draft.has_unsaved_changes:
        return None
    return draft


def get_save_status(project_id: str, session_id: str) -> dict:
    """Editor badge state for a session: conflict, unsaved, saved or error."""
    project_id = _require(project_id, "Project ID")
    session_id = _require(session_id, "Session ID")

    try:
        draft = drafts.find_draft(project_id, session_id)
        session_conflicts = [
            c for c in drafts.get_unresolved_conflicts(project_id) if c.session_id == session_id
        ]
    except SQLAlchemyError as exc:
        logger.exception("Save status lookup failed project=%s session=%s", project_id, session_id)
        return {"status": "error", "hasUnsavedChanges": True, "version": 0, "error": str(exc)}

    if session_conflicts:
        return {
            "status": "conflict",
            "hasUnsavedChanges": True,
            "version": draft.version if draft else 0,
            "conflictId": session_conflicts[0].conflict_id,
        }
    if draft is None:
        return {"status": "saved", "hasUnsavedChanges": False, "version": 0}

    unsaved = draft.has_unsaved_changes
    updated = draft.updated_at.isoformat() if draft.updated_at else None
    return {
        "status": "unsaved" if unsaved else "saved",
        "lastSaved": updated if draft.last_saved_version is not None else None,
        "lastAutoSave": updated if draft.is_auto_save else None,
        "hasUnsavedChanges": unsaved,
        "version": draft.version,
    }


def cleanup_expired_drafts() -> int:
    removed = drafts.cleanup_expired_drafts()
    _commit()
    logger.info("Expired draft cleanup removed %d drafts", removed)
    return removed


# ═════════════════════════════════════════════════════════════════════════
# Versions
# ═════════════════════════════════════════════════════════════════════════


def get_version_history(project_id: str, limit: int | None = None) -> list[DealRoomVersion]:
    """Newest first, at most VERSION_HISTORY_LIMIT entries are ever retained."""
    project_id = _require(project_id, "Project ID")
    if limit is None or limit < 1:
        limit = _version_limit()
    return drafts.get_versions_by_project(project_id, limit)


def restore_version(project_id: str, version_id: str, session_id: str) -> DealRoom:
    """Overwrite the deal room with a historical snapshot.

    The restore is itself recorded as a new version, and the requesting
    session's draft is discarded so it cannot republish stale content.

    Raises:
        NotFoundError: Unknown version, or one belonging to another project.
    """
    project_id = _require(project_id, "Project ID")
    version_id = _require(version_id, "Version ID")
    session_id = _require(session_id, "Session ID")

    version = drafts.get_version_by_id(version_id)
    if version is None or version.project_id != project_id:
        raise NotFoundError("Version", version_id)

    snapshot = version.data or {}
    deal_room = _get_or_create(project_id)
    rooms.apply_update(deal_room, {
        "investmentBlurb": snapshot.get("investmentBlurb", ""),
        "investmentSummary": snapshot.get("investmentSummary", ""),
        "keyInfo": strip_item_ids(snapshot.get("keyInfo")),
        "externalLinks": strip_item_ids(snapshot.get("externalLinks")),
    })
    restored = _record_version(
        deal_room, f"Restored to version {version.version}", created_by=version.created_by,
    )
    drafts.delete_draft(project_id, session_id)
    _commit()
    logger.info(
        "Deal room restored project=%s from=%d as=%d",
        project_id, version.version, restored.version,
    )
    return deal_room


# ═════════════════════════════════════════════════════════════════════════
# Conflicts
# ═════════════════════════════════════════════════════════════════════════


def get_unresolved_conflicts(project_id: str) -> list[DealRoomConflict]:
    return drafts.get_unresolved_conflicts(_require(project_id, "Project ID"))


def resolve_conflict(
    conflict_id: str,
    resolution: str,
    custom_data: dict | None = None,
    project_id: str | None = None,
) -> tuple[DealRoom, DealRoomConflict]:
    """Settle an open conflict and publish the outcome.

    Strategies: use_local, use_server, merge (local wins on fields it set),
    or caller-supplied custom_data (recorded as ``manual``). A local win
    keeps the draft and marks it as based on the new version; every other
    outcome discards the draft.

    Raises:
        ValidationError: Bad strategy, invalid custom data, or already resolved.
        NotFoundError: Unknown conflict id, or one from another project.
    """
    conflict_id = _require(conflict_id, "Conflict ID")
    if resolution not in VALID_RESOLUTIONS:
        raise ValidationError("Valid resolution strategy is required")

    conflict = drafts.get_conflict_by_id(conflict_id)
    if conflict is None or (project_id and conflict.project_id != project_id):
        raise NotFoundError("Conflict", conflict_id)
    if not conflict.is_open:
        raise ValidationError("Conflict already resolved")

    if custom_data is not None:
        if not isinstance(custom_data, dict):
            raise ValidationError("Custom data must be an object")
        resolved_data = _content_updates(custom_data)
        _raise_if_invalid(validate_deal_room_fields(resolved_data))
        applied = "manual"
    elif resolution == "manual":
        raise ValidationError("Custom data is required for manual resolution")
    else:
        resolved_data = merge_data(conflict.local_data or {}, conflict.server_data or {}, resolution)
        applied = resolution

    project_id = conflict.project_id
    deal_room = _get_or_create(project_id)
    rooms.apply_update(deal_room, resolved_data)
    version = _record_version(deal_room, f"Conflict resolved using {applied} strategy")
    conflict = drafts.resolve_conflict(conflict_id, applied, resolved_data)

    if applied == "use_local":
        if drafts.find_draft(project_id, conflict.session_id) is not None:
            drafts.update_draft(
                project_id,
                conflict.session_id,
                last_saved_version=version.version,
                ttl_hours=_draft_ttl_hours(),
            )
    else:
        drafts.delete_draft(project_id, conflict.session_id)

    _commit()
    logger.info(
        "Conflict %s resolved project=%s strategy=%s version=%d",
        conflict_id, project_id, applied, version.version,
    )
    return deal_room, conflict
