"""
Deal Room drafting: per-session drafts, version history and edit conflicts.

Models:
    - DealRoomDraft: autosaved edit buffer for one (project, session)
    - DealRoomVersion: immutable snapshot of published content, numbered per project
    - DealRoomConflict: divergence detected when a draft is published

Helpers:
    - detect_conflicts(local, server): fields present on both sides that differ
    - merge_data(local, server, strategy): resolved content for a strategy
"""

import uuid
from datetime import datetime, timedelta, timezone

from dealroom.models import db
from dealroom.models.deal_room import CONTENT_FIELDS


__all__ = [
    "DealRoomDraft",
    "DealRoomVersion",
    "DealRoomConflict",
    "RESOLUTION_STRATEGIES",
    "VALID_RESOLUTIONS",
    "CONFLICT_TYPES",
    "detect_conflicts",
    "merge_data",
]


# ── Constants ────────────────────────────────────────────────────────────────

RESOLUTION_STRATEGIES = ("use_local", "use_server", "merge")
VALID_RESOLUTIONS = frozenset(RESOLUTION_STRATEGIES + ("manual",))
CONFLICT_TYPES = frozenset({"concurrent_edit", "version_mismatch", "data_corruption"})

DEFAULT_DRAFT_TTL_HOURS = 24

# Item keys that take part in list comparison; generated ids are ignored.
_ITEM_KEYS = {
    "keyInfo": ("name", "link", "order"),
    "externalLinks": ("name", "url", "order"),
}


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def draft_expiry(ttl_hours: int = DEFAULT_DRAFT_TTL_HOURS) -> datetime:
    """Expiry timestamp for a draft saved now."""
    return _utcnow() + timedelta(hours=ttl_hours)


def _comparable(field, value):
    keys = _ITEM_KEYS.get(field)
    if keys is None or not isinstance(value, list):
        return value
    return [{k: item.get(k) for k in keys} for item in value]


def detect_conflicts(local_data: dict, server_data: dict) -> list[str]:
    """Return the content fields set on both sides whose values differ.

    A field missing (or None) on either side never conflicts: the draft
    did not touch it, or the server has nothing to lose.
    """
    conflicts = []
    for field in CONTENT_FIELDS:
        local = local_data.get(field)
        server = server_data.get(field)
        if local is None or server is None:
            continue
        if _comparable(field, local) != _comparable(field, server):
            conflicts.append(field)
    return conflicts


def merge_data(local_data: dict, server_data: dict, strategy: str) -> dict:
    """Build resolved content for a conflict.

    use_local / use_server take one side whole; merge takes the local value
    for every field the draft set and the server value for the rest.
    """
    if strategy == "use_server":
        source = server_data
    elif strategy == "merge":
        source = {
            field: local_data[field] if local_data.get(field) is not None else server_data.get(field)
            for field in CONTENT_FIELDS
        }
    else:
        source = local_data
    return {field: source[field] for field in CONTENT_FIELDS if source.get(field) is not None}


# ═════════════════════════════════════════════════════════════════════════════
# DealRoomDraft
# ═════════════════════════════════════════════════════════════════════════════

class DealRoomDraft(db.Model):
    """
    Unpublished edits for one browser session.

    Superseded in place on every save: version increases by one and the
    expiry moves DRAFT_TTL_HOURS ahead. last_saved_version records the
    project version this draft last published (or was reconciled with);
    published_draft_version records the draft's own version at that point,
    since the two counters run on different scales.
    """

    __tablename__ = "deal_room_drafts"
    __table_args__ = (
        db.UniqueConstraint("project_id", "session_id", name="uq_drd_project_session"),
        db.Index("idx_drd_expires_at", "expires_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(100), nullable=False, index=True)
    session_id = db.Column(db.String(100), nullable=False)
    user_id = db.Column(db.String(100), nullable=True)
    draft_data = db.Column(db.JSON, nullable=False, default=dict)
    version = db.Column(db.Integer, nullable=False, default=1)
    last_saved_version = db.Column(db.Integer, nullable=True)
    published_draft_version = db.Column(
        db.Integer, nullable=True,
        comment="Draft version at the moment it last published or was reconciled",
    )
    is_auto_save = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, default=draft_expiry)

    @property
    def has_unsaved_changes(self) -> bool:
        if self.last_saved_version is None:
            return True
        return (
            self.version > self.last_saved_version
            and self.version > (self.published_draft_version or 0)
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "sessionId": self.session_id,
            "userId": self.user_id,
            "draftData": dict(self.draft_data or {}),
            "version": self.version,
            "lastSavedVersion": self.last_saved_version,
            "publishedDraftVersion": self.published_draft_version,
            "isAutoSave": self.is_auto_save,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "expiresAt": _iso(self.expires_at),
        }

    def __repr__(self) -> str:
        return f"<DealRoomDraft {self.project_id}/{self.session_id} v{self.version}>"


# ═════════════════════════════════════════════════════════════════════════════
# DealRoomVersion
# ═════════════════════════════════════════════════════════════════════════════

class DealRoomVersion(db.Model):
    """Append-only snapshot of published content.

    Numbers are assigned from the highest retained number, and pruning only
    removes the lowest, so a number is never handed out twice.
    """

    __tablename__ = "deal_room_versions"
    __table_args__ = (
        db.UniqueConstraint("project_id", "version", name="uq_drv_project_version"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(100), nullable=False, index=True)
    version = db.Column(db.Integer, nullable=False)
    data = db.Column(db.JSON, nullable=False)
    change_description = db.Column(db.String(500), nullable=True)
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "version": self.version,
            "data": self.data,
            "changeDescription": self.change_description,
            "createdBy": self.created_by,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<DealRoomVersion {self.project_id} v{self.version}>"


# ═════════════════════════════════════════════════════════════════════════════
# DealRoomConflict
# ═════════════════════════════════════════════════════════════════════════════

class DealRoomConflict(db.Model):
    """
    Divergence between a session's draft and the published deal room.

    Open while resolved_at is NULL. Once resolved only the resolution
    columns were ever written; local/server data stay as detected.
    """

    __tablename__ = "deal_room_conflicts"
    __table_args__ = (
        db.Index("idx_drc_project_open", "project_id", "resolved_at"),
    )

    conflict_id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(100), nullable=False, index=True)
    session_id = db.Column(db.String(100), nullable=False)
    conflict_type = db.Column(
        db.String(30), nullable=False, default="concurrent_edit",
        comment="concurrent_edit | version_mismatch | data_corruption",
    )
    local_version = db.Column(db.Integer, nullable=False)
    server_version = db.Column(db.Integer, nullable=False)
    local_data = db.Column(db.JSON, nullable=False)
    server_data = db.Column(db.JSON, nullable=False)
    conflict_fields = db.Column(db.JSON, nullable=False, default=list)
    resolution = db.Column(
        db.String(20), nullable=True,
        comment="use_local | use_server | merge | manual",
    )
    resolved_data = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    def to_dict(self) -> dict:
        return {
            "conflictId": self.conflict_id,
            "projectId": self.project_id,
            "sessionId": self.session_id,
            "conflictType": self.conflict_type,
            "localVersion": self.local_version,
            "serverVersion": self.server_version,
            "localData": self.local_data,
            "serverData": self.server_data,
            "conflictFields": list(self.conflict_fields or []),
            "resolution": self.resolution,
            "resolvedData": self.resolved_data,
            "createdAt": _iso(self.created_at),
            "resolvedAt": _iso(self.resolved_at),
        }

    def __repr__(self) -> str:
        state = "open" if self.is_open else self.resolution
        return f"<DealRoomConflict {self.conflict_id} {state}>"
