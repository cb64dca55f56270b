"""
Deal Room: canonical published content of a project's investor deal room.

One row per project (unique project_id). Lists are stored as JSON so the
order and item ids the admin UI sees survive a round trip unchanged.
"""

import uuid
from datetime import datetime, timezone

from dealroom.models import db


__all__ = [
    "DealRoom",
    "CONTENT_FIELDS",
    "BLURB_MAX_LENGTH",
    "SUMMARY_MAX_LENGTH",
    "VALID_IMAGE_MIME_TYPES",
]


# ── Constants ────────────────────────────────────────────────────────────────

# Wire names of the editable sections, in display order.
CONTENT_FIELDS = (
    "showcasePhoto",
    "investmentBlurb",
    "investmentSummary",
    "keyInfo",
    "externalLinks",
)

BLURB_MAX_LENGTH = 500
SUMMARY_MAX_LENGTH = 10_000

VALID_IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def strip_item_ids(items):
    """Return list items without their generated ``id`` keys."""
    return [{k: v for k, v in item.items() if k != "id"} for item in items or []]


class DealRoom(db.Model):
    """Published deal room for one project.

    showcase_photo holds upload metadata only
    ({filename, originalName, mimeType, size, uploadedAt}); the bytes live
    under UPLOAD_FOLDER.
    """

    __tablename__ = "deal_rooms"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(db.String(100), nullable=False, unique=True, index=True)
    showcase_photo = db.Column(db.JSON, nullable=True)
    investment_blurb = db.Column(db.String(BLURB_MAX_LENGTH), nullable=False, default="")
    investment_summary = db.Column(db.Text, nullable=False, default="")
    key_info = db.Column(db.JSON, nullable=False, default=list)
    external_links = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def content(self, include_item_ids: bool = True) -> dict:
        """Editable sections keyed by wire name.

        Version snapshots keep item ids; conflict comparison drops them
        because drafts never carry ids.
        """
        key_info = list(self.key_info or [])
        external_links = list(self.external_links or [])
        if not include_item_ids:
            key_info = strip_item_ids(key_info)
            external_links = strip_item_ids(external_links)
        return {
            "showcasePhoto": self.showcase_photo,
            "investmentBlurb": self.investment_blurb or "",
            "investmentSummary": self.investment_summary or "",
            "keyInfo": key_info,
            "externalLinks": external_links,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            **self.content(),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<DealRoom {self.id} project={self.project_id}>"
