"""Deal room persistence: the canonical row per project plus showcase photo files.

Rules:
  - Functions flush, never commit; deal_room_service owns the transaction.
  - Photo bytes live in UPLOAD_FOLDER/deal-room-images; the row keeps metadata.
"""

from __future__ import annotations

import logging
import os
import re
import time
import uuid
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import select
from werkzeug.utils import secure_filename

from dealroom.core.exceptions import ConflictError, NotFoundError
from dealroom.models import db
from dealroom.models.deal_room import DealRoom

logger = logging.getLogger(__name__)

PHOTO_SUBDIR = "deal-room-images"
_STORED_PHOTO_RE = re.compile(r"showcase_\d+_[0-9a-f]{9}(\.[a-z0-9_-]+)?")


def _item_id() -> str:
    return f"item_{uuid.uuid4().hex[:12]}"


def _build_items(items: list[dict], url_key: str) -> list[dict]:
    """Assign fresh ids; a missing order falls back to list position."""
    built = []
    for index, item in enumerate(items):
        order = item.get("order")
        built.append({
            "id": _item_id(),
            "name": item.get("name"),
            url_key: item.get(url_key),
            "order": order if order is not None else index,
        })
    return built


# ── Rows ─────────────────────────────────────────────────────────────────────


def find_by_project_id(project_id: str) -> DealRoom | None:
    return db.session.execute(
        select(DealRoom).where(DealRoom.project_id == project_id)
    ).scalar_one_or_none()


def find_by_id(deal_room_id: str) -> DealRoom | None:
    return db.session.get(DealRoom, deal_room_id)


def create(project_id: str, data: dict | None = None) -> DealRoom:
    """Insert the deal room for a project.

    Raises:
        ConflictError: The project already has a deal room.
    """
    if find_by_project_id(project_id) is not None:
        raise ConflictError("Deal room", "project", project_id)

    data = data or {}
    deal_room = DealRoom(
        project_id=project_id,
        investment_blurb=data.get("investmentBlurb") or "",
        investment_summary=data.get("investmentSummary") or "",
        key_info=_build_items(data.get("keyInfo") or [], "link"),
        external_links=_build_items(data.get("externalLinks") or [], "url"),
    )
    db.session.add(deal_room)
    db.session.flush()
    return deal_room


def apply_update(deal_room: DealRoom, data: dict, *, set_photo: bool = False) -> DealRoom:
    """Overwrite the fields present in ``data``; absent keys keep their value.

    None values are treated as absent. The photo reference belongs to the
    upload and remove operations: ``showcasePhoto`` is applied only with
    ``set_photo=True``, where None clears it. Client content, drafts and
    restored snapshots never repoint it at another file.
    """
    if set_photo and "showcasePhoto" in data:
        deal_room.showcase_photo = data["showcasePhoto"]
    if data.get("investmentBlurb") is not None:
        deal_room.investment_blurb = data["investmentBlurb"]
    if data.get("investmentSummary") is not None:
        deal_room.investment_summary = data["investmentSummary"]
    if data.get("keyInfo") is not None:
        deal_room.key_info = _build_items(data["keyInfo"], "link")
    if data.get("externalLinks") is not None:
        deal_room.external_links = _build_items(data["externalLinks"], "url")
    deal_room.updated_at = datetime.now(timezone.utc)
    db.session.flush()
    return deal_room


def update(project_id: str, data: dict) -> DealRoom:
    """Partial overwrite of a project's deal room.

    Raises:
        NotFoundError: No deal room for the project.
    """
    deal_room = find_by_project_id(project_id)
    if deal_room is None:
        raise NotFoundError("Deal room", project_id)
    return apply_update(deal_room, data)


def delete(project_id: str) -> bool:
    deal_room = find_by_project_id(project_id)
    if deal_room is None:
        return False
    if deal_room.showcase_photo:
        delete_showcase_photo_file(deal_room.showcase_photo.get("filename"))
    db.session.delete(deal_room)
    db.session.flush()
    return True


# ── Showcase photo files ─────────────────────────────────────────────────────


def photo_directory() -> str:
    return os.path.join(current_app.config["UPLOAD_FOLDER"], PHOTO_SUBDIR)


def _photo_filename(original_name: str) -> str:
    extension = os.path.splitext(secure_filename(original_name))[1].lower()
    return f"showcase_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}{extension}"


def save_showcase_photo(content: bytes, original_name: str, mime_type: str) -> dict:
    """Write photo bytes to the upload folder and return their metadata."""
    directory = photo_directory()
    os.makedirs(directory, exist_ok=True)

    filename = _photo_filename(original_name)
    with open(os.path.join(directory, filename), "wb") as fh:
        fh.write(content)

    logger.info("Saved showcase photo %s (%d bytes)", filename, len(content))
    return {
        "filename": filename,
        "originalName": original_name,
        "mimeType": mime_type,
        "size": len(content),
        "uploadedAt": datetime.now(timezone.utc).isoformat(),
    }


def is_stored_photo_name(filename: str | None) -> bool:
    return bool(filename) and _STORED_PHOTO_RE.fullmatch(filename) is not None


def delete_showcase_photo_file(filename: str | None) -> None:
    """Remove a stored photo. A missing file is logged, not raised.

    Only names produced by save_showcase_photo are deleted.
    """
    if not filename:
        return
    if not is_stored_photo_name(filename):
        logger.warning("Refusing to delete unrecognised photo file name: %r", filename)
        return
    path = showcase_photo_path(filename)
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning("Showcase photo file already gone: %s", filename)


def showcase_photo_path(filename: str) -> str:
    return os.path.join(photo_directory(), secure_filename(filename))
