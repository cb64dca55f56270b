"""
Deal Room Blueprint.

REST API for a project's investor deal room: the published content, the
showcase photo, and the per-session draft / version / conflict workflow.

All routes are scoped under /api/projects/<project_id>/deal-room.

Endpoints:
    GET    /deal-room                     deal room (created empty on first access)
    PUT    /deal-room                     partial overwrite of content fields
    GET    /deal-room/completion-status   five-section completion summary
    POST   /deal-room/showcase-photo      multipart upload, field "photo"
    GET    /deal-room/showcase-photo      serve the stored image
    DELETE /deal-room/showcase-photo
    PUT    /deal-room/investment-blurb    Body: { "investmentBlurb": "..." }
    PUT    /deal-room/investment-summary  Body: { "investmentSummary": "..." }
    PUT    /deal-room/key-info            Body: { "keyInfo": [...] }
    PUT    /deal-room/external-links      Body: { "externalLinks": [...] }

    GET    /deal-room/draft?sessionId=
    POST   /deal-room/draft               Body: { "sessionId", "draftData", "isAutoSave", "userId" }
    POST   /deal-room/draft/publish       Body: { "sessionId", "changeDescription" }
           409 with error.conflictId when another session published first.
    GET    /deal-room/save-status?sessionId=
    GET    /deal-room/versions?limit=
    POST   /deal-room/restore-version     Body: { "versionId", "sessionId" }
    GET    /deal-room/conflicts
    POST   /deal-room/resolve-conflict    Body: { "conflictId", "resolution", "customData" }
    GET    /deal-room/recover-changes?sessionId=

Layer contract:
    - Blueprint: parse input, call deal_room_service, wrap the result in the
                 response envelope.
    - NO db.session calls here; all writes are owned by the service.
"""

import logging
import os

from flask import Blueprint, current_app, request, send_from_directory

from dealroom import limiter
from dealroom.core.exceptions import (
    ConflictError,
    EditConflictError,
    NotFoundError,
    ValidationError,
)
from dealroom.services import deal_room_service
from dealroom.utils.responses import E, api_data_or_null, api_error, api_success

logger = logging.getLogger(__name__)

deal_room_bp = Blueprint("deal_room", __name__, url_prefix="/api/projects/<project_id>/deal-room")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _autosave_limit() -> str:
    return current_app.config.get("AUTOSAVE_RATE_LIMIT", "120/minute")


# ── Error handlers ────────────────────────────────────────────────────────────


@deal_room_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION, str(error), details=error.details)


@deal_room_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    logger.info("Not found: %s id=%s endpoint=%s", error.resource, error.resource_id, request.endpoint)
    return api_error(E.NOT_FOUND, str(error))


@deal_room_bp.errorhandler(EditConflictError)
def _handle_edit_conflict(error: EditConflictError):
    return api_error(E.CONFLICT, str(error), conflict_id=error.conflict_id)


@deal_room_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    return api_error(E.CONFLICT, str(error))


# ═════════════════════════════════════════════════════════════════════════
# Published deal room
# ═════════════════════════════════════════════════════════════════════════


@deal_room_bp.route("", methods=["GET"])
def get_deal_room(project_id):
    deal_room = deal_room_service.get_or_create_deal_room(project_id)
    return api_success(deal_room.to_dict())


@deal_room_bp.route("", methods=["PUT"])
def update_deal_room(project_id):
    deal_room = deal_room_service.update_deal_room(project_id, _json_body())
    return api_success(deal_room.to_dict(), "Deal room updated successfully")


@deal_room_bp.route("/completion-status", methods=["GET"])
def completion_status(project_id):
    return api_success(deal_room_service.get_completion_status(project_id))


@deal_room_bp.route("/investment-blurb", methods=["PUT"])
def update_investment_blurb(project_id):
    deal_room = deal_room_service.update_investment_blurb(
        project_id, _json_body().get("investmentBlurb"),
    )
    return api_success(deal_room.to_dict(), "Investment blurb updated successfully")


@deal_room_bp.route("/investment-summary", methods=["PUT"])
def update_investment_summary(project_id):
    deal_room = deal_room_service.update_investment_summary(
        project_id, _json_body().get("investmentSummary"),
    )
    return api_success(deal_room.to_dict(), "Investment summary updated successfully")


@deal_room_bp.route("/key-info", methods=["PUT"])
def update_key_info(project_id):
    deal_room = deal_room_service.update_key_info(project_id, _json_body().get("keyInfo"))
    return api_success(deal_room.to_dict(), "Key info updated successfully")


@deal_room_bp.route("/external-links", methods=["PUT"])
def update_external_links(project_id):
    deal_room = deal_room_service.update_external_links(
        project_id, _json_body().get("externalLinks"),
    )
    return api_success(deal_room.to_dict(), "External links updated successfully")


# ── Showcase photo ────────────────────────────────────────────────────────────


@deal_room_bp.route("/showcase-photo", methods=["POST"])
def upload_showcase_photo(project_id):
    photo = request.files.get("photo")
    if photo is None or not photo.filename:
        raise ValidationError("No file uploaded")

    deal_room = deal_room_service.upload_showcase_photo(
        project_id, photo.read(), photo.filename, photo.mimetype,
    )
    return api_success(deal_room.to_dict(), "Showcase photo uploaded successfully")


@deal_room_bp.route("/showcase-photo", methods=["GET"])
def get_showcase_photo(project_id):
    path = deal_room_service.get_showcase_photo_path(project_id)
    if path is None or not os.path.isfile(path):
        raise NotFoundError("Showcase photo", project_id)
    directory, filename = os.path.split(path)
    return send_from_directory(directory, filename, max_age=3600)


@deal_room_bp.route("/showcase-photo", methods=["DELETE"])
def remove_showcase_photo(project_id):
    deal_room = deal_room_service.remove_showcase_photo(project_id)
    return api_success(deal_room.to_dict(), "Showcase photo removed successfully")


# ═════════════════════════════════════════════════════════════════════════
# Drafts
# ═════════════════════════════════════════════════════════════════════════


@deal_room_bp.route("/draft", methods=["GET"])
def get_draft(project_id):
    draft = deal_room_service.get_draft(project_id, request.args.get("sessionId"))
    return api_data_or_null(draft.to_dict() if draft else None)


@deal_room_bp.route("/draft", methods=["POST"])
@limiter.limit(_autosave_limit)
def save_draft(project_id):
    data = _json_body()
    draft = deal_room_service.save_draft(
        project_id,
        data.get("sessionId"),
        data.get("draftData"),
        is_auto_save=bool(data.get("isAutoSave", True)),
        user_id=data.get("userId"),
    )
    return api_success(draft.to_dict(), "Draft saved successfully")


@deal_room_bp.route("/draft/publish", methods=["POST"])
def publish_draft(project_id):
    data = _json_body()
    deal_room, version = deal_room_service.publish_draft(
        project_id, data.get("sessionId"), data.get("changeDescription"),
    )
    return api_success(
        {"dealRoom": deal_room.to_dict(), "version": version.to_dict()},
        "Draft published successfully",
    )


@deal_room_bp.route("/save-status", methods=["GET"])
def save_status(project_id):
    return api_success(
        deal_room_service.get_save_status(project_id, request.args.get("sessionId"))
    )


@deal_room_bp.route("/recover-changes", methods=["GET"])
def recover_changes(project_id):
    draft = deal_room_service.recover_unsaved_changes(project_id, request.args.get("sessionId"))
    if draft is None:
        return api_data_or_null(None, "No unsaved changes found")
    return api_data_or_null(draft.to_dict(), "Unsaved changes recovered")


# ═════════════════════════════════════════════════════════════════════════
# Versions and conflicts
# ═════════════════════════════════════════════════════════════════════════


@deal_room_bp.route("/versions", methods=["GET"])
def version_history(project_id):
    versions = deal_room_service.get_version_history(
        project_id, request.args.get("limit", type=int),
    )
    return api_success([v.to_dict() for v in versions])


@deal_room_bp.route("/restore-version", methods=["POST"])
def restore_version(project_id):
    data = _json_body()
    deal_room = deal_room_service.restore_version(
        project_id, data.get("versionId"), data.get("sessionId"),
    )
    return api_success(deal_room.to_dict(), "Version restored successfully")


@deal_room_bp.route("/conflicts", methods=["GET"])
def unresolved_conflicts(project_id):
    conflicts = deal_room_service.get_unresolved_conflicts(project_id)
    return api_success([c.to_dict() for c in conflicts])


@deal_room_bp.route("/resolve-conflict", methods=["POST"])
def resolve_conflict(project_id):
    data = _json_body()
    deal_room, conflict = deal_room_service.resolve_conflict(
        data.get("conflictId"),
        data.get("resolution"),
        data.get("customData"),
        project_id=project_id,
    )
    return api_success(
        {"dealRoom": deal_room.to_dict(), "conflict": conflict.to_dict()},
        "Conflict resolved successfully",
    )
