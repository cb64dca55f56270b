"""
Scheduled jobs for the deal room editor.

Jobs:
    - draft_cleanup: deletes drafts whose expiry has passed
    - stale_conflict_report: logs conflicts left open longer than a day
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select

from dealroom.models import db
from dealroom.models.deal_room_draft import DealRoomConflict
from dealroom.services import deal_room_service
from dealroom.services.scheduler_service import register_job

logger = logging.getLogger(__name__)

STALE_CONFLICT_HOURS = 24


# ═══════════════════════════════════════════════════════════════════════════
#  Job 1: Draft cleanup
# ═══════════════════════════════════════════════════════════════════════════

@register_job("draft_cleanup")
def cleanup_drafts(app) -> dict[str, Any]:
    """Delete expired drafts across all projects."""
    removed = deal_room_service.cleanup_expired_drafts()
    return {"drafts_removed": removed}


# ═══════════════════════════════════════════════════════════════════════════
#  Job 2: Stale conflict report
# ═══════════════════════════════════════════════════════════════════════════

@register_job("stale_conflict_report")
def report_stale_conflicts(app) -> dict[str, Any]:
    """Log conflicts nobody has resolved for STALE_CONFLICT_HOURS."""
    cutoff = datetime.now(timezone.utc) - timedelta(hours=STALE_CONFLICT_HOURS)
    stale = db.session.execute(
        select(DealRoomConflict)
        .where(
            DealRoomConflict.resolved_at.is_(None),
            DealRoomConflict.created_at <= cutoff,
        )
        .order_by(DealRoomConflict.created_at.asc())
    ).scalars().all()

    for conflict in stale:
        logger.warning(
            "Stale conflict %s project=%s session=%s fields=%s",
            conflict.conflict_id, conflict.project_id, conflict.session_id,
            conflict.conflict_fields,
        )
    return {
        "stale_conflicts": len(stale),
        "projects": sorted({c.project_id for c in stale}),
    }
