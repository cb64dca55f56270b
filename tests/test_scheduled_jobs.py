"""Tests for the job scheduler, the registered jobs and their CLI commands.

Coverage:
  1. draft_cleanup is registered and removes expired drafts
  2. stale_conflict_report counts conflicts open longer than a day
  3. Unknown jobs report an error instead of raising
  4. flask cleanup-expired-drafts / run-job / list-jobs
"""

from datetime import datetime, timedelta, timezone

from dealroom.models import db
from dealroom.repositories import deal_room_draft_repository as drafts
from dealroom.services import deal_room_service as svc
from dealroom.services.scheduler_service import SchedulerService, get_registered_jobs


PROJECT = "proj-jobs"


def _expired_draft(session_id):
    draft = svc.save_draft(PROJECT, session_id, {"investmentBlurb": "old"})
    draft.expires_at = datetime.now(timezone.utc) - timedelta(hours=1)
    db.session.commit()


class TestRegistry:

    def test_jobs_registered(self):
        jobs = get_registered_jobs()
        assert "draft_cleanup" in jobs
        assert "stale_conflict_report" in jobs

    def test_list_jobs_has_descriptions(self):
        listed = {j["job_name"]: j["description"] for j in SchedulerService.list_jobs()}
        assert listed["draft_cleanup"] == "Delete expired drafts across all projects."


class TestRunJob:

    def test_draft_cleanup(self):
        _expired_draft("stale")
        svc.save_draft(PROJECT, "live", {})

        outcome = SchedulerService.run_job("draft_cleanup")

        assert outcome["status"] == "success"
        assert outcome["result"] == {"drafts_removed": 1}
        assert outcome["error"] is None

    def test_stale_conflict_report(self):
        conflict = drafts.create_conflict(
            project_id=PROJECT,
            session_id="A",
            local_version=2,
            server_version=3,
            local_data={"investmentBlurb": "a"},
            server_data={"investmentBlurb": "b"},
            conflict_fields=["investmentBlurb"],
        )
        conflict.created_at = datetime.now(timezone.utc) - timedelta(days=2)
        drafts.create_conflict(
            project_id=PROJECT,
            session_id="B",
            local_version=1,
            server_version=2,
            local_data={},
            server_data={},
            conflict_fields=[],
        )
        db.session.commit()

        outcome = SchedulerService.run_job("stale_conflict_report")
        assert outcome["result"] == {"stale_conflicts": 1, "projects": [PROJECT]}

    def test_unknown_job(self):
        outcome = SchedulerService.run_job("does_not_exist")
        assert outcome["status"] == "error"
        assert outcome["error"] == "Unknown job: does_not_exist"


class TestCliCommands:

    def test_cleanup_expired_drafts_command(self, app):
        _expired_draft("stale")
        result = app.test_cli_runner().invoke(args=["cleanup-expired-drafts"])
        assert result.exit_code == 0
        assert "Removed 1 expired drafts." in result.output

    def test_run_job_command(self, app):
        result = app.test_cli_runner().invoke(args=["run-job", "draft_cleanup"])
        assert result.exit_code == 0
        assert "draft_cleanup: success" in result.output

    def test_run_unknown_job_fails(self, app):
        result = app.test_cli_runner().invoke(args=["run-job", "nope"])
        assert result.exit_code == 1

    def test_list_jobs_command(self, app):
        result = app.test_cli_runner().invoke(args=["list-jobs"])
        assert "draft_cleanup" in result.output
