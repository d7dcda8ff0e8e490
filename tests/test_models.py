"""Tests for job and ledger records."""

import re

from cronwatch.models import (
    CronJob,
    ExecutionHistoryEntry,
    GlobalExecutionEntry,
    JobStatus,
    RunStatus,
    generate_job_id,
)


class TestGenerateJobId:
    """Tests for job id generation."""

    def test_format(self):
        job_id = generate_job_id(1718000000000)

        assert re.fullmatch(r"job_1718000000000_[0-9a-z]{7}", job_id)

    def test_unique(self):
        ids = {generate_job_id(1) for _ in range(200)}

        assert len(ids) == 200


class TestCronJob:
    """Tests for CronJob serialisation."""

    def test_from_dict_restores_enums(self):
        job = CronJob(
            id="job_1",
            name="Sweep",
            cron_expression="* * * * *",
            status=JobStatus.RUNNING,
            last_run_status=RunStatus.FAILURE,
            last_run_error="timeout",
            created_at=5,
            updated_at=6,
        )

        data = job.to_dict()
        assert data["status"] == "running"
        assert data["last_run_status"] == "failure"
        assert CronJob.from_dict(data) == job

    def test_from_dict_ignores_unknown_keys(self):
        job = CronJob.from_dict({
            "id": "job_1",
            "name": "Sweep",
            "cron_expression": "* * * * *",
            "legacy_field": True,
        })

        assert job.status is JobStatus.STOPPED
        assert job.enabled is True
        assert job.last_run is None

    def test_with_changes_copies(self):
        job = CronJob(id="job_1", name="A", cron_expression="* * * * *")

        renamed = job.with_changes(name="B")

        assert renamed.name == "B"
        assert job.name == "A"
        assert not renamed.is_running


class TestLedgerEntries:
    """Tests for history and global ledger entries."""

    def test_history_entry_dict(self):
        entry = ExecutionHistoryEntry(timestamp=10, status=RunStatus.SUCCESS, duration=3)

        assert entry.succeeded
        assert entry.to_dict() == {
            "timestamp": 10,
            "duration": 3,
            "status": "success",
            "error": None,
        }

    def test_global_entry_defaults(self):
        entry = GlobalExecutionEntry.from_dict({"timestamp": 10, "status": "failure"})

        assert entry.source == "cron-job"
        assert entry.status is RunStatus.FAILURE
        assert entry.targets_checked == 0
