"""Tests for the background job runner."""
import threading

import pytest

from adoptimiser_ui.services.jobs import JobRunner


@pytest.fixture
def runner():
    posted = []
    runner = JobRunner(posted.append, max_workers=2)
    yield runner, posted
    runner.shutdown(wait_for_jobs=True)


class TestJobRunner:
    """Tests for JobRunner."""

    def test_completion_is_posted_not_run(self, runner):
        """Should hand the completion to the owner instead of calling it."""
        jobs, posted = runner
        outcomes = []
        jobs.submit("double", lambda: 21 * 2, outcomes.append)
        assert jobs.wait(timeout=5)
        assert outcomes == []

        for apply in posted:
            apply()
        assert outcomes[0].ok
        assert outcomes[0].value == 42
        assert outcomes[0].name == "double"

    def test_errors_are_captured(self, runner):
        """Should deliver exceptions in the outcome."""
        jobs, posted = runner
        outcomes = []

        def boom():
            raise ValueError("bad")

        jobs.submit("boom", boom, outcomes.append)
        assert jobs.wait(timeout=5)
        posted[0]()
        assert not outcomes[0].ok
        assert isinstance(outcomes[0].error, ValueError)

    def test_wait_times_out(self, runner):
        """Should report unfinished jobs."""
        jobs, _posted = runner
        release = threading.Event()
        jobs.submit("slow", lambda: release.wait(5), lambda outcome: None)
        assert not jobs.wait(timeout=0.01)
        assert jobs.pending == 1
        release.set()
        assert jobs.wait(timeout=5)

    def test_submit_after_shutdown(self):
        """Should refuse new jobs."""
        jobs = JobRunner(lambda callback: None)
        jobs.shutdown()
        with pytest.raises(RuntimeError):
            jobs.submit("late", lambda: None, lambda outcome: None)
