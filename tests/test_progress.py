"""
Tests for file progress tracking.
"""
from datetime import datetime, timedelta, timezone
import uuid

import pytest

from conftest import files_of, run_concurrently
from learning_engine.exceptions import InvalidInput, NotFound, Unauthorized
from learning_engine.models import FileProgress, LearningLog
from learning_engine.services.progress_service import ProgressPosition, ProgressService


class SteppingClock:
    def __init__(self):
        self.now = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=30)
        return self.now


@pytest.fixture
def service():
    return ProgressService(video_completion_ratio=0.95, max_effective_time_delta=600, clock=SteppingClock())


@pytest.fixture
def learner(make_user):
    return make_user()


@pytest.fixture
def pdf_task(make_task, learner):
    return make_task(files=[{"file_type": "pdf", "total_pages": 10}], assign=[learner])


@pytest.fixture
def video_task(make_task, learner):
    return make_task(files=[{"file_type": "video", "duration": 600}], assign=[learner])


def pdf(page, effective_time=0, **kwargs):
    return ProgressPosition(kind="pdf", page_num=page, effective_time=effective_time, **kwargs)


def video(current_time, effective_time=0, **kwargs):
    return ProgressPosition(kind="video", current_time=current_time, effective_time=effective_time, **kwargs)


class TestProgressCalculation:

    def test_pdf_percentage(self, service):
        assert service.calculate_pdf_progress(5, 10) == 50.0
        assert service.calculate_pdf_progress(10, 10) == 100.0
        assert service.calculate_pdf_progress(12, 10) == 100.0
        assert service.calculate_pdf_progress(3, 0) == 0.0

    def test_video_near_end_counts_as_complete(self, service):
        assert service.calculate_video_progress(300, 600) == 50.0
        assert service.calculate_video_progress(569, 600) < 95.0
        assert service.calculate_video_progress(570, 600) == 100.0
        assert service.calculate_video_progress(10, 0) == 0.0


class TestReportProgress:

    def test_effective_time_is_additive(self, db, service, learner, pdf_task):
        file_id = files_of(db, pdf_task)[0].id

        totals = []
        for page, seconds in [(1, 30), (2, 45), (2, 0), (3, 120)]:
            progress = service.report(db, learner.id, file_id, pdf_task.id, pdf(page, seconds))
            totals.append(progress.effective_time)

        assert totals == [30, 75, 75, 195]

    def test_position_is_replaced_by_latest_report(self, db, service, learner, pdf_task):
        file_id = files_of(db, pdf_task)[0].id

        service.report(db, learner.id, file_id, pdf_task.id, pdf(6, scroll_position=0.5))
        progress = service.report(db, learner.id, file_id, pdf_task.id, pdf(4, scroll_position=0.1))

        assert progress.current_page == 4
        assert progress.scroll_position == 0.1
        assert progress.progress == 40.0
        assert db.query(FileProgress).count() == 1

    def test_completed_at_is_never_cleared(self, db, service, learner, pdf_task):
        file_id = files_of(db, pdf_task)[0].id

        done = service.report(db, learner.id, file_id, pdf_task.id, pdf(10, 60))
        completed_at = done.completed_at
        assert completed_at is not None

        again = service.report(db, learner.id, file_id, pdf_task.id, pdf(2, 15))

        assert again.completed_at == completed_at
        assert again.is_completed is True
        assert again.progress == 100.0
        assert again.current_page == 2
        assert again.effective_time == 75

    def test_video_completion(self, db, service, learner, video_task):
        file_id = files_of(db, video_task)[0].id

        partial = service.report(db, learner.id, file_id, video_task.id, video(300, 300))
        assert partial.progress == 50.0
        assert partial.completed_at is None

        done = service.report(db, learner.id, file_id, video_task.id, video(580, 280))
        assert done.progress == 100.0
        assert done.completed_at is not None
        assert done.effective_time == 580

    def test_every_report_is_logged(self, db, service, learner, video_task):
        file_id = files_of(db, video_task)[0].id

        service.report(db, learner.id, file_id, video_task.id, video(10, 10, action="play"))
        service.report(db, learner.id, file_id, video_task.id, video(40, 30))

        logs = db.query(LearningLog).order_by(LearningLog.session_duration).all()
        assert [log.action for log in logs] == ["play", "time_update"]
        assert [log.current_time for log in logs] == [10, 40]

    @pytest.mark.parametrize("seconds", [-1, 601])
    def test_effective_time_out_of_bounds(self, db, service, learner, pdf_task, seconds):
        file_id = files_of(db, pdf_task)[0].id
        with pytest.raises(InvalidInput):
            service.report(db, learner.id, file_id, pdf_task.id, pdf(1, seconds))
        assert db.query(FileProgress).count() == 0

    def test_wrong_kind_is_rejected(self, db, service, learner, pdf_task):
        file_id = files_of(db, pdf_task)[0].id
        with pytest.raises(InvalidInput):
            service.report(db, learner.id, file_id, pdf_task.id, video(10))

    def test_unknown_file(self, db, service, learner, pdf_task):
        with pytest.raises(NotFound):
            service.report(db, learner.id, uuid.uuid4(), pdf_task.id, pdf(1))

    def test_file_from_another_task(self, db, service, learner, pdf_task, video_task):
        file_id = files_of(db, video_task)[0].id
        with pytest.raises(NotFound):
            service.report(db, learner.id, file_id, pdf_task.id, video(1))

    def test_unassigned_user(self, db, service, make_user, pdf_task):
        outsider = make_user()
        file_id = files_of(db, pdf_task)[0].id
        with pytest.raises(Unauthorized):
            service.report(db, outsider.id, file_id, pdf_task.id, pdf(1))


class TestGetProgress:

    def test_not_started_returns_zero_snapshot(self, db, service, learner, pdf_task):
        file_id = files_of(db, pdf_task)[0].id

        snapshot = service.get_progress(db, learner.id, file_id)

        assert snapshot["progress_percent"] == 0.0
        assert snapshot["effective_time"] == 0
        assert snapshot["is_completed"] is False
        assert snapshot["completed_at"] is None
        assert snapshot["total_pages"] == 10

    def test_snapshot_after_reports(self, db, service, learner, video_task):
        file_id = files_of(db, video_task)[0].id
        service.report(db, learner.id, file_id, video_task.id, video(150, 150))

        snapshot = service.get_progress(db, learner.id, file_id)

        assert snapshot["file_type"] == "video"
        assert snapshot["current_time"] == 150
        assert snapshot["duration"] == 600
        assert snapshot["progress_percent"] == 25.0
        assert snapshot["current_page"] is None

    def test_unknown_file(self, db, service, learner):
        with pytest.raises(NotFound):
            service.get_progress(db, learner.id, uuid.uuid4())


class TestConcurrentReports:

    def test_effective_time_is_not_lost(self, db, service, learner, pdf_task):
        file_id = files_of(db, pdf_task)[0].id
        task_id, user_id = pdf_task.id, learner.id

        def report(session):
            service.report(session, user_id, file_id, task_id, pdf(2, 10))
            return "ok"

        outcomes = run_concurrently(report, 8)

        assert outcomes == ["ok"] * 8
        db.expire_all()
        progress = db.query(FileProgress).one()
        assert progress.effective_time == 80
        assert progress.current_page == 2
        assert db.query(LearningLog).count() == 8
