"""
Tests for schedule computation, schedule persistence and the TaskManager.
"""
from datetime import datetime, timedelta

from weatherwidget.core.task import (
    TaskType,
    compute_next_run,
    delete_task_schedule,
    get_next_run_from_db,
    get_schedule_record,
    update_after_run,
    upsert_task_schedule,
)

from conftest import RecordingTaskManager

HOUR = timedelta(hours=1)


class TestComputeNextRun:

    def test_without_anchor(self):
        last = datetime(2026, 3, 1, 10, 17)
        assert compute_next_run(TaskType.HOURLY, last) == last + HOUR

    def test_anchor_keeps_wall_clock_slot(self):
        anchor = datetime(2026, 3, 1, 10, 0)
        last = datetime(2026, 3, 1, 10, 0, 42)  # run finished a bit late
        assert compute_next_run(TaskType.HOURLY, last, anchor=anchor) == datetime(2026, 3, 1, 11, 0)

    def test_anchor_skips_missed_slots(self):
        anchor = datetime(2026, 3, 1, 10, 0)
        last = datetime(2026, 3, 1, 13, 30)
        assert compute_next_run(TaskType.HOURLY, last, anchor=anchor) == datetime(2026, 3, 1, 14, 0)

    def test_early_run_keeps_pending_slot(self):
        anchor = datetime(2026, 3, 1, 11, 0)
        last = datetime(2026, 3, 1, 10, 30)
        assert compute_next_run(TaskType.HOURLY, last, anchor=anchor) == anchor

    def test_unknown_type_is_hourly(self):
        last = datetime(2026, 3, 1, 10, 0)
        assert compute_next_run("fortnightly", last) == last + HOUR


class TestSchedulePersistence:

    def test_new_row_runs_immediately(self, db):
        upsert_task_schedule("job", TaskType.HOURLY, {})
        assert get_schedule_record("job") is not None
        assert get_next_run_from_db("job") is None

    def test_upsert_keeps_next_run(self, db):
        when = datetime(2026, 3, 1, 11, 0)
        upsert_task_schedule("job", TaskType.HOURLY, {}, next_run_at=when)
        upsert_task_schedule("job", TaskType.HOURLY, {})
        assert get_next_run_from_db("job") == when

    def test_update_after_run(self, db):
        upsert_task_schedule("job", TaskType.HOURLY, {})
        update_after_run("job", error="boom")
        row = get_schedule_record("job")
        assert row.last_run_at is not None
        assert row.last_error == "boom"
        assert row.next_run_at == row.last_run_at + HOUR

        update_after_run("job")
        assert get_schedule_record("job").last_error is None

    def test_update_after_run_without_row(self, db):
        update_after_run("missing")
        assert get_schedule_record("missing") is None

    def test_delete(self, db):
        upsert_task_schedule("job", TaskType.HOURLY, {})
        assert delete_task_schedule("job") is True
        assert delete_task_schedule("job") is False


class TestTaskManager:

    def test_schedule_replaces_pending_timer(self, task_manager):
        task_manager.schedule_task("t", lambda: None, 10)
        first = task_manager.created[-1]
        task_manager.schedule_task("t", lambda: None, 20)
        assert first.cancelled
        assert len(task_manager.tasks) == 1
        assert task_manager.tasks["t"].delay == 20

    def test_cancel_task(self, task_manager):
        task_manager.schedule_task("t", lambda: None, 10)
        assert task_manager.has_timer("t")
        assert task_manager.cancel_task("t") is True
        assert not task_manager.has_timer("t")
        assert task_manager.cancel_task("t") is False

    def test_timer_callback_errors_are_logged(self, task_manager):
        def boom():
            raise RuntimeError("boom")

        task_manager.schedule_task("t", boom, 0)
        task_manager.created[-1].fire()  # must not raise
        assert not task_manager.has_timer("t")

    def test_registered_task_runs_and_reschedules(self, db):
        manager = RecordingTaskManager()
        calls = []

        def runnable(config, result_queue):
            calls.append(config)
            update_after_run("job")

        upsert_task_schedule("job", TaskType.HOURLY, {})
        manager.register_task("job", runnable)
        manager.schedule_registered_task("job", {"x": 1})

        timer = manager.created[-1]
        assert timer.delay == 0
        timer.fire()
        assert calls == [{"x": 1}]

        rescheduled = manager.created[-1]
        assert rescheduled is not timer
        assert 3500 <= rescheduled.delay <= 3600
        manager.stop()

    def test_unscheduled_task_is_not_rearmed(self, db):
        manager = RecordingTaskManager()
        upsert_task_schedule("job", TaskType.HOURLY, {})
        manager.register_task("job", lambda config, queue: delete_task_schedule("job"))
        manager.schedule_registered_task("job")

        manager.created[-1].fire()
        assert len(manager.created) == 1
        assert "job" not in manager.tasks

    def test_unknown_registered_task(self, task_manager):
        task_manager.schedule_registered_task("nobody")
        assert task_manager.created == []

    def test_active_timers(self, task_manager):
        task_manager.schedule_task("t", lambda: None, 60)
        active = task_manager.get_active_timers()
        assert [t["name"] for t in active] == ["t"]
        assert active[0]["next_run_at"] is not None

    def test_stop_cancels_everything(self, task_manager):
        task_manager.schedule_task("a", lambda: None, 60)
        task_manager.schedule_task("b", lambda: None, 60)
        timers = list(task_manager.created)
        task_manager.stop()
        assert all(t.cancelled for t in timers)
        assert task_manager.tasks == {}
