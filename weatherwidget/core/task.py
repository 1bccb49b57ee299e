"""
Base task type and abstract BaseTask with next_run persistence in DB.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from queue import Queue
from typing import Any, Dict, Optional

from sqlalchemy import delete, select

from weatherwidget.core.db import session_scope
from weatherwidget.core.models import TaskSchedule

logger = logging.getLogger(__name__)


class TaskType:
    """Schedule kind for tasks."""
    HOURLY = "hourly"


INTERVALS = {
    TaskType.HOURLY: timedelta(hours=1),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def compute_next_run(
    schedule_type: str,
    last_run: Optional[datetime],
    anchor: Optional[datetime] = None,
) -> datetime:
    """
    Compute next run datetime from schedule_type and last_run.
    anchor is the previously scheduled time: the next run is the first anchor + n * interval
    after last_run, so the schedule does not drift with how long (or how late) runs take
    and an early manual run does not skip the pending slot.
    """
    now = _utc_now()
    if last_run is None:
        last_run = now

    interval = INTERVALS.get(schedule_type)
    if interval is None:
        logger.warning(f"Unknown schedule type '{schedule_type}', assuming hourly")
        interval = INTERVALS[TaskType.HOURLY]

    if anchor is None:
        return last_run + interval

    next_run = anchor
    while next_run <= last_run:
        next_run += interval
    return next_run


def get_schedule_record(component_name: str) -> Optional[TaskSchedule]:
    with session_scope() as session:
        return session.execute(
            select(TaskSchedule).where(TaskSchedule.component_name == component_name)
        ).scalars().first()


def get_next_run_from_db(component_name: str) -> Optional[datetime]:
    """Read next_run_at for a job from DB. Returns None if no row or next_run_at is null (task will run immediately)."""
    try:
        row = get_schedule_record(component_name)
        if row and row.next_run_at is not None:
            return row.next_run_at
    except Exception as e:
        logger.debug(f"get_next_run_from_db {component_name}: {e}")
    return None


def upsert_task_schedule(
    component_name: str,
    schedule_type: str,
    schedule_config: Optional[Dict[str, Any]],
    next_run_at: Optional[datetime] = None,
    last_run_at: Optional[datetime] = None,
    last_error: Optional[str] = None,
) -> None:
    """Create or update TaskSchedule row. If next_run_at not given: for new row leave it null (run immediately); for existing row leave next_run_at unchanged."""
    with session_scope() as session:
        row = session.execute(
            select(TaskSchedule).where(TaskSchedule.component_name == component_name)
        ).scalars().first()
        now = _utc_now()
        if row:
            row.schedule_type = schedule_type
            row.schedule_config = schedule_config
            if next_run_at is not None:
                row.next_run_at = next_run_at
            if last_run_at is not None:
                row.last_run_at = last_run_at
            if last_error is not None:
                row.last_error = last_error
            row.updated_at = now
        else:
            session.add(TaskSchedule(
                component_name=component_name,
                schedule_type=schedule_type,
                schedule_config=schedule_config,
                next_run_at=next_run_at,
                last_run_at=last_run_at,
                last_error=last_error,
                created_at=now,
                updated_at=now,
            ))


def delete_task_schedule(component_name: str) -> bool:
    """Remove the TaskSchedule row. Returns True if a row was deleted."""
    with session_scope() as session:
        result = session.execute(
            delete(TaskSchedule).where(TaskSchedule.component_name == component_name)
        )
        return bool(result.rowcount)


def update_after_run(component_name: str, error: Optional[str] = None) -> None:
    """Update last_run_at, last_error and next_run_at in DB after a task run."""
    with session_scope() as session:
        row = session.execute(
            select(TaskSchedule).where(TaskSchedule.component_name == component_name)
        ).scalars().first()
        if not row:
            return
        now = _utc_now()
        row.last_run_at = now
        row.last_error = error
        row.next_run_at = compute_next_run(row.schedule_type, now, anchor=row.next_run_at)
        row.updated_at = now


class BaseTask(ABC):
    """
    Abstract base for background tasks. Subclasses implement run();
    base helps with persisting the schedule row in DB.
    """

    def __init__(self, component_name: str, schedule_type: str, schedule_config: Optional[Dict[str, Any]] = None):
        self.component_name = component_name
        self.schedule_type = schedule_type
        self.schedule_config = schedule_config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def is_scheduled(self) -> bool:
        """True if a TaskSchedule row exists for this task."""
        return get_schedule_record(self.component_name) is not None

    def ensure_scheduled(self, next_run_at: Optional[datetime] = None) -> None:
        """Ensure TaskSchedule row exists so next run survives restarts. Does not overwrite next_run_at on existing row."""
        upsert_task_schedule(
            self.component_name,
            self.schedule_type,
            self.schedule_config,
            next_run_at=next_run_at,
        )

    def remove_schedule(self) -> bool:
        return delete_task_schedule(self.component_name)

    @abstractmethod
    def run(
        self,
        config: Dict[str, Any],
        result_queue: Queue,
        **kwargs: Any,
    ) -> None:
        """
        Execute the task. Subclass should: do work, then call update_after_run(self.component_name), then result_queue.put((component_name, None)).
        """
        pass
