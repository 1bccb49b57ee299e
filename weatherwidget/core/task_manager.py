"""
Single place for scheduling: in-memory timers and DB-backed registered tasks.
"""
import logging
from datetime import datetime, timezone
from queue import Queue
from threading import Lock, Timer
from typing import Any, Callable, Dict, List, Optional

from weatherwidget.core.task import get_next_run_from_db, get_schedule_record


class TaskManager:
    def __init__(self):
        self.tasks: Dict[str, Timer] = {}
        self.result_queue = Queue()
        self.logger = logging.getLogger("TaskManager")
        self._registered_tasks: Dict[str, Callable[..., None]] = {}
        self._registered_config: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()

    def _create_timer(self, delay: float, function: Callable, args: tuple) -> Timer:
        timer = Timer(delay, function, args=args)
        timer.daemon = True
        return timer

    def schedule_task(self, name: str, callback: Callable, delay: int, one_time: bool = True) -> None:
        """Schedule a task to run after delay seconds. Replaces any pending timer with the same name."""
        try:
            self.logger.info(f"Scheduling task {name} with delay {delay} seconds")
            with self._lock:
                if name in self.tasks:
                    self.logger.info(f"Cancelling existing task {name}")
                    self.tasks[name].cancel()

                scheduled_time = datetime.now().timestamp() + delay
                timer = self._create_timer(delay, self._run_task, (name, callback, delay, one_time))
                timer.scheduled_time = scheduled_time
                self.tasks[name] = timer
            timer.start()
            self.logger.info(f"Timer started for {name}, scheduled for {datetime.fromtimestamp(scheduled_time)}")
        except Exception as e:
            self.logger.error(f"Error scheduling task {name}: {e}")

    def _run_task(self, name: str, callback: Callable, delay: int, one_time: bool) -> None:
        """Run the task and reschedule if needed."""
        try:
            callback()
            if not one_time:
                self.schedule_task(name, callback, delay, one_time)
        except Exception as e:
            self.logger.error(f"Error running task {name}: {e}")

    def has_timer(self, name: str) -> bool:
        """True if a timer for name is pending or running."""
        timer = self.tasks.get(name)
        return timer is not None and not timer.finished.is_set()

    def cancel_task(self, name: str) -> bool:
        """Cancel and forget the timer for name. Returns True if one existed."""
        with self._lock:
            timer = self.tasks.pop(name, None)
        if timer is None:
            return False
        timer.cancel()
        self.logger.info(f"Cancelled task {name}")
        return True

    def register_task(self, component_name: str, runnable: Callable[..., None]) -> None:
        """Register a runnable for a job. runnable(config, result_queue) does the work and updates next_run in DB."""
        self._registered_tasks[component_name] = runnable
        self.logger.debug(f"Registered task: {component_name}")

    def schedule_registered_task(self, component_name: str, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Schedule a registered task: run at next_run from DB (or immediately if past due).
        After running, the runnable updates next_run in DB; we reschedule again for the new next_run.
        """
        if component_name not in self._registered_tasks:
            self.logger.warning(f"No task registered for: {component_name}")
            return
        self._registered_config[component_name] = config or {}
        next_run = get_next_run_from_db(component_name)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        # If next_run_at is null (new row), run immediately
        if next_run is None:
            delay = 0
        else:
            delta = (next_run - now).total_seconds()
            delay = max(0, int(delta))
        callback = lambda: self._run_registered_and_reschedule(component_name)
        self.schedule_task(component_name, callback, delay, one_time=True)

    def _run_registered_and_reschedule(self, component_name: str) -> None:
        """Run the registered runnable then reschedule for next_run from DB while the schedule row exists."""
        runnable = self._registered_tasks.get(component_name)
        if runnable is None:
            return
        config = self._registered_config.get(component_name, {})
        try:
            runnable(config, self.result_queue)
        except Exception as e:
            self.logger.exception(f"Registered task {component_name} failed: {e}")
        if get_schedule_record(component_name) is None:
            self.logger.info(f"Task {component_name} was unscheduled, not rescheduling")
            with self._lock:
                self.tasks.pop(component_name, None)
            return
        self.schedule_registered_task(component_name, config)

    def get_active_timers(self) -> List[Dict[str, Any]]:
        """Return list of active timer names and their next run time (for API)."""
        result = []
        for name, timer in list(self.tasks.items()):
            if getattr(timer, "scheduled_time", None) is not None:
                next_run = datetime.fromtimestamp(timer.scheduled_time, tz=timezone.utc)
                result.append({"name": name, "next_run_at": next_run})
        return result

    def stop(self) -> None:
        """Stop all scheduled tasks."""
        with self._lock:
            timers = list(self.tasks.values())
            self.tasks.clear()
        for timer in timers:
            timer.cancel()
