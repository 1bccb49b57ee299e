"""
Background task: hourly refresh of the cached weather for the shared refresh city.
"""
from typing import Any, Dict

from weatherwidget.core.task import BaseTask, TaskType, update_after_run

REFRESH_JOB = "weather_hourly_update"


class RefreshTask(BaseTask):
    """Runs RefreshController.on_tick and records the outcome on the schedule row."""

    def __init__(self, controller):
        super().__init__(REFRESH_JOB, TaskType.HOURLY)
        self.controller = controller

    def run(self, config: Dict[str, Any], result_queue: Any, **kwargs: Any) -> None:
        snapshot = self.controller.on_tick()
        update_after_run(self.component_name, self.controller.last_error)
        result_queue.put((self.component_name, snapshot))
