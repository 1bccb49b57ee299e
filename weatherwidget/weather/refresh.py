"""
Scheduled refresh of the weather cache.

There is one refresh job for the whole installation and one target city (the city of
the widget saved last). States: unscheduled (no job, no city) and scheduled(city).
"""
import logging
from typing import Any, Dict, Optional

from weatherwidget.core.models import OptionStore
from weatherwidget.core.task import get_schedule_record
from weatherwidget.core.task_manager import TaskManager
from weatherwidget.weather.errors import CredentialError, FetchError
from weatherwidget.weather.fetcher import WeatherFetcher
from weatherwidget.weather.schemas import DEFAULT_UNIT, WeatherSnapshot, sanitize_text
from weatherwidget.weather.task import REFRESH_JOB, RefreshTask
from weatherwidget.weather.vault import CredentialVault

CRON_CITY_OPTION = "weather_cron_city"


class RefreshController:
    def __init__(
        self,
        task_manager: TaskManager,
        vault: CredentialVault,
        fetcher: WeatherFetcher,
        options: Optional[OptionStore] = None,
        default_unit: str = DEFAULT_UNIT,
        arm_timers: bool = True,
    ):
        self.task_manager = task_manager
        self.vault = vault
        self.fetcher = fetcher
        self.options = options or OptionStore()
        self.default_unit = default_unit
        # False for one-shot commands: the schedule is persisted but no timer thread is started
        self.arm_timers = arm_timers
        self.last_error: Optional[str] = None
        self.logger = logging.getLogger(self.__class__.__name__)

        self.task = RefreshTask(self)
        self.task_manager.register_task(REFRESH_JOB, self.task.run)

    @property
    def city(self) -> str:
        return self.options.get(CRON_CITY_OPTION, "") or ""

    def is_scheduled(self) -> bool:
        return self.task.is_scheduled()

    def schedule(self, city: str) -> None:
        """Make city the refresh target. Creates the hourly job only if none exists."""
        city = sanitize_text(city)
        if not city:
            raise ValueError("A city is required to schedule the weather refresh")

        if not self.task.is_scheduled():
            self.task.ensure_scheduled()
            self.logger.info("Hourly weather refresh scheduled")
        self.options.set(CRON_CITY_OPTION, city)
        self.logger.info(f"Weather refresh city set to {city}")

        # Timers live in memory; re-arm after a restart without touching the stored next run
        if self.arm_timers and not self.task_manager.has_timer(REFRESH_JOB):
            self.task_manager.schedule_registered_task(REFRESH_JOB)

    def unschedule(self) -> None:
        """Cancel the job and clear the refresh city. Safe to call when nothing is scheduled."""
        removed = self.task.remove_schedule()
        self.task_manager.cancel_task(REFRESH_JOB)
        self.options.delete(CRON_CITY_OPTION)
        if removed:
            self.logger.info("Hourly weather refresh unscheduled")

    def on_tick(self) -> Optional[WeatherSnapshot]:
        """Warm the cache for the refresh city. Never raises for credential or fetch problems."""
        self.last_error = None
        city = self.city
        if not city:
            return None

        try:
            credential = self.vault.retrieve()
        except CredentialError as e:
            self.logger.debug(f"Skipping weather refresh: {e}")
            return None

        try:
            return self.fetcher.fetch(city, credential, self.default_unit)
        except FetchError as e:
            self.last_error = str(e)
            self.logger.warning(f"Background weather refresh for {city} failed: {e}")
            return None

    def activate(self) -> None:
        """Startup hook: restore the job if a refresh city survived from a previous run."""
        city = self.city
        if city:
            self.schedule(city)

    def deactivate(self) -> None:
        """Shutdown/uninstall hook."""
        self.unschedule()

    def state(self) -> Dict[str, Any]:
        row = get_schedule_record(REFRESH_JOB)
        return {
            "scheduled": row is not None,
            "city": self.city or None,
            "next_run_at": row.next_run_at if row else None,
            "last_run_at": row.last_run_at if row else None,
            "last_error": row.last_error if row else None,
        }
