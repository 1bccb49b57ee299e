import logging
import sys
import threading
from typing import Any, Dict, Optional

from .cache import create_cache_store
from .config import Config
from .db import init_db
from .task_manager import TaskManager
from weatherwidget.weather.fetcher import WeatherFetcher
from weatherwidget.weather.hooks import WeatherHooks
from weatherwidget.weather.invalidation import CacheInvalidationPolicy
from weatherwidget.weather.presenter import DEFAULT_ICON_URL, WeatherPresenter
from weatherwidget.weather.refresh import RefreshController
from weatherwidget.weather.schemas import DEFAULT_UNIT, UNITS
from weatherwidget.weather.vault import AesCbcVault
from weatherwidget.weather.widget import WeatherWidget

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class WidgetApp:
    """Wires configuration, storage, the weather core and the scheduler together."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        config: Optional[Config] = None,
        db_url: Optional[str] = None,
        watch_config: bool = True,
        configure_logging: bool = True,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = config or Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        if configure_logging:
            self._setup_logging()

        # Database first so tables exist before any store touches them
        init_db(self.config.data, db_url=db_url)

        weather_config = self.config.get_section("weather")
        self.hooks = WeatherHooks()
        self.cache = create_cache_store(self.config.data)
        self.vault = self._create_vault()
        self.fetcher = WeatherFetcher.from_config(self.cache, weather_config, self.hooks)
        self.presenter = WeatherPresenter(self.hooks, weather_config.get("icon_url", DEFAULT_ICON_URL))
        self.invalidation = CacheInvalidationPolicy(self.cache)
        self.task_manager = TaskManager()
        self.refresh = RefreshController(
            self.task_manager,
            self.vault,
            self.fetcher,
            default_unit=self._default_unit(weather_config),
            arm_timers=False,
        )
        self.widget = WeatherWidget(
            self.fetcher,
            self.vault,
            self.invalidation,
            self.refresh,
            presenter=self.presenter,
            hooks=self.hooks,
        )
        self._stop_event = threading.Event()

    def _setup_logging(self) -> None:
        """Configure logging to write to stdout and, if configured, a file"""
        log_config = self.config.get_section("logging")
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = log_config.get("file")
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Weather widget starting...")

    def _create_vault(self) -> AesCbcVault:
        secrets = self.config.get_section("secrets")
        return AesCbcVault(secrets.get("auth_key") or "", secrets.get("nonce_key") or "")

    def _default_unit(self, weather_config: Dict[str, Any]) -> str:
        unit = weather_config.get("default_unit", DEFAULT_UNIT)
        if unit not in UNITS:
            self.logger.warning(f"Invalid weather.default_unit '{unit}', using {DEFAULT_UNIT}")
            return DEFAULT_UNIT
        return unit

    def handle_config_change(self, old_config: Dict[str, Any], new_config: Dict[str, Any]) -> None:
        """Apply reloaded settings to the running components"""
        self.logger.info("Handling config change")
        old_weather = old_config.get("weather") or {}
        new_weather = new_config.get("weather") or {}
        if old_weather != new_weather:
            self.fetcher.apply_config(new_weather)
            self.presenter.icon_url_template = new_weather.get("icon_url", DEFAULT_ICON_URL)
            self.refresh.default_unit = self._default_unit(new_weather)

        if (old_config.get("secrets") or {}) != (new_config.get("secrets") or {}):
            vault = self._create_vault()
            self.vault = self.refresh.vault = self.widget.vault = vault
            self.logger.warning("Encryption secrets changed; re-enter the API key if it can no longer be decrypted")

    def activate(self) -> None:
        """Restore the hourly refresh for a previously saved city"""
        self.refresh.activate()

    def deactivate(self) -> None:
        """Remove the hourly refresh and forget its city"""
        self.refresh.deactivate()

    def stop(self) -> None:
        self._stop_event.set()

    def shutdown(self) -> None:
        self.task_manager.stop()
        self.config.cleanup()

    def run(self) -> None:
        from weatherwidget.api.server import run_api_server

        try:
            # Only a serving process keeps timer threads alive
            self.refresh.arm_timers = True
            self.activate()
            if self.config.get_section("api").get("enabled", False):
                run_api_server(self)
            else:
                # No API: keep the process alive for the scheduler
                self.logger.info("API disabled, running scheduler only; press Ctrl+C to stop")
                self._stop_event.wait()
        except KeyboardInterrupt:
            self.logger.info("Interrupted")
        finally:
            self.shutdown()
