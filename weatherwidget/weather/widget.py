"""
The weather widget: admin save path and render boundary.

Saving settings is the only place that mutates widget configuration; it drops the
stale cache entry and points the hourly refresh at the new city. Rendering turns
every credential or fetch failure into a short message.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from weatherwidget.weather import service
from weatherwidget.weather.errors import (
    CredentialError,
    EmptyInputError,
    FetchError,
)
from weatherwidget.weather.fetcher import WeatherFetcher
from weatherwidget.weather.hooks import WeatherHooks
from weatherwidget.weather.invalidation import CacheInvalidationPolicy
from weatherwidget.weather.presenter import WeatherPresenter
from weatherwidget.weather.refresh import RefreshController
from weatherwidget.weather.schemas import DEFAULT_TITLE, DEFAULT_UNIT, WidgetConfig, sanitize_text
from weatherwidget.weather.vault import CredentialVault

NO_CITY_MESSAGE = "Please set a city in widget settings."
KEY_SAVED_MESSAGE = "API key saved, encrypted, and cache cleared."


@dataclass
class RenderResult:
    ok: bool
    title: Optional[str] = None
    message: Optional[str] = None
    view: Optional[Dict[str, Any]] = field(default=None)


class WeatherWidget:
    def __init__(
        self,
        fetcher: WeatherFetcher,
        vault: CredentialVault,
        invalidation: CacheInvalidationPolicy,
        refresh: RefreshController,
        presenter: Optional[WeatherPresenter] = None,
        hooks: Optional[WeatherHooks] = None,
    ):
        self.fetcher = fetcher
        self.vault = vault
        self.invalidation = invalidation
        self.refresh = refresh
        self.hooks = hooks or fetcher.hooks
        self.presenter = presenter or WeatherPresenter(self.hooks)
        self.logger = logging.getLogger(self.__class__.__name__)

    def update(self, new_instance: Dict[str, Any], old_instance: Optional[Dict[str, Any]] = None) -> WidgetConfig:
        """Sanitize submitted settings and apply their side effects. Returns the values to persist."""
        config = WidgetConfig.from_instance(new_instance)
        old_instance = old_instance or {}
        old_city = sanitize_text(old_instance.get("city"))
        old_unit = sanitize_text(old_instance.get("unit")) or DEFAULT_UNIT

        self.invalidation.on_config_change(old_city, old_unit, config.city, config.unit)

        if config.city:
            self.refresh.schedule(config.city)
        else:
            self.refresh.unschedule()
        return config

    def save(self, widget_id: str, new_instance: Dict[str, Any]) -> WidgetConfig:
        """Admin save path for a stored widget instance."""
        old_instance = service.get_widget_instance(widget_id)
        config = self.update(new_instance, old_instance)
        service.save_widget_instance(widget_id, config)
        self.logger.info(f"Saved widget {widget_id}: city={config.city!r} unit={config.unit}")
        return config

    def save_api_key(self, raw_key: Optional[str]) -> str:
        """Encrypt and store a new key and purge cached weather. Blank input keeps the current key."""
        try:
            self.vault.store(raw_key or "")
        except EmptyInputError as e:
            return e.user_message
        self.invalidation.on_credential_change()
        return KEY_SAVED_MESSAGE

    def render(self, instance: Optional[Dict[str, Any]]) -> RenderResult:
        instance = instance or {}
        self.hooks.notify_before_render(instance)
        try:
            return self._render(instance)
        finally:
            self.hooks.notify_after_render(instance)

    def render_saved(self, widget_id: str) -> Optional[RenderResult]:
        instance = service.get_widget_instance(widget_id)
        if instance is None:
            return None
        return self.render(instance)

    def _render(self, instance: Dict[str, Any]) -> RenderResult:
        config = WidgetConfig.from_instance(instance)
        title = config.title or DEFAULT_TITLE

        try:
            credential = self.vault.retrieve()
        except CredentialError as e:
            return RenderResult(ok=False, message=e.user_message)

        if not config.city:
            return RenderResult(ok=False, message=NO_CITY_MESSAGE)

        try:
            snapshot = self.fetcher.fetch(config.city, credential, config.unit)
        except FetchError as e:
            return RenderResult(ok=False, title=title, message=e.user_message)

        return RenderResult(ok=True, title=title, view=self.presenter.present(snapshot, config, instance))
