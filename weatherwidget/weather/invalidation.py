import logging

from weatherwidget.core.cache import CacheStore
from weatherwidget.weather.keys import WEATHER_CACHE_PREFIX, cache_key

logger = logging.getLogger(__name__)


class CacheInvalidationPolicy:
    """Keeps cached snapshots consistent with widget settings and the stored API key."""

    def __init__(self, cache: CacheStore):
        self.cache = cache

    def on_config_change(self, old_city: str, old_unit: str, new_city: str, new_unit: str) -> bool:
        """Drop the entry for the old (city, unit) when either changed. Returns True if a delete was issued.

        The new key is left alone so a fresh city goes straight to the API.
        """
        if not old_city or (old_city == new_city and old_unit == new_unit):
            return False
        self.cache.delete(cache_key(old_city, old_unit))
        logger.info(f"Invalidated cached weather for {old_city} ({old_unit})")
        return True

    def on_credential_change(self) -> int:
        """Purge every cached snapshot; they were fetched with the previous key."""
        removed = self.cache.delete_by_prefix(WEATHER_CACHE_PREFIX)
        logger.info(f"API key changed, purged {removed} cached weather entries")
        return removed
