import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from weatherwidget.core.cache import CacheStore
from weatherwidget.weather.errors import NetworkError, ParseError, UpstreamApiError
from weatherwidget.weather.hooks import WeatherHooks, WeatherRequest
from weatherwidget.weather.keys import cache_key
from weatherwidget.weather.schemas import DEFAULT_UNIT, WeatherSnapshot, sanitize_text

DEFAULT_BASE_URL = "https://api.openweathermap.org/data/2.5/weather"
DEFAULT_TIMEOUT = 10
DEFAULT_TTL = 60 * 60  # 1h

UNKNOWN_API_ERROR = "Unknown API error."


class WeatherFetcher:
    """Current weather from OpenWeather with a per-(city, unit) cache in front of it"""

    def __init__(
        self,
        cache: CacheStore,
        hooks: Optional[WeatherHooks] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        ttl: int = DEFAULT_TTL,
    ):
        self.cache = cache
        self.hooks = hooks or WeatherHooks()
        self.base_url = base_url
        self.timeout = timeout
        self.ttl = ttl
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, cache: CacheStore, weather_config: Dict[str, Any], hooks: Optional[WeatherHooks] = None) -> "WeatherFetcher":
        return cls(
            cache,
            hooks=hooks,
            base_url=weather_config.get("base_url", DEFAULT_BASE_URL),
            timeout=weather_config.get("timeout", DEFAULT_TIMEOUT),
            ttl=int(weather_config.get("cache_ttl", DEFAULT_TTL)),
        )

    def apply_config(self, weather_config: Dict[str, Any]) -> None:
        """Pick up changed weather.* settings after a config reload"""
        self.base_url = weather_config.get("base_url", self.base_url)
        self.timeout = weather_config.get("timeout", self.timeout)
        self.ttl = int(weather_config.get("cache_ttl", self.ttl))

    def fetch(self, city: str, credential: str, unit: str = DEFAULT_UNIT) -> WeatherSnapshot:
        """Return the snapshot for city/unit, from cache when fresh.

        Raises NetworkError, UpstreamApiError or ParseError; nothing is cached on error.
        """
        key = cache_key(city, unit)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                self.logger.debug(f"Cache hit for {city} ({unit})")
                return WeatherSnapshot.model_validate(cached)
            except ValidationError:
                self.logger.warning(f"Discarding unreadable cache entry for {city} ({unit})")
                self.cache.delete(key)

        data = self._request(city, credential, unit)
        data = self.hooks.filter_payload(data, city, unit)
        try:
            snapshot = WeatherSnapshot.from_api(data)
        except (ValidationError, AttributeError, TypeError) as e:
            self.logger.error(f"Invalid weather payload for {city}: {e}")
            raise ParseError() from e

        ttl = self.hooks.filter_ttl(self.ttl, city, unit)
        self.cache.set(key, snapshot.model_dump(), ttl)
        self.logger.info(f"Fetched weather for {city} ({unit}), cached for {ttl}s")
        return snapshot

    def _request(self, city: str, credential: str, unit: str) -> Dict[str, Any]:
        request = WeatherRequest(
            url=self.base_url,
            params={"q": city, "appid": credential, "units": unit},
            options={"timeout": self.timeout},
        )
        request = self.hooks.filter_request(request, city, unit)

        self.logger.debug(f"Requesting current weather for {city} from {request.url}")
        try:
            response = requests.get(request.url, params=request.params, **request.options)
        except requests.exceptions.RequestException as e:
            # Transport errors can echo the full URL, which includes appid
            detail = str(e).replace(credential, "***") if credential else str(e)
            self.logger.error(f"Network error fetching weather for {city}: {detail}")
            raise NetworkError(e, detail) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code != 200:
            message = UNKNOWN_API_ERROR
            if isinstance(data, dict) and data.get("message"):
                message = sanitize_text(data["message"]) or UNKNOWN_API_ERROR
            self.logger.warning(f"OpenWeather API error for {city}: {response.status_code} {message}")
            raise UpstreamApiError(response.status_code, message)

        if not data or not isinstance(data, dict):
            self.logger.error(f"Unparseable weather response for {city}")
            raise ParseError()
        return data
