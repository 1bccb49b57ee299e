"""
Pydantic types for the weather widget: the validated weather snapshot and the
per-instance widget settings.
"""
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

UNITS = ("metric", "imperial")
DISPLAY_STYLES = ("minimal", "standard", "advanced")
DISPLAY_LAYOUTS = ("vertical", "horizontal")

DEFAULT_UNIT = "metric"
DEFAULT_DISPLAY_STYLE = "minimal"
DEFAULT_DISPLAY_LAYOUT = "vertical"
DEFAULT_TITLE = "Weather"

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]+")
_SPACE_RE = re.compile(r"\s{2,}")


def sanitize_text(value: Any) -> str:
    """Plain single-line text: tags and control characters removed, whitespace collapsed and trimmed."""
    if value is None:
        return ""
    text = _TAG_RE.sub("", str(value))
    text = _CONTROL_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


class WeatherSnapshot(BaseModel):
    """One validated result of the current-weather endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str
    temp: float
    feels_like: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    humidity: Optional[int] = None
    pressure: Optional[int] = None
    wind_speed: Optional[float] = None
    visibility: Optional[int] = None
    condition_code: str = ""
    condition_text: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "WeatherSnapshot":
        """Flatten an OpenWeather response. Raises pydantic.ValidationError on missing name/temp."""
        main = _section(data, "main")
        wind = _section(data, "wind")
        conditions = data.get("weather")
        condition = conditions[0] if isinstance(conditions, list) and conditions and isinstance(conditions[0], dict) else {}
        return cls(
            name=data.get("name"),
            temp=main.get("temp"),
            feels_like=main.get("feels_like"),
            temp_min=main.get("temp_min"),
            temp_max=main.get("temp_max"),
            humidity=main.get("humidity"),
            pressure=main.get("pressure"),
            wind_speed=wind.get("speed"),
            visibility=data.get("visibility"),
            condition_code=condition.get("icon") or "",
            condition_text=condition.get("description") or "",
        )


class WidgetConfig(BaseModel):
    """Settings of one widget instance. Unknown or empty choices fall back to defaults."""

    title: str = ""
    city: str = ""
    unit: str = DEFAULT_UNIT
    display_style: str = DEFAULT_DISPLAY_STYLE
    display_layout: str = DEFAULT_DISPLAY_LAYOUT

    @field_validator("title", "city", mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> str:
        return sanitize_text(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _clean_unit(cls, value: Any) -> str:
        value = sanitize_text(value)
        return value if value in UNITS else DEFAULT_UNIT

    @field_validator("display_style", mode="before")
    @classmethod
    def _clean_style(cls, value: Any) -> str:
        value = sanitize_text(value)
        return value if value in DISPLAY_STYLES else DEFAULT_DISPLAY_STYLE

    @field_validator("display_layout", mode="before")
    @classmethod
    def _clean_layout(cls, value: Any) -> str:
        value = sanitize_text(value)
        return value if value in DISPLAY_LAYOUTS else DEFAULT_DISPLAY_LAYOUT

    @classmethod
    def from_instance(cls, instance: Optional[Dict[str, Any]]) -> "WidgetConfig":
        """Build from a raw saved/submitted mapping; None values count as missing."""
        instance = instance or {}
        return cls(**{k: v for k, v in instance.items() if k in cls.model_fields and v is not None})
