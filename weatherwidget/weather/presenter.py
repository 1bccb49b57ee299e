"""
Display-style presentation of a WeatherSnapshot.

Produces a plain dict (no markup) that the API returns and the CLI prints:
minimal shows city, description and temperature; standard adds feels-like, humidity,
wind speed and pressure; advanced is a card with a details grid, and in the
horizontal layout the temperature moves into the card header.
"""
import math
from typing import Any, Dict, List, Optional

from weatherwidget.weather.hooks import WeatherHooks
from weatherwidget.weather.schemas import WeatherSnapshot, WidgetConfig

DEFAULT_ICON_URL = "https://openweathermap.org/img/wn/{icon}@2x.png"

UNIT_SYMBOLS = {
    "metric": {"temp": "°C", "wind": "m/s"},
    "imperial": {"temp": "°F", "wind": "mph"},
}

BASE_CLASS = "weather-info-widget-display"
MISSING = "--"


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def format_number(value: Optional[float]) -> str:
    if value is None:
        return MISSING
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_temp(value: Optional[float], symbol: str) -> str:
    if value is None:
        return MISSING
    return f"{round_half_away(value)}{symbol}"


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]


class WeatherPresenter:
    def __init__(self, hooks: Optional[WeatherHooks] = None, icon_url_template: str = DEFAULT_ICON_URL):
        self.hooks = hooks or WeatherHooks()
        self.icon_url_template = icon_url_template

    def icon_url(self, condition_code: str) -> str:
        if not condition_code:
            return ""
        return self.icon_url_template.format(icon=condition_code)

    def container_class(self, config: WidgetConfig, instance: Dict[str, Any]) -> str:
        css_class = BASE_CLASS
        if config.display_style == "standard":
            css_class += " weather-info-widget-standard"
        elif config.display_style == "advanced":
            css_class += " weather-info-widget-advanced"
            if config.display_layout == "horizontal":
                css_class += " weather-info-widget-horizontal"
        return self.hooks.filter_container_class(css_class, instance)

    def present(self, snapshot: WeatherSnapshot, config: WidgetConfig, instance: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        symbols = UNIT_SYMBOLS.get(config.unit, UNIT_SYMBOLS["metric"])
        temp_symbol, wind_symbol = symbols["temp"], symbols["wind"]
        advanced = config.display_style == "advanced"

        view = {
            "style": config.display_style,
            "layout": config.display_layout if advanced else None,
            "container_class": self.container_class(config, instance if instance is not None else config.model_dump()),
            "city": snapshot.name,
            "description": capitalize_first(snapshot.condition_text),
            "icon_url": self.icon_url(snapshot.condition_code),
            "icon_alt": snapshot.condition_text,
            "temperature": format_temp(snapshot.temp, temp_symbol),
            "feels_like": format_temp(snapshot.feels_like, temp_symbol),
            "temperature_in_header": advanced and config.display_layout == "horizontal",
        }

        if advanced:
            visibility = None if snapshot.visibility is None else snapshot.visibility / 1000
            details = [
                ("Min Temp", format_temp(snapshot.temp_min, temp_symbol)),
                ("Max Temp", format_temp(snapshot.temp_max, temp_symbol)),
                ("Humidity", f"{format_number(snapshot.humidity)}%"),
                ("Pressure", f"{format_number(snapshot.pressure)} hPa"),
                ("Wind", f"{format_number(snapshot.wind_speed)} {wind_symbol}"),
                ("Visibility", f"{format_number(visibility)} km"),
            ]
        else:
            details = [("Temperature", view["temperature"])]
            if config.display_style == "standard":
                details += [
                    ("Feels like", view["feels_like"]),
                    ("Humidity", f"{format_number(snapshot.humidity)}%"),
                    ("Wind Speed", f"{format_number(snapshot.wind_speed)} {wind_symbol}"),
                    ("Pressure", f"{format_number(snapshot.pressure)} hPa"),
                ]

        view["details"] = [{"label": label, "value": value} for label, value in details]
        return view


def render_text(title: str, view: Dict[str, Any]) -> str:
    """Plain-text rendering of a presented view, used by the command line."""
    lines: List[str] = [title, view["city"]]
    if view["description"]:
        lines.append(view["description"])
    if view["style"] == "advanced":
        lines.append(f"{view['temperature']} (feels like {view['feels_like']})")
    lines.extend(f"{d['label']}: {d['value']}" for d in view["details"])
    return "\n".join(lines)
