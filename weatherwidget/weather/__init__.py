from .widget import RenderResult, WeatherWidget

__all__ = ["RenderResult", "WeatherWidget"]
