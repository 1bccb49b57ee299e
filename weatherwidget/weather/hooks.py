"""
Optional extension points for the weather widget.

Callbacks are registered on a WeatherHooks instance that is passed to the fetcher,
presenter and widget at construction. With nothing registered every hook is a no-op
pass-through.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class WeatherRequest:
    """Upstream request about to be sent. options are passed to requests.get (e.g. timeout)."""
    url: str
    params: Dict[str, str]
    options: Dict[str, Any] = field(default_factory=dict)


RequestFilter = Callable[[WeatherRequest, str, str], WeatherRequest]
PayloadFilter = Callable[[Dict[str, Any], str, str], Dict[str, Any]]
TtlFilter = Callable[[int, str, str], int]
ContainerClassFilter = Callable[[str, Dict[str, Any]], str]
RenderListener = Callable[[Dict[str, Any]], None]


class WeatherHooks:
    def __init__(self):
        self.request_filters: List[RequestFilter] = []
        self.payload_filters: List[PayloadFilter] = []
        self.ttl_filters: List[TtlFilter] = []
        self.container_class_filters: List[ContainerClassFilter] = []
        self.before_render: List[RenderListener] = []
        self.after_render: List[RenderListener] = []

    def add_request_filter(self, callback: RequestFilter) -> None:
        """callback(request, city, unit) -> request; may change URL, params or options."""
        self.request_filters.append(callback)

    def add_payload_filter(self, callback: PayloadFilter) -> None:
        """callback(data, city, unit) -> data; runs on the decoded body before validation and caching."""
        self.payload_filters.append(callback)

    def add_ttl_filter(self, callback: TtlFilter) -> None:
        """callback(ttl, city, unit) -> ttl in seconds."""
        self.ttl_filters.append(callback)

    def add_container_class_filter(self, callback: ContainerClassFilter) -> None:
        """callback(css_class, instance) -> css_class."""
        self.container_class_filters.append(callback)

    def add_render_listener(self, before: RenderListener = None, after: RenderListener = None) -> None:
        """Listeners receive the widget instance settings around every render."""
        if before is not None:
            self.before_render.append(before)
        if after is not None:
            self.after_render.append(after)

    def filter_request(self, request: WeatherRequest, city: str, unit: str) -> WeatherRequest:
        for callback in self.request_filters:
            request = callback(request, city, unit)
        return request

    def filter_payload(self, data: Dict[str, Any], city: str, unit: str) -> Dict[str, Any]:
        for callback in self.payload_filters:
            data = callback(data, city, unit)
        return data

    def filter_ttl(self, ttl: int, city: str, unit: str) -> int:
        for callback in self.ttl_filters:
            ttl = callback(ttl, city, unit)
        return int(ttl)

    def filter_container_class(self, css_class: str, instance: Dict[str, Any]) -> str:
        for callback in self.container_class_filters:
            css_class = callback(css_class, instance)
        return css_class

    def notify_before_render(self, instance: Dict[str, Any]) -> None:
        self._notify(self.before_render, instance)

    def notify_after_render(self, instance: Dict[str, Any]) -> None:
        self._notify(self.after_render, instance)

    def _notify(self, listeners: List[RenderListener], instance: Dict[str, Any]) -> None:
        for listener in listeners:
            try:
                listener(instance)
            except Exception as e:
                logger.error(f"Error in render listener {listener!r}: {e}")
