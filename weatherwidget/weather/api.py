"""
Weather widget API. Mounted under /api by weatherwidget.api.server.
- /widgets: saved widget settings; PUT is the admin save path.
- /widgets/{id}/render: presented weather or a short error message.
- /settings/api-key: whether a key is stored (masked) and replacing it. The key is never returned.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from weatherwidget.weather.schemas import WidgetConfig
from weatherwidget.weather.service import get_widget_instance, list_widget_instance_records


class WidgetInstanceResponse(BaseModel):
    """Pydantic view of WidgetInstance; serializes from ORM."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str = ""
    city: str = ""
    unit: str = "metric"
    display_style: str = "minimal"
    display_layout: str = "vertical"
    updated_at: Optional[datetime] = None


class WidgetUpdateRequest(BaseModel):
    title: Optional[str] = None
    city: Optional[str] = None
    unit: Optional[str] = None
    display_style: Optional[str] = None
    display_layout: Optional[str] = None


class DetailResponse(BaseModel):
    label: str
    value: str


class WeatherViewResponse(BaseModel):
    style: str
    layout: Optional[str] = None
    container_class: str
    city: str
    description: str
    icon_url: str
    icon_alt: str
    temperature: str
    feels_like: str
    temperature_in_header: bool
    details: List[DetailResponse]


class RenderResponse(BaseModel):
    ok: bool
    title: Optional[str] = None
    message: Optional[str] = None
    view: Optional[WeatherViewResponse] = None


class ApiKeyStatusResponse(BaseModel):
    configured: bool
    placeholder: str


class ApiKeyRequest(BaseModel):
    api_key: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


def get_router(widget_app) -> APIRouter:
    """Return router for the weather widget; widget_app is a WidgetApp."""
    router = APIRouter(tags=["Weather"])

    @router.get("/widgets", response_model=List[WidgetInstanceResponse])
    def list_widgets() -> List[WidgetInstanceResponse]:
        """Return all saved widget instances."""
        return [WidgetInstanceResponse.model_validate(r) for r in list_widget_instance_records()]

    @router.get("/widgets/{widget_id}", response_model=WidgetConfig)
    def get_widget(widget_id: str) -> WidgetConfig:
        instance = get_widget_instance(widget_id)
        if instance is None:
            raise HTTPException(status_code=404, detail="Widget not found")
        return WidgetConfig.from_instance(instance)

    @router.put("/widgets/{widget_id}", response_model=WidgetConfig)
    def save_widget(widget_id: str, body: WidgetUpdateRequest) -> WidgetConfig:
        """Save settings: invalidates the old cache entry and updates the refresh schedule."""
        return widget_app.widget.save(widget_id, body.model_dump())

    @router.get("/widgets/{widget_id}/render", response_model=RenderResponse)
    def render_widget(widget_id: str) -> Dict[str, Any]:
        result = widget_app.widget.render_saved(widget_id)
        if result is None:
            raise HTTPException(status_code=404, detail="Widget not found")
        return {"ok": result.ok, "title": result.title, "message": result.message, "view": result.view}

    @router.get("/settings/api-key", response_model=ApiKeyStatusResponse)
    def api_key_status() -> ApiKeyStatusResponse:
        vault = widget_app.vault
        return ApiKeyStatusResponse(configured=vault.has_credential(), placeholder=vault.placeholder())

    @router.post("/settings/api-key", response_model=MessageResponse)
    def save_api_key(body: ApiKeyRequest) -> MessageResponse:
        """Blank api_key keeps the existing key."""
        return MessageResponse(message=widget_app.widget.save_api_key(body.api_key))

    return router
