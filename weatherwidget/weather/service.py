"""
Service layer: save and load widget instance settings from DB.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from weatherwidget.core.db import session_scope
from weatherwidget.weather.models import WidgetInstance
from weatherwidget.weather.schemas import WidgetConfig


def _to_dict(row: WidgetInstance) -> Dict[str, Any]:
    return {
        "title": row.title,
        "city": row.city,
        "unit": row.unit,
        "display_style": row.display_style,
        "display_layout": row.display_layout,
    }


def get_widget_instance(widget_id: str) -> Optional[Dict[str, Any]]:
    """Return the saved settings for widget_id, or None if it was never saved."""
    with session_scope() as session:
        row = session.get(WidgetInstance, widget_id)
        return _to_dict(row) if row else None


def save_widget_instance(widget_id: str, config: WidgetConfig) -> None:
    """Create or replace the settings for widget_id."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    with session_scope() as session:
        row = session.get(WidgetInstance, widget_id)
        if row is None:
            row = WidgetInstance(id=widget_id, created_at=now)
            session.add(row)
        row.title = config.title
        row.city = config.city
        row.unit = config.unit
        row.display_style = config.display_style
        row.display_layout = config.display_layout
        row.updated_at = now


def list_widget_instance_records() -> List[WidgetInstance]:
    """Return all WidgetInstance rows ordered by id (for API serialization)."""
    with session_scope() as session:
        return list(session.execute(select(WidgetInstance).order_by(WidgetInstance.id)).scalars().all())
