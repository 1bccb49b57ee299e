"""
SQLAlchemy models for weather widget instances: one row per widget id.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime

from weatherwidget.core.db import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class WidgetInstance(Base):
    """Saved settings of one widget. unit: metric | imperial; display_style: minimal | standard | advanced."""
    __tablename__ = "widget_instances"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False, default="")
    city = Column(String(255), nullable=False, default="")
    unit = Column(String(16), nullable=False, default="metric")
    display_style = Column(String(16), nullable=False, default="minimal")
    display_layout = Column(String(16), nullable=False, default="vertical")
    created_at = Column(DateTime(timezone=False), default=_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)
