"""
Core DB models: persisted options, cache entries, and task schedule (next_run persistence).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, String, DateTime, Text, JSON, select, delete

from weatherwidget.core.db import Base, session_scope


def _utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Option(Base):
    """Global key/value settings (encrypted API key, refresh city)."""
    __tablename__ = "options"

    name = Column(String(191), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)


class CacheEntry(Base):
    """One cached value with an absolute expiry; expired rows are treated as absent."""
    __tablename__ = "cache_entries"

    key = Column(String(191), primary_key=True)
    value = Column(JSON, nullable=False)
    expires_at = Column(DateTime(timezone=False), nullable=False, index=True)
    created_at = Column(DateTime(timezone=False), default=_utc_now, nullable=False)


class TaskSchedule(Base):
    """Per-job schedule: next_run_at and last_run_at so scheduling survives restarts."""
    __tablename__ = "task_schedules"

    component_name = Column(String(255), primary_key=True)  # job name
    schedule_type = Column(String(64), nullable=False)  # HOURLY
    schedule_config = Column(JSON, nullable=True)
    next_run_at = Column(DateTime(timezone=False), nullable=True)  # null = run immediately
    last_run_at = Column(DateTime(timezone=False), nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=False), default=_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)


def get_option(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return the stored option value, or default when missing."""
    with session_scope() as session:
        row = session.get(Option, name)
        if row is None:
            return default
        return row.value


def update_option(name: str, value: str) -> None:
    """Create or replace an option value."""
    with session_scope() as session:
        row = session.get(Option, name)
        if row:
            row.value = value
            row.updated_at = _utc_now()
        else:
            session.add(Option(name=name, value=value, updated_at=_utc_now()))


def delete_option(name: str) -> None:
    """Remove an option; missing options are ignored."""
    with session_scope() as session:
        session.execute(delete(Option).where(Option.name == name))


class OptionStore:
    """Object view over the options table, injected where persisted settings are needed."""

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return get_option(name, default)

    def set(self, name: str, value: str) -> None:
        update_option(name, value)

    def delete(self, name: str) -> None:
        delete_option(name)


def get_all_task_schedules() -> List[Dict[str, Any]]:
    """Return all TaskSchedule rows as list of dicts (for API). Datetimes are naive UTC."""
    rows = get_all_task_schedule_records()
    return [
        {
            "component_name": r.component_name,
            "schedule_type": r.schedule_type,
            "schedule_config": r.schedule_config,
            "next_run_at": r.next_run_at,
            "last_run_at": r.last_run_at,
            "last_error": r.last_error,
        }
        for r in rows
    ]


def get_all_task_schedule_records() -> List[TaskSchedule]:
    """Return all TaskSchedule ORM rows."""
    with session_scope() as session:
        return list(session.execute(select(TaskSchedule)).scalars().all())
