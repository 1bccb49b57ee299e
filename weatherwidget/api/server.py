"""
FastAPI server for the weather widget. Run with run_api_server(app).
Central endpoints: GET /health, GET /api/tasks. Widget routes come from
weatherwidget.weather.api (get_router(widget_app)) under /api/.
Docs when enabled: http://<host>:<port>/docs
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI

from weatherwidget.weather.api import get_router as get_weather_router

logger = logging.getLogger(__name__)


def _serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to ISO string (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def create_app(widget_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given WidgetApp instance."""
    app = FastAPI(title="Weather Info Widget API", description="Widget settings, rendering, and refresh schedule")

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/tasks")
    def list_tasks() -> Dict[str, Any]:
        """List scheduled tasks: DB schedules, active in-memory timers, and the refresh target."""
        from weatherwidget.core.models import get_all_task_schedules

        db_schedules = get_all_task_schedules()
        for row in db_schedules:
            row["next_run_at"] = _serialize_datetime(row.get("next_run_at"))
            row["last_run_at"] = _serialize_datetime(row.get("last_run_at"))

        active_list = [
            {"name": t["name"], "next_run_at": _serialize_datetime(t["next_run_at"])}
            for t in widget_app.task_manager.get_active_timers()
        ]

        refresh = widget_app.refresh.state()
        refresh["next_run_at"] = _serialize_datetime(refresh.get("next_run_at"))
        refresh["last_run_at"] = _serialize_datetime(refresh.get("last_run_at"))

        return {"db_schedules": db_schedules, "active_timers": active_list, "refresh": refresh}

    app.include_router(get_weather_router(widget_app), prefix="/api")
    return app


def run_api_server(widget_app: Any, background: bool = False) -> Optional[threading.Thread]:
    """
    Serve the API with uvicorn if api.enabled is true, in the foreground or in a daemon thread.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = widget_app.config.get_section("api")
    if not api_config.get("enabled", False):
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return None
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(widget_app)

    def run_uvicorn():
        import uvicorn
        logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
        uvicorn.run(fastapi_app, host=host, port=port, log_config=None)

    if not background:
        run_uvicorn()
        return None

    def run_guarded():
        try:
            run_uvicorn()
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_guarded, daemon=True)
    thread.start()
    logger.info("API server thread started.")
    return thread
