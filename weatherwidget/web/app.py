"""Weather widget web app: configuration page, widget fragment, JSON status."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Query, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from weatherwidget.config.schema import ServerConfig
from weatherwidget.errors import NotFoundError
from weatherwidget.registry import CityRegistry

logger = logging.getLogger(__name__)

WEB_DIR = Path(__file__).parent
TEMPLATES_DIR = WEB_DIR / "templates"
STATIC_DIR = WEB_DIR / "static"


def _day_name(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%a")


def _day_date(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%d.%m")


def _percent(fraction: float) -> int:
    return round(fraction * 100)


def _parse_days(raw: str | None) -> int | None:
    """Return the day count if it is a positive integer, else None."""
    if raw is None:
        return None
    try:
        days = int(raw.strip())
    except ValueError:
        return None
    return days if days > 0 else None


def create_app(
    registry: CityRegistry,
    server: ServerConfig | None = None,
    manage_lifecycle: bool = True,
) -> FastAPI:
    """Build the app around an existing registry.

    With manage_lifecycle the registry is launched in the background and
    stopped by the app lifespan, so pages are served while coordinates and
    forecasts load. Otherwise the caller owns it.
    """
    server = server or ServerConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_lifecycle:
            registry.launch()
        try:
            yield
        finally:
            if manage_lifecycle:
                await registry.stop()

    app = FastAPI(title="Weather Widget", version="0.1.0", lifespan=lifespan)
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    templates = Jinja2Templates(directory=TEMPLATES_DIR)
    templates.env.filters["day_name"] = _day_name
    templates.env.filters["day_date"] = _day_date
    templates.env.filters["percent"] = _percent

    def not_found(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(request, "404.html", {}, status_code=404)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return not_found(request)
        return await http_exception_handler(request, exc)

    # ── Pages ───────────────────────────────────────────────────

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request):
        """Widget configuration page."""
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "cities": registry.get_cities(),
                "days": server.day_presets,
                "types": server.widget_types,
            },
        )

    @app.get("/widget", response_class=HTMLResponse)
    async def widget(
        request: Request,
        city: str | None = None,
        widget_type: str | None = Query(default=None, alias="type"),
        days: str | None = None,
    ):
        """Example: /widget?city=<name>&type=<name>&days=<num>"""
        day_count = _parse_days(days)
        logger.debug(
            "Widget request(city=%r, type=%r, days=%r)", city, widget_type, days
        )
        if not city or not widget_type or day_count is None:
            return not_found(request)

        try:
            forecast = registry.get_city_forecast(city)
        except NotFoundError:
            return not_found(request)
        if forecast is None or day_count > len(forecast.week):
            return not_found(request)

        return templates.TemplateResponse(
            request,
            "widget.html",
            {
                "city": city,
                "current": forecast.current,
                "week": forecast.week[:day_count],
                "type": widget_type,
            },
        )

    # ── Data endpoints ──────────────────────────────────────────

    @app.get("/api/cities")
    async def get_cities_state():
        """Current registry state per city."""
        return registry.snapshot()

    @app.get("/api/health")
    async def get_health():
        states: dict[str, int] = {}
        for entry in registry.snapshot().values():
            states[entry["state"]] = states.get(entry["state"], 0) + 1
        return {
            "cities": len(registry.get_cities()),
            "states": states,
            "scheduler": registry.scheduler.stats(),
        }

    return app
