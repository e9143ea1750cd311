"""CLI entry point for the weather widget service."""

import argparse
import asyncio
import logging

from weatherwidget.config.loader import get_config_value, load_config
from weatherwidget.config.schema import WidgetConfig
from weatherwidget.errors import NotFoundError, WidgetError
from weatherwidget.models.forecast import Coordinates, Forecast
from weatherwidget.registry import COORDINATES_KEY, FORECAST_HASH, CityRegistry
from weatherwidget.storage.kv_store import KeyValueStore

DEFAULT_CONFIG = "ops/configs/default.yaml"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="weatherwidget",
        description="Embeddable weather forecast widget",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG, help="Config YAML path"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # serve
    serve_p = sub.add_parser("serve", help="Run the widget web server")
    serve_p.add_argument("--host", help="Bind address (overrides config)")
    serve_p.add_argument("--port", type=int, help="Port (overrides config)")

    # refresh
    sub.add_parser("refresh", help="Fetch coordinates and forecasts once")

    # status
    sub.add_parser("status", help="Show cached coordinates and forecasts")

    # reset
    reset_p = sub.add_parser("reset", help="Drop cached data")
    reset_p.add_argument("what", choices=["coordinates", "forecast", "all"])

    # config show
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    show_p = config_sub.add_parser("show", help="Display effective config")
    show_p.add_argument("key", nargs="?", help="Dotted key, e.g. refresh.interval_minutes")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    config = load_config(args.config)

    level = logging.DEBUG if args.verbose else config.server.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        return _cmd_serve(config, args)
    elif args.command == "refresh":
        return asyncio.run(_cmd_refresh(config))
    elif args.command == "status":
        return asyncio.run(_cmd_status(config))
    elif args.command == "reset":
        return asyncio.run(_cmd_reset(config, args.what))
    elif args.command == "config":
        return _cmd_config(config, args)
    else:
        parser.print_help()
        return 1


def _cmd_serve(config: WidgetConfig, args) -> int:
    import uvicorn

    from weatherwidget.web.app import create_app

    registry = CityRegistry.from_config(config)
    app = create_app(registry, config.server)
    uvicorn.run(
        app,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_level=config.server.log_level.lower(),
    )
    return 0


async def _cmd_refresh(config: WidgetConfig) -> int:
    registry = CityRegistry.from_config(config)
    try:
        if not await registry.init_coordinates():
            print("Could not resolve city coordinates")
            return 1
        summary = await registry.refresh_all()
    finally:
        await registry.stop()

    for name in registry.get_cities():
        entry = registry.get_city(name)
        days = len(entry.forecast.week) if entry.forecast else 0
        print(f"  {name}: {entry.state.value} ({days} days)")
    print(f"Updated {summary.succeeded}/{summary.attempted} forecasts")
    return 0 if summary.succeeded else 1


async def _cmd_status(config: WidgetConfig) -> int:
    store = KeyValueStore(config.store.path)
    try:
        try:
            coordinates = await store.get_object(COORDINATES_KEY)
        except NotFoundError:
            coordinates = {}
        except WidgetError as e:
            print(f"Cached coordinates unreadable: {e}")
            coordinates = {}
        if not isinstance(coordinates, dict):
            coordinates = {}

        for name in config.cities:
            try:
                coords = Coordinates.from_dict(coordinates[name])
                where = f"{coords.lat:.4f},{coords.lng:.4f}"
            except KeyError:
                where = "no coordinates"
            except WidgetError as e:
                where = f"unreadable coordinates ({e})"
            try:
                forecast = Forecast.from_dict(
                    await store.hash_get_object(FORECAST_HASH, name)
                )
                cached = f"{len(forecast.week)} days cached"
            except NotFoundError:
                cached = "no forecast"
            except WidgetError as e:
                cached = f"unreadable forecast ({e})"
            print(f"  {name}: {where}, {cached}")
    finally:
        store.close()
    return 0


async def _cmd_reset(config: WidgetConfig, what: str) -> int:
    store = KeyValueStore(config.store.path)
    try:
        if what in ("coordinates", "all"):
            await store.delete(COORDINATES_KEY)
            print("Cached coordinates dropped")
        if what in ("forecast", "all"):
            removed = await store.hash_delete(FORECAST_HASH)
            print(f"Cached forecasts dropped ({removed})")
    finally:
        store.close()
    return 0


def _cmd_config(config: WidgetConfig, args) -> int:
    if args.config_command == "show":
        if args.key is None:
            print(config.model_dump_json(indent=2))
            return 0
        try:
            print(get_config_value(config, args.key))
        except (KeyError, IndexError, ValueError) as e:
            print(f"Error: {e}")
            return 1
        return 0
    print("Use: config show")
    return 1
