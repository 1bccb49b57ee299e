import argparse
import getpass
import logging
import sys
from typing import List, Optional

from weatherwidget.core.app import LOG_FORMAT, WidgetApp
from weatherwidget.weather.errors import ConfigurationError
from weatherwidget.weather.presenter import render_text


def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:  # Only add handler if none exists
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.INFO)
        logging.debug("Basic logging initialized")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="weatherwidget", description='Weather Info Widget')
    parser.add_argument('--config',
                        help='Path to config file (default: ~/.weatherwidget/config.yaml)')
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the API server and the hourly refresh (default)")

    set_key = sub.add_parser("set-key", help="Encrypt and store the OpenWeather API key")
    set_key.add_argument("--key", help="API key (prompted without echo if omitted)")

    render = sub.add_parser("render", help="Render a widget as text")
    render.add_argument("--widget", default="weather-1", help="Saved widget id")
    render.add_argument("--city", help="Render ad hoc for this city instead of a saved widget")
    render.add_argument("--unit", choices=["metric", "imperial"], default="metric")
    render.add_argument("--style", choices=["minimal", "standard", "advanced"], default="minimal")
    render.add_argument("--layout", choices=["vertical", "horizontal"], default="vertical")

    configure = sub.add_parser("configure", help="Save widget settings (admin save path)")
    configure.add_argument("--widget", default="weather-1")
    configure.add_argument("--title")
    configure.add_argument("--city")
    configure.add_argument("--unit", choices=["metric", "imperial"])
    configure.add_argument("--style", dest="display_style", choices=["minimal", "standard", "advanced"])
    configure.add_argument("--layout", dest="display_layout", choices=["vertical", "horizontal"])

    sub.add_parser("refresh", help="Run the hourly refresh once now")
    sub.add_parser("activate", help="Restore the hourly refresh for the saved city")
    sub.add_parser("deactivate", help="Remove the hourly refresh")
    return parser


def _render(app: WidgetApp, args) -> int:
    if args.city:
        result = app.widget.render({
            "city": args.city,
            "unit": args.unit,
            "display_style": args.style,
            "display_layout": args.layout,
        })
    else:
        result = app.widget.render_saved(args.widget)
        if result is None:
            print(f"Widget '{args.widget}' has not been configured.")
            return 1
    if not result.ok:
        print(result.message)
        return 1
    print(render_text(result.title, result.view))
    return 0


def _configure(app: WidgetApp, args) -> int:
    from weatherwidget.weather.service import get_widget_instance

    current = get_widget_instance(args.widget) or {}
    submitted = dict(current)
    for field in ("title", "city", "unit", "display_style", "display_layout"):
        value = getattr(args, field)
        if value is not None:
            submitted[field] = value
    config = app.widget.save(args.widget, submitted)
    print(f"Saved {args.widget}: {config.model_dump()}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    setup_basic_logging()

    args = build_parser().parse_args(argv)
    command = args.command or "serve"

    try:
        app = WidgetApp(config_path=args.config, watch_config=(command == "serve"))
    except ConfigurationError as e:
        logging.error(e.user_message)
        return 2

    if command == "serve":
        app.run()
        return 0

    try:
        if command == "set-key":
            raw_key = args.key if args.key is not None else getpass.getpass("OpenWeather API key: ")
            print(app.widget.save_api_key(raw_key))
            return 0
        if command == "render":
            return _render(app, args)
        if command == "configure":
            return _configure(app, args)
        if command == "refresh":
            app.refresh.on_tick()
            return 0
        if command == "activate":
            app.activate()
            return 0
        if command == "deactivate":
            app.deactivate()
            return 0
    finally:
        app.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
