"""Command line entry point: prepare the database and serve the API."""

from __future__ import annotations

import argparse
import logging
import sys

from revsnap import __version__
from revsnap.core.config import Settings, get_config_dir, get_settings
from revsnap.db.session import init_database

logger = logging.getLogger("revsnap")


def setup_logging(level: str = "INFO") -> None:
    """Log to <config dir>/logs/revsnap.log and stdout."""
    log_dir = get_config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_dir / "revsnap.log", encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def log_uncaught_exceptions() -> None:
    """Send anything that escapes main() to the log file, except Ctrl+C."""

    def hook(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = hook


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="revsnap", description="Run the RevSnap pricing API")
    parser.add_argument("--host", default=settings.host, help=f"bind address (default {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"port (default {settings.port})")
    parser.add_argument("--debug", action="store_true", default=settings.debug_mode)
    parser.add_argument(
        "--no-migrations",
        dest="use_migrations",
        action="store_false",
        help="create tables from the models instead of running Alembic",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)

    setup_logging(settings.log_level)
    log_uncaught_exceptions()
    logger.info(f"RevSnap {__version__} starting, config dir {get_config_dir()}")

    try:
        init_database(use_migrations=args.use_migrations)
    except Exception as e:
        logger.exception("Database setup failed")
        print(f"Error: could not prepare database: {e}", file=sys.stderr)
        return 1

    from revsnap.web.server import create_app

    app = create_app(settings)
    logger.info(f"Listening on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug, use_reloader=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
