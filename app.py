"""Flask application factory, CLI entry points, and database bootstrap."""

import json
import logging
from logging.handlers import RotatingFileHandler
import os
import sqlite3
import uuid
from pathlib import Path

import click
from flask import Flask, g, has_request_context, request
from flask_compress import Compress
from sqlalchemy import event
from sqlalchemy.engine import Engine

from dotenv import load_dotenv; load_dotenv()

from config import Config, INSTANCE_DIR as CONFIG_INSTANCE_DIR
from extensions import db, migrate, cache, limiter


class RequestIdFilter(logging.Filter):
    """Stamp each record with the request id, path and method (or startup placeholders)."""

    def filter(self, record: logging.LogRecord) -> bool:
        in_request = has_request_context()
        record.request_id = getattr(g, "request_id", "n/a") if in_request else getattr(record, "request_id", "startup")
        record.path = request.path if in_request else getattr(record, "path", "")
        record.method = request.method if in_request else getattr(record, "method", "")
        return True


class JsonRequestFormatter(logging.Formatter):
    """One JSON object per line."""

    FIELDS = ("request_id", "path", "method")

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in self.FIELDS:
            payload[name] = getattr(record, name, "")
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Extension bootstrap helpers
# ---------------------------------------------------------------------------

def _safe_init_sqlalchemy(app: Flask):
    """Initialise SQLAlchemy only if it has not been bound yet."""
    if not getattr(app, "extensions", None) or "sqlalchemy" not in app.extensions:
        db.init_app(app)


def _safe_init_migrate(app: Flask):
    """Bind Flask-Migrate, using batch mode so SQLite ALTERs work."""
    if not getattr(app, "extensions", None) or "migrate" not in app.extensions:
        migrate.init_app(app, db, render_as_batch=True)


def _safe_init_cache(app: Flask):
    """Register the cache extension, falling back to SimpleCache when the backend is unavailable."""
    try:
        cache.init_app(app)
    except Exception as exc:
        app.logger.warning("Primary cache init failed (%s); falling back to SimpleCache.", exc)
        fallback_cfg = {
            "CACHE_TYPE": "SimpleCache",
            "CACHE_DEFAULT_TIMEOUT": app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
        }
        try:
            cache.init_app(app, config=fallback_cfg)
        except Exception:
            app.logger.exception("Cache fallback failed; aborting startup.")
            raise


LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5
# Loggers that share the app handlers; services log via logging.getLogger(__name__)
_SHARED_LOGGERS = ("services", "werkzeug")


def _structured(handler: logging.Handler) -> logging.Handler:
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JsonRequestFormatter())
    handler.setLevel(logging.INFO)
    return handler


def _configure_logging(app: Flask) -> None:
    """JSON logs to stderr and to instance/logs/catalog.log, tagged with request ids."""
    handlers = [_structured(logging.StreamHandler())]
    logs_dir = Path(app.instance_path) / "logs"
    file_error = None
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _structured(
                RotatingFileHandler(
                    logs_dir / "catalog.log",
                    maxBytes=LOG_FILE_MAX_BYTES,
                    backupCount=LOG_FILE_BACKUPS,
                    encoding="utf-8",
                )
            )
        )
    except OSError as exc:
        file_error = exc

    level = logging.DEBUG if app.debug else logging.INFO
    app.logger.handlers = handlers
    app.logger.setLevel(level)
    for name in _SHARED_LOGGERS:
        shared = logging.getLogger(name)
        shared.handlers = handlers
        shared.setLevel(logging.INFO if name == "werkzeug" else level)
        shared.propagate = False

    if file_error is not None:
        app.logger.warning("Logging to stderr only; cannot open %s: %s", logs_dir, file_error)


def _split_option(values: tuple[str, ...]) -> str | None:
    joined = ",".join(v for v in values if v)
    return joined or None


def _filter_options(func):
    """Attach the catalog filter options shared by the CLI commands."""
    options = [
        click.option("--search", default=None, help="Free-text search."),
        click.option("--sets", multiple=True, help="Set code or title (repeatable, comma-separated)."),
        click.option("--codes", multiple=True, help="Card code fragment (repeatable)."),
        click.option("--colors", multiple=True),
        click.option("--rarities", multiple=True),
        click.option("--categories", multiple=True),
        click.option("--types", multiple=True),
        click.option("--region", default=None),
        click.option("--counter", default=None),
        click.option("--trigger", default=None),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _filters_from_cli(kwargs: dict):
    from services.card_filters import build_filters_from_args

    args = {}
    for key in ("search", "region", "counter", "trigger"):
        if kwargs.get(key):
            args[key] = kwargs[key]
    for key in ("sets", "codes", "colors", "rarities", "categories", "types"):
        joined = _split_option(kwargs.get(key) or ())
        if joined:
            args[key] = joined
    return build_filters_from_args(args)


def _register_cli(app: Flask) -> None:
    @app.cli.command("cards-count")
    @_filter_options
    def cards_count_cmd(**kwargs):
        """Print how many catalog rows (base + alternate) match the filters."""
        from services.card_query import count_alternate_matches, count_base_matches

        filters = _filters_from_cli(kwargs)
        base = count_base_matches(filters)
        alternates = count_alternate_matches(filters)
        click.echo(f"Base cards: {base}, Alternates: {alternates}, Total: {base + alternates}")

    @app.cli.command("cards-export")
    @click.argument("outfile")
    @click.option("--limit", type=int, default=None, help="Maximum number of base cards (1-5000).")
    @click.option("--relations/--no-relations", default=True, show_default=True,
                  help="Include types, colors, effects, texts, sets and rulings.")
    @_filter_options
    def cards_export_cmd(outfile, limit, relations, **kwargs):
        """Write every matching card (with alternates) to a JSON file."""
        from services.card_query import fetch_all_cards
        from viewmodels.card_vm import vm_to_json

        filters = _filters_from_cli(kwargs)
        cards = fetch_all_cards(
            filters,
            limit=limit,
            include_relations=relations,
            include_alternates=True,
            include_counts=True,
        )
        p = Path(outfile).expanduser()
        if not p.is_absolute():
            p = Path(os.getcwd()) / p
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("w", encoding="utf-8") as fh:
            json.dump([vm_to_json(card) for card in cards], fh, ensure_ascii=False, indent=2)
        click.echo(f"Exported {len(cards)} card(s) to {p}")


def create_app():
    """Create, configure, and return a fully-initialised Flask app."""
    app = Flask(
        __name__,
        instance_path=str(CONFIG_INSTANCE_DIR),
        instance_relative_config=False,
    )
    app.config.from_object(Config)
    os.makedirs(app.instance_path, exist_ok=True)
    _configure_logging(app)

    # If no DB URI provided, store SQLite DB in instance/
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'catalog.db')}"

    # --- Core extensions ---
    _safe_init_sqlalchemy(app)
    _safe_init_migrate(app)
    _safe_init_cache(app)
    limiter.init_app(app)
    Compress(app)

    import models  # noqa: F401  registers mappers before first query
    from routes.cards_api import cards_api
    from shared.error_handlers import register_error_handlers

    app.register_blueprint(cards_api)
    register_error_handlers(app)
    _register_cli(app)

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    @app.after_request
    def attach_request_id(resp):
        rid = getattr(g, "request_id", None)
        if rid:
            resp.headers.setdefault("X-Request-ID", rid)
        return resp

    @app.after_request
    def security_headers(resp):
        """Attach a minimal set of security-related HTTP headers to each response."""
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        return resp

    return app


# Single SQLite PRAGMA hook (avoid duplicate listeners)
_SQLITE_PRAGMA_STATEMENTS = (
    "PRAGMA foreign_keys=ON;",
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA temp_store=MEMORY;",
)


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _apply_sqlite_pragmas(dbapi_connection) -> None:
    """Register Unicode lower() and run the PRAGMAs on a new SQLite connection."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    # SQLite's own lower() only folds ASCII; filters and ILIKE need full Unicode folding
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)
    cur = dbapi_connection.cursor()
    try:
        for statement in _SQLITE_PRAGMA_STATEMENTS:
            cur.execute(statement)
    finally:
        cur.close()


@event.listens_for(Engine, "connect")
def _sqlite_pragmas(dbapi_connection, _) -> None:
    """Apply PRAGMAs each time SQLite opens a connection (concurrent readers rely on WAL)."""
    _apply_sqlite_pragmas(dbapi_connection)


if __name__ == "__main__":
    create_app().run(host="127.0.0.1", port=5000, debug=True)
