from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import build_container
from .database.bootstrap import apply_schema, list_tables

_logger = logging.getLogger(__name__)


def create_app(settings=None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = None
    if settings is None:
        settings_module = get_settings_module()
        settings = importlib.import_module(settings_module)

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db_config = getattr(settings, "DB_CONFIG", None)
    if db_config and bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        _logger.info("Attendance schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(settings)
    app.extensions["attendance_sync"] = container

    _logger.info(
        "attendance-sync started settings=%s store_tier=%s",
        settings_module or type(settings).__name__,
        container.attendance_gateway.tier.value if container.attendance_gateway.tier else "none",
    )

    register_attendance(app, container)

    return app
