# wims/__init__.py
from __future__ import annotations

import logging

from flask import Flask

from .settings import Config
from .extensions import db, migrate, login_manager, limiter


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    # ======================
    # JSON error responses
    # ======================
    from .errors import register_error_handlers

    register_error_handlers(app)

    # ======================
    # Services
    # ======================
    from .services import init_services

    init_services(app)

    # ======================
    # Register Blueprints
    # ======================
    from .routes import main
    from .auth import auth
    from .admin import admin_bp

    app.register_blueprint(main)
    app.register_blueprint(auth)
    app.register_blueprint(admin_bp)

    # ======================
    # CLI
    # ======================
    from .cli import wims_cli

    app.cli.add_command(wims_cli)

    return app
