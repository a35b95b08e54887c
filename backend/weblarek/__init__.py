# backend/weblarek/__init__.py
import os

from flask import Flask, request, send_from_directory

from .config import Config
from .extensions import db, migrate
from .errors import register_error_handlers



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True, static_folder=None)
    app.config.from_object(Config)
    # Overrides must land before extensions read the config
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .validation import IdConverter
    app.url_map.converters["id"] = IdConverter

    # Register blueprints
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.orders import orders_bp
    from .routes.customers import customers_bp
    from .routes.upload import upload_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(upload_bp)

    # Stored product images (PUBLIC_DIR/UPLOAD_PATH)
    upload_path = app.config["UPLOAD_PATH"]

    @app.get(f"/{upload_path}/<path:filename>")
    def stored_image(filename: str):
        return send_from_directory(os.path.join(app.config["PUBLIC_DIR"], upload_path), filename)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
