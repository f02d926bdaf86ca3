"""Application factory."""

import os
import uuid

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.auth import auth_bp
from routes.chat import chat_bp
from routes.notifications import notifications_bp
from routes.offices import offices_bp
from routes.payments import payments_bp
from routes.uploads import uploads_bp
from routes.visa import visa_bp
from services.identity import EXTENSION_KEY, Authenticator, JWTAuthenticator
from utils.errors import error_kind
from utils.responses import error_payload

migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(
    config_class: type[Config] = Config, authenticator: Authenticator | None = None
) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    app.extensions[EXTENSION_KEY] = authenticator or JWTAuthenticator()

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting
    storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    headers_enabled = app.config.get("RATELIMIT_HEADERS_ENABLED", True)
    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())

    global limiter
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[lambda: app.config.get("RATE_LIMIT", "60 per minute")],
        storage_uri=storage_uri,
        headers_enabled=headers_enabled,
        key_prefix=key_prefix,
    )
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix

    # Ensure uploads directory exists
    upload_dir = app.config.get("UPLOAD_DIR")
    if upload_dir:
        os.makedirs(upload_dir, exist_ok=True)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(visa_bp, url_prefix="/visa")
    app.register_blueprint(offices_bp, url_prefix="/offices")
    app.register_blueprint(payments_bp, url_prefix="/payments")
    app.register_blueprint(chat_bp, url_prefix="/chat")
    app.register_blueprint(uploads_bp, url_prefix="/uploads")
    app.register_blueprint(notifications_bp, url_prefix="/notifications")

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)

    return app


def _register_error_handlers(app: Flask) -> None:
    """Render every error in the response envelope with a request ID."""

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        status = error.code or 500
        if status >= 500:
            app.logger.error("Request %s failed: %s", request_id, error.description)
        elif status not in (401, 404):
            app.logger.warning("Request %s rejected: %s", request_id, error.description)
        response = jsonify(error_payload(error.description, error_kind(error), request_id))
        response.status_code = status
        for header, value in error.get_headers():
            if header.lower() != "content-type":
                response.headers[header] = value
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        request_id = g.get("request_id") or str(uuid.uuid4())
        app.logger.exception("Unhandled application error", exc_info=error)
        response = jsonify(
            error_payload("An unexpected error occurred.", "InternalServerError", request_id)
        )
        response.status_code = 500
        response.headers.setdefault("X-Request-ID", request_id)
        return response


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
