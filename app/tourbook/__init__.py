import logging
import os
from datetime import timedelta

from flask import Flask, g, request, session
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.tourbook.api import error_response, fail, is_api_request
from app.tourbook.config import load_config
from app.tourbook.db import init_db, teardown_db_session
from app.tourbook.errors import ApiError
from app.tourbook.routes import bp as routes_bp
from app.tourbook.auth import bp as auth_bp, load_current_user
from app.tourbook.modules.categories.api import bp as categories_bp
from app.tourbook.modules.destinations.api import bp as destinations_bp
from app.tourbook.modules.places.api import bp as places_bp
from app.tourbook.modules.ads.api import bp as ads_bp
from app.tourbook.modules.images.api import bp as images_bp
from app.tourbook.modules.book.api import bp as book_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=app.config["SESSION_HOURS"])
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    def _load_user_wrapper():
        if request.path.startswith(("/static/", "/media/", "/health", "/healthz")):
            g.current_user = None
            return None
        session.permanent = True
        return load_current_user()

    app.before_request(_load_user_wrapper)

    from app.tourbook.security import CSRF_HEADER, csrf_required, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/static/", "/media/", "/health", "/healthz")):
            return None
        signed_in = getattr(g, "current_user", None) is not None
        if csrf_required(request, signed_in) and not validate_csrf(request):
            app.logger.warning("CSRF check failed path=%s request_id=%s", request.path, getattr(g, "request_id", None))
            return fail("CSRF token missing or invalid", f"Send the token from /api/session as {CSRF_HEADER}.", 403)
        return None

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # Storage config check (fail loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "PUBLIC_BUCKET_URL")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(categories_bp, url_prefix="/api")
    app.register_blueprint(destinations_bp, url_prefix="/api")
    app.register_blueprint(places_bp, url_prefix="/api")
    app.register_blueprint(ads_bp, url_prefix="/api")
    app.register_blueprint(images_bp, url_prefix="/api")
    app.register_blueprint(book_bp, url_prefix="/book")

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):  # type: ignore[no-redef]
        if e.status_code >= 500:
            app.logger.exception("API error (request_id=%s): %s", getattr(g, "request_id", None), e)
        return error_response(e)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):  # type: ignore[no-redef]
        if not is_api_request():
            return e
        if e.code == 413:
            return fail("File too large", "Request body exceeds the upload limit.", 413)
        return fail(e.name, e.description, e.code or 500)

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        # Ensure stack trace shows in the logs.
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return fail("Internal server error", "An unexpected error occurred.", 500)

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
