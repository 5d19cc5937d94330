import logging
import os

from flask import Flask, render_template, redirect, request, flash

import context
from backend import AuthService, Backend
from config import Config, MAX_JOB_IMAGES
from models import db
from route_guard import Redirect, decide, dashboard_for
from routes.auth import auth_bp
from routes.employer import employer_bp
from routes.jobs import jobs_bp
from routes.storage import storage_bp
from routes.student import student_bp

logger = logging.getLogger(__name__)

# Requests that are not screens and bypass the route guard
NON_SCREEN_ENDPOINTS = {"static", "storage.job_image"}


def create_app(config=Config, **overrides):
    app = Flask(__name__)
    app.config.from_object(config)
    app.config.update(overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ================= DATABASE =================
    db.init_app(app)
    with app.app_context():
        db.create_all()

    # ================= BACKEND =================
    auth = AuthService(
        lifetime_seconds=app.config["SESSION_LIFETIME_SECONDS"],
        refresh_window_seconds=app.config["SESSION_REFRESH_WINDOW_SECONDS"],
    )
    app.extensions["auth"] = auth
    app.extensions["backend"] = Backend(app.config["UPLOAD_FOLDER"], app.config["JOB_IMAGE_MAX_BYTES"])

    # ================= ROUTE GUARD =================
    @app.before_request
    def resolve_session_and_guard():
        context.open_request_context()
        if request.endpoint is None or request.endpoint in NON_SCREEN_ENDPOINTS:
            return None

        state = context.auth_state()
        if state.loading:
            return render_template("loading.html")

        decision = decide(state, request.path)
        if isinstance(decision, Redirect):
            logger.debug("Guard redirect %s -> %s", request.path, decision.target)
            return redirect(decision.target)
        return None

    @app.teardown_request
    def release_request_context(exc):
        context.close_request_context(exc)

    @app.context_processor
    def inject_auth():
        state = context.auth_state()
        return {"auth": state, "dashboard_url": dashboard_for(state.role)}

    # ================= HOME =================
    @app.route("/")
    @app.route("/index")
    def home():
        state = context.auth_state()
        if state.error:
            flash(state.error, "error")
        return render_template("index.html")

    @app.errorhandler(413)
    def upload_too_large(e):
        flash(f"Uploads are limited to {MAX_JOB_IMAGES} images of 50 MB each", "error")
        return redirect(request.path)

    app.register_blueprint(auth_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(employer_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(storage_bp)

    return app


# ================= RUN =================
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port)
