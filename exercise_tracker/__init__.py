import os
from typing import Any, Mapping, Optional

from flask import Flask
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text

db = SQLAlchemy()


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev")
    # SQLite file in the working directory unless DATABASE_URL says otherwise
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///exercise_tracker.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["LOG_FILE"] = os.getenv("LOG_FILE", "logs.txt")
    app.config["CORS_ORIGINS"] = os.getenv("CORS_ORIGINS", "*")
    if config:
        app.config.update(config)

    db.init_app(app)
    CORS(app, resources={r"/api/*": {
        "origins": _split_origins(app.config["CORS_ORIGINS"]),
        "send_wildcard": True,
    }})

    from .routes import bp
    app.register_blueprint(bp)

    from .logger import log_event
    from .repositories import ExerciseRepository, UserRepository

    with app.app_context():
        from .models import Exercise, User  # noqa: F401
        # fail at startup, not on the first request, when the store is unreachable
        db.create_all()
        db.session.execute(text("SELECT 1"))
        db.session.remove()
        log_event("STARTUP store ready")

    users = UserRepository(db.session)
    app.extensions["exercise_tracker"] = {
        "users": users,
        "exercises": ExerciseRepository(db.session, users),
    }

    return app


def _split_origins(value):
    if isinstance(value, (list, tuple)):
        return list(value)
    origins = [origin.strip() for origin in str(value).split(",") if origin.strip()]
    if origins == ["*"]:
        return "*"
    return origins
