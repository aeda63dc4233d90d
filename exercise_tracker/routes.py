# exercise_tracker/routes.py

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from . import db
from .errors import ExerciseTrackerError
from .logger import log_event

bp = Blueprint("api", __name__, url_prefix="/api")


def _repos():
    return current_app.extensions["exercise_tracker"]


def _payload():
    # clients send either JSON or a urlencoded form
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form


@bp.post("/users")
def create_user():
    user = _repos()["users"].create_or_get(_payload().get("username"))
    return jsonify(user.to_dict())


@bp.get("/users")
def list_users():
    users = _repos()["users"].list_all()
    return jsonify([user.to_dict() for user in users])


@bp.post("/users/<user_id>/exercises")
def add_exercise(user_id):
    data = _payload()
    exercise = _repos()["exercises"].add_exercise(
        user_id,
        description=data.get("description"),
        duration=data.get("duration"),
        date=data.get("date"),
    )
    return jsonify(exercise.to_dict())


@bp.get("/users/<user_id>/logs")
def exercise_log(user_id):
    log = _repos()["exercises"].get_log(
        user_id,
        from_=request.args.get("from"),
        to=request.args.get("to"),
        limit=request.args.get("limit"),
    )
    return jsonify(log.to_dict())


@bp.get("/test")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "Connected"
    except SQLAlchemyError as e:
        db.session.rollback()
        log_event(f"HEALTH db_error err={type(e).__name__}")
        database = "Not connected"
    return jsonify({"message": "Exercise Tracker API is working!", "database": database})


@bp.app_errorhandler(ExerciseTrackerError)
def handle_tracker_error(e: ExerciseTrackerError):
    return jsonify(e.to_dict()), e.status_code


@bp.app_errorhandler(404)
def handle_not_found(e):
    return jsonify({"error": "Route not found"}), 404


@bp.app_errorhandler(405)
def handle_method_not_allowed(e):
    return jsonify({"error": "Method not allowed"}), 405


@bp.app_errorhandler(HTTPException)
def handle_http_error(e: HTTPException):
    return jsonify({"error": e.description}), e.code


@bp.app_errorhandler(Exception)
def handle_unexpected(e: Exception):
    log_event(f"UNHANDLED path={request.path} err={type(e).__name__}: {e}")
    return jsonify({"error": "Internal server error"}), 500
