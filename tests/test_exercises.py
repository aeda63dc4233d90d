from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from exercise_tracker import db
from exercise_tracker.errors import NotFoundError, StoreError, ValidationError
from exercise_tracker.models import Exercise
from exercise_tracker.repositories import ExerciseRepository


@pytest.fixture()
def history(exercises, alice):
    for day in ("2024-01-01", "2024-01-15", "2024-02-01"):
        exercises.add_exercise(alice.id, "run", 30, day)
    return alice


def _dates(log):
    return [entry.date.date().isoformat() for entry in log.entries]


def test_add_exercise(exercises, alice):
    exercise = exercises.add_exercise(alice.id, "run", "30", "2023-05-10")

    assert exercise.duration == 30
    assert exercise.date == datetime(2023, 5, 10)
    assert exercise.to_dict() == {
        "_id": alice.id,
        "username": "alice",
        "description": "run",
        "duration": 30,
        "date": "Wed May 10 2023",
    }


def test_add_exercise_defaults_date_to_now(exercises, alice):
    before = datetime.now()
    exercise = exercises.add_exercise(alice.id, "swim", 45)
    assert before <= exercise.date <= datetime.now()


@pytest.mark.parametrize("duration", ["0", "-5", 0, "abc", "99999999999999999999", 2**31])
def test_non_positive_duration_rejected(app, exercises, alice, duration):
    with pytest.raises(ValidationError, match="Duration must be a positive number"):
        exercises.add_exercise(alice.id, "run", duration)
    assert Exercise.query.count() == 0


@pytest.mark.parametrize("description, duration", [("", "30"), ("run", None), ("  ", 10), ("run", "")])
def test_missing_fields_rejected(exercises, alice, description, duration):
    with pytest.raises(ValidationError, match="Description and duration are required"):
        exercises.add_exercise(alice.id, description, duration)


def test_bad_date_rejected(exercises, alice):
    with pytest.raises(ValidationError, match="Invalid date format"):
        exercises.add_exercise(alice.id, "run", 30, "yesterday")


def test_unknown_user_is_not_found(exercises):
    with pytest.raises(NotFoundError):
        exercises.add_exercise("f" * 32, "run", 30)


def test_malformed_user_id_is_invalid(exercises):
    with pytest.raises(ValidationError, match="Invalid user ID"):
        exercises.add_exercise("nope", "run", 30)


def test_log_sorted_most_recent_first(exercises, history):
    log = exercises.get_log(history.id)
    assert _dates(log) == ["2024-02-01", "2024-01-15", "2024-01-01"]
    assert log.count == 3


def test_log_from(exercises, history):
    log = exercises.get_log(history.id, from_="2024-01-10")
    assert _dates(log) == ["2024-02-01", "2024-01-15"]


def test_log_to_is_inclusive(exercises, history):
    log = exercises.get_log(history.id, to="2024-01-01")
    assert _dates(log) == ["2024-01-01"]


def test_log_from_and_to(exercises, history):
    log = exercises.get_log(history.id, from_="2024-01-01", to="2024-01-20")
    assert _dates(log) == ["2024-01-15", "2024-01-01"]


def test_log_limit_applies_after_sort(exercises, history):
    log = exercises.get_log(history.id, limit="1")
    assert _dates(log) == ["2024-02-01"]
    assert log.count == 1


@pytest.mark.parametrize("limit", ["-3", "abc", "0", "", None, "99999999999999999999"])
def test_bad_limit_means_no_limit(exercises, history, limit):
    log = exercises.get_log(history.id, limit=limit)
    assert log.count == 3


@pytest.mark.parametrize("field", ["from", "to"])
def test_bad_bound_names_field(exercises, history, field):
    kwargs = {"from_" if field == "from" else "to": "garbage"}
    with pytest.raises(ValidationError, match=f"Invalid {field} date format"):
        exercises.get_log(history.id, **kwargs)


def test_log_only_contains_own_entries(exercises, users, history):
    bob = users.create_or_get("bob")
    exercises.add_exercise(bob.id, "lift", 20, "2024-01-20")

    assert exercises.get_log(bob.id).count == 1
    assert exercises.get_log(history.id).count == 3


def test_log_serialization(exercises, alice):
    exercises.add_exercise(alice.id, "run", 30, "2023-05-10T18:45:00")
    assert exercises.get_log(alice.id).to_dict() == {
        "_id": alice.id,
        "username": "alice",
        "count": 1,
        "log": [{"description": "run", "duration": 30, "date": "Wed May 10 2023"}],
    }


def test_log_for_unknown_user(exercises):
    with pytest.raises(NotFoundError):
        exercises.get_log("a" * 32)


def test_duration_at_column_limit_accepted(exercises, alice):
    exercise = exercises.add_exercise(alice.id, "ultra", 2**31 - 1, "2024-03-01")
    assert exercise.duration == 2**31 - 1


def test_log_limit_at_store_maximum_caps_nothing(exercises, history):
    assert exercises.get_log(history.id, limit=2**63 - 1).count == 3


class FailingCommitSession:
    """Real session whose commit always fails."""

    def __init__(self, session):
        self._session = session
        self.rolled_back = False

    def __getattr__(self, name):
        return getattr(self._session, name)

    def commit(self):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    def rollback(self):
        self.rolled_back = True
        self._session.rollback()


def test_failed_commit_rolls_back(app, users, alice):
    session = FailingCommitSession(db.session)
    repo = ExerciseRepository(session, users)

    with pytest.raises(StoreError, match="Database error"):
        repo.add_exercise(alice.id, "run", 30, "2024-01-01")

    assert session.rolled_back
    assert Exercise.query.count() == 0
