import enum
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import NotFoundError, StoreError, ValidationError
from .logger import log_event
from .models import MAX_DURATION, USERNAME_MAX_LENGTH, Exercise, User
from .parsing import MAX_STORE_INT, clean_text, is_valid_id, parse_date, parse_int


@contextmanager
def store_errors(session, operation: str):
    """Roll back and re-raise any store failure as StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        log_event(f"STORE_ERROR op={operation} err={type(e).__name__}")
        raise StoreError() from e


class InsertStatus(enum.Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class InsertResult:
    status: InsertStatus
    user: Optional[User] = None


class UserRepository:
    def __init__(self, session):
        self.session = session

    def find_by_username(self, username: str) -> Optional[User]:
        return self.session.query(User).filter_by(username=username).first()

    def get(self, user_id: Any) -> User:
        if not is_valid_id(user_id):
            log_event(f"INVALID_ID user_id={user_id!r}")
            raise ValidationError("Invalid user ID")

        with store_errors(self.session, "get_user"):
            user = self.session.get(User, user_id)

        if user is None:
            log_event(f"USER_NOT_FOUND user_id={user_id}")
            raise NotFoundError("User not found")
        return user

    def list_all(self) -> List[User]:
        with store_errors(self.session, "list_users"):
            return self.session.query(User).all()

    def create_or_get(self, username: Any) -> User:
        username = clean_text(username)
        if not username:
            log_event("CREATE_USER empty username")
            raise ValidationError("Username is required")
        if len(username) > USERNAME_MAX_LENGTH:
            log_event(f"CREATE_USER username too long length={len(username)}")
            raise ValidationError(f"Username must be at most {USERNAME_MAX_LENGTH} characters")

        with store_errors(self.session, "create_user"):
            existing = self.find_by_username(username)
            if existing is not None:
                log_event(f"CREATE_USER existing username={username!r}")
                return existing

            result = self._insert(username)
            if result.status is InsertStatus.CREATED:
                log_event(f"CREATE_USER created username={username!r} id={result.user.id}")
                return result.user

            # another request inserted the same username between our read and write
            winner = self.find_by_username(username)

        if winner is None:
            log_event(f"CREATE_USER conflict without row username={username!r}")
            raise StoreError()
        log_event(f"CREATE_USER race resolved username={username!r} id={winner.id}")
        return winner

    def _insert(self, username: str) -> InsertResult:
        user = User(username=username)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return InsertResult(InsertStatus.DUPLICATE)
        return InsertResult(InsertStatus.CREATED, user)


@dataclass
class ExerciseLog:
    user: User
    entries: List[Exercise] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict:
        return {
            "_id": self.user.id,
            "username": self.user.username,
            "count": self.count,
            "log": [entry.to_log_entry() for entry in self.entries],
        }


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_bound(value: Any, name: str) -> Optional[datetime]:
    if _is_blank(value):
        return None
    try:
        return parse_date(value)
    except ValueError:
        log_event(f"GET_LOG invalid {name}={value!r}")
        raise ValidationError(f"Invalid {name} date format") from None


class ExerciseRepository:
    def __init__(self, session, users: UserRepository):
        self.session = session
        self.users = users

    def add_exercise(self, user_id: Any, description: Any, duration: Any, date: Any = None) -> Exercise:
        description = clean_text(description)
        if not description or _is_blank(duration):
            log_event(f"ADD_EXERCISE missing fields user_id={user_id!r}")
            raise ValidationError("Description and duration are required")

        minutes = parse_int(duration)
        if minutes is None or minutes <= 0 or minutes > MAX_DURATION:
            log_event(f"ADD_EXERCISE bad duration user_id={user_id!r} duration={duration!r}")
            raise ValidationError("Duration must be a positive number")

        user = self.users.get(user_id)

        if _is_blank(date):
            performed_at = datetime.now()
        else:
            try:
                performed_at = parse_date(date)
            except ValueError:
                log_event(f"ADD_EXERCISE invalid_datetime user_id={user_id} date={date!r}")
                raise ValidationError("Invalid date format") from None

        exercise = Exercise(
            user_id=user.id,
            description=description,
            duration=minutes,
            date=performed_at,
        )
        with store_errors(self.session, "add_exercise"):
            self.session.add(exercise)
            self.session.commit()

        log_event(
            f"ADD_EXERCISE success user_id={user.id} duration={minutes} "
            f"date={performed_at.isoformat()}"
        )
        return exercise

    def get_log(self, user_id: Any, from_: Any = None, to: Any = None, limit: Any = None) -> ExerciseLog:
        user = self.users.get(user_id)
        start = _parse_bound(from_, "from")
        end = _parse_bound(to, "to")

        query = self.session.query(Exercise).filter(Exercise.user_id == user.id)
        if start is not None:
            query = query.filter(Exercise.date >= start)
        if end is not None:
            query = query.filter(Exercise.date <= end)
        query = query.order_by(Exercise.date.desc())

        # malformed, non-positive or oversized limits mean "no limit"
        cap = parse_int(limit)
        if cap is not None and 0 < cap <= MAX_STORE_INT:
            query = query.limit(cap)

        with store_errors(self.session, "get_log"):
            entries = query.all()

        log_event(f"GET_LOG user_id={user.id} count={len(entries)}")
        return ExerciseLog(user=user, entries=entries)
