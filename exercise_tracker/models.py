import uuid
from datetime import datetime

from . import db
from .parsing import format_date


USERNAME_MAX_LENGTH = 255
# 32-bit INTEGER column
MAX_DURATION = 2**31 - 1


def new_id() -> str:
    return uuid.uuid4().hex


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.String(32), primary_key=True, default=new_id)
    # unique index: create-or-get relies on it
    username = db.Column(db.String(USERNAME_MAX_LENGTH), nullable=False, unique=True, index=True)

    exercises = db.relationship(
        "Exercise",
        back_populates="user",
        order_by="Exercise.date.desc()",
    )

    def to_dict(self) -> dict:
        return {"username": self.username, "_id": self.id}


class Exercise(db.Model):
    __tablename__ = "exercises"
    id = db.Column(db.String(32), primary_key=True, default=new_id)

    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    duration = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)

    user = db.relationship("User", back_populates="exercises")

    def to_dict(self) -> dict:
        # _id is the owner's id: the response describes the user plus the new entry
        return {
            "_id": self.user_id,
            "username": self.user.username,
            "description": self.description,
            "duration": self.duration,
            "date": format_date(self.date),
        }

    def to_log_entry(self) -> dict:
        return {
            "description": self.description,
            "duration": self.duration,
            "date": format_date(self.date),
        }
