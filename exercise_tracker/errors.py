class ExerciseTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(ExerciseTrackerError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(ExerciseTrackerError):
    """Referenced user does not exist."""

    status_code = 404


class StoreError(ExerciseTrackerError):
    """Underlying persistence failure. The message never carries driver details."""

    status_code = 500

    def __init__(self, message: str = "Database error"):
        super().__init__(message)
