import pytest

from exercise_tracker import create_app, db


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "LOG_FILE": str(tmp_path / "logs.txt"),
    })
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def users(app):
    return app.extensions["exercise_tracker"]["users"]


@pytest.fixture()
def exercises(app):
    return app.extensions["exercise_tracker"]["exercises"]


@pytest.fixture()
def alice(users):
    return users.create_or_get("alice")
