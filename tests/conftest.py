import os
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
TESTS_DIR = ROOT_DIR / "tests"
for _path in (ROOT_DIR, TESTS_DIR):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

import pytest

# Isolate all tests to a throwaway instance + SQLite database
TEST_INSTANCE_DIR = ROOT_DIR / ".pytest-instance"
TEST_INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
TEST_DB_PATH = TEST_INSTANCE_DIR / "test.sqlite"
os.environ["FLASK_ENV"] = "testing"
os.environ["INSTANCE_DIR"] = str(TEST_INSTANCE_DIR)
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH.as_posix()}"

from extensions import cache, db  # noqa: E402
import app as catalog_app  # noqa: E402  pylint:disable=wrong-import-position

create_app = catalog_app.create_app


@pytest.fixture(scope="session")
def app():
    flask_app = create_app()
    flask_app.config.update(
        TESTING=True,
        SERVER_NAME="localhost",
        RATELIMIT_ENABLED=False,
    )
    return flask_app


def _remove_db_files() -> None:
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
    for suffix in ("-wal", "-shm"):
        sidecar = TEST_DB_PATH.with_name(TEST_DB_PATH.name + suffix)
        if sidecar.exists():
            sidecar.unlink()


@pytest.fixture
def db_session(app):
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
        _remove_db_files()
        db.create_all()
        cache.clear()
        yield db
        db.session.remove()
        db.engine.dispose()
        db.drop_all()


@pytest.fixture
def client(app, db_session):  # noqa: ARG001 - keeps DB initialised for request tests
    return app.test_client()


@pytest.fixture
def serial_count(app):
    """Run the page count query inline instead of on a worker thread."""
    previous = app.config.get("CARDS_PARALLEL_COUNT", True)
    app.config["CARDS_PARALLEL_COUNT"] = False
    yield
    app.config["CARDS_PARALLEL_COUNT"] = previous


@pytest.fixture
def create_set(db_session):  # noqa: ARG001
    from factories import create_set as _create_set

    return _create_set


@pytest.fixture
def create_card(db_session):  # noqa: ARG001
    from factories import create_card as _create_card

    return _create_card


@pytest.fixture
def create_alternate(db_session):  # noqa: ARG001
    from factories import create_alternate as _create_alternate

    return _create_alternate
