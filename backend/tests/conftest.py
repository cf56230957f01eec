import os
import sys
from concurrent.futures import Future

import pytest

# Ensure the backend root (containing the `smashpass` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from smashpass import create_app, db, socketio
from smashpass.services.game import Item, Page, Tally


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PAGE_SIZE = 10
    MAX_PAGE_SIZE = 50
    PREFETCH_MARGIN = 2
    SESSION_IDLE_SEC = 1800
    FEED_BASE_URL = None


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import smashpass.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def seeded(flask_app):
    """25 posts, enough for three pages of ten."""
    from smashpass.services.posts import seed_posts
    return seed_posts(25)


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


# ---- in-memory collaborators for the game domain ----

class ManualExecutor:
    """Holds submitted work until the test resolves it, in any order."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run(self, index=0):
        future, fn, args, kwargs = self.pending.pop(index)
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def run_all(self):
        while self.pending:
            self.run(0)


class FakeFeed:
    """Serves `total` numbered items; records every fetch_page call."""

    def __init__(self, total, fail_pages=()):
        self.total = total
        self.calls = []
        self.fail_pages = set(fail_pages)

    def fetch_page(self, page, page_size):
        self.calls.append((page, page_size))
        if page in self.fail_pages:
            raise ConnectionError(f'page {page} unavailable')
        start = (page - 1) * page_size
        stop = min(start + page_size, self.total)
        items = tuple(
            Item(id=i + 1, name=f'Profile {i + 1}', tally=Tally(smashes=1, passes=1, total_votes=2))
            for i in range(start, stop)
        )
        return Page(items=items, page=page, total=self.total)


class FakeSink:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def apply_decision(self, item_id, decision):
        self.calls.append((item_id, decision))
        if self.fail:
            raise ConnectionError('vote endpoint down')


@pytest.fixture()
def manual_executor():
    return ManualExecutor()
