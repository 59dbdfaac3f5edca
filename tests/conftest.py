import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Allow tests to import the package from src without installation
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from stockle.store import CollectionStore  # noqa: E402


class StubResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json_data = json_data
        self.text = text

    def json(self):
        if isinstance(self._json_data, Exception):
            raise self._json_data
        return self._json_data


class StubSession:
    def __init__(self):
        self.request_calls = []
        self.request_response = StubResponse()
        self.mounted = {}
        self.closed = False

    def mount(self, prefix, adapter):
        self.mounted[prefix] = adapter

    def request(self, method, url, headers=None, params=None, verify=None, timeout=None, **kwargs):
        self.request_calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers or {},
                "params": params or {},
                "verify": verify,
                "timeout": timeout,
                "kwargs": kwargs,
            }
        )
        return self.request_response

    def close(self):
        self.closed = True


class DummyClient:
    """
    Lightweight stand-in for LibraryClient used by sync tests.
    """

    api_base = "https://api.example.com/api/v1"

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.errors = {}

    def queue_response(self, method, endpoint, response):
        self.responses[(method, endpoint)] = response

    def queue_error(self, method, endpoint, error):
        self.errors[(method, endpoint)] = error

    def _take(self, method, endpoint):
        key = (method, endpoint)
        if key in self.errors:
            raise self.errors[key]
        if key not in self.responses:
            raise AssertionError(f"No queued response for {method} {endpoint}")
        return self.responses[key]

    def get(self, endpoint, **kwargs):
        self.calls.append(("get", endpoint, kwargs))
        return self._take("get", endpoint)

    def post(self, endpoint, json=None, **kwargs):
        self.calls.append(("post", endpoint, json, kwargs))
        return self._take("post", endpoint)

    def patch(self, endpoint, json=None, **kwargs):
        self.calls.append(("patch", endpoint, json, kwargs))
        if ("patch", endpoint) in self.responses or ("patch", endpoint) in self.errors:
            return self._take("patch", endpoint)
        return StubResponse(status_code=200, json_data={"message": "Article updated successfully"})

    def delete(self, endpoint, **kwargs):
        self.calls.append(("delete", endpoint, kwargs))
        # delete endpoints usually return a bare message; supply stub if not provided
        if ("delete", endpoint) in self.responses or ("delete", endpoint) in self.errors:
            return self._take("delete", endpoint)
        return StubResponse(status_code=200, json_data={"message": "Article deleted successfully"})


class SteppingClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start=datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current = self.current + timedelta(minutes=1)
        return value


def make_store(**kwargs):
    counter = itertools.count(1)
    kwargs.setdefault("clock", SteppingClock())
    kwargs.setdefault("id_factory", lambda: f"article-{next(counter)}")
    return CollectionStore(**kwargs)


@pytest.fixture
def dummy_client():
    return DummyClient()


@pytest.fixture
def stub_session():
    return StubSession()


@pytest.fixture
def store():
    return make_store()


@pytest.fixture
def library():
    """
    Store with three articles (newest first):
      article-3  rust, read, favourite, category "tech"
      article-2  go, unread, category "life"
      article-1  react hooks, unread
    """
    store = make_store(categories=[
        {"id": "tech", "name": "Tech", "color": "#3B82F6", "displayOrder": 1},
        {"id": "life", "name": "Life", "color": "#10B981", "displayOrder": 0},
    ])
    a1 = store.save({"url": "https://react.dev/learn/hooks", "tags": ["react", "frontend"]})
    store.apply_metadata(
        a1.id,
        title="Understanding React Hooks",
        summary="A tour of useState and useEffect.",
        author="Dan",
        reading_time_seconds=420,
    )
    a2 = store.save({"url": "https://go.dev/blog/loopvar", "categoryId": "life", "tags": ["go"]})
    store.apply_metadata(a2.id, title="Fixing For Loops in Go 1.22", author="David")
    a3 = store.save({"url": "https://blog.rust-lang.org/2024/", "categoryId": "tech", "tags": ["rust"]})
    store.apply_metadata(a3.id, title="Announcing Rust 1.78")
    store.set_status(a3.id, "read")
    store.toggle_favorite(a3.id)
    return store
