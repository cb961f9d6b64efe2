"""End-to-end tests for the post routes through the FastAPI app.

The repository and auth gate are swapped via ``app.dependency_overrides``
so each test gets a fresh in-memory store and known operator credentials.
"""

import uuid
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from backend.app.api.deps import get_auth_gate, get_max_content_length, get_post_repository
from backend.app.core.errors import ApiError
from backend.app.db.base import Base
from backend.app.main import app
from backend.app.services.auth import AuthGate, OperatorCredentials
from backend.app.services.post_repository import PostRepository
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

AUTH = ("operator", "s3cret")
_GATE = AuthGate(OperatorCredentials(username="operator", password="s3cret"))
_T0 = datetime(2025, 5, 1, 10, 0, 0, tzinfo=UTC)


class TickingClock:
    def __init__(self) -> None:
        self.now = _T0

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=30)
        return self.now


@pytest.fixture()
def repo() -> Iterator[PostRepository]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield PostRepository(sessionmaker(bind=engine, expire_on_commit=False), clock=TickingClock())
    finally:
        engine.dispose()


def _client_for(repository: object) -> Iterator[TestClient]:
    app.dependency_overrides[get_post_repository] = lambda: repository
    app.dependency_overrides[get_auth_gate] = lambda: _GATE
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(repo: PostRepository) -> Iterator[TestClient]:
    yield from _client_for(repo)


@pytest.fixture()
def store() -> MagicMock:
    return MagicMock(spec=PostRepository)


@pytest.fixture()
def mock_client(store: MagicMock) -> Iterator[TestClient]:
    yield from _client_for(store)


def _create(client: TestClient, content: str = "hello") -> str:
    resp = client.post("/new", json={"content": content}, auth=AUTH)
    assert resp.status_code == 201
    return resp.headers["Location"].lstrip("/")


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreate:
    def test_created_with_location(self, client: TestClient) -> None:
        resp = client.post("/new", json={"content": "hello"}, auth=AUTH)
        assert resp.status_code == 201
        location = resp.headers["Location"]
        assert location.startswith("/")
        uuid.UUID(location[1:])  # should not raise

    def test_round_trip(self, client: TestClient) -> None:
        post_id = _create(client, "hello")
        resp = client.get(f"/{post_id}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == post_id
        assert body["content"] == "hello"
        assert body["created_at"] == body["updated_at"]

    def test_client_supplied_id_used(self, client: TestClient) -> None:
        post_id = str(uuid.uuid4())
        resp = client.post("/new", json={"id": post_id, "content": "x"}, auth=AUTH)
        assert resp.status_code == 201
        assert resp.headers["Location"] == f"/{post_id}"

    def test_content_type_with_charset_accepted(self, client: TestClient) -> None:
        resp = client.post(
            "/new",
            content=b'{"content": "x"}',
            headers={"Content-Type": "application/json; charset=utf-8"},
            auth=AUTH,
        )
        assert resp.status_code == 201

    def test_malformed_json(self, client: TestClient) -> None:
        resp = client.post(
            "/new",
            content=b'{"content": ',
            headers={"Content-Type": "application/json"},
            auth=AUTH,
        )
        assert resp.status_code == 400
        assert "message" in resp.json()

    def test_null_content(self, client: TestClient) -> None:
        resp = client.post("/new", json={"content": None}, auth=AUTH)
        assert resp.status_code == 400
        assert resp.json() == {"errors": ["Content cannot be nil."]}

    def test_missing_content(self, client: TestClient) -> None:
        resp = client.post("/new", json={}, auth=AUTH)
        assert resp.status_code == 400
        assert resp.json()["errors"]

    def test_content_too_long(self, client: TestClient) -> None:
        app.dependency_overrides[get_max_content_length] = lambda: 5
        resp = client.post("/new", json={"content": "abcdef"}, auth=AUTH)
        assert resp.status_code == 400
        assert "errors" in resp.json()

    def test_unencodable_content_rejected(
        self, mock_client: TestClient, store: MagicMock,
    ) -> None:
        resp = mock_client.post(
            "/new",
            content=b'{"content": "\\ud800"}',
            headers={"Content-Type": "application/json"},
            auth=AUTH,
        )
        assert resp.status_code == 400
        assert resp.json() == {"errors": ["Content must be valid UTF-8 text."]}
        assert store.method_calls == []

    def test_wrong_content_type(self, client: TestClient) -> None:
        resp = client.post(
            "/new",
            content=b'{"content": "x"}',
            headers={"Content-Type": "text/plain"},
            auth=AUTH,
        )
        assert resp.status_code == 415
        assert "message" in resp.json()

    def test_validation_failure_does_not_touch_store(
        self, mock_client: TestClient, store: MagicMock,
    ) -> None:
        resp = mock_client.post("/new", json={"content": None}, auth=AUTH)
        assert resp.status_code == 400
        assert store.method_calls == []


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


class TestRead:
    def test_unknown_id(self, client: TestClient) -> None:
        resp = client.get(f"/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert "message" in resp.json()

    def test_non_uuid_id(self, client: TestClient) -> None:
        assert client.get("/not-a-uuid").status_code == 404

    def test_reads_are_anonymous(self, client: TestClient) -> None:
        post_id = _create(client)
        assert client.get(f"/{post_id}").status_code == 200

    def test_cache_validators_present(self, client: TestClient) -> None:
        post_id = _create(client)
        resp = client.get(f"/{post_id}")
        assert resp.headers["ETag"].startswith('"')
        assert resp.headers["Last-Modified"].endswith("GMT")

    def test_matching_etag_not_modified(self, client: TestClient) -> None:
        post_id = _create(client)
        etag = client.get(f"/{post_id}").headers["ETag"]
        resp = client.get(f"/{post_id}", headers={"If-None-Match": etag})
        assert resp.status_code == 304
        assert resp.content == b""
        assert resp.headers["ETag"] == etag

    def test_stale_etag_after_update(self, client: TestClient) -> None:
        post_id = _create(client, "a")
        etag = client.get(f"/{post_id}").headers["ETag"]
        client.put(f"/{post_id}", json={"content": "b"}, auth=AUTH)
        resp = client.get(f"/{post_id}", headers={"If-None-Match": etag})
        assert resp.status_code == 200
        assert resp.json()["content"] == "b"

    def test_unmodified_since(self, client: TestClient) -> None:
        post_id = _create(client)
        last_modified = client.get(f"/{post_id}").headers["Last-Modified"]
        resp = client.get(f"/{post_id}", headers={"If-Modified-Since": last_modified})
        assert resp.status_code == 304

    def test_future_modified_since_ignored(self, client: TestClient) -> None:
        post_id = _create(client)
        resp = client.get(
            f"/{post_id}",
            headers={"If-Modified-Since": "Mon, 01 Jan 2080 00:00:00 GMT"},
        )
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_update_existing(self, client: TestClient) -> None:
        post_id = _create(client, "a")
        before = client.get(f"/{post_id}").json()

        resp = client.put(f"/{post_id}", json={"content": "b"}, auth=AUTH)
        assert resp.status_code == 204

        after = client.get(f"/{post_id}").json()
        assert after["content"] == "b"
        assert after["id"] == before["id"]
        assert after["created_at"] == before["created_at"]
        assert after["updated_at"] > before["updated_at"]

    def test_update_creates_when_absent(self, client: TestClient) -> None:
        post_id = str(uuid.uuid4())
        resp = client.put(f"/{post_id}", json={"content": "new"}, auth=AUTH)
        assert resp.status_code == 201
        assert resp.headers["Location"] == f"/{post_id}"
        assert client.get(f"/{post_id}").json()["content"] == "new"

    def test_path_id_wins_over_body_id(self, client: TestClient) -> None:
        post_id = str(uuid.uuid4())
        other = str(uuid.uuid4())
        client.put(f"/{post_id}", json={"id": other, "content": "x"}, auth=AUTH)
        assert client.get(f"/{post_id}").status_code == 200
        assert client.get(f"/{other}").status_code == 404

    def test_non_uuid_id(self, client: TestClient) -> None:
        resp = client.put("/not-a-uuid", json={"content": "x"}, auth=AUTH)
        assert resp.status_code == 404

    def test_invalid_body(self, client: TestClient) -> None:
        post_id = _create(client)
        resp = client.put(f"/{post_id}", json={"content": None}, auth=AUTH)
        assert resp.status_code == 400

    def test_wrong_content_type(self, client: TestClient) -> None:
        post_id = _create(client)
        resp = client.put(
            f"/{post_id}",
            content=b"content=x",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            auth=AUTH,
        )
        assert resp.status_code == 415


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


class TestDelete:
    def test_delete_then_read(self, client: TestClient) -> None:
        post_id = _create(client)
        assert client.delete(f"/{post_id}", auth=AUTH).status_code == 204
        assert client.get(f"/{post_id}").status_code == 404

    def test_delete_unknown(self, client: TestClient) -> None:
        assert client.delete(f"/{uuid.uuid4()}", auth=AUTH).status_code == 404

    def test_delete_twice(self, client: TestClient) -> None:
        post_id = _create(client)
        client.delete(f"/{post_id}", auth=AUTH)
        assert client.delete(f"/{post_id}", auth=AUTH).status_code == 404

    def test_recreate_after_delete(self, client: TestClient) -> None:
        post_id = _create(client, "first life")
        client.delete(f"/{post_id}", auth=AUTH)
        resp = client.put(f"/{post_id}", json={"content": "second life"}, auth=AUTH)
        assert resp.status_code == 201


# ---------------------------------------------------------------------------
# Auth gate
# ---------------------------------------------------------------------------

_MUTATIONS = [
    ("post", "/new"),
    ("put", f"/{uuid.UUID(int=1)}"),
    ("delete", f"/{uuid.UUID(int=1)}"),
]


class TestAuthGate:
    @pytest.mark.parametrize(("method", "path"), _MUTATIONS)
    def test_missing_credentials(
        self, mock_client: TestClient, store: MagicMock, method: str, path: str,
    ) -> None:
        kwargs = {} if method == "delete" else {"json": {"content": "x"}}
        resp = mock_client.request(method.upper(), path, **kwargs)
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == 'Basic realm="Restricted Area"'
        assert store.method_calls == []

    @pytest.mark.parametrize(("method", "path"), _MUTATIONS)
    def test_wrong_credentials(
        self, mock_client: TestClient, store: MagicMock, method: str, path: str,
    ) -> None:
        kwargs = {} if method == "delete" else {"json": {"content": "x"}}
        resp = mock_client.request(method.upper(), path, auth=("operator", "wrong"), **kwargs)
        assert resp.status_code == 401
        assert "WWW-Authenticate" in resp.headers
        assert store.method_calls == []

    def test_auth_checked_before_content_type(self, mock_client: TestClient) -> None:
        resp = mock_client.post("/new", content=b"x", headers={"Content-Type": "text/plain"})
        assert resp.status_code == 401

    def test_malformed_authorization_header(
        self, mock_client: TestClient, store: MagicMock,
    ) -> None:
        resp = mock_client.post(
            "/new",
            json={"content": "x"},
            headers={"Authorization": "Basic !!!not-base64!!!"},
        )
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"].startswith("Basic")
        assert store.method_calls == []

    def test_reads_not_gated(self, mock_client: TestClient, store: MagicMock) -> None:
        store.hydrate.return_value = None
        assert mock_client.get(f"/{uuid.uuid4()}").status_code == 404


# ---------------------------------------------------------------------------
# Index, routing and error translation
# ---------------------------------------------------------------------------


class TestIndexAndRouting:
    def test_index_lists_recent_posts_escaped(self, client: TestClient) -> None:
        _create(client, "older")
        _create(client, "<b>newer</b>")
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "&lt;b&gt;newer&lt;/b&gt;" in resp.text
        assert resp.text.index("newer") < resp.text.index("older")

    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_unmatched_route(self, client: TestClient) -> None:
        resp = client.get("/no/such/route")
        assert resp.status_code == 404
        assert resp.json() == {"message": "The resource you're looking for is not here."}

    def test_method_not_allowed(self, client: TestClient) -> None:
        resp = client.patch(f"/{uuid.uuid4()}", json={"content": "x"})
        assert resp.status_code == 405
        assert "message" in resp.json()

    def test_store_failure_is_opaque_500(
        self, mock_client: TestClient, store: MagicMock,
    ) -> None:
        store.hydrate.side_effect = ApiError.internal()
        resp = mock_client.get(f"/{uuid.uuid4()}")
        assert resp.status_code == 500
        assert resp.json() == {"message": "A service error occurred."}
