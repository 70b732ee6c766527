"""
Pytest fixtures for stockroom backend tests.

Provides test database setup, two independent accounts, and in-memory
document store doubles for the pure service tests.
"""

import itertools

import pytest

from stockroom import create_app
from stockroom.extensions import db
from stockroom.services.auth_service import create_user
from stockroom.services.document_store import (
    Document,
    DocumentNotFound,
    DocumentStore,
    DocumentStoreError,
    OWNER_FIELD,
)
from stockroom.services.identity_service import Principal


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'AUTH_EMAIL_ENUMERATION_PROTECTION': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def user_a(db_session):
    """Account A."""
    return create_user("alice@example.com", "Password123!")


@pytest.fixture(scope='function')
def user_b(db_session):
    """Account B."""
    return create_user("bob@example.com", "Password123!")


@pytest.fixture
def principal_a():
    return Principal(uid="uid-a", email="a@example.com")


@pytest.fixture
def principal_b():
    return Principal(uid="uid-b", email="b@example.com")


class MemoryDocumentStore(DocumentStore):
    """
    In-memory DocumentStore for service tests.

    Records every call in ``calls``. Set ``fail_on`` to an operation name
    ("query", "add", "update", "delete") to make it raise DocumentStoreError,
    optionally only for one collection via ``fail_collection``. ``on_query``
    runs inside ``query`` before results are returned.
    """

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self.calls: list[tuple] = []
        self.fail_on: str | None = None
        self.fail_collection: str | None = None
        self.on_query = None
        self._ids = itertools.count(1)

    def _maybe_fail(self, op: str, collection: str) -> None:
        if self.fail_on == op and self.fail_collection in (None, collection):
            raise DocumentStoreError(f"{op} {collection} failed")

    def seed(self, collection: str, fields: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or f"{collection}-{next(self._ids)}"
        self.collections.setdefault(collection, {})[doc_id] = dict(fields)
        return doc_id

    def query(self, collection, filters):
        self.calls.append(("query", collection, dict(filters)))
        self._maybe_fail("query", collection)
        if self.on_query is not None:
            self.on_query(collection)
        return [
            Document(id=doc_id, data=dict(data))
            for doc_id, data in self.collections.get(collection, {}).items()
            if all(data.get(k) == v for k, v in filters.items())
        ]

    def add_document(self, collection, fields):
        self.calls.append(("add", collection, dict(fields)))
        self._maybe_fail("add", collection)
        return self.seed(collection, fields)

    def _owned(self, collection, doc_id, owner_id):
        data = self.collections.get(collection, {}).get(doc_id)
        if data is None or data.get(OWNER_FIELD) != owner_id:
            raise DocumentNotFound(collection, doc_id)
        return data

    def update_document(self, collection, doc_id, fields, *, owner_id):
        self.calls.append(("update", collection, doc_id, dict(fields)))
        self._maybe_fail("update", collection)
        self._owned(collection, doc_id, owner_id).update(fields)

    def delete_document(self, collection, doc_id, *, owner_id):
        self.calls.append(("delete", collection, doc_id))
        self._maybe_fail("delete", collection)
        self._owned(collection, doc_id, owner_id)
        del self.collections[collection][doc_id]

    def calls_of(self, op: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == op]


@pytest.fixture
def memory_store():
    return MemoryDocumentStore()


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for an account."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
