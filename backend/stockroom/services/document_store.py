# Overview: Owner-scoped document store interface and its SQLAlchemy implementation.

"""
Document Store

The data layer the inventory core talks to. Collections are schemaless:
each document is a field map, tagged with the owning principal's uid under
``OWNER_FIELD``. The only query shape the core issues is an equality filter,
and it always includes the owner field.

The SQL implementation keeps documents as JSON. Values that JSON cannot
carry are wrapped in tagged objects so that a document reads back in the
same shape it was written: ``Timestamp`` stays a ``Timestamp``, ``datetime``
stays a ``datetime``, and a legacy bare ``{"seconds": ...}`` mapping stays a
mapping.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import StoredDocument
from stockroom.time_utils import Timestamp, parse_iso_datetime, as_aware_utc, to_utc_z


OWNER_FIELD = "user_id"

PRODUCTS = "products"
SALES = "sales"
NOTIFICATIONS = "notifications"
COLLECTIONS = (PRODUCTS, SALES, NOTIFICATIONS)

_TIMESTAMP_TAG = "__timestamp__"
_DATETIME_TAG = "__datetime__"


class DocumentStoreError(Exception):
    """Raised when the backing store cannot complete a read or write."""


class DocumentNotFound(DocumentStoreError):
    """Raised when a document does not exist or belongs to another owner."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


@dataclass(frozen=True)
class Document:
    """A document as returned by ``query``: its id and decoded fields."""
    id: str
    data: dict = field(default_factory=dict)

    def to_record(self) -> dict:
        """Flatten into the record shape the client layer caches."""
        return {"id": self.id, **self.data}


def _encode_value(value: Any) -> Any:
    if isinstance(value, Timestamp):
        return {_TIMESTAMP_TAG: [value.seconds, value.nanoseconds]}
    if isinstance(value, datetime):
        return {_DATETIME_TAG: as_aware_utc(value).isoformat()}
    if isinstance(value, Mapping):
        return {str(k): _encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_value(v) for v in value]
    return value


def _decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1 and _TIMESTAMP_TAG in value:
            seconds, nanoseconds = value[_TIMESTAMP_TAG]
            return Timestamp(seconds=int(seconds), nanoseconds=int(nanoseconds))
        if len(value) == 1 and _DATETIME_TAG in value:
            parsed = parse_iso_datetime(value[_DATETIME_TAG])
            return as_aware_utc(parsed) if parsed is not None else None
        return {k: _decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode_value(v) for v in value]
    return value


def encode_fields(fields: Mapping[str, Any]) -> dict:
    return {str(k): _encode_value(v) for k, v in fields.items()}


def decode_fields(data: Mapping[str, Any] | None) -> dict:
    return {k: _decode_value(v) for k, v in (data or {}).items()}


class DocumentStore(ABC):
    """Interface consumed by the repository, mutation and notification layers."""

    @abstractmethod
    def query(self, collection: str, filters: Mapping[str, Any]) -> list[Document]:
        """Return documents whose fields equal every value in ``filters``."""

    @abstractmethod
    def add_document(self, collection: str, fields: Mapping[str, Any]) -> str:
        """Insert a document and return its generated id."""

    @abstractmethod
    def update_document(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        owner_id: str,
    ) -> None:
        """Merge ``fields`` into an existing document owned by ``owner_id``."""

    @abstractmethod
    def delete_document(self, collection: str, doc_id: str, *, owner_id: str) -> None:
        """Remove a document owned by ``owner_id``."""


class SqlDocumentStore(DocumentStore):
    """
    DocumentStore backed by the ``documents`` table.

    Every call commits on its own; there is no multi-document transaction.
    SQLAlchemy failures are rolled back and re-raised as DocumentStoreError.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _fail(self, action: str, exc: Exception) -> DocumentStoreError:
        self.session.rollback()
        return DocumentStoreError(f"Failed to {action}: {exc}")

    def _get_owned(self, collection: str, doc_id: str, owner_id: str) -> StoredDocument:
        try:
            row = (
                self.session.query(StoredDocument)
                .filter(StoredDocument.collection == collection, StoredDocument.id == doc_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise self._fail(f"read {collection}/{doc_id}", e) from e
        # Someone else's document is reported exactly like a missing one
        if row is None or not owner_id or row.owner_id != owner_id:
            raise DocumentNotFound(collection, doc_id)
        return row

    def query(self, collection: str, filters: Mapping[str, Any]) -> list[Document]:
        filters = dict(filters or {})
        try:
            q = self.session.query(StoredDocument).filter(StoredDocument.collection == collection)
            if OWNER_FIELD in filters:
                q = q.filter(StoredDocument.owner_id == filters.pop(OWNER_FIELD))
            rows = q.order_by(StoredDocument.pk.asc()).all()
        except SQLAlchemyError as e:
            raise self._fail(f"query {collection}", e) from e

        documents = []
        for row in rows:
            data = decode_fields(row.data)
            if all(data.get(k) == v for k, v in filters.items()):
                documents.append(Document(id=row.id, data=data))
        return documents

    def add_document(self, collection: str, fields: Mapping[str, Any]) -> str:
        row = StoredDocument(
            collection=collection,
            owner_id=fields.get(OWNER_FIELD),
            data=encode_fields(fields),
        )
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"add to {collection}", e) from e
        return row.id

    def update_document(self, collection, doc_id, fields, *, owner_id):
        row = self._get_owned(collection, doc_id, owner_id)
        if OWNER_FIELD in fields and fields[OWNER_FIELD] != owner_id:
            raise DocumentStoreError("Documents cannot change owner")
        # Reassign so the JSON column is flagged dirty
        row.data = {**(row.data or {}), **encode_fields(fields)}
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"update {collection}/{doc_id}", e) from e

    def delete_document(self, collection, doc_id, *, owner_id):
        row = self._get_owned(collection, doc_id, owner_id)
        try:
            self.session.delete(row)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"delete {collection}/{doc_id}", e) from e


def serialize_value(value: Any) -> Any:
    """JSON-friendly rendering of a decoded field value for API responses."""
    if isinstance(value, Timestamp):
        return to_utc_z(value.to_datetime())
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, Mapping):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def serialize_record(record: Mapping[str, Any]) -> dict:
    return {k: serialize_value(v) for k, v in record.items()}
