from __future__ import annotations

import uuid

from ..extensions import db


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class StoredDocument(db.Model):
    """
    One document of a schemaless, owner-scoped collection.

    The owner id is duplicated out of the JSON body into ``owner_id`` so the
    equality filter every query carries can use an index. ``data`` holds the
    encoded field map (see ``document_store.encode_fields``).
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.Index("ix_documents_collection_owner", "collection", "owner_id"),
        {"sqlite_autoincrement": True},
    )

    pk = db.Column(db.Integer, primary_key=True)
    id = db.Column(db.String(32), nullable=False, unique=True, index=True, default=new_document_id)
    collection = db.Column(db.String(64), nullable=False)
    owner_id = db.Column(db.String(64), nullable=True)
    data = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<StoredDocument {self.collection}/{self.id} owner={self.owner_id!r}>"
