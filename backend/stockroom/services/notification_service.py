# Overview: Writes user-scoped notifications for the notification feed.

from __future__ import annotations

import logging

from .document_store import DocumentStore, NOTIFICATIONS, OWNER_FIELD
from .identity_service import Principal
from stockroom.time_utils import Timestamp


logger = logging.getLogger(__name__)

SUCCESS = "success"
WARNING = "warning"
INFO = "info"


def notify(
    store: DocumentStore,
    principal: Principal | None,
    message: str,
    type: str = INFO,
    *,
    created_at: Timestamp | None = None,
) -> str | None:
    """
    Write a notification for ``principal`` and return its id.

    ``created_at`` defaults to now. Without a principal nothing is written and None is returned. Write
    failures from the store propagate; there is no retry.
    """
    if principal is None:
        logger.warning("Notification not created: user not logged in (%r)", message)
        return None

    return store.add_document(NOTIFICATIONS, {
        "message": message,
        "type": type,
        OWNER_FIELD: principal.uid,
        "created_at": created_at or Timestamp.now(),
    })
