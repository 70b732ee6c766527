# Overview: Flask API route for the signed-in user's notification feed.

from flask import Blueprint, g

from ..decorators import require_auth
from ..services.document_store import serialize_record


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/dashboard/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications():
    items = [serialize_record(n) for n in g.workspace.notifications]
    return {"items": items, "count": len(items)}
