# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services.document_store import SqlDocumentStore
from .services.identity_service import LocalIdentityProvider
from .services.inventory_service import InventoryWorkspace
from .services.session_tracker import SessionTracker


LOGIN_ROUTE = "/"


def unauthenticated(message: str):
    """401 body telling the client to go back to the sign-in root."""
    return jsonify({"error": message, "redirect": LOGIN_ROUTE}), 401


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a signed-in principal and load their workspace.

    Sets the following Flask g attributes:
    - g.identity: LocalIdentityProvider restored from the bearer token
    - g.principal: The signed-in Principal
    - g.workspace: InventoryWorkspace with products, sales and notifications fetched
    - g.session_tracker: SessionTracker binding the two (closed on teardown)

    Returns 401 with a redirect to the sign-in root if:
    - No Authorization header
    - Invalid, expired or revoked token
    - Account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return unauthenticated("Authentication required")

        identity = LocalIdentityProvider()
        principal = identity.restore(token)
        if principal is None:
            return unauthenticated("Invalid or expired token")

        workspace = InventoryWorkspace(SqlDocumentStore())
        # Subscribing fires with the restored principal, which loads the workspace
        tracker = SessionTracker(identity, workspace)

        g.identity = identity
        g.principal = principal
        g.workspace = workspace
        g.session_tracker = tracker

        return f(*args, **kwargs)

    return decorated_function
