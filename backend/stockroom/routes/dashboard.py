# Overview: Flask API routes for the dashboard cards, revenue chart and profile.

from flask import Blueprint, g

from ..decorators import require_auth
from ..services.metrics_service import dashboard_summary


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
def dashboard_route():
    """
    Revenue dashboard for the signed-in user.

    Returns total revenue, today's order count, low-stock item count, the
    per-day revenue series, and document diagnostics.
    """
    workspace = g.workspace
    summary = dashboard_summary(workspace.products, workspace.sales)
    summary["loading"] = workspace.loading
    return summary


@dashboard_bp.get("/profile")
@require_auth
def profile_route():
    """Email, user id, account creation and last sign-in times."""
    return {"user": g.principal.to_dict()}
