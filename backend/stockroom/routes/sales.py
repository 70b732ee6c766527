# Overview: Flask API routes for recording sales and reading sales history.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..services.document_store import DocumentNotFound, DocumentStoreError
from ..services.inventory_service import SaleRejected
from ..services.repository_service import SaleRow
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/dashboard/sales")


def _product_options() -> list[dict]:
    return [
        {"id": p["id"], "name": p.get("name"), "quantity": p.get("quantity")}
        for p in g.workspace.products
    ]


@sales_bp.get("")
@require_auth
def list_sales():
    """
    Sales history, most recent first, plus the products a sale can be
    recorded against.
    """
    rows = [SaleRow.from_record(s).to_dict() for s in g.workspace.sales]
    return {
        "items": rows,
        "count": len(rows),
        "products": _product_options(),
    }


@sales_bp.post("")
@require_auth
def record_sale_route():
    """
    Record a sale.

    Body: {"product_id": str, "quantity": int}

    Returns 409 without writing anything when no product is selected or
    stock is insufficient.
    """
    payload = request.get_json(silent=True) or {}

    try:
        sale = g.workspace.record_sale(g.principal, payload.get("product_id"), payload.get("quantity"))
    except ValidationError as e:
        return e.to_dict(), 400
    except SaleRejected as e:
        return {"error": str(e)}, 409
    except DocumentNotFound:
        return {"error": "Product not found"}, 404
    except DocumentStoreError:
        current_app.logger.exception("Failed to record sale")
        return {"error": "Could not record the sale. Please try again."}, 500

    return {
        "sale": SaleRow.from_record(sale).to_dict(),
        "products": _product_options(),
    }, 201
