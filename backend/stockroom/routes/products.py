# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockroom/routes/products.py
"""
Product catalog routes.

All operations run against the signed-in user's workspace (g.workspace),
which only ever holds and writes that user's documents.
"""
from flask import Blueprint, request, g, current_app

from ..decorators import require_auth
from ..services.document_store import DocumentNotFound, DocumentStoreError, serialize_record
from ..services.metrics_service import filter_products, stock_status
from ..validation import ValidationError


products_bp = Blueprint("products", __name__, url_prefix="/api/dashboard/products")


def product_to_dict(product: dict) -> dict:
    body = serialize_record(product)
    body["status"] = stock_status(product.get("quantity"))
    return body


@products_bp.get("")
@require_auth
def list_products():
    """
    List the user's products.

    Query params:
    - q: str (optional) - case-insensitive match on name or category
    """
    products = filter_products(g.workspace.products, request.args.get("q"))
    return {
        "items": [product_to_dict(p) for p in products],
        "count": len(products),
    }


@products_bp.post("")
@require_auth
def create_product_route():
    """Add a product. Emits a success notification."""
    payload = request.get_json(silent=True) or {}

    try:
        created = g.workspace.create_product(g.principal, payload)
    except ValidationError as e:
        return e.to_dict(), 400
    except DocumentStoreError:
        current_app.logger.exception("Failed to create product")
        return {"error": "Could not save the product. Please try again."}, 500

    return product_to_dict(created), 201


@products_bp.put("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    """Replace name, category, price and quantity. Low quantity emits a warning."""
    payload = request.get_json(silent=True) or {}

    try:
        updated = g.workspace.update_product(g.principal, product_id, payload)
    except ValidationError as e:
        return e.to_dict(), 400
    except DocumentNotFound:
        return {"error": "Product not found"}, 404
    except DocumentStoreError:
        current_app.logger.exception("Failed to update product")
        return {"error": "Could not save the product. Please try again."}, 500

    return product_to_dict(updated), 200


@products_bp.delete("/<product_id>")
@require_auth
def delete_product_route(product_id: str):
    """Delete a product permanently."""
    try:
        g.workspace.delete_product(g.principal, product_id)
    except DocumentNotFound:
        return {"error": "Product not found"}, 404
    except DocumentStoreError:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Could not delete the product. Please try again."}, 500

    return {"ok": True}, 200
