"""Flask JSON API over the catalog."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from flask import Flask, jsonify, request

from src.core.catalog import CatalogReadService
from src.core.config import Settings
from src.core.dashboard import DashboardAggregator
from src.core.discounts import DiscountResolver
from src.core.listings import ListingNotFoundError, ListingService
from src.core.models import ReferenceValidationError, ShopType
from src.core.reconcile import ReconciliationEngine
from src.db.repository import CatalogRepository, StoreError

logger = logging.getLogger(__name__)


def _truthy(value: str | None) -> bool:
    return (value or "").lower() in ("1", "true", "yes")


def _shop_type_or_none(value: str | None) -> ShopType | None:
    return ShopType.from_string(value) if value else None


def _json_object() -> dict[str, Any]:
    """Request body as a dict; a missing body is an empty one."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValueError("Expected a JSON object body")
    return dict(body)


def create_app(repository: CatalogRepository, settings: Settings) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.json.sort_keys = False

    catalog = CatalogReadService(repository, settings)
    dashboard = DashboardAggregator()
    discounts = DiscountResolver(repository)
    listings = ListingService(repository)
    engine = ReconciliationEngine(repository, settings)

    @app.errorhandler(StoreError)
    def handle_store_error(error: StoreError):
        logger.error(f"Store error while handling {request.path}: {error}")
        return jsonify({"error": str(error)}), 503

    @app.errorhandler(ListingNotFoundError)
    def handle_not_found(error: ListingNotFoundError):
        return jsonify({"error": str(error)}), 404

    @app.errorhandler(ValueError)
    def handle_bad_request(error: ValueError):
        return jsonify({"error": str(error)}), 400

    # ==================== Dashboard ====================

    @app.route("/api/summary")
    def api_summary():
        """Catalog-wide summary."""
        summary = dashboard.summary(catalog.list_enriched())
        return jsonify({**summary.to_dict(), "updated_at": datetime.now().isoformat()})

    @app.route("/api/shops")
    def api_shops():
        """Per-shop statistics."""
        stats = dashboard.shop_stats(catalog.list_enriched())
        return jsonify({"count": len(stats), "shops": [s.to_dict() for s in stats]})

    # ==================== Listings ====================

    @app.route("/api/listings")
    def api_listings():
        """Enriched listings, filtered by query string."""
        rows = catalog.list_enriched(
            shop_type=_shop_type_or_none(request.args.get("shop_type")),
            shop_name=request.args.get("shop_name") or None,
            favorites_only=_truthy(request.args.get("favorites")),
            include_hidden=not _truthy(request.args.get("exclude_hidden")),
        )
        return jsonify({"count": len(rows), "items": [row.to_dict() for row in rows]})

    @app.route("/api/listings/<listing_id>")
    def api_listing(listing_id: str):
        row = catalog.get_enriched(listing_id)
        if row is None:
            return jsonify({"error": f"Listing not found: {listing_id}"}), 404
        return jsonify(row.to_dict())

    @app.route("/api/listings/<listing_id>", methods=["PATCH"])
    def api_update_listing(listing_id: str):
        fields = _json_object()
        listings.update_listing(listing_id, **fields)
        return jsonify(catalog.get_enriched(listing_id).to_dict())

    @app.route("/api/listings/<listing_id>", methods=["DELETE"])
    def api_delete_listing(listing_id: str):
        deleted = listings.delete_listing(listing_id)
        if not deleted:
            return jsonify({"error": f"Listing not found: {listing_id}"}), 404
        return jsonify({"deleted_count": deleted})

    @app.route("/api/listings/<listing_id>/copy", methods=["POST"])
    def api_copy_listing(listing_id: str):
        copy = listings.copy_listing(listing_id)
        return jsonify(catalog.get_enriched(copy.id).to_dict()), 201

    @app.route("/api/listings/<listing_id>/reference", methods=["PUT"])
    def api_assign_reference(listing_id: str):
        body = _json_object()
        asin = body.pop("asin", None)
        try:
            listings.assign_reference(listing_id, asin, **body)
        except ReferenceValidationError as e:
            return jsonify({"error": str(e)}), 422
        return jsonify(catalog.get_enriched(listing_id).to_dict())

    @app.route("/api/listings/<listing_id>/reference", methods=["DELETE"])
    def api_clear_reference(listing_id: str):
        return jsonify({"cleared": listings.clear_reference(listing_id)})

    # ==================== Reconciliation ====================

    @app.route("/api/reconcile/<shop_type>/<shop_name>", methods=["POST"])
    def api_reconcile(shop_type: str, shop_name: str):
        """Merge a scraped batch into the catalog."""
        shop = ShopType.from_string(shop_type)
        body = request.get_json(silent=True)
        items = body.get("items") if isinstance(body, dict) else body
        if not isinstance(items, list):
            return jsonify({"error": "Expected a JSON list of items or {\"items\": [...]}"}), 400

        result = engine.reconcile(shop, shop_name, items)
        return jsonify(result.to_dict()), 500 if result.aborted else 200

    @app.route("/api/deduplicate", methods=["POST"])
    def api_deduplicate():
        """Sweep duplicates for one shop, or for the whole catalog."""
        body = _json_object()
        result = engine.deduplicate(
            shop_type=_shop_type_or_none(body.get("shop_type")),
            shop_name=body.get("shop_name"),
        )
        return jsonify({
            "success": result.success,
            "deleted_count": result.deleted_count,
            "copies_skipped": result.copies_skipped,
            "errors": result.errors,
        })

    # ==================== Discounts ====================

    @app.route("/api/discounts")
    def api_discounts():
        return jsonify({
            "items": [
                {
                    "shop_name": d.shop_name,
                    "discount_type": d.discount_type.value,
                    "discount_value": float(d.discount_value),
                    "is_enabled": d.is_enabled,
                }
                for d in discounts.list_all()
            ]
        })

    @app.route("/api/discounts/<shop_name>", methods=["PUT"])
    def api_save_discount(shop_name: str):
        body = _json_object()
        try:
            saved = discounts.save(
                shop_name,
                body.get("discount_type", ""),
                body.get("discount_value"),
                is_enabled=bool(body.get("is_enabled", True)),
            )
        except ReferenceValidationError as e:
            return jsonify({"error": str(e)}), 422
        return jsonify({
            "shop_name": saved.shop_name,
            "discount_type": saved.discount_type.value,
            "discount_value": float(saved.discount_value),
            "is_enabled": saved.is_enabled,
        })

    @app.route("/api/discounts/<shop_name>", methods=["DELETE"])
    def api_delete_discount(shop_name: str):
        if not discounts.delete(shop_name):
            return jsonify({"error": f"No discount for shop: {shop_name}"}), 404
        return jsonify({"deleted": True})

    return app


def serve(repository: CatalogRepository, settings: Settings) -> None:
    """Run the API in the foreground until interrupted."""
    app = create_app(repository, settings)
    logger.info(f"Web API listening on http://{settings.web.host}:{settings.web.port}")
    app.run(
        host=settings.web.host,
        port=settings.web.port,
        debug=False,
        use_reloader=False,
        threaded=True,
    )
