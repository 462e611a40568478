"""Flask application serving the RevSnap JSON API."""

from __future__ import annotations

import io
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import Flask, jsonify, request, send_file

from revsnap import __version__
from revsnap.core.competitors import CompetitorSnapshot, CompetitorTracker
from revsnap.core.config import Settings, get_settings
from revsnap.core.csv_importer import CatalogImporter
from revsnap.core.data_quality import DataQualityScorer
from revsnap.core.exceptions import (
    DataQualityInputError,
    NotFoundError,
    PricingInputError,
    ValidationError,
)
from revsnap.core.models import (
    ImportResult,
    Organization,
    PlanId,
    PriceObservation,
    ProductInput,
    SourceType,
    parse_timestamp,
)
from revsnap.core.plans import PlanService
from revsnap.core.pricing import PricingEngine
from revsnap.db.repository import Repository
from revsnap.utils.export import Exporter

from .errors import register_error_handlers

logger = logging.getLogger(__name__)

MAX_HISTORY_DAYS = 3650


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _to_int(value: Any) -> int:
    """int() that refuses booleans and fractional numbers instead of truncating."""
    if isinstance(value, bool):
        raise TypeError(f"expected an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"expected an integer, got {value!r}")
    return int(value)


def _parse_int(
    value: Any, name: str, minimum: int | None = None, maximum: int | None = None
) -> int:
    try:
        parsed = _to_int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be an integer") from e
    if minimum is not None and parsed < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{name} must be at most {maximum}")
    return parsed


def _parse_money(value: Any, name: str) -> Decimal:
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{name} must be a number") from e
    if not parsed.is_finite():
        raise ValidationError(f"{name} must be a number")
    return parsed


def _first(item: dict[str, Any], *keys: str) -> Any:
    """Get the first key present, accepting snake_case and camelCase names."""
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def parse_product(item: Any, index: int) -> ProductInput:
    """Parse one product from a JSON request."""
    if not isinstance(item, dict):
        raise PricingInputError(f"Product {index} must be an object")

    name = str(_first(item, "name", "product_name", "productName") or "").strip()
    label = name or f"Product {index}"
    try:
        price = Decimal(str(_first(item, "current_price", "currentPrice", "price")))
        cost = Decimal(str(_first(item, "cost")))
        units = _first(item, "units_sold", "unitsSold")
        units_sold = _to_int(units) if units is not None else None
    except (InvalidOperation, TypeError, ValueError) as e:
        raise PricingInputError(f"{label}: price and cost must be numbers, units sold a whole number") from e
    if not price.is_finite() or not cost.is_finite():
        raise PricingInputError(f"{label}: price and cost must be finite numbers")

    category = _first(item, "category")
    return ProductInput(
        name=name,
        current_price=price,
        cost=cost,
        units_sold=units_sold,
        category=str(category) if category is not None else None,
    )


def parse_observation(item: Any, index: int) -> PriceObservation:
    """Parse one data source description from a JSON request."""
    if not isinstance(item, dict):
        raise DataQualityInputError(f"Source {index} must be an object")

    raw_type = str(_first(item, "source_type", "type") or "").strip().lower()
    try:
        source_type = SourceType(raw_type)
    except ValueError as e:
        valid = ", ".join(s.value for s in SourceType)
        raise DataQualityInputError(f"Source {index}: type must be one of {valid}") from e

    try:
        reliability = Decimal(str(_first(item, "reliability")))
        updated = _first(item, "last_updated", "lastUpdated")
        last_updated = parse_timestamp(str(updated)) if updated is not None else datetime.now()
        price = _first(item, "price")
        price_value = Decimal(str(price)) if price is not None else None
    except (InvalidOperation, TypeError, ValueError) as e:
        raise DataQualityInputError(f"Source {index}: invalid value ({e})") from e
    if not reliability.is_finite():
        raise DataQualityInputError(f"Source {index}: reliability must be a number")

    return PriceObservation(
        source_type=source_type,
        reliability=reliability,
        last_updated=last_updated,
        price=price_value,
        competitor=str(item.get("competitor") or ""),
    )


def create_app(settings: Settings | None = None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or get_settings()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_mb * 1024 * 1024
    app.json.sort_keys = False

    register_error_handlers(app)

    repo = Repository()
    engine = PricingEngine(settings.pricing)
    scorer = DataQualityScorer(settings.data_quality)
    tracker = CompetitorTracker(settings.alerts)
    importer = CatalogImporter(
        default_units_sold=settings.pricing.default_units_sold,
        default_category=settings.pricing.default_category,
    )

    def require_organization(org_id: int) -> Organization:
        org = repo.get_organization(org_id)
        if org is None:
            raise NotFoundError("Organization", org_id)
        return org

    def organization_plan(org_id: int) -> PlanId:
        return PlanService.effective_plan(repo.get_current_subscription(org_id))

    def uploaded_catalog() -> tuple[list[ProductInput], ImportResult]:
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")
        return importer.import_stream(upload.stream, upload.filename)

    @app.route("/health")
    def health():
        """Service health check."""
        return jsonify({
            "status": "healthy",
            "service": "revsnap",
            "version": __version__,
            "timestamp": datetime.now().isoformat(),
        })

    @app.route("/api/analyze-pricing", methods=["POST"])
    def analyze_pricing():
        """Price a catalog from an uploaded file or a JSON product list."""
        import_result: ImportResult | None = None

        if "file" in request.files:
            products, import_result = uploaded_catalog()
            org_value = request.form.get("organization_id")
        else:
            body = _json_body()
            items = body.get("products")
            if not isinstance(items, list):
                raise ValidationError("Provide a file upload or a JSON 'products' list")
            products = [parse_product(item, i) for i, item in enumerate(items, start=1)]
            org_value = body.get("organization_id")

        if not products:
            raise PricingInputError("No valid product data provided")

        analysis = engine.analyze(products)

        if org_value not in (None, ""):
            org = require_organization(_parse_int(org_value, "organization_id"))
            analysis.organization_id = org.id
            repo.save_analysis(analysis)
            logger.info(f"Saved pricing analysis {analysis.id} for organization {org.id}")

        data = analysis.to_dict()
        if import_result is not None:
            data["import"] = import_result.to_dict()
        return jsonify({"success": True, "data": data})

    @app.route("/api/analyses/<int:analysis_id>/export")
    def export_analysis(analysis_id: int):
        """Download a saved analysis as CSV or Excel."""
        fmt = request.args.get("format", "csv").lower()
        if fmt not in ("csv", "xlsx"):
            raise ValidationError("format must be 'csv' or 'xlsx'")

        analysis = repo.get_analysis(analysis_id)
        if analysis is None:
            raise NotFoundError("Analysis", analysis_id)

        if fmt == "csv":
            content = Exporter.export_to_csv(analysis)
            mimetype = Exporter.CSV_MIMETYPE
        else:
            content = Exporter.export_to_xlsx(analysis)
            mimetype = Exporter.XLSX_MIMETYPE

        logger.info(f"Exported analysis {analysis_id} as {fmt}")
        return send_file(
            io.BytesIO(content),
            mimetype=mimetype,
            as_attachment=True,
            download_name=Exporter.generate_filename(analysis_id, fmt),
        )

    @app.route("/api/organizations/<int:org_id>/products/import", methods=["POST"])
    def import_products(org_id: int):
        """Import a catalog file into an organization within its plan limits."""
        require_organization(org_id)
        products, result = uploaded_catalog()

        plan = organization_plan(org_id)
        existing_names = repo.get_active_product_names(org_id)
        new_names = {p.name for p in products} - existing_names
        PlanService.require_products(plan, repo.count_products(org_id), len(new_names))

        created, updated = repo.upsert_products(org_id, products)
        result.items_imported = created
        result.items_updated = updated
        logger.info(
            f"Imported catalog for organization {org_id}: {created} created, "
            f"{updated} updated, {result.items_skipped} skipped"
        )

        return jsonify({
            "success": True,
            "data": {
                "import": result.to_dict(),
                "plan": plan.value,
                "product_count": repo.count_products(org_id),
            },
        })

    @app.route("/api/organizations/<int:org_id>/recommendations")
    def organization_recommendations(org_id: int):
        """Price an organization's active products."""
        require_organization(org_id)
        products = repo.get_products(org_id, active_only=True)
        analysis = engine.analyze([p.to_input() for p in products])
        analysis.organization_id = org_id
        return jsonify({"success": True, "data": analysis.to_dict()})

    @app.route("/api/data-quality", methods=["POST"])
    def data_quality():
        """Score the quality of a set of competitor data sources."""
        body = _json_body()
        sources = body.get("sources", [])
        if not isinstance(sources, list):
            raise DataQualityInputError("sources must be a list")

        observations = [parse_observation(item, i) for i, item in enumerate(sources, start=1)]
        result = scorer.score(observations)

        data = result.to_dict()
        if body.get("include_report"):
            data["report"] = scorer.generate_report(observations)
        return jsonify({"success": True, "data": data})

    @app.route("/api/competitor-guidance")
    def competitor_guidance():
        """List how to collect prices from each supported platform."""
        guidance = scorer.get_competitor_guidance(request.args.get("platform"))
        return jsonify({"success": True, "data": [g.to_dict() for g in guidance]})

    @app.route("/api/competitor-guidance/validate", methods=["POST"])
    def validate_competitor_url():
        """Identify the platform and product id of a competitor URL."""
        url = str(_json_body().get("url") or "").strip()
        if not url:
            raise ValidationError("url is required")
        return jsonify({"success": True, "data": scorer.validate_competitor_url(url).to_dict()})

    @app.route("/api/competitor-tracking", methods=["POST"])
    def record_competitor_prices():
        """Record competitor prices for a product and report what changed."""
        body = _json_body()
        product_id = _parse_int(body.get("product_id"), "product_id")
        product = repo.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        prices = tracker.parse_prices(product.id, body.get("prices"))
        for price in prices:
            price.product_name = price.product_name or product.name

        your_price = (
            _parse_money(body["your_price"], "your_price")
            if body.get("your_price") is not None
            else product.current_price
        )

        quality = scorer.score([p.to_observation() for p in prices])

        tracker.apply_price_changes(prices, repo.get_latest_competitor_prices(product.id))
        alerts = tracker.generate_alerts(prices)

        snapshot = CompetitorSnapshot(product_id=product.id, prices=prices)
        snapshot.analyze()
        position = tracker.market_position(prices, your_price)

        repo.save_competitor_prices(prices)
        repo.save_alerts(alerts)
        logger.info(
            f"Recorded {len(prices)} competitor prices for product {product.id}, "
            f"{len(alerts)} alerts"
        )

        return jsonify({
            "success": True,
            "data": {
                "product_id": product.id,
                "prices": [p.to_dict() for p in prices],
                "alerts": [a.to_dict() for a in alerts],
                "snapshot": snapshot.to_dict(),
                "market_position": position.to_dict(),
                "data_quality": quality.to_dict(),
                "snapshot_quality": float(tracker.snapshot_quality(prices)),
            },
        })

    @app.route("/api/competitor-tracking")
    def competitor_history():
        """Latest prices, history, trends and unread alerts for a product."""
        product_id = _parse_int(request.args.get("product_id"), "product_id")
        days = _parse_int(
            request.args.get("days", 30), "days", minimum=1, maximum=MAX_HISTORY_DAYS
        )
        competitor = request.args.get("competitor") or None

        product = repo.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        latest = repo.get_latest_competitor_prices(product_id)
        history = repo.get_competitor_price_history(product_id, days=days, competitor=competitor)
        trends = tracker.get_trends(history, days=days)

        return jsonify({
            "success": True,
            "data": {
                "product_id": product_id,
                "latest": [p.to_dict() for p in latest],
                "history": [p.to_dict() for p in history],
                "trends": {name: t.to_dict() for name, t in trends.items()},
                "alerts": [a.to_dict() for a in repo.get_unread_alerts(product_id)],
            },
        })

    @app.route("/api/plan-limits")
    def plan_limits():
        """Plan table, or one organization's plan, usage and upgrade advice."""
        org_value = request.args.get("organization_id")
        if not org_value:
            return jsonify({
                "success": True,
                "data": {"plans": [p.to_dict() for p in PlanService.get_all_plans()]},
            })

        org = require_organization(_parse_int(org_value, "organization_id"))
        subscription = repo.get_current_subscription(org.id)
        plan = PlanService.effective_plan(subscription)
        limits = PlanService.get_plan_limits(plan)
        count = repo.count_products(org.id)

        return jsonify({
            "success": True,
            "data": {
                "organization_id": org.id,
                "plan": limits.to_dict(),
                "subscription_status": subscription.status.value if subscription else None,
                "usage": {
                    "products": count,
                    "max_products": limits.max_products,
                    "can_add_product": PlanService.can_add_product(count, plan),
                },
                "upgrade": PlanService.get_upgrade_recommendation(plan, count).to_dict(),
            },
        })

    return app
