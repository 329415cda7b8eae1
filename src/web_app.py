from __future__ import annotations

import logging
from datetime import date, datetime

from flask import Flask, Response, jsonify, request
from psycopg import errors as pg_errors
from werkzeug.exceptions import HTTPException

from orderdesk import promotions, reports
from orderdesk.config import AppConfig, ConfigError, load_config
from orderdesk.db import Db, DbError
from orderdesk.domain import customer_to_dict, product_to_dict
from orderdesk.errors import (
    ConflictError,
    DataIntegrityError,
    InsufficientStockError,
    NotFoundError,
    OrderDeskError,
    ValidationError,
)
from orderdesk.exporters import XLSX_MIMETYPE, export_filename, orders_to_xlsx
from orderdesk.invoice_pdf import generate_order_pdf
from orderdesk.log import configure_logging
from orderdesk.services.order_service import CreateOrderItemInput
from orderdesk.validators import is_int
from orderdesk.wiring import Services, build_services

logger = logging.getLogger(__name__)


def _json_row(row: dict) -> dict:
    return {k: (v.isoformat() if isinstance(v, (datetime, date)) else v) for k, v in row.items()}


def _body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def _parse_date(value: str | None, label: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid {label} date: {value!r}") from None


def _ok(data=None, *, message: str | None = None, status: int = 200, **extra):
    payload = {"success": True, "data": data, **extra}
    if message:
        payload["message"] = message
    return jsonify(payload), status


def _fail(status: int, error: str, **extra):
    return jsonify({"success": False, "error": error, **extra}), status


def create_app(cfg: AppConfig, db: Db, services: Services) -> Flask:
    app = Flask(__name__)
    business = cfg.business

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return _fail(400, "Validation failed", errors=e.errors)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return _fail(404, str(e), entity=e.entity, ids=e.ids)

    @app.errorhandler(InsufficientStockError)
    def handle_stock(e: InsufficientStockError):
        return _fail(
            409,
            str(e),
            product_id=e.product_id,
            available=e.available,
            required=e.required,
        )

    @app.errorhandler(ConflictError)
    def handle_conflict(e: ConflictError):
        return _fail(409, str(e))

    @app.errorhandler(DataIntegrityError)
    def handle_integrity(e: DataIntegrityError):
        logger.error("Data integrity failure: %s", e)
        return _fail(500, "Internal server error")

    @app.errorhandler(DbError)
    def handle_db(e: DbError):
        logger.error("Database unavailable: %s", e)
        return _fail(503, "Database unavailable")

    @app.errorhandler(OrderDeskError)
    def handle_other(e: OrderDeskError):
        logger.exception("Unhandled domain error")
        return _fail(500, "Internal server error")

    @app.errorhandler(pg_errors.UniqueViolation)
    def handle_unique(e: pg_errors.UniqueViolation):
        logger.warning("Unique constraint violated: %s", e)
        return _fail(409, "A record with the same key already exists.")

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return _fail(e.code or 500, e.name)
        logger.exception("Unhandled error")
        return _fail(500, "Internal server error")

    # --- customers -------------------------------------------------------

    @app.get("/api/customers")
    def customers_list():
        with db.session() as conn:
            rows = services.customers.list_customers(conn, search=request.args.get("search"))
        return _ok([customer_to_dict(c) for c in rows], count=len(rows))

    @app.post("/api/customers")
    def customers_create():
        body = _body()
        with db.transaction() as conn:
            customer = services.customers.create_customer(
                conn,
                national_id=body.get("national_id"),
                name=body.get("name"),
                email=body.get("email"),
                phone=body.get("phone"),
                address=body.get("address"),
                city=body.get("city"),
            )
        return _ok(customer_to_dict(customer), message="Customer created", status=201)

    @app.get("/api/customers/<int:customer_id>")
    def customers_get(customer_id: int):
        with db.session() as conn:
            customer = services.customers.get_customer(conn, customer_id)
            orders = services.customers.recent_orders(conn, customer_id)
        data = customer_to_dict(customer)
        data["orders"] = [_json_row(o) for o in orders]
        return _ok(data)

    @app.patch("/api/customers/<int:customer_id>")
    def customers_update(customer_id: int):
        body = _body()
        with db.transaction() as conn:
            customer = services.customers.update_customer(
                conn,
                customer_id,
                name=body.get("name"),
                email=body.get("email"),
                phone=body.get("phone"),
                address=body.get("address"),
                city=body.get("city"),
                national_id=body.get("national_id"),
            )
        return _ok(customer_to_dict(customer), message="Customer updated")

    @app.delete("/api/customers/<int:customer_id>")
    def customers_delete(customer_id: int):
        with db.transaction() as conn:
            services.customers.deactivate_customer(conn, customer_id)
        return _ok(message="Customer deleted")

    # --- products --------------------------------------------------------

    @app.get("/api/products")
    def products_list():
        with db.session() as conn:
            rows = services.products.list_products(
                conn,
                search=request.args.get("search"),
                category=request.args.get("category"),
            )
        return _ok([product_to_dict(p) for p in rows], count=len(rows))

    @app.post("/api/products")
    def products_create():
        body = _body()
        with db.transaction() as conn:
            product = services.products.create_product(
                conn,
                name=body.get("name"),
                category=body.get("category"),
                price=body.get("price"),
                stock=body.get("stock", 0),
                min_stock=body.get("min_stock"),
                product_type=body.get("product_type", "simple"),
                unit=body.get("unit", "und"),
            )
        return _ok(product_to_dict(product), message="Product created", status=201)

    @app.get("/api/products/<int:product_id>")
    def products_get(product_id: int):
        with db.session() as conn:
            product = services.products.get_product(conn, product_id)
            n = services.products.order_line_count(conn, product_id)
        data = product_to_dict(product)
        data["order_count"] = n
        return _ok(data)

    @app.patch("/api/products/<int:product_id>")
    def products_update(product_id: int):
        body = _body()
        with db.transaction() as conn:
            product = services.products.update_product(conn, product_id, **body)
        return _ok(product_to_dict(product), message="Product updated")

    @app.delete("/api/products/<int:product_id>")
    def products_delete(product_id: int):
        with db.transaction() as conn:
            services.products.delete_product(conn, product_id)
        return _ok(message="Product deleted")

    # --- orders ----------------------------------------------------------

    @app.get("/api/orders")
    def orders_list():
        with db.session() as conn:
            rows = services.orders.list_orders(
                conn,
                search=request.args.get("search"),
                payment_status=request.args.get("paymentStatus") or request.args.get("payment_status"),
                shipping_status=request.args.get("shippingStatus") or request.args.get("shipping_status"),
                period=request.args.get("period"),
            )
        return _ok([_json_row(r) for r in rows], count=len(rows))

    @app.post("/api/orders")
    def orders_create():
        body = _body()
        raw_items = body.get("items") or []
        if not isinstance(raw_items, list) or not all(isinstance(i, dict) for i in raw_items):
            raise ValidationError("items must be a list of objects.")
        items = [
            CreateOrderItemInput(
                product_id=i.get("product_id"),
                quantity=i.get("quantity"),
                unit_price=i.get("unit_price"),
            )
            for i in raw_items
        ]
        with db.transaction() as conn:
            detail = services.orders.create_order(
                conn,
                customer_id=body.get("customer_id"),
                items=items,
                payment_method=body.get("payment_method"),
                notes=body.get("notes"),
                order_type=body.get("order_type", "standard"),
            )
        return _ok(
            detail.to_dict(),
            message=f"Order {detail.order.order_number} created",
            status=201,
        )

    @app.get("/api/orders/<int:order_id>")
    def orders_get(order_id: int):
        with db.session() as conn:
            detail = services.orders.get_order(conn, order_id)
        return _ok(detail.to_dict())

    @app.patch("/api/orders/<int:order_id>")
    def orders_update_status(order_id: int):
        body = _body()
        with db.transaction() as conn:
            result = services.orders.update_status(
                conn,
                order_id=order_id,
                payment_status=body.get("payment_status"),
                shipping_status=body.get("shipping_status"),
            )
        return _ok(result.order.to_dict(), message=result.message)

    @app.put("/api/orders/<int:order_id>/invoice")
    def orders_set_invoice(order_id: int):
        body = _body()
        with db.transaction() as conn:
            detail = services.orders.set_invoice_number(
                conn, order_id=order_id, invoice_number=body.get("invoice_number")
            )
        return _ok(detail.to_dict(), message="Invoice number updated")

    @app.delete("/api/orders/<int:order_id>")
    def orders_delete(order_id: int):
        with db.transaction() as conn:
            message = services.orders.delete_order(conn, order_id=order_id)
        return _ok(message=message)

    @app.get("/api/orders/<int:order_id>/pdf")
    def orders_pdf(order_id: int):
        with db.session() as conn:
            detail = services.orders.get_order(conn, order_id)
        pdf = generate_order_pdf(detail, company_name=business.company_name, currency=business.currency)
        return Response(
            pdf,
            mimetype="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{detail.order.order_number}.pdf"'},
        )

    @app.get("/api/orders/export")
    def orders_export():
        date_from = _parse_date(request.args.get("from"), "from")
        date_to = _parse_date(request.args.get("to"), "to")
        with db.session() as conn:
            rows = reports.orders_for_export(conn, date_from, date_to)
        return Response(
            orders_to_xlsx(rows),
            mimetype=XLSX_MIMETYPE,
            headers={"Content-Disposition": f'attachment; filename="{export_filename(date_from, date_to)}"'},
        )

    # --- dashboard & promotions -----------------------------------------

    @app.get("/api/dashboard")
    def dashboard():
        with db.session() as conn:
            stats = reports.dashboard_stats(conn, services.orders.clock().date())
            stats["low_stock_products"] = reports.low_stock_products(conn, limit=business.low_stock_limit)
            stats["top_products"] = reports.top_products(conn)
        return _ok(stats)

    @app.post("/api/promotions/quote")
    def promotions_quote():
        body = _body()
        resolved = []
        errors = []
        for item in body.get("items") or []:
            if not isinstance(item, dict):
                errors.append("items must be a list of objects.")
                continue
            product = promotions.find_by_slug(str(item.get("slug", "")))
            quantity = item.get("quantity")
            if product is None:
                errors.append(f"Product not eligible for PromoMix: {item.get('slug')}")
            elif not is_int(quantity) or quantity < 1:
                errors.append(f"Invalid quantity for {product.name}")
            else:
                resolved.append((product, quantity))
        if errors:
            raise ValidationError(errors)
        q = promotions.quote(resolved)
        return _ok(
            {
                "subtotal_promo": q.subtotal_promo,
                "subtotal_regular": q.subtotal_regular,
                "tax": q.tax,
                "total": q.total,
                "savings": q.savings,
                "is_valid": q.is_valid,
                "remaining": q.remaining,
                "overage": q.overage,
            }
        )

    return app


if __name__ == "__main__":
    try:
        cfg = load_config()
        configure_logging(cfg.log_level)
        db = Db(cfg.db)
        app = create_app(cfg, db, build_services(cfg.business))
        app.run(debug=True, host="127.0.0.1", port=5000)
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        raise SystemExit(2)
