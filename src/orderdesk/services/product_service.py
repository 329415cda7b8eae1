from __future__ import annotations

import logging

from psycopg import Connection

from ..domain import Product
from ..errors import ConflictError, NotFoundError, ValidationError
from ..repositories.product_repo import ProductRepository
from ..validators import check_non_negative_int, check_required, clean

logger = logging.getLogger(__name__)

PRODUCT_TYPES = ("simple", "variable")


class ProductService:
    def __init__(self, *, product_repo: ProductRepository, default_min_stock: int = 10) -> None:
        self.product_repo = product_repo
        self.default_min_stock = default_min_stock

    def create_product(
        self,
        conn: Connection,
        *,
        name: str,
        category: str,
        price: int,
        stock: int = 0,
        min_stock: int | None = None,
        product_type: str = "simple",
        unit: str = "und",
    ) -> Product:
        if min_stock is None:
            min_stock = self.default_min_stock
        errors = [
            *check_required(name, "Name"),
            *check_required(category, "Category"),
            *check_non_negative_int(price, "Price"),
            *check_non_negative_int(stock, "Stock"),
            *check_non_negative_int(min_stock, "Minimum stock"),
        ]
        if product_type not in PRODUCT_TYPES:
            errors.append(f"Invalid product type: {product_type!r}")
        if errors:
            raise ValidationError(errors)

        product_id = self.product_repo.create(
            conn,
            name=clean(name),
            product_type=product_type,
            category=clean(category),
            unit=clean(unit) or "und",
            price=price,
            stock=stock,
            min_stock=min_stock,
        )
        logger.info("Created product %s (%s) with stock %d", product_id, clean(name), stock)
        return self.get_product(conn, product_id)

    def update_product(self, conn: Connection, product_id: int, **changes) -> Product:
        """Apply catalog edits. Stock may rise freely but can only be lowered
        through orders once the product appears on any order line."""
        current = self.get_product(conn, product_id)

        unknown = set(changes) - {"name", "category", "unit", "price", "stock", "min_stock", "active"}
        if unknown:
            raise ValidationError([f"Unknown field: {f}" for f in sorted(unknown)])

        name = changes.get("name", current.name)
        category = changes.get("category", current.category)
        price = changes.get("price", current.price)
        stock = changes.get("stock", current.stock)
        min_stock = changes.get("min_stock", current.min_stock)

        errors = [
            *check_required(name, "Name"),
            *check_required(category, "Category"),
            *check_non_negative_int(price, "Price"),
            *check_non_negative_int(stock, "Stock"),
            *check_non_negative_int(min_stock, "Minimum stock"),
        ]
        if not errors and stock < current.stock and self.product_repo.count_order_items(conn, product_id) > 0:
            errors.append("Stock of a product with orders can only be lowered through orders.")
        if errors:
            raise ValidationError(errors)

        self.product_repo.update(
            conn,
            product_id,
            name=clean(name),
            category=clean(category),
            unit=clean(changes.get("unit", current.unit)) or "und",
            price=price,
            stock=stock,
            min_stock=min_stock,
            active=bool(changes.get("active", current.active)),
        )
        if stock != current.stock:
            logger.info("Product %s stock adjusted %d -> %d", product_id, current.stock, stock)
        return self.get_product(conn, product_id)

    def get_product(self, conn: Connection, product_id: int) -> Product:
        row = self.product_repo.get(conn, product_id)
        if row is None:
            raise NotFoundError("product", product_id)
        return Product.from_row(row)

    def order_line_count(self, conn: Connection, product_id: int) -> int:
        return self.product_repo.count_order_items(conn, product_id)

    def list_products(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        category: str | None = None,
        limit: int = 200,
    ) -> list[Product]:
        rows = self.product_repo.list(conn, search=clean(search), category=clean(category), limit=limit)
        return [Product.from_row(r) for r in rows]

    def delete_product(self, conn: Connection, product_id: int) -> None:
        self.get_product(conn, product_id)
        n = self.product_repo.count_order_items(conn, product_id)
        if n > 0:
            raise ConflictError(f"Cannot delete: this product is in {n} order{'s' if n != 1 else ''}.")
        self.product_repo.delete(conn, product_id)
        logger.info("Deleted product %s", product_id)
