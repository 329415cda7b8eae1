from __future__ import annotations

from typing import Iterable

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts

_COLUMNS = "id, name, product_type, category, unit, price, stock, min_stock, active, created_at"


class ProductRepository:
    def create(
        self,
        conn: Connection,
        *,
        name: str,
        product_type: str,
        category: str,
        unit: str,
        price: int,
        stock: int,
        min_stock: int,
    ) -> int:
        cur = conn.execute(
            """
            INSERT INTO product(name, product_type, category, unit, price, stock, min_stock)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (name, product_type, category, unit, price, stock, min_stock),
        )
        return int(cur.fetchone()[0])

    def get(self, conn: Connection, product_id: int) -> dict | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM product WHERE id = %s;", (product_id,))
        return row_as_dict(cur)

    def get_many(self, conn: Connection, product_ids: Iterable[int]) -> list[dict]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM product WHERE id = ANY(%s) ORDER BY id;",
            (sorted(set(product_ids)),),
        )
        return rows_as_dicts(cur)

    def lock_many(self, conn: Connection, product_ids: Iterable[int]) -> list[dict]:
        # ascending id order so concurrent transactions take locks in the same order
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM product WHERE id = ANY(%s) ORDER BY id FOR UPDATE;",
            (sorted(set(product_ids)),),
        )
        return rows_as_dicts(cur)

    def list(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        category: str | None = None,
        limit: int = 200,
    ) -> list[dict]:
        cur = conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM product
            WHERE active
              AND (%(pattern)s::text IS NULL OR name ILIKE %(pattern)s)
              AND (%(category)s::text IS NULL OR category = %(category)s)
            ORDER BY name
            LIMIT %(limit)s;
            """,
            {"pattern": f"%{search}%" if search else None, "category": category, "limit": limit},
        )
        return rows_as_dicts(cur)

    def update(
        self,
        conn: Connection,
        product_id: int,
        *,
        name: str,
        category: str,
        unit: str,
        price: int,
        stock: int,
        min_stock: int,
        active: bool,
    ) -> None:
        conn.execute(
            """
            UPDATE product
            SET name = %s, category = %s, unit = %s, price = %s, stock = %s,
                min_stock = %s, active = %s, updated_at = now()
            WHERE id = %s;
            """,
            (name, category, unit, price, stock, min_stock, active, product_id),
        )

    def decrease_stock(self, conn: Connection, *, product_id: int, qty: int) -> bool:
        cur = conn.execute(
            """
            UPDATE product
            SET stock = stock - %s, updated_at = now()
            WHERE id = %s AND stock >= %s;
            """,
            (qty, product_id, qty),
        )
        return cur.rowcount == 1

    def increase_stock(self, conn: Connection, *, product_id: int, qty: int) -> bool:
        cur = conn.execute(
            "UPDATE product SET stock = stock + %s, updated_at = now() WHERE id = %s;",
            (qty, product_id),
        )
        return cur.rowcount == 1

    def count_order_items(self, conn: Connection, product_id: int) -> int:
        cur = conn.execute("SELECT COUNT(*) FROM order_item WHERE product_id = %s;", (product_id,))
        return int(cur.fetchone()[0])

    def delete(self, conn: Connection, product_id: int) -> None:
        conn.execute("DELETE FROM product WHERE id = %s;", (product_id,))
