from __future__ import annotations

from datetime import datetime

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts

_COLUMNS = """
    o.id, o.order_number, o.customer_id, c.name AS customer_name, o.order_date, o.order_type,
    o.subtotal, o.tax, o.total, o.payment_method, o.payment_status, o.payment_date,
    o.shipping_status, o.shipping_date, o.delivery_date, o.invoice_number, o.notes,
    o.created_at, o.updated_at
"""


class OrderRepository:
    def next_sequence(self, conn: Connection, year: int) -> int:
        # The first order of a year seeds the counter from any ORD-{year}-NNNN rows already present.
        cur = conn.execute(
            """
            INSERT INTO order_sequence(year, last_value)
            SELECT %(year)s, COALESCE(MAX(split_part(order_number, '-', 3)::int), 0) + 1
            FROM orders
            WHERE order_number LIKE %(prefix)s
            ON CONFLICT (year) DO UPDATE SET last_value = order_sequence.last_value + 1
            RETURNING last_value;
            """,
            {"year": year, "prefix": f"ORD-{year}-%"},
        )
        return int(cur.fetchone()[0])

    def create(
        self,
        conn: Connection,
        *,
        order_number: str,
        customer_id: int,
        order_date: datetime,
        order_type: str,
        subtotal: int,
        tax: int,
        total: int,
        payment_method: str,
        notes: str | None,
    ) -> int:
        cur = conn.execute(
            """
            INSERT INTO orders(order_number, customer_id, order_date, order_type, subtotal, tax, total,
                               payment_method, payment_status, shipping_status, notes)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'pending', 'preparing', %s)
            RETURNING id;
            """,
            (order_number, customer_id, order_date, order_type, subtotal, tax, total, payment_method, notes),
        )
        return int(cur.fetchone()[0])

    def get(self, conn: Connection, order_id: int, *, for_update: bool = False) -> dict | None:
        lock = " FOR UPDATE OF o" if for_update else ""
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM orders o JOIN customer c ON c.id = o.customer_id WHERE o.id = %s{lock};",
            (order_id,),
        )
        return row_as_dict(cur)

    def update_status(
        self,
        conn: Connection,
        order_id: int,
        *,
        payment_status: str,
        payment_date: datetime | None,
        shipping_status: str,
        shipping_date: datetime | None,
        delivery_date: datetime | None,
    ) -> None:
        conn.execute(
            """
            UPDATE orders
            SET payment_status = %s, payment_date = %s,
                shipping_status = %s, shipping_date = %s, delivery_date = %s,
                updated_at = now()
            WHERE id = %s;
            """,
            (payment_status, payment_date, shipping_status, shipping_date, delivery_date, order_id),
        )

    def set_invoice_number(self, conn: Connection, order_id: int, invoice_number: str | None) -> None:
        conn.execute(
            "UPDATE orders SET invoice_number = %s, updated_at = now() WHERE id = %s;",
            (invoice_number, order_id),
        )

    def delete(self, conn: Connection, order_id: int) -> None:
        conn.execute("DELETE FROM orders WHERE id = %s;", (order_id,))

    def list(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        payment_status: str | None = None,
        shipping_status: str | None = None,
        since: datetime | None = None,
        limit: int = 200,
    ) -> list[dict]:
        cur = conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM orders o
            JOIN customer c ON c.id = o.customer_id
            WHERE (%(pattern)s::text IS NULL OR o.order_number ILIKE %(pattern)s OR c.name ILIKE %(pattern)s)
              AND (%(payment_status)s::text IS NULL OR o.payment_status = %(payment_status)s)
              AND (%(shipping_status)s::text IS NULL OR o.shipping_status = %(shipping_status)s)
              AND (%(since)s::timestamptz IS NULL OR o.order_date >= %(since)s)
            ORDER BY o.created_at DESC, o.id DESC
            LIMIT %(limit)s;
            """,
            {
                "pattern": f"%{search}%" if search else None,
                "payment_status": payment_status,
                "shipping_status": shipping_status,
                "since": since,
                "limit": limit,
            },
        )
        return rows_as_dicts(cur)

    def list_for_customer(self, conn: Connection, customer_id: int, limit: int = 10) -> list[dict]:
        cur = conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM orders o
            JOIN customer c ON c.id = o.customer_id
            WHERE o.customer_id = %s
            ORDER BY o.created_at DESC, o.id DESC
            LIMIT %s;
            """,
            (customer_id, limit),
        )
        return rows_as_dicts(cur)
