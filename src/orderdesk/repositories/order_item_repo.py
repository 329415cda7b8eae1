from __future__ import annotations

from psycopg import Connection

from ..db import rows_as_dicts


class OrderItemRepository:
    def add(
        self,
        conn: Connection,
        *,
        order_id: int,
        product_id: int,
        quantity: int,
        unit_price: int,
        subtotal: int,
    ) -> int:
        cur = conn.execute(
            """
            INSERT INTO order_item(order_id, product_id, quantity, unit_price, subtotal)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (order_id, product_id, quantity, unit_price, subtotal),
        )
        return int(cur.fetchone()[0])

    def list_for_order(self, conn: Connection, order_id: int) -> list[dict]:
        cur = conn.execute(
            """
            SELECT oi.id, oi.order_id, oi.product_id, p.name AS product_name, p.unit,
                   oi.quantity, oi.unit_price, oi.subtotal
            FROM order_item oi
            LEFT JOIN product p ON p.id = oi.product_id
            WHERE oi.order_id = %s
            ORDER BY oi.id;
            """,
            (order_id,),
        )
        return rows_as_dicts(cur)
