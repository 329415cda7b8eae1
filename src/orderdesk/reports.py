from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from psycopg import Connection

from .db import row_as_dict, rows_as_dicts


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC start and end of ``day``; order dates are stored in UTC."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def dashboard_stats(conn: Connection, today: date) -> dict:
    start, end = day_bounds(today)
    cur = conn.execute(
        """
        SELECT
          (SELECT COUNT(*) FROM customer WHERE active) AS customers,
          (SELECT COUNT(*) FROM product WHERE active) AS products,
          (SELECT COUNT(*) FROM orders) AS orders,
          (SELECT COUNT(*) FROM orders WHERE order_date >= %(start)s AND order_date < %(end)s) AS orders_today,
          (SELECT COALESCE(SUM(total), 0) FROM orders
            WHERE order_date >= %(start)s AND order_date < %(end)s) AS revenue_today,
          (SELECT COUNT(*) FROM product WHERE active AND stock < min_stock) AS low_stock;
        """,
        {"start": start, "end": end},
    )
    row = row_as_dict(cur)
    return {k: int(v) for k, v in row.items()}


def low_stock_products(conn: Connection, limit: int = 50) -> list[dict]:
    cur = conn.execute(
        """
        SELECT id, name, category, stock, min_stock
        FROM product
        WHERE active AND stock < min_stock
        ORDER BY stock ASC, name
        LIMIT %s;
        """,
        (limit,),
    )
    return rows_as_dicts(cur)


def top_products(conn: Connection, limit: int = 10) -> list[dict]:
    cur = conn.execute(
        """
        SELECT
          p.id,
          p.name,
          SUM(oi.quantity) AS total_qty,
          SUM(oi.subtotal) AS total_value
        FROM order_item oi
        JOIN product p ON p.id = oi.product_id
        JOIN orders o ON o.id = oi.order_id
        WHERE o.payment_status = 'paid'
        GROUP BY p.id, p.name
        ORDER BY total_qty DESC
        LIMIT %s;
        """,
        (limit,),
    )
    return rows_as_dicts(cur)


def orders_for_export(conn: Connection, date_from: date | None = None, date_to: date | None = None) -> list[dict]:
    # date_to is inclusive: the whole day is exported
    start = day_bounds(date_from)[0] if date_from else None
    end = day_bounds(date_to)[1] if date_to else None
    cur = conn.execute(
        """
        SELECT
          o.order_number, o.order_date, c.name AS customer_name, c.national_id AS customer_national_id,
          c.phone AS customer_phone,
          string_agg(oi.quantity || 'x ' || p.name, ', ' ORDER BY oi.id) AS products,
          o.subtotal, o.tax, o.total, o.payment_method, o.payment_status, o.shipping_status,
          o.invoice_number, o.notes
        FROM orders o
        JOIN customer c ON c.id = o.customer_id
        LEFT JOIN order_item oi ON oi.order_id = o.id
        LEFT JOIN product p ON p.id = oi.product_id
        WHERE (%(start)s::timestamptz IS NULL OR o.order_date >= %(start)s)
          AND (%(end)s::timestamptz IS NULL OR o.order_date < %(end)s)
        GROUP BY o.id, c.id
        ORDER BY o.order_date DESC;
        """,
        {"start": start, "end": end},
    )
    return rows_as_dicts(cur)
