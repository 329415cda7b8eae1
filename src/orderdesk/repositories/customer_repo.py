from __future__ import annotations

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts

_COLUMNS = "id, national_id, name, email, phone, address, city, active, created_at"


class CustomerRepository:
    def create(
        self,
        conn: Connection,
        *,
        national_id: str,
        name: str,
        email: str | None,
        phone: str,
        address: str | None,
        city: str | None,
    ) -> int:
        cur = conn.execute(
            """
            INSERT INTO customer(national_id, name, email, phone, address, city)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (national_id, name, email, phone, address, city),
        )
        return int(cur.fetchone()[0])

    def get(self, conn: Connection, customer_id: int) -> dict | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM customer WHERE id = %s;", (customer_id,))
        return row_as_dict(cur)

    def get_by_national_id(self, conn: Connection, national_id: str) -> dict | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM customer WHERE national_id = %s;", (national_id,))
        return row_as_dict(cur)

    def list(self, conn: Connection, *, search: str | None = None, limit: int = 100) -> list[dict]:
        pattern = f"%{search}%" if search else None
        cur = conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM customer
            WHERE active
              AND (%(pattern)s::text IS NULL OR name ILIKE %(pattern)s OR national_id LIKE %(pattern)s)
            ORDER BY name
            LIMIT %(limit)s;
            """,
            {"pattern": pattern, "limit": limit},
        )
        return rows_as_dicts(cur)

    def update(
        self,
        conn: Connection,
        customer_id: int,
        *,
        name: str,
        email: str | None,
        phone: str,
        address: str | None,
        city: str | None,
    ) -> None:
        conn.execute(
            """
            UPDATE customer
            SET name = %s, email = %s, phone = %s, address = %s, city = %s, updated_at = now()
            WHERE id = %s;
            """,
            (name, email, phone, address, city, customer_id),
        )

    def set_active(self, conn: Connection, customer_id: int, *, active: bool) -> None:
        conn.execute(
            "UPDATE customer SET active = %s, updated_at = now() WHERE id = %s;",
            (active, customer_id),
        )

    def count_orders(self, conn: Connection, customer_id: int) -> int:
        cur = conn.execute("SELECT COUNT(*) FROM orders WHERE customer_id = %s;", (customer_id,))
        return int(cur.fetchone()[0])
