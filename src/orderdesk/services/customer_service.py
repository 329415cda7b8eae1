from __future__ import annotations

import logging

from psycopg import Connection

from ..domain import Customer
from ..errors import ConflictError, NotFoundError, ValidationError
from ..repositories.customer_repo import CustomerRepository
from ..repositories.order_repo import OrderRepository
from ..validators import check_email, check_national_id, check_required, clean

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, *, customer_repo: CustomerRepository, order_repo: OrderRepository) -> None:
        self.customer_repo = customer_repo
        self.order_repo = order_repo

    def create_customer(
        self,
        conn: Connection,
        *,
        national_id: str,
        name: str,
        email: str | None,
        phone: str,
        address: str | None = None,
        city: str | None = None,
    ) -> Customer:
        errors = [
            *check_national_id(national_id),
            *check_required(name, "Name"),
            *check_email(email),
            *check_required(phone, "Phone"),
        ]
        if errors:
            raise ValidationError(errors)

        national_id = clean(national_id)
        if self.customer_repo.get_by_national_id(conn, national_id) is not None:
            raise ConflictError(f"A customer with national ID {national_id} already exists.")

        customer_id = self.customer_repo.create(
            conn,
            national_id=national_id,
            name=clean(name).upper(),
            email=(clean(email).lower() if clean(email) else None),
            phone=clean(phone),
            address=clean(address),
            city=clean(city),
        )
        logger.info("Created customer %s (national ID %s)", customer_id, national_id)
        return self.get_customer(conn, customer_id)

    def update_customer(
        self,
        conn: Connection,
        customer_id: int,
        *,
        name: str,
        email: str | None,
        phone: str,
        address: str | None = None,
        city: str | None = None,
        national_id: str | None = None,
    ) -> Customer:
        current = self.get_customer(conn, customer_id)

        errors = [*check_required(name, "Name"), *check_email(email), *check_required(phone, "Phone")]
        if national_id is not None and clean(national_id) != current.national_id:
            errors.append("National ID cannot be changed.")
        if errors:
            raise ValidationError(errors)

        self.customer_repo.update(
            conn,
            customer_id,
            name=clean(name).upper(),
            email=(clean(email).lower() if clean(email) else None),
            phone=clean(phone),
            address=clean(address),
            city=clean(city),
        )
        return self.get_customer(conn, customer_id)

    def get_customer(self, conn: Connection, customer_id: int) -> Customer:
        row = self.customer_repo.get(conn, customer_id)
        if row is None:
            raise NotFoundError("customer", customer_id)
        return Customer.from_row(row)

    def recent_orders(self, conn: Connection, customer_id: int, limit: int = 10) -> list[dict]:
        return self.order_repo.list_for_customer(conn, customer_id, limit=limit)

    def list_customers(self, conn: Connection, *, search: str | None = None, limit: int = 100) -> list[Customer]:
        rows = self.customer_repo.list(conn, search=clean(search), limit=limit)
        return [Customer.from_row(r) for r in rows]

    def deactivate_customer(self, conn: Connection, customer_id: int) -> None:
        self.get_customer(conn, customer_id)
        n = self.customer_repo.count_orders(conn, customer_id)
        if n > 0:
            raise ConflictError(f"Cannot delete: this customer has {n} order{'s' if n != 1 else ''}.")
        self.customer_repo.set_active(conn, customer_id, active=False)
        logger.info("Deactivated customer %s", customer_id)
