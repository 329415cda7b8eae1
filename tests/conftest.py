"""Pytest fixtures for orderdesk tests."""

import pytest

from fakes import (
    Clock,
    FakeCustomerRepository,
    FakeDb,
    FakeOrderItemRepository,
    FakeOrderRepository,
    FakeProductRepository,
    Store,
)
from orderdesk.config import BusinessConfig
from orderdesk.wiring import build_services


@pytest.fixture
def store():
    return Store()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def db(store):
    return FakeDb(store)


@pytest.fixture
def services(store, clock):
    return build_services(
        BusinessConfig(),
        customer_repo=FakeCustomerRepository(store),
        product_repo=FakeProductRepository(store),
        order_repo=FakeOrderRepository(store),
        order_item_repo=FakeOrderItemRepository(store),
        clock=clock,
    )


@pytest.fixture
def customer(services):
    return services.customers.create_customer(
        None,
        national_id="1234567890",
        name="Maria Perez",
        email="Maria@Example.com",
        phone="3001234567",
        city="Bogota",
    )


@pytest.fixture
def product_x(services):
    return services.products.create_product(None, name="Shampoo X", category="Hair", price=10_000, stock=5)


@pytest.fixture
def product_y(services):
    return services.products.create_product(None, name="Cleaner Y", category="Home", price=20_000, stock=3)
