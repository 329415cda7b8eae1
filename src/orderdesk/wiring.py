from __future__ import annotations

from dataclasses import dataclass

from .config import BusinessConfig
from .repositories.customer_repo import CustomerRepository
from .repositories.order_item_repo import OrderItemRepository
from .repositories.order_repo import OrderRepository
from .repositories.product_repo import ProductRepository
from .services.customer_service import CustomerService
from .services.order_service import OrderService
from .services.product_service import ProductService


@dataclass(frozen=True)
class Services:
    customers: CustomerService
    products: ProductService
    orders: OrderService


def build_services(
    business: BusinessConfig,
    *,
    customer_repo=None,
    product_repo=None,
    order_repo=None,
    order_item_repo=None,
    **order_service_kwargs,
) -> Services:
    customer_repo = customer_repo or CustomerRepository()
    product_repo = product_repo or ProductRepository()
    order_repo = order_repo or OrderRepository()
    order_item_repo = order_item_repo or OrderItemRepository()

    return Services(
        customers=CustomerService(customer_repo=customer_repo, order_repo=order_repo),
        products=ProductService(product_repo=product_repo, default_min_stock=business.default_min_stock),
        orders=OrderService(
            customer_repo=customer_repo,
            product_repo=product_repo,
            order_repo=order_repo,
            order_item_repo=order_item_repo,
            **order_service_kwargs,
        ),
    )
