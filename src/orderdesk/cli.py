from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from .config import BusinessConfig
from .db import Db, DbError
from .errors import ConflictError, DataIntegrityError, InsufficientStockError, NotFoundError, ValidationError
from .exporters import export_filename, orders_to_xlsx
from .pricing import format_money
from .reports import dashboard_stats, low_stock_products, orders_for_export
from .services.order_service import CreateOrderItemInput
from .wiring import Services

logger = logging.getLogger(__name__)


def _prompt(msg: str) -> str:
    return input(msg).strip()


def _prompt_int(msg: str, default: int | None = None) -> int:
    raw = _prompt(msg)
    if not raw and default is not None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Expected a whole number, got {raw!r}") from None


def run_cli(db: Db, services: Services, business: BusinessConfig) -> None:
    def money(amount: int) -> str:
        return format_money(amount, business.currency)

    while True:
        print(f"\n=== {business.company_name} CLI ===")
        print("1) List customers")
        print("2) List products (stock)")
        print("3) Create order")
        print("4) Update order status")
        print("5) Set invoice number")
        print("6) Delete order")
        print("7) List orders")
        print("8) Dashboard + low stock")
        print("9) Export orders to Excel")
        print("10) Initialise database schema")
        print("0) Exit")

        choice = _prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                search = _prompt("search (optional): ") or None
                with db.session() as conn:
                    customers = services.customers.list_customers(conn, search=search)
                for c in customers:
                    print(f"#{c.id} {c.national_id} {c.name} phone={c.phone} email={c.email}")

            elif choice == "2":
                with db.session() as conn:
                    products = services.products.list_products(conn)
                for p in products:
                    print(
                        f"#{p.id} {p.name} [{p.category}] price={money(p.price)} "
                        f"stock={p.stock}/{p.min_stock} {p.stock_status}"
                    )

            elif choice == "3":
                customer_id = _prompt_int("customer_id: ")
                method = _prompt("payment method (cash/nequi/bank/link): ") or "cash"
                order_type = _prompt("order type (standard/promomix) [standard]: ") or "standard"
                notes = _prompt("notes (optional): ") or None

                items: list[CreateOrderItemInput] = []
                with db.session() as conn:
                    while True:
                        add = _prompt("Add product? (y/n): ").lower()
                        if add != "y":
                            break
                        product = services.products.get_product(conn, _prompt_int("  product_id: "))
                        qty = _prompt_int(f"  quantity (stock {product.stock}): ")
                        price = _prompt_int(
                            f"  unit price (default {product.price}): ", default=product.price
                        )
                        items.append(CreateOrderItemInput(product_id=product.id, quantity=qty, unit_price=price))

                with db.transaction() as conn:
                    detail = services.orders.create_order(
                        conn,
                        customer_id=customer_id,
                        items=items,
                        payment_method=method,
                        notes=notes,
                        order_type=order_type,
                    )
                o = detail.order
                print(
                    f"Created {o.order_number}: subtotal={money(o.subtotal)} "
                    f"tax={money(o.tax)} total={money(o.total)}"
                )

            elif choice == "4":
                order_id = _prompt_int("order_id: ")
                payment = _prompt("payment status (pending/partial/paid, blank to keep): ") or None
                shipping = _prompt("shipping status (preparing/shipped/delivered, blank to keep): ") or None

                # status write and stock mutation share one transaction
                with db.transaction() as conn:
                    result = services.orders.update_status(
                        conn,
                        order_id=order_id,
                        payment_status=payment,
                        shipping_status=shipping,
                    )
                o = result.order.order
                print(f"{result.message} {o.order_number}: payment={o.payment_status} shipping={o.shipping_status}")

            elif choice == "5":
                order_id = _prompt_int("order_id: ")
                invoice = _prompt("invoice number (blank to clear): ") or None
                with db.transaction() as conn:
                    detail = services.orders.set_invoice_number(conn, order_id=order_id, invoice_number=invoice)
                print(f"{detail.order.order_number} invoice={detail.order.invoice_number}")

            elif choice == "6":
                order_id = _prompt_int("order_id: ")
                if _prompt(f"Delete order {order_id}? (yes/no): ").lower() != "yes":
                    print("Cancelled.")
                    continue
                with db.transaction() as conn:
                    print(services.orders.delete_order(conn, order_id=order_id))

            elif choice == "7":
                search = _prompt("search (optional): ") or None
                with db.session() as conn:
                    rows = services.orders.list_orders(conn, search=search)
                for r in rows:
                    print(
                        f'{r["order_number"]} {r["customer_name"]} total={money(r["total"])} '
                        f'payment={r["payment_status"]} shipping={r["shipping_status"]}'
                    )

            elif choice == "8":
                with db.session() as conn:
                    stats = dashboard_stats(conn, services.orders.clock().date())
                    low = low_stock_products(conn, limit=business.low_stock_limit)
                print(
                    f'customers={stats["customers"]} products={stats["products"]} orders={stats["orders"]} '
                    f'today={stats["orders_today"]} revenue today={money(stats["revenue_today"])}'
                )
                print("Low stock:")
                for p in low:
                    print(f'  #{p["id"]} {p["name"]} stock={p["stock"]} min={p["min_stock"]}')

            elif choice == "9":
                raw_from = _prompt("from (YYYY-MM-DD, optional): ")
                raw_to = _prompt("to (YYYY-MM-DD, optional): ")
                try:
                    d1 = date.fromisoformat(raw_from) if raw_from else None
                    d2 = date.fromisoformat(raw_to) if raw_to else None
                except ValueError as e:
                    raise ValidationError(f"Invalid date: {e}") from None
                with db.session() as conn:
                    rows = orders_for_export(conn, d1, d2)
                path = Path(export_filename(d1, d2))
                path.write_bytes(orders_to_xlsx(rows))
                print(f"Exported {len(rows)} orders to {path}")

            elif choice == "10":
                db.init_schema()
                print("Schema ready.")

            else:
                print("Unknown choice.")

        except ValidationError as e:
            print(f"[INPUT ERROR] {e}")
        except NotFoundError as e:
            print(f"[NOT FOUND] {e}")
        except InsufficientStockError as e:
            print(f"[STOCK ERROR] {e}")
        except ConflictError as e:
            print(f"[CONFLICT] {e}")
        except DataIntegrityError as e:
            logger.error("Data integrity failure: %s", e)
            print("[ERROR] The order data is inconsistent; see the log.")
        except DbError as e:
            print(f"[DB ERROR] {e}")
        except ValueError as e:
            print(f"[VALUE ERROR] {e}")
        except Exception as e:
            logger.exception("Unexpected error in CLI action %s", choice)
            print(f"[ERROR] {type(e).__name__}: {e}")
