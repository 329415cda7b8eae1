"""In-memory stand-ins for the psycopg repositories and Db.

The fake repositories keep the same method signatures and return the
same row keys as the SQL versions. ``FakeDb.transaction()`` snapshots the
store and restores it when the block raises, like a ROLLBACK.
"""

import copy
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone


class Clock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class Store:
    def __init__(self):
        self.customers = {}
        self.products = {}
        self.orders = {}
        self.items = {}
        self.sequences = {}
        self._ids = {"customer": 0, "product": 0, "order": 0, "item": 0}

    def next_id(self, kind):
        self._ids[kind] += 1
        return self._ids[kind]

    def snapshot(self):
        return copy.deepcopy(self.__dict__)

    def restore(self, state):
        self.__dict__.clear()
        self.__dict__.update(state)


class FakeDb:
    def __init__(self, store):
        self.store = store
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def session(self):
        yield None

    @contextmanager
    def transaction(self):
        state = self.store.snapshot()
        try:
            yield None
            self.commits += 1
        except Exception:
            self.store.restore(state)
            self.rollbacks += 1
            raise

    def init_schema(self):
        pass


class FakeCustomerRepository:
    def __init__(self, store):
        self.store = store

    def create(self, conn, *, national_id, name, email, phone, address, city):
        cid = self.store.next_id("customer")
        self.store.customers[cid] = {
            "id": cid,
            "national_id": national_id,
            "name": name,
            "email": email,
            "phone": phone,
            "address": address,
            "city": city,
            "active": True,
            "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        }
        return cid

    def get(self, conn, customer_id):
        row = self.store.customers.get(customer_id)
        return dict(row) if row else None

    def get_by_national_id(self, conn, national_id):
        for row in self.store.customers.values():
            if row["national_id"] == national_id:
                return dict(row)
        return None

    def list(self, conn, *, search=None, limit=100):
        rows = [r for r in self.store.customers.values() if r["active"]]
        if search:
            s = search.lower()
            rows = [r for r in rows if s in r["name"].lower() or search in r["national_id"]]
        return [dict(r) for r in sorted(rows, key=lambda r: r["name"])][:limit]

    def update(self, conn, customer_id, *, name, email, phone, address, city):
        self.store.customers[customer_id].update(
            name=name, email=email, phone=phone, address=address, city=city
        )

    def set_active(self, conn, customer_id, *, active):
        self.store.customers[customer_id]["active"] = active

    def count_orders(self, conn, customer_id):
        return sum(1 for o in self.store.orders.values() if o["customer_id"] == customer_id)


class FakeProductRepository:
    def __init__(self, store):
        self.store = store

    def create(self, conn, *, name, product_type, category, unit, price, stock, min_stock):
        pid = self.store.next_id("product")
        self.store.products[pid] = {
            "id": pid,
            "name": name,
            "product_type": product_type,
            "category": category,
            "unit": unit,
            "price": price,
            "stock": stock,
            "min_stock": min_stock,
            "active": True,
            "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        }
        return pid

    def get(self, conn, product_id):
        row = self.store.products.get(product_id)
        return dict(row) if row else None

    def get_many(self, conn, product_ids):
        return [dict(self.store.products[i]) for i in sorted(set(product_ids)) if i in self.store.products]

    def lock_many(self, conn, product_ids):
        return self.get_many(conn, product_ids)

    def list(self, conn, *, search=None, category=None, limit=200):
        rows = [r for r in self.store.products.values() if r["active"]]
        if search:
            rows = [r for r in rows if search.lower() in r["name"].lower()]
        if category:
            rows = [r for r in rows if r["category"] == category]
        return [dict(r) for r in sorted(rows, key=lambda r: r["name"])][:limit]

    def update(self, conn, product_id, *, name, category, unit, price, stock, min_stock, active):
        self.store.products[product_id].update(
            name=name, category=category, unit=unit, price=price, stock=stock, min_stock=min_stock, active=active
        )

    def decrease_stock(self, conn, *, product_id, qty):
        row = self.store.products.get(product_id)
        if row is None or row["stock"] < qty:
            return False
        row["stock"] -= qty
        return True

    def increase_stock(self, conn, *, product_id, qty):
        row = self.store.products.get(product_id)
        if row is None:
            return False
        row["stock"] += qty
        return True

    def count_order_items(self, conn, product_id):
        return sum(1 for i in self.store.items.values() if i["product_id"] == product_id)

    def delete(self, conn, product_id):
        del self.store.products[product_id]


class FakeOrderRepository:
    def __init__(self, store):
        self.store = store

    def next_sequence(self, conn, year):
        if year not in self.store.sequences:
            prefix = f"ORD-{year}-"
            existing = [
                int(o["order_number"].split("-")[2])
                for o in self.store.orders.values()
                if o["order_number"].startswith(prefix)
            ]
            self.store.sequences[year] = max(existing, default=0) + 1
        else:
            self.store.sequences[year] += 1
        return self.store.sequences[year]

    def create(
        self, conn, *, order_number, customer_id, order_date, order_type, subtotal, tax, total, payment_method, notes
    ):
        if any(o["order_number"] == order_number for o in self.store.orders.values()):
            raise AssertionError(f"duplicate order number {order_number}")
        oid = self.store.next_id("order")
        self.store.orders[oid] = {
            "id": oid,
            "order_number": order_number,
            "customer_id": customer_id,
            "order_date": order_date,
            "order_type": order_type,
            "subtotal": subtotal,
            "tax": tax,
            "total": total,
            "payment_method": payment_method,
            "payment_status": "pending",
            "payment_date": None,
            "shipping_status": "preparing",
            "shipping_date": None,
            "delivery_date": None,
            "invoice_number": None,
            "notes": notes,
            "created_at": order_date,
            "updated_at": order_date,
        }
        return oid

    def _joined(self, row):
        out = dict(row)
        out["customer_name"] = self.store.customers[row["customer_id"]]["name"]
        return out

    def get(self, conn, order_id, *, for_update=False):
        row = self.store.orders.get(order_id)
        return self._joined(row) if row else None

    def update_status(self, conn, order_id, *, payment_status, payment_date, shipping_status, shipping_date, delivery_date):
        self.store.orders[order_id].update(
            payment_status=payment_status,
            payment_date=payment_date,
            shipping_status=shipping_status,
            shipping_date=shipping_date,
            delivery_date=delivery_date,
        )

    def set_invoice_number(self, conn, order_id, invoice_number):
        self.store.orders[order_id]["invoice_number"] = invoice_number

    def delete(self, conn, order_id):
        del self.store.orders[order_id]
        for item_id in [i for i, it in self.store.items.items() if it["order_id"] == order_id]:
            del self.store.items[item_id]

    def list(self, conn, *, search=None, payment_status=None, shipping_status=None, since=None, limit=200):
        rows = [self._joined(o) for o in self.store.orders.values()]
        if search:
            s = search.lower()
            rows = [r for r in rows if s in r["order_number"].lower() or s in r["customer_name"].lower()]
        if payment_status:
            rows = [r for r in rows if r["payment_status"] == payment_status]
        if shipping_status:
            rows = [r for r in rows if r["shipping_status"] == shipping_status]
        if since:
            rows = [r for r in rows if r["order_date"] >= since]
        rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
        return rows[:limit]

    def list_for_customer(self, conn, customer_id, limit=10):
        rows = [self._joined(o) for o in self.store.orders.values() if o["customer_id"] == customer_id]
        rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
        return rows[:limit]


class FakeOrderItemRepository:
    def __init__(self, store):
        self.store = store

    def add(self, conn, *, order_id, product_id, quantity, unit_price, subtotal):
        iid = self.store.next_id("item")
        self.store.items[iid] = {
            "id": iid,
            "order_id": order_id,
            "product_id": product_id,
            "quantity": quantity,
            "unit_price": unit_price,
            "subtotal": subtotal,
        }
        return iid

    def list_for_order(self, conn, order_id):
        out = []
        for item in sorted(self.store.items.values(), key=lambda i: i["id"]):
            if item["order_id"] != order_id:
                continue
            product = self.store.products.get(item["product_id"])
            row = dict(item)
            row["product_name"] = product["name"] if product else None
            row["unit"] = product["unit"] if product else None
            out.append(row)
        return out


def stock_of(store, product):
    return store.products[product.id]["stock"]
