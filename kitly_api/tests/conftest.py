"""
Shared fixtures: an in-memory database and a fake Shopify Admin API.
"""
import json
import os
from typing import Any, Dict, List, Optional

# Keep the app's own engine away from any real database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kitly.clients.shopify import ShopContext, ShopifyAdminClient
from kitly.db import Base
from kitly.models import bundle as _bundle_model  # noqa: F401
from kitly.models import shop as _shop_model  # noqa: F401

SHOP = "test-shop.myshopify.com"
TOKEN = "shpat_test_token"


class FakeShopify:
    """Just enough of the Admin REST API for variants, charges and price rules."""

    def __init__(self):
        self.variants: Dict[str, Dict[str, Any]] = {}
        self.charges: List[Dict[str, Any]] = []
        self.price_rules: Dict[int, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        # (method or "*", resource) -> status code or "timeout"
        self.failures: Dict[tuple, Any] = {}
        self.page_size: Optional[int] = None
        self._next_id = 1000

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_variant(self, variant_id, inventory_quantity: int = 10, available: bool = True, price: str = "10.00"):
        self.variants[str(variant_id)] = {
            "id": variant_id,
            "available": available,
            "inventory_quantity": inventory_quantity,
            "price": price,
        }

    def add_charge(self, status: str, name: str = "Starter Bundle Plan", price: str = "5.00") -> Dict[str, Any]:
        charge_id = self._new_id()
        charge = {
            "id": charge_id,
            "name": name,
            "price": price,
            "status": status,
            "confirmation_url": f"https://{SHOP}/admin/charges/{charge_id}/confirm",
            "billing_on": "2026-11-01",
            "trial_ends_on": None,
        }
        self.charges.append(charge)
        return charge

    def add_price_rule(self, title: str, value: str = "-10.0", value_type: str = "percentage") -> Dict[str, Any]:
        rule_id = self._new_id()
        rule = {
            "id": rule_id,
            "title": title,
            "value_type": value_type,
            "value": value,
            "target_type": "line_item",
            "target_selection": "all",
            "allocation_method": "across",
            "customer_selection": "all",
        }
        self.price_rules[rule_id] = rule
        return rule

    def fail(self, method: str, resource: str, outcome: Any = 500):
        self.failures[(method, resource)] = outcome

    def count(self, method: str, resource: str) -> int:
        return sum(1 for m, r in self.calls if m == method and r.split("/")[0] == resource)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/admin/api/", 1)[1].split("/", 1)[1]
        resource = path[: -len(".json")] if path.endswith(".json") else path
        parts = resource.split("/")
        method = request.method
        self.calls.append((method, resource))

        outcome = self.failures.get((method, parts[0]), self.failures.get(("*", parts[0])))
        if outcome == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if outcome == "garbled":
            return httpx.Response(200, text="<html>maintenance</html>")
        if outcome:
            return httpx.Response(outcome, json={"errors": "Internal error"})

        body = json.loads(request.content) if request.content else {}

        if parts[0] == "variants":
            variant = self.variants.get(parts[1])
            if variant is None:
                return httpx.Response(404, json={"errors": "Not Found"})
            return httpx.Response(200, json={"variant": variant})

        if parts[0] == "recurring_application_charges":
            if method == "GET":
                return httpx.Response(200, json={"recurring_application_charges": self.charges})
            spec = body["recurring_application_charge"]
            charge = self.add_charge("pending", name=spec["name"], price=spec["price"])
            charge.update({"test": spec.get("test"), "return_url": spec.get("return_url")})
            return httpx.Response(201, json={"recurring_application_charge": charge})

        if parts[0] == "price_rules":
            if len(parts) == 1:
                if method == "GET":
                    return self._list_price_rules(request)
                rule = dict(body["price_rule"], id=self._new_id())
                self.price_rules[rule["id"]] = rule
                return httpx.Response(201, json={"price_rule": rule})

            rule = self.price_rules.get(int(parts[1]))
            if rule is None:
                return httpx.Response(404, json={"errors": "Not Found"})
            if method == "GET":
                return httpx.Response(200, json={"price_rule": rule})
            if method == "PUT":
                rule.update({k: v for k, v in body["price_rule"].items() if k != "id"})
                return httpx.Response(200, json={"price_rule": rule})
            if method == "DELETE":
                del self.price_rules[rule["id"]]
                return httpx.Response(200, json={})

        return httpx.Response(404, json={"errors": "Not Found"})

    def _list_price_rules(self, request: httpx.Request) -> httpx.Response:
        rules = list(self.price_rules.values())
        if not self.page_size:
            return httpx.Response(200, json={"price_rules": rules})

        page = int(request.url.params.get("page_info", "0"))
        start = page * self.page_size
        chunk = rules[start:start + self.page_size]
        headers = {}
        if start + self.page_size < len(rules):
            next_url = f"https://{SHOP}/admin/api/2024-10/price_rules.json?limit={self.page_size}&page_info={page + 1}"
            headers["Link"] = f'<{next_url}>; rel="next"'
        return httpx.Response(200, json={"price_rules": chunk}, headers=headers)


@pytest.fixture
def fake_shopify() -> FakeShopify:
    return FakeShopify()


@pytest.fixture
def shop_context() -> ShopContext:
    return ShopContext(shop=SHOP, access_token=TOKEN)


@pytest_asyncio.fixture
async def admin_client(fake_shopify, shop_context):
    client = ShopifyAdminClient(shop_context, transport=httpx.MockTransport(fake_shopify.handler))
    yield client
    await client.aclose()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    yield session
    session.close()
    engine.dispose()
