"""
Shopify Admin REST client.

Covers the three collaborators the bundle service talks to: the catalog
(variants), billing (recurring application charges) and discounts (price
rules). Every instance is bound to one ShopContext; nothing is shared between
shops or requests.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Collection, Dict, List, Optional, TypeVar

import httpx

from ..config import settings
from ..errors import CollaboratorTimeoutError, PlatformSyncError
from ..utils.dates import parse_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ShopContext:
    """Shop identity and credentials for one request."""
    shop: str
    access_token: str


@dataclass
class Variant:
    id: str
    available: bool
    inventory_quantity: int
    price: Decimal

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Variant":
        inventory_quantity = int(data.get("inventory_quantity") or 0)
        if "available" in data:
            available = bool(data["available"])
        else:
            # Untracked or oversellable variants can always be bought
            available = (
                data.get("inventory_management") in (None, "")
                or data.get("inventory_policy") == "continue"
                or inventory_quantity > 0
            )
        return cls(
            id=str(data.get("id")),
            available=available,
            inventory_quantity=inventory_quantity,
            price=Decimal(str(data.get("price") or "0")),
        )


@dataclass
class Charge:
    id: str
    name: str
    status: str
    price: Decimal
    confirmation_url: Optional[str] = None
    trial_ends_on: Optional[datetime] = None
    billing_on: Optional[datetime] = None
    activated_on: Optional[datetime] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Charge":
        return cls(
            id=str(data.get("id")),
            name=data.get("name") or "",
            status=(data.get("status") or "").lower(),
            price=Decimal(str(data.get("price") or "0")),
            confirmation_url=data.get("confirmation_url"),
            trial_ends_on=parse_timestamp(data.get("trial_ends_on")),
            billing_on=parse_timestamp(data.get("billing_on")),
            activated_on=parse_timestamp(data.get("activated_on")),
        )


@dataclass
class ExternalDiscountRule:
    """Platform-side price rule mirroring a bundle's discount."""
    id: str
    title: str
    value_type: str
    value: Decimal
    target_type: Optional[str] = None
    target_selection: Optional[str] = None
    allocation_method: Optional[str] = None
    customer_selection: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ExternalDiscountRule":
        return cls(
            id=str(data.get("id")),
            title=data.get("title") or "",
            value_type=data.get("value_type") or "",
            value=Decimal(str(data.get("value") or "0")),
            target_type=data.get("target_type"),
            target_selection=data.get("target_selection"),
            allocation_method=data.get("allocation_method"),
            customer_selection=data.get("customer_selection"),
        )

    def matches(self, spec: Dict[str, Any]) -> bool:
        """True when the rule already has the title, type and value in ``spec``."""
        return (
            self.title == spec["title"]
            and self.value_type == spec["value_type"]
            and self.value == Decimal(str(spec["value"]))
            and self.target_type == spec["target_type"]
            and self.target_selection == spec["target_selection"]
            and self.allocation_method == spec["allocation_method"]
        )


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _parse(factory: Callable[[Dict[str, Any]], T], raw: Any, what: str) -> T:
    """Build a payload dataclass, treating a malformed object as a platform failure."""
    if not isinstance(raw, dict):
        raise PlatformSyncError(f"Platform returned a malformed {what}", body=raw)
    try:
        return factory(raw)
    except (TypeError, ValueError, ArithmeticError) as e:
        raise PlatformSyncError(f"Platform returned a malformed {what}: {e}", body=raw)


class ShopifyAdminClient:
    """Async Admin API client bound to a single shop."""

    def __init__(
        self,
        context: ShopContext,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.context = context
        version = api_version or settings.shopify_api_version
        self._client = httpx.AsyncClient(
            base_url=f"https://{context.shop}/admin/api/{version}/",
            headers={
                "X-Shopify-Access-Token": context.access_token,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(timeout if timeout is not None else settings.platform_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "ShopifyAdminClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, url: str, *, json: Any = None, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        shop = self.context.shop
        try:
            return await self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException:
            logger.error(f"Timeout calling {method} {url} for {shop}")
            raise CollaboratorTimeoutError(f"Timed out calling {method} {url} for {shop}")
        except httpx.HTTPError as e:
            logger.error(f"Request error calling {method} {url} for {shop}: {e}")
            raise PlatformSyncError(f"Could not reach the platform for {shop}: {e}")

    def _decode(self, response: httpx.Response, method: str, url: str) -> Dict[str, Any]:
        """JSON object body of a 2xx response; anything else is a platform failure."""
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(f"{method} {url} for {self.context.shop} returned {response.status_code} with a non-object body")
            raise PlatformSyncError(
                f"Platform returned an unreadable body for {method} {url}",
                status=response.status_code,
                body=response.text,
            )
        return data

    def _raise_for_status(self, response: httpx.Response, method: str, url: str) -> None:
        if response.is_error:
            body = _response_body(response)
            logger.error(f"{method} {url} for {self.context.shop} failed with {response.status_code}: {body}")
            raise PlatformSyncError(
                f"Platform returned {response.status_code} for {method} {url}",
                status=response.status_code,
                body=body,
            )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        allow_404: bool = False,
    ) -> Optional[Dict[str, Any]]:
        response = await self._send(method, url, json=json, params=params)
        if allow_404 and response.status_code == 404:
            return None
        self._raise_for_status(response, method, url)
        return self._decode(response, method, url)

    # Catalog

    async def get_variant(self, variant_id: Any) -> Optional[Variant]:
        data = await self._request("GET", f"variants/{variant_id}.json", allow_404=True)
        if data is None:
            return None
        return _parse(Variant.from_payload, data.get("variant"), "variant")

    # Billing

    async def list_charges(self) -> List[Charge]:
        data = await self._request("GET", "recurring_application_charges.json")
        charges = data.get("recurring_application_charges", [])
        if not isinstance(charges, list):
            raise PlatformSyncError("Platform returned a malformed charge list", body=data)
        return [_parse(Charge.from_payload, c, "charge") for c in charges]

    async def create_charge(
        self,
        name: str,
        price: Decimal,
        return_url: str,
        trial_days: int = 0,
        test: bool = False,
        currency: Optional[str] = None,
    ) -> Charge:
        payload = {
            "recurring_application_charge": {
                "name": name,
                "price": str(price),
                "currency": currency,
                "return_url": return_url,
                "trial_days": trial_days,
                "test": test,
            }
        }
        data = await self._request("POST", "recurring_application_charges.json", json=payload)
        return _parse(Charge.from_payload, data.get("recurring_application_charge"), "charge")

    # Discounts

    async def get_price_rule(self, rule_id: Any) -> Optional[ExternalDiscountRule]:
        data = await self._request("GET", f"price_rules/{rule_id}.json", allow_404=True)
        if data is None:
            return None
        return _parse(ExternalDiscountRule.from_payload, data.get("price_rule"), "price rule")

    async def find_price_rule_by_title(self, title: str, exclude_ids: Collection[str] = ()) -> Optional[ExternalDiscountRule]:
        """
        Walk every page of price rules looking for an exact title match.

        Rules whose id is in ``exclude_ids`` are skipped even when the title
        matches; they belong to other bundles.
        """
        url: Optional[str] = "price_rules.json"
        params: Optional[Dict[str, Any]] = {"limit": 250}
        while url:
            response = await self._send("GET", url, params=params)
            self._raise_for_status(response, "GET", url)
            rules = self._decode(response, "GET", url).get("price_rules", [])
            if not isinstance(rules, list):
                raise PlatformSyncError("Platform returned a malformed price rule list", status=response.status_code)
            for raw in rules:
                if isinstance(raw, dict) and raw.get("title") == title and str(raw.get("id")) not in exclude_ids:
                    return _parse(ExternalDiscountRule.from_payload, raw, "price rule")
            # Cursor pagination: the next link already carries its own query
            url = response.links.get("next", {}).get("url")
            params = None
        return None

    async def create_price_rule(self, spec: Dict[str, Any]) -> ExternalDiscountRule:
        data = await self._request("POST", "price_rules.json", json={"price_rule": spec})
        return _parse(ExternalDiscountRule.from_payload, data.get("price_rule"), "price rule")

    async def update_price_rule(self, rule_id: Any, spec: Dict[str, Any]) -> ExternalDiscountRule:
        data = await self._request("PUT", f"price_rules/{rule_id}.json", json={"price_rule": {"id": rule_id, **spec}})
        return _parse(ExternalDiscountRule.from_payload, data.get("price_rule"), "price rule")

    async def delete_price_rule(self, rule_id: Any) -> bool:
        """Delete a price rule. Returns False when it was already gone."""
        data = await self._request("DELETE", f"price_rules/{rule_id}.json", allow_404=True)
        return data is not None
