"""
Encoding of a bundle's product list for the ``products`` text column.

Prices are written as decimal strings so a decode gives back exactly what was
encoded.
"""
import json
from typing import List, Sequence

from pydantic import TypeAdapter, ValidationError

from ..errors import InvalidBundleError
from ..schemas.bundle import BundleProductIn

_products_adapter = TypeAdapter(List[BundleProductIn])


def encode_products(products: Sequence[BundleProductIn]) -> str:
    return json.dumps([p.model_dump(mode="json") for p in products], separators=(",", ":"))


def decode_products(raw: str | None) -> List[BundleProductIn]:
    if not raw:
        return []
    try:
        return _products_adapter.validate_json(raw)
    except ValidationError as e:
        raise InvalidBundleError(f"Stored products could not be decoded: {e.error_count()} error(s)")
