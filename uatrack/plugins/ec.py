"""
Commerce plugin.

Products, impressions and a product action accumulate between events and are
flattened into measurement-protocol keys (`pr1id`, `il1pi1nm`, `pa`, `ti`, ...).
Whatever is emitted is forgotten: a purchase is sent once, not with every hit.
Products wait for an action before they are sent.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .base import BasePlugin, non_empty

logger = logging.getLogger(__name__)


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Product(_Record):
    id: Any = None
    name: Any = None
    brand: Any = None
    category: Any = None
    variant: Any = None
    price: Any = None
    quantity: Any = None
    coupon: Any = None
    position: Any = None


class Impression(_Record):
    id: Any = None
    name: Any = None
    brand: Any = None
    category: Any = None
    variant: Any = None
    price: Any = None
    position: Any = None
    list: Any = None


class ActionOptions(_Record):
    id: Any = None
    affiliation: Any = None
    revenue: Any = None
    tax: Any = None
    shipping: Any = None
    coupon: Any = None
    list: Any = None
    step: Any = None
    option: Any = None


PRODUCT_KEYS = {
    "id": "id",
    "name": "nm",
    "brand": "br",
    "category": "ca",
    "variant": "va",
    "price": "pr",
    "quantity": "qt",
    "coupon": "cc",
    "position": "ps",
}

IMPRESSION_KEYS = {k: v for k, v in PRODUCT_KEYS.items() if k not in {"quantity", "coupon"}}

ACTION_KEYS = {
    "id": "ti",
    "affiliation": "ta",
    "revenue": "tr",
    "tax": "tt",
    "shipping": "ts",
    "coupon": "tcc",
    "list": "pal",
    "step": "cos",
    "option": "col",
}


def _flatten(record: BaseModel, mapping: Mapping[str, str], prefix: str) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for attr, code in mapping.items():
        value = getattr(record, attr)
        if non_empty(value):
            out[f"{prefix}{code}"] = value
    return out


def _validate(model: type[_Record], raw: Mapping[str, Any] | _Record, kind: str) -> _Record:
    if isinstance(raw, model):
        return raw
    dropped = sorted(set(raw) - set(model.model_fields))
    if dropped:
        logger.debug("ec: dropping unknown %s keys %s", kind, dropped)
    return model.model_validate(dict(raw))


class ECPlugin(BasePlugin):
    id = "ec"
    api: ClassVar[Mapping[str, str]] = {
        **BasePlugin.api,
        "addProduct": "add_product",
        "addImpression": "add_impression",
        "setAction": "set_action",
    }

    def __init__(self, options=None):
        super().__init__(options)
        self.products: list[Product] = []
        self.impressions: list[Impression] = []
        self.action: Optional[str] = None
        self.action_options: Optional[ActionOptions] = None

    def add_product(self, product: Mapping[str, Any] | Product) -> None:
        self.products.append(_validate(Product, product, "product"))

    def add_impression(self, impression: Mapping[str, Any] | Impression) -> None:
        self.impressions.append(_validate(Impression, impression, "impression"))

    def set_action(self, action: str, options: Optional[Mapping[str, Any]] = None) -> None:
        self.action = action
        self.action_options = _validate(ActionOptions, options or {}, "action")

    def materialize(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.impressions:
            out.update(self._impression_fields())
            self.impressions = []
        if self.action:
            out["pa"] = self.action
            if self.action_options is not None:
                out.update(_flatten(self.action_options, ACTION_KEYS, ""))
            for idx, product in enumerate(self.products, start=1):
                out.update(_flatten(product, PRODUCT_KEYS, f"pr{idx}"))
            self.products = []
            self.action = None
            self.action_options = None
        return out

    def _impression_fields(self) -> dict[str, Any]:
        lists: dict[str, list[Impression]] = {}
        for impression in self.impressions:
            lists.setdefault(str(impression.list or ""), []).append(impression)

        out: dict[str, Any] = {}
        for list_idx, (list_name, impressions) in enumerate(lists.items(), start=1):
            if list_name:
                out[f"il{list_idx}nm"] = list_name
            for idx, impression in enumerate(impressions, start=1):
                out.update(_flatten(impression, IMPRESSION_KEYS, f"il{list_idx}pi{idx}"))
        return out

    def clear(self) -> None:
        self.products = []
        self.impressions = []
        self.action = None
        self.action_options = None
