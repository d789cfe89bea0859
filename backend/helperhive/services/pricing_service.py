"""Centralized pricing calculations for bookings."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..core.config import settings
from ..core.exceptions import ValidationException

Money = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def _to_decimal(value: Money, field_name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationException(
            f"{field_name} must be a number", code="INVALID_AMOUNT", details={"field": field_name}
        )
    if not amount.is_finite():
        raise ValidationException(
            f"{field_name} must be a number", code="INVALID_AMOUNT", details={"field": field_name}
        )
    return amount


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Money) -> int:
    """Rands to cents, e.g. Decimal('550.00') -> 55000."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AddOnSelection:
    name: str
    price: Decimal

    def to_payload(self) -> Dict[str, Any]:
        return {"name": self.name, "price": str(self.price)}


@dataclass(frozen=True)
class PricingSnapshot:
    """Immutable pricing copied onto a booking at creation."""

    base_price: Decimal
    add_ons: Tuple[AddOnSelection, ...]
    add_ons_total: Decimal
    subtotal: Decimal
    platform_fee: Decimal
    total: Decimal
    commission_rate: Decimal
    currency: str = field(default="ZAR")

    def booking_columns(self) -> Dict[str, Any]:
        return {
            "base_price": self.base_price,
            "add_ons": [a.to_payload() for a in self.add_ons],
            "add_ons_total": self.add_ons_total,
            "subtotal": self.subtotal,
            "platform_fee": self.platform_fee,
            "total": self.total,
            "currency": self.currency,
        }


def parse_add_ons(raw: Optional[Iterable[Mapping[str, Any]]]) -> List[AddOnSelection]:
    """Validate caller-supplied add-ons. Negative prices are rejected, not clamped."""
    selections: List[AddOnSelection] = []
    for index, item in enumerate(raw or []):
        name = str(item.get("name") or "").strip()
        if not name:
            raise ValidationException(
                "Add-on name is required", code="INVALID_ADD_ON", details={"index": index}
            )
        price = _to_decimal(item.get("price", 0), f"add_ons[{index}].price")
        if price < 0:
            raise ValidationException(
                f"Add-on '{name}' has a negative price",
                code="NEGATIVE_ADD_ON_PRICE",
                details={"index": index, "name": name, "price": str(price)},
            )
        selections.append(AddOnSelection(name=name, price=quantize(price)))
    return selections


def calculate_pricing(
    base_price: Money,
    add_ons: Optional[Iterable[Union[AddOnSelection, Mapping[str, Any]]]] = None,
    commission_rate: Optional[Money] = None,
    currency: Optional[str] = None,
) -> PricingSnapshot:
    """
    Compute the booking price breakdown.

    subtotal = base + sum(add-ons); fee = round(subtotal * rate, 2) half-up;
    total = subtotal + fee. Pure: inputs are never mutated.
    """
    base = _to_decimal(base_price, "base_price")
    if base < 0:
        raise ValidationException(
            "Base price cannot be negative", code="NEGATIVE_BASE_PRICE", details={"base_price": str(base)}
        )

    selections: List[AddOnSelection] = []
    raw: List[Mapping[str, Any]] = []
    for item in add_ons or []:
        if isinstance(item, AddOnSelection):
            if item.price < 0:
                raise ValidationException(
                    f"Add-on '{item.name}' has a negative price", code="NEGATIVE_ADD_ON_PRICE"
                )
            selections.append(item)
        else:
            raw.append(item)
    selections.extend(parse_add_ons(raw))

    rate = _to_decimal(
        settings.platform_fee_rate if commission_rate is None else commission_rate,
        "commission_rate",
    )

    base = quantize(base)
    add_ons_total = quantize(sum((a.price for a in selections), Decimal("0")))
    subtotal = base + add_ons_total
    platform_fee = quantize(subtotal * rate)
    return PricingSnapshot(
        base_price=base,
        add_ons=tuple(selections),
        add_ons_total=add_ons_total,
        subtotal=subtotal,
        platform_fee=platform_fee,
        total=subtotal + platform_fee,
        commission_rate=rate,
        currency=currency or settings.currency,
    )
