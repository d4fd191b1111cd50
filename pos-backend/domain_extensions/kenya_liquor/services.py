# domain_extensions/kenya_liquor/services.py
"""
KRA-compliant tax calculation for liquor sales.

Shelf prices are VAT-inclusive. For a sale we:
  1. take the VAT out of the subtotal to get the base price,
  2. add excise duty (per liter, by category),
  3. charge VAT on base price + excise duty.

All amounts are Decimal and unrounded until they are presented or stored;
``TaxBreakdown.rounded`` is the one place money gets quantized.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from domain_extensions.kenya_liquor.exceptions import InvalidInput
from domain_extensions.kenya_liquor.rates import CENTS, TaxConfig, as_decimal, non_negative

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ML_PER_LITER = Decimal("1000")


def money(q: Decimal, minor_unit: Decimal = CENTS) -> Decimal:
    return q.quantize(minor_unit, rounding=ROUND_HALF_UP)


def format_percent(rate: Decimal) -> str:
    """0.16 -> '16%', 0.165 -> '16.5%'"""
    return f"{(rate * 100).normalize():f}%"


def _category_name(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise InvalidInput(f"category_name must be a string, got {value!r}")


def _positive_quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInput(f"quantity must be a positive integer, got {value!r}")
    q = as_decimal(value, "quantity")
    if q != q.to_integral_value():
        raise InvalidInput(f"quantity must be a whole number, got {q}")
    if q <= 0:
        raise InvalidInput(f"quantity must be positive, got {q}")
    return int(q)


@dataclass(frozen=True)
class LineItem:
    """One product variant in a cart: category, bottle size (ml) and count."""
    category_name: Optional[str]
    volume_ml: Decimal
    quantity: int

    def __post_init__(self):
        object.__setattr__(self, "category_name", _category_name(self.category_name))
        object.__setattr__(self, "volume_ml", non_negative(self.volume_ml, "volume_ml"))
        object.__setattr__(self, "quantity", _positive_quantity(self.quantity))


@dataclass(frozen=True)
class CartLine(LineItem):
    """A line item carrying its VAT-inclusive unit price."""
    unit_price: Decimal
    variant_id: Optional[Any] = None

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "unit_price", non_negative(self.unit_price, "unit_price"))

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class TaxBreakdown:
    excise_duty: Decimal
    vat: Decimal
    base_price: Decimal
    total: Decimal
    vat_rate: Decimal

    @property
    def vat_base(self) -> Decimal:
        return self.base_price + self.excise_duty

    def rounded(self, minor_unit: Decimal = CENTS) -> "TaxBreakdown":
        """
        Round the three components once and rebuild the total from them, so
        total == base_price + excise_duty + vat still holds to the cent.
        """
        base_price = money(self.base_price, minor_unit)
        excise_duty = money(self.excise_duty, minor_unit)
        vat = money(self.vat, minor_unit)
        return TaxBreakdown(
            excise_duty=excise_duty,
            vat=vat,
            base_price=base_price,
            total=base_price + excise_duty + vat,
            vat_rate=self.vat_rate,
        )

    def sale_fields(self, minor_unit: Decimal = CENTS) -> Dict[str, Decimal]:
        """Amounts as stored on a sale record."""
        r = self.rounded(minor_unit)
        return {
            "total_amount": r.total,
            "tax_amount": r.vat,
            "excise_tax": r.excise_duty,
        }

    def receipt_lines(self, minor_unit: Decimal = CENTS) -> List[Tuple[str, Decimal]]:
        r = self.rounded(minor_unit)
        return [
            (f"VAT ({format_percent(self.vat_rate)})", r.vat),
            ("Excise Duty (KRA)", r.excise_duty),
        ]


@dataclass(frozen=True)
class QuoteLine:
    variant_id: Optional[Any]
    category_name: Optional[str]
    volume_ml: Decimal
    quantity: int
    unit_price: Decimal
    excise_rate: Decimal
    line_subtotal: Decimal
    line_excise: Decimal


@dataclass(frozen=True)
class CartQuote:
    subtotal: Decimal
    excise_duty: Decimal
    taxes: TaxBreakdown
    lines: Tuple[QuoteLine, ...] = ()


ItemLike = Union[LineItem, Mapping[str, Any]]


def as_line_item(item: ItemLike) -> LineItem:
    """
    Accept a LineItem or a cart dict like
    ``{"category_name": "Beer", "size_ml": 500, "quantity": 2}``.
    """
    if isinstance(item, LineItem):
        return item
    if isinstance(item, Mapping):
        volume = item.get("size_ml", item.get("volume_ml"))
        return LineItem(
            category_name=item.get("category_name"),
            volume_ml=volume,
            quantity=item.get("quantity"),
        )
    raise InvalidInput(f"Expected a line item, got {type(item).__name__}")


class KRATaxCalculator:
    """
    Excise duty and VAT for Kenyan liquor sales.

    The calculator only reads its ``TaxConfig``; one instance can be shared
    by any number of requests or threads.
    """

    def __init__(self, config: Optional[TaxConfig] = None):
        self.config = config or TaxConfig()

    @property
    def vat_rate(self) -> Decimal:
        return self.config.vat_rate

    def rate_for_category(self, category_name: Optional[str]) -> Decimal:
        return self.config.rate_table.rate_for_category(category_name)

    def excise_for_item(self, category_name: Optional[str], volume_ml: Any) -> Decimal:
        """Excise duty for a single unit (not multiplied by quantity)."""
        volume = non_negative(volume_ml, "volume_ml")
        return self.rate_for_category(_category_name(category_name)) * (volume / ML_PER_LITER)

    def line_excise(self, item: ItemLike) -> Decimal:
        item = as_line_item(item)
        return self.excise_for_item(item.category_name, item.volume_ml) * item.quantity

    def total_excise(self, items: Iterable[ItemLike]) -> Decimal:
        return sum((self.line_excise(item) for item in items), ZERO)

    def compose_taxes(self, subtotal: Any, excise_duty: Any) -> TaxBreakdown:
        """
        Split a VAT-inclusive subtotal and add excise duty.

        1. base_price = subtotal / (1 + vat_rate)
        2. vat_base   = base_price + excise_duty
        3. vat        = vat_base * vat_rate
        4. total      = base_price + excise_duty + vat
        """
        subtotal = non_negative(subtotal, "subtotal")
        excise_duty = non_negative(excise_duty, "excise_duty")
        vat_rate = self.vat_rate

        base_price = subtotal / (1 + vat_rate)
        vat_base = base_price + excise_duty
        vat = vat_base * vat_rate
        total = base_price + excise_duty + vat

        return TaxBreakdown(
            excise_duty=excise_duty,
            vat=vat,
            base_price=base_price,
            total=total,
            vat_rate=vat_rate,
        )

    def quote_cart(self, lines: Sequence[CartLine]) -> CartQuote:
        """Subtotal from unit prices, excise from sizes, then compose taxes."""
        quote_lines = []
        for line in lines:
            if not isinstance(line, CartLine):
                raise InvalidInput(f"Expected a CartLine, got {type(line).__name__}")
            rate = self.rate_for_category(line.category_name)
            quote_lines.append(QuoteLine(
                variant_id=line.variant_id,
                category_name=line.category_name,
                volume_ml=line.volume_ml,
                quantity=line.quantity,
                unit_price=line.unit_price,
                excise_rate=rate,
                line_subtotal=line.line_subtotal,
                line_excise=rate * (line.volume_ml / ML_PER_LITER) * line.quantity,
            ))

        subtotal = sum((ql.line_subtotal for ql in quote_lines), ZERO)
        excise_duty = sum((ql.line_excise for ql in quote_lines), ZERO)
        taxes = self.compose_taxes(subtotal, excise_duty)

        logger.debug(
            "KRA quote: %d lines, subtotal=%s excise=%s vat=%s total=%s",
            len(quote_lines), subtotal, excise_duty, taxes.vat, taxes.total,
        )
        return CartQuote(
            subtotal=subtotal,
            excise_duty=excise_duty,
            taxes=taxes,
            lines=tuple(quote_lines),
        )


def serialize_breakdown(tb: TaxBreakdown, minor_unit: Decimal = CENTS) -> Dict[str, Any]:
    r = tb.rounded(minor_unit)
    return {
        "base_price": str(r.base_price),
        "excise_duty": str(r.excise_duty),
        "vat": str(r.vat),
        "total": str(r.total),
        "vat_rate": str(tb.vat_rate),
        "receipt": [
            {"label": label, "amount": str(amount)}
            for label, amount in tb.receipt_lines(minor_unit)
        ],
    }


def serialize_quote(quote: CartQuote, minor_unit: Decimal = CENTS) -> Dict[str, Any]:
    return {
        "subtotal": str(money(quote.subtotal, minor_unit)),
        "excise_duty": str(money(quote.excise_duty, minor_unit)),
        "taxes": serialize_breakdown(quote.taxes, minor_unit),
        "sale": {k: str(v) for k, v in quote.taxes.sale_fields(minor_unit).items()},
        "lines": [
            {
                "variant_id": ql.variant_id,
                "category_name": ql.category_name,
                "size_ml": str(ql.volume_ml),
                "quantity": ql.quantity,
                "unit_price": str(money(ql.unit_price, minor_unit)),
                "excise_rate": str(ql.excise_rate),
                "line_subtotal": str(money(ql.line_subtotal, minor_unit)),
                "line_excise": str(money(ql.line_excise, minor_unit)),
            }
            for ql in quote.lines
        ],
    }
