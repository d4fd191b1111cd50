# domain_extensions/kenya_liquor/rates.py
"""
KRA (Kenya Revenue Authority) excise rate table and tax configuration.

Excise duty on liquor is charged per liter depending on the product category.
Unknown or missing categories are charged at the default rate (the spirits
rate), so an uncategorised product never under-collects duty.

Nothing in this module touches Django; the process-wide configuration is built
from settings in :mod:`domain_extensions.kenya_liquor.extension`.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from domain_extensions.kenya_liquor.exceptions import InvalidInput

logger = logging.getLogger(__name__)


# KRA excise duty rates in KES per liter (as of 2024)
BEER_RATE = Decimal("142.44")
SPIRITS_RATE = Decimal("356.42")
WINE_RATE = Decimal("229.94")

KRA_EXCISE_RATES: Dict[str, Decimal] = {
    "Beer": BEER_RATE,
    # Spirits
    "Bourbon": SPIRITS_RATE,
    "Whiskey": SPIRITS_RATE,
    "Scotch": SPIRITS_RATE,
    "Vodka": SPIRITS_RATE,
    "Gin": SPIRITS_RATE,
    "Rum": SPIRITS_RATE,
    "Tequila": SPIRITS_RATE,
    "Cognac": SPIRITS_RATE,
    "Brandy": SPIRITS_RATE,
    "Spirits": SPIRITS_RATE,
    # Wine
    "Wine": WINE_RATE,
    "Champagne": WINE_RATE,
    # Liqueurs and other: spirits rate
    "Liqueur": SPIRITS_RATE,
    "Aperitif": SPIRITS_RATE,
    "Amaro": SPIRITS_RATE,
}

KRA_DEFAULT_EXCISE_RATE = SPIRITS_RATE

# KRA VAT rate: 16%
KRA_VAT_RATE = Decimal("0.16")

CENTS = Decimal("0.01")


def as_decimal(value: Any, field_name: str) -> Decimal:
    """
    Read ``value`` as a finite Decimal.

    Floats go through ``str()`` first so 0.1 becomes Decimal("0.1") rather than
    its binary expansion. Booleans, None and unparseable strings are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"{field_name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidInput(f"{field_name} must be a number, got {value!r}") from None
    if not d.is_finite():
        raise InvalidInput(f"{field_name} must be finite, got {value!r}")
    return d


def non_negative(value: Any, field_name: str) -> Decimal:
    d = as_decimal(value, field_name)
    if d < 0:
        raise InvalidInput(f"{field_name} must not be negative, got {d}")
    return d


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"", "0", "false", "no", "off"}


def as_flag(value: Any, field_name: str) -> bool:
    """Read a settings flag; strings such as "false" or "0" from the environment are False."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE_STRINGS:
            return True
        if v in _FALSE_STRINGS:
            return False
    raise InvalidInput(f"{field_name} must be true or false, got {value!r}")


def normalize_vat_rate(value: Any) -> Decimal:
    """Accepts 0.16 or 16 to mean 16%. Returns the rate as a fraction."""
    v = non_negative(value, "vat_rate")
    if v > 1:
        v = v / Decimal("100")
    return v


@dataclass(frozen=True)
class ExciseRateTable:
    """
    Category name -> excise rate in currency per liter, plus the fallback rate.

    Lookups are exact and case-sensitive: "beer" does not match "Beer".
    """
    rates: Mapping[str, Decimal] = field(default_factory=lambda: dict(KRA_EXCISE_RATES))
    default: Decimal = KRA_DEFAULT_EXCISE_RATE

    def __post_init__(self):
        checked = {}
        for name, rate in dict(self.rates).items():
            checked[str(name)] = non_negative(rate, f"excise rate for {name!r}")
        object.__setattr__(self, "rates", MappingProxyType(checked))
        object.__setattr__(self, "default", non_negative(self.default, "default excise rate"))

    def rate_for_category(self, category_name: Optional[str]) -> Decimal:
        if not category_name:
            return self.default
        rate = self.rates.get(category_name)
        if rate is None:
            logger.warning(
                "No excise rate for category %r, charging default rate %s",
                category_name, self.default,
            )
            return self.default
        return rate

    def as_dict(self) -> Dict[str, str]:
        return {name: str(rate) for name, rate in self.rates.items()}


@dataclass(frozen=True)
class TaxConfig:
    """
    Everything the calculator needs: excise table, VAT rate and the currency
    minor unit used when amounts are rounded for display or storage.
    """
    rate_table: ExciseRateTable = field(default_factory=ExciseRateTable)
    vat_rate: Decimal = KRA_VAT_RATE
    currency: str = "KES"
    minor_unit: Decimal = CENTS

    def __post_init__(self):
        object.__setattr__(self, "vat_rate", normalize_vat_rate(self.vat_rate))
        minor_unit = as_decimal(self.minor_unit, "minor_unit")
        if minor_unit <= 0:
            raise InvalidInput(f"minor_unit must be positive, got {minor_unit}")
        object.__setattr__(self, "minor_unit", minor_unit)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]] = None) -> "TaxConfig":
        """
        Build a config from plain settings data, starting from the KRA defaults.

        Recognised keys: ``rates``, ``default_rate``, ``replace_rates``,
        ``vat_rate``, ``currency``, ``minor_unit``.
        """
        return cls().with_overrides(data)

    def with_overrides(self, data: Optional[Mapping[str, Any]] = None) -> "TaxConfig":
        """
        Return a copy with ``data`` applied on top.

        ``rates`` entries are merged over the current table unless
        ``replace_rates`` is true. A ``"default"`` entry inside ``rates`` is
        accepted as the fallback rate when ``default_rate`` is not given.
        """
        if data is not None and not isinstance(data, Mapping):
            raise InvalidInput(f"tax settings must be a mapping, got {type(data).__name__}")
        data = dict(data or {})
        if not data:
            return self

        overrides = data.get("rates") or {}
        if not isinstance(overrides, Mapping):
            raise InvalidInput("rates must be a mapping of category -> rate")

        rates = {} if as_flag(data.get("replace_rates"), "replace_rates") else dict(self.rate_table.rates)
        rates.update(overrides)
        rates_default = rates.pop("default", None)
        default = data.get("default_rate")
        if default is None:
            default = rates_default if rates_default is not None else self.rate_table.default

        return TaxConfig(
            rate_table=ExciseRateTable(rates=rates, default=default),
            vat_rate=data.get("vat_rate", self.vat_rate),
            currency=str(data.get("currency", self.currency)),
            minor_unit=data.get("minor_unit", self.minor_unit),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "vat_rate": str(self.vat_rate),
            "default_rate": str(self.rate_table.default),
            "rates": self.rate_table.as_dict(),
        }
