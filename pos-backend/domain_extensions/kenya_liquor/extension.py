# domain_extensions/kenya_liquor/extension.py
"""
Kenya Liquor domain extension.

Provides KRA excise duty and VAT calculation for liquor stores in Kenya.
The process-wide tax configuration is read once from
``settings.KENYA_LIQUOR_TAX``; tenants on the ``kenya_liquor`` domain may
override parts of it through ``business_domain_config["kenya_liquor"]``.
"""

import logging
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from domain_extensions.kenya_liquor.exceptions import InvalidInput
from domain_extensions.kenya_liquor.rates import TaxConfig
from domain_extensions.kenya_liquor.services import KRATaxCalculator
from domain_extensions.registry import DomainExtension, get_extension, register_extension

logger = logging.getLogger(__name__)

EXTENSION_CODE = "kenya_liquor"

_default_config: Optional[TaxConfig] = None


def load_config_from_settings() -> TaxConfig:
    data = getattr(settings, "KENYA_LIQUOR_TAX", None) or {}
    try:
        config = TaxConfig.from_mapping(data)
    except InvalidInput as e:
        raise ImproperlyConfigured(f"Invalid KENYA_LIQUOR_TAX setting: {e}") from e
    logger.debug(
        "Loaded KRA tax config: vat_rate=%s default_rate=%s categories=%d",
        config.vat_rate, config.rate_table.default, len(config.rate_table.rates),
    )
    return config


def get_default_config() -> TaxConfig:
    """Process-wide config, built from settings on first use."""
    global _default_config
    if _default_config is None:
        _default_config = load_config_from_settings()
    return _default_config


def reset_default_config():
    """Drop the cached config so the next call re-reads settings (tests)."""
    global _default_config
    _default_config = None


class KenyaLiquorExtension(DomainExtension):
    """
    Domain extension for Kenyan liquor stores.

    Provides:
    - KRA excise duty by category and bottle size
    - VAT recomputation on (base price + excise duty)
    - Per-tenant rate overrides
    """
    code = EXTENSION_CODE
    name = "Kenya Liquor"
    version = "1.0.0"

    def get_tax_config(self, tenant=None) -> TaxConfig:
        base = get_default_config()
        if not self.is_enabled(tenant):
            return base
        overrides = self.get_config(tenant)
        if not overrides:
            return base
        try:
            return base.with_overrides(overrides)
        except InvalidInput as e:
            logger.error(f"Invalid KRA tax overrides for tenant {tenant}: {e}")
            raise

    def get_calculator(self, tenant=None) -> KRATaxCalculator:
        return KRATaxCalculator(self.get_tax_config(tenant))


def register_kenya_liquor_extension():
    """Register the Kenya Liquor extension"""
    extension = KenyaLiquorExtension()
    register_extension(extension)
    return extension


def get_calculator(tenant=None) -> KRATaxCalculator:
    extension = get_extension(EXTENSION_CODE)
    if extension is None:
        extension = KenyaLiquorExtension()
    return extension.get_calculator(tenant)
