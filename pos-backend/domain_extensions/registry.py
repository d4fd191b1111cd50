# domain_extensions/registry.py
"""
Extension registry for domain-specific customizations.

Jurisdiction or business specific behaviour (e.g. Kenyan liquor taxes) lives
in an extension registered here, keeping the core application generic.

Tenants are read duck-typed: an extension is active for a tenant whose
``business_domain`` equals the extension code, and its per-tenant settings
live in ``tenant.business_domain_config[code]``.
"""

from typing import Dict, Optional, List


def _tenant_domain(tenant) -> Optional[str]:
    if not tenant:
        return None
    return getattr(tenant, "business_domain", None) or None


class DomainExtension:
    """
    Base class for all domain extensions.

    Subclasses set ``code``/``name``/``version`` and add their own services.
    """
    code: str = ""  # e.g., "kenya_liquor"
    name: str = ""  # Human-readable name
    version: str = "1.0.0"

    def is_enabled(self, tenant) -> bool:
        """
        Check if this extension is enabled for the given tenant.

        Args:
            tenant: Tenant-like object (may be None)

        Returns:
            True if the tenant's business_domain is this extension's code
        """
        domain = _tenant_domain(tenant)
        return domain is not None and domain == self.code

    def get_config(self, tenant) -> dict:
        """
        Get tenant-specific configuration for this extension.

        Args:
            tenant: Tenant-like object (may be None)

        Returns:
            Dictionary from business_domain_config[code], empty if missing
        """
        if not tenant:
            return {}
        domain_config = getattr(tenant, "business_domain_config", None) or {}
        return dict(domain_config.get(self.code) or {})


# Global registry of domain extensions
_extension_registry: Dict[str, DomainExtension] = {}


def register_extension(extension: DomainExtension):
    """
    Register a domain extension in the global registry.

    Args:
        extension: DomainExtension instance to register

    Raises:
        ValueError: If the extension has no code or the code is already taken
    """
    if not extension.code:
        raise ValueError("Extension must have a code")

    if extension.code in _extension_registry:
        raise ValueError(f"Extension with code '{extension.code}' is already registered")

    _extension_registry[extension.code] = extension


def get_extension(code: str) -> Optional[DomainExtension]:
    """
    Get an extension by its code.

    Args:
        code: Extension code (e.g., "kenya_liquor")

    Returns:
        DomainExtension instance or None if not registered
    """
    return _extension_registry.get(code)


def get_active_extension(tenant) -> Optional[DomainExtension]:
    """
    Get the active extension for a tenant based on its business_domain.

    Args:
        tenant: Tenant-like object (may be None)

    Returns:
        DomainExtension instance or None if no domain is set or it is not registered
    """
    domain = _tenant_domain(tenant)
    if domain is None:
        return None
    return get_extension(domain)


def is_extension_enabled(tenant, code: str) -> bool:
    """
    Check if a specific extension is enabled for a tenant.

    Args:
        tenant: Tenant-like object (may be None)
        code: Extension code to check

    Returns:
        True if the tenant's business_domain equals ``code``
    """
    return _tenant_domain(tenant) == code


def get_all_extensions() -> List[DomainExtension]:
    """
    Get all registered extensions.

    Returns:
        List of all registered DomainExtension instances
    """
    return list(_extension_registry.values())
