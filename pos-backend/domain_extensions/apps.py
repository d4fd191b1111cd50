from django.apps import AppConfig


class DomainExtensionsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'domain_extensions'

    def ready(self):
        """Register domain extensions and load their settings when app is ready"""
        # Import here to avoid circular imports
        from domain_extensions.registry import get_extension
        from domain_extensions.kenya_liquor.extension import (
            EXTENSION_CODE,
            get_default_config,
            register_kenya_liquor_extension,
        )

        if get_extension(EXTENSION_CODE) is None:
            register_kenya_liquor_extension()
        # Raises ImproperlyConfigured on invalid KENYA_LIQUOR_TAX
        get_default_config()
