"""
Tests for the domain extension registry.
"""
from types import SimpleNamespace

from django.test import SimpleTestCase

from domain_extensions import registry
from domain_extensions.registry import (
    DomainExtension,
    get_active_extension,
    get_all_extensions,
    get_extension,
    is_extension_enabled,
    register_extension,
)


class SampleExtension(DomainExtension):
    code = "sample_domain"
    name = "Sample"


class RegistryTests(SimpleTestCase):
    def setUp(self):
        self.ext = SampleExtension()
        register_extension(self.ext)

    def tearDown(self):
        registry._extension_registry.pop(SampleExtension.code, None)

    def test_lookup(self):
        self.assertIs(get_extension("sample_domain"), self.ext)
        self.assertIn(self.ext, get_all_extensions())
        self.assertIsNone(get_extension("nope"))

    def test_duplicate_code_rejected(self):
        with self.assertRaises(ValueError):
            register_extension(SampleExtension())

    def test_code_required(self):
        with self.assertRaises(ValueError):
            register_extension(DomainExtension())

    def test_active_extension_follows_business_domain(self):
        tenant = SimpleNamespace(business_domain="sample_domain", business_domain_config={})
        self.assertIs(get_active_extension(tenant), self.ext)
        self.assertTrue(is_extension_enabled(tenant, "sample_domain"))
        self.assertTrue(self.ext.is_enabled(tenant))

    def test_no_domain(self):
        for tenant in [None, SimpleNamespace(), SimpleNamespace(business_domain="")]:
            with self.subTest(tenant=tenant):
                self.assertIsNone(get_active_extension(tenant))
                self.assertFalse(self.ext.is_enabled(tenant))
                self.assertFalse(is_extension_enabled(tenant, "sample_domain"))

    def test_get_config(self):
        tenant = SimpleNamespace(
            business_domain="sample_domain",
            business_domain_config={"sample_domain": {"flag": True}, "other": {"x": 1}},
        )
        self.assertEqual(self.ext.get_config(tenant), {"flag": True})
        self.assertEqual(self.ext.get_config(None), {})
        self.assertEqual(self.ext.get_config(SimpleNamespace(business_domain_config=None)), {})
