"""
Tests for the Kenya Liquor extension wiring and tax API endpoints.
"""
from decimal import Decimal
from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIRequestFactory, force_authenticate

from domain_extensions.kenya_liquor.api import ComposeTaxesView, TaxQuoteView, TaxRatesView
from domain_extensions.kenya_liquor.extension import (
    EXTENSION_CODE,
    KenyaLiquorExtension,
    get_calculator,
    get_default_config,
    reset_default_config,
)
from domain_extensions.kenya_liquor.exceptions import InvalidInput
from domain_extensions.registry import get_active_extension, get_extension


def kenya_tenant(**overrides):
    return SimpleNamespace(
        business_domain=EXTENSION_CODE,
        business_domain_config={EXTENSION_CODE: overrides},
    )


class KenyaLiquorExtensionTests(SimpleTestCase):
    def setUp(self):
        reset_default_config()

    def tearDown(self):
        reset_default_config()

    def test_registered_on_ready(self):
        ext = get_extension(EXTENSION_CODE)
        self.assertIsInstance(ext, KenyaLiquorExtension)
        self.assertIs(get_active_extension(kenya_tenant()), ext)

    @override_settings(KENYA_LIQUOR_TAX={"vat_rate": "16", "rates": {"Cider": "99.50"}})
    def test_default_config_from_settings(self):
        config = get_default_config()
        self.assertEqual(config.vat_rate, Decimal("0.16"))
        self.assertEqual(config.rate_table.rate_for_category("Cider"), Decimal("99.50"))
        self.assertIs(get_default_config(), config)

    @override_settings(KENYA_LIQUOR_TAX=None)
    def test_missing_setting_uses_kra_defaults(self):
        config = get_default_config()
        self.assertEqual(config.vat_rate, Decimal("0.16"))
        self.assertEqual(config.rate_table.default, Decimal("356.42"))

    @override_settings(KENYA_LIQUOR_TAX={"vat_rate": "-1"})
    def test_bad_settings_are_improperly_configured(self):
        with self.assertRaises(ImproperlyConfigured):
            get_default_config()

    @override_settings(KENYA_LIQUOR_TAX={"rates": ["Beer", "100"]})
    def test_non_mapping_rates_setting_is_improperly_configured(self):
        with self.assertRaises(ImproperlyConfigured):
            get_default_config()

    def test_tenant_overrides(self):
        calc = get_calculator(kenya_tenant(vat_rate="0.14", rates={"Beer": "100"}))
        self.assertEqual(calc.vat_rate, Decimal("0.14"))
        self.assertEqual(calc.rate_for_category("Beer"), Decimal("100"))
        self.assertEqual(calc.rate_for_category("Wine"), Decimal("229.94"))

    def test_other_domains_get_process_config(self):
        tenant = SimpleNamespace(
            business_domain="telangana_liquor",
            business_domain_config={EXTENSION_CODE: {"vat_rate": "0.14"}},
        )
        self.assertEqual(get_calculator(tenant).vat_rate, Decimal("0.16"))
        self.assertEqual(get_calculator(None).vat_rate, Decimal("0.16"))

    def test_tenant_without_overrides_shares_default_config(self):
        calc = get_calculator(kenya_tenant())
        self.assertIs(calc.config, get_default_config())

    def test_invalid_tenant_overrides_raise(self):
        with self.assertLogs("domain_extensions.kenya_liquor.extension", level="ERROR"):
            with self.assertRaises(InvalidInput):
                get_calculator(kenya_tenant(vat_rate="-5"))


class KRATaxApiTests(TestCase):
    def setUp(self):
        reset_default_config()
        self.factory = APIRequestFactory()
        self.user = get_user_model().objects.create_user(
            username="cashier",
            email="cashier@example.com",
            password="test-pass",
        )

    def tearDown(self):
        reset_default_config()

    def _post(self, view_cls, payload, tenant=None, user=True):
        request = self.factory.post("/", payload, format="json")
        if tenant is not None:
            request.tenant = tenant
        if user:
            force_authenticate(request, user=self.user)
        return view_cls.as_view()(request)

    def _get(self, view_cls, tenant=None):
        request = self.factory.get("/")
        if tenant is not None:
            request.tenant = tenant
        force_authenticate(request, user=self.user)
        return view_cls.as_view()(request)

    def test_rates(self):
        resp = self._get(TaxRatesView)
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.data["ok"])
        self.assertEqual(resp.data["currency"], "KES")
        self.assertEqual(resp.data["vat_rate"], "0.16")
        self.assertEqual(resp.data["default_rate"], "356.42")
        self.assertEqual(resp.data["rates"]["Beer"], "142.44")
        self.assertEqual(resp.data["rates"]["Wine"], "229.94")

    def test_rates_for_tenant(self):
        resp = self._get(TaxRatesView, tenant=kenya_tenant(rates={"Cider": "80"}))
        self.assertEqual(resp.data["rates"]["Cider"], "80")

    def test_quote(self):
        resp = self._post(TaxQuoteView, {
            "lines": [
                {"variant_id": 11, "category_name": "Beer", "size_ml": 500, "quantity": 2, "unit_price": "250.00"},
                {"variant_id": 12, "category_name": "Wine", "size_ml": 750, "quantity": 1, "unit_price": "1200.00"},
            ]
        })
        self.assertEqual(resp.status_code, 200)
        quote = resp.data["quote"]
        self.assertEqual(quote["subtotal"], "1700.00")
        self.assertEqual(quote["excise_duty"], "314.90")
        self.assertEqual(quote["taxes"]["base_price"], "1465.52")
        self.assertEqual(quote["taxes"]["vat"], "284.87")
        self.assertEqual(quote["taxes"]["total"], "2065.29")
        self.assertEqual(quote["sale"], {
            "total_amount": "2065.29",
            "tax_amount": "284.87",
            "excise_tax": "314.90",
        })
        self.assertEqual([l["variant_id"] for l in quote["lines"]], ["11", "12"])
        self.assertEqual(quote["lines"][0]["line_excise"], "142.44")

    def test_quote_unknown_category_charged_default(self):
        resp = self._post(TaxQuoteView, {
            "lines": [{"category_name": "Mystery", "size_ml": 1000, "quantity": 1, "unit_price": "116.00"}]
        })
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["quote"]["excise_duty"], "356.42")
        self.assertEqual(resp.data["quote"]["lines"][0]["excise_rate"], "356.42")

    def test_quote_empty_cart(self):
        resp = self._post(TaxQuoteView, {"lines": []})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["quote"]["taxes"]["total"], "0.00")
        self.assertEqual(resp.data["quote"]["lines"], [])

    def test_quote_rejects_bad_lines(self):
        for line in [
            {"category_name": "Beer", "size_ml": 500, "quantity": 0, "unit_price": "10"},
            {"category_name": "Beer", "size_ml": -500, "quantity": 1, "unit_price": "10"},
            {"category_name": "Beer", "size_ml": 500, "quantity": 1, "unit_price": "-10"},
            {"category_name": "Beer", "size_ml": 500, "quantity": 1},
        ]:
            with self.subTest(line=line):
                resp = self._post(TaxQuoteView, {"lines": [line]})
                self.assertEqual(resp.status_code, 400)

    def test_quote_requires_auth(self):
        resp = self._post(TaxQuoteView, {"lines": []}, user=False)
        self.assertIn(resp.status_code, (401, 403))

    def test_compose(self):
        resp = self._post(ComposeTaxesView, {"subtotal": "1160", "excise_duty": "100"})
        self.assertEqual(resp.status_code, 200)
        taxes = resp.data["taxes"]
        self.assertEqual(taxes["base_price"], "1000.00")
        self.assertEqual(taxes["vat"], "176.00")
        self.assertEqual(taxes["total"], "1276.00")
        self.assertEqual(taxes["receipt"][0], {"label": "VAT (16%)", "amount": "176.00"})

    def test_compose_without_excise(self):
        resp = self._post(ComposeTaxesView, {"subtotal": "1000"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["taxes"]["total"], "1000.00")

    def test_compose_negative_is_invalid_input(self):
        with self.assertLogs("domain_extensions.kenya_liquor.api", level="WARNING"):
            resp = self._post(ComposeTaxesView, {"subtotal": "-1", "excise_duty": "0"})
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.data["ok"])
        self.assertIn("subtotal", resp.data["detail"])

    def test_compose_uses_tenant_vat_rate(self):
        resp = self._post(
            ComposeTaxesView,
            {"subtotal": "1140", "excise_duty": "0"},
            tenant=kenya_tenant(vat_rate="14"),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["taxes"]["vat"], "140.00")
        self.assertEqual(resp.data["taxes"]["receipt"][0]["label"], "VAT (14%)")

    def test_invalid_tenant_config_is_400(self):
        with self.assertLogs("domain_extensions.kenya_liquor", level="WARNING"):
            resp = self._post(
                ComposeTaxesView,
                {"subtotal": "100"},
                tenant=kenya_tenant(rates={"Beer": "-1"}),
            )
        self.assertEqual(resp.status_code, 400)

    def test_non_mapping_tenant_rates_is_400(self):
        with self.assertLogs("domain_extensions.kenya_liquor", level="WARNING"):
            resp = self._post(
                TaxQuoteView,
                {"lines": [{"category_name": "Beer", "size_ml": 500, "quantity": 1, "unit_price": "100"}]},
                tenant=kenya_tenant(rates=["Beer", "100"]),
            )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.data["ok"])
        self.assertIn("rates", resp.data["detail"])
