"""
Tests for KRA excise duty and VAT calculation.
"""
from decimal import Decimal

from django.test import SimpleTestCase

from domain_extensions.kenya_liquor.exceptions import InvalidInput, KenyaTaxError
from domain_extensions.kenya_liquor.rates import (
    KRA_EXCISE_RATES,
    ExciseRateTable,
    TaxConfig,
)
from domain_extensions.kenya_liquor.services import (
    CartLine,
    KRATaxCalculator,
    LineItem,
    TaxBreakdown,
    money,
    serialize_breakdown,
    serialize_quote,
)

TOLERANCE = Decimal("1e-9")


class ExciseRateTableTests(SimpleTestCase):
    def setUp(self):
        self.calc = KRATaxCalculator()

    def test_known_categories(self):
        self.assertEqual(self.calc.rate_for_category("Vodka"), Decimal("356.42"))
        self.assertEqual(self.calc.rate_for_category("Beer"), Decimal("142.44"))
        self.assertEqual(self.calc.rate_for_category("Champagne"), Decimal("229.94"))

    def test_unknown_category_uses_default(self):
        with self.assertLogs("domain_extensions.kenya_liquor.rates", level="WARNING"):
            self.assertEqual(self.calc.rate_for_category("Unknown"), Decimal("356.42"))

    def test_missing_category_uses_default(self):
        self.assertEqual(self.calc.rate_for_category(None), Decimal("356.42"))
        self.assertEqual(self.calc.rate_for_category(""), Decimal("356.42"))

    def test_lookup_is_case_sensitive(self):
        with self.assertLogs("domain_extensions.kenya_liquor.rates", level="WARNING"):
            self.assertEqual(self.calc.rate_for_category("beer"), Decimal("356.42"))

    def test_fallback_returns_exact_default_for_synthetic_table(self):
        table = ExciseRateTable(rates={"Cider": "50"}, default="7.5")
        for name in ["Beer", "Vodka", "cider", "CIDER", "Cider "]:
            with self.subTest(name=name), self.assertLogs(
                "domain_extensions.kenya_liquor.rates", level="WARNING"
            ):
                self.assertEqual(table.rate_for_category(name), Decimal("7.5"))
        self.assertEqual(table.rate_for_category("Cider"), Decimal("50"))

    def test_zero_rate_category_is_honoured(self):
        table = ExciseRateTable(rates={"Non-alcoholic": 0}, default="356.42")
        self.assertEqual(table.rate_for_category("Non-alcoholic"), Decimal("0"))

    def test_rates_are_read_only(self):
        table = ExciseRateTable()
        with self.assertRaises(TypeError):
            table.rates["Beer"] = Decimal("1")

    def test_negative_rate_rejected(self):
        with self.assertRaises(InvalidInput):
            ExciseRateTable(rates={"Beer": "-1"})
        with self.assertRaises(InvalidInput):
            ExciseRateTable(default=Decimal("-0.01"))

    def test_builtin_table_has_every_kra_category(self):
        table = ExciseRateTable()
        self.assertEqual(set(table.rates), set(KRA_EXCISE_RATES))


class ExciseForItemTests(SimpleTestCase):
    def setUp(self):
        self.calc = KRATaxCalculator()

    def test_beer_half_liter(self):
        self.assertEqual(self.calc.excise_for_item("Beer", 500), Decimal("71.22"))

    def test_accepts_float_and_string_volumes(self):
        self.assertEqual(self.calc.excise_for_item("Beer", 500.0), Decimal("71.22"))
        self.assertEqual(self.calc.excise_for_item("Beer", "500"), Decimal("71.22"))

    def test_zero_volume_is_zero(self):
        self.assertEqual(self.calc.excise_for_item("Wine", 0), Decimal("0"))

    def test_negative_volume_rejected(self):
        with self.assertRaises(InvalidInput):
            self.calc.excise_for_item("Wine", -750)

    def test_non_numeric_volume_rejected(self):
        for bad in ["abc", None, True, "NaN", float("inf")]:
            with self.subTest(volume=bad), self.assertRaises(InvalidInput):
                self.calc.excise_for_item("Wine", bad)

    def test_linear_in_volume(self):
        for category in ["Beer", "Wine", "Gin", None]:
            for volume in [Decimal("1"), Decimal("250"), Decimal("333"), Decimal("750"), Decimal("1750")]:
                with self.subTest(category=category, volume=volume):
                    self.assertEqual(
                        self.calc.excise_for_item(category, 2 * volume),
                        2 * self.calc.excise_for_item(category, volume),
                    )

    def test_invalid_input_is_a_value_error(self):
        with self.assertRaises(ValueError):
            self.calc.excise_for_item("Beer", -1)
        with self.assertRaises(KenyaTaxError):
            self.calc.excise_for_item("Beer", -1)


class LineItemTests(SimpleTestCase):
    def test_coerces_to_decimal(self):
        item = LineItem(category_name="Beer", volume_ml=500, quantity=2)
        self.assertEqual(item.volume_ml, Decimal("500"))
        self.assertIsInstance(item.volume_ml, Decimal)
        self.assertEqual(item.quantity, 2)

    def test_quantity_must_be_positive_integer(self):
        for bad in [0, -1, Decimal("1.5"), 2.5, True, "two"]:
            with self.subTest(quantity=bad), self.assertRaises(InvalidInput):
                LineItem(category_name="Beer", volume_ml=500, quantity=bad)

    def test_whole_number_quantity_accepted(self):
        self.assertEqual(LineItem("Beer", 500, "3").quantity, 3)
        self.assertEqual(LineItem("Beer", 500, Decimal("3.0")).quantity, 3)

    def test_negative_volume_rejected(self):
        with self.assertRaises(InvalidInput):
            LineItem(category_name="Beer", volume_ml=-1, quantity=1)

    def test_cart_line_rejects_negative_price(self):
        with self.assertRaises(InvalidInput):
            CartLine(category_name="Beer", volume_ml=500, quantity=1, unit_price="-0.01")


class TotalExciseTests(SimpleTestCase):
    def setUp(self):
        self.calc = KRATaxCalculator()

    def test_empty_cart_is_zero(self):
        self.assertEqual(self.calc.total_excise([]), Decimal("0"))

    def test_beer_and_wine(self):
        items = [
            LineItem(category_name="Beer", volume_ml=500, quantity=2),
            LineItem(category_name="Wine", volume_ml=750, quantity=1),
        ]
        self.assertEqual(self.calc.total_excise(items), Decimal("314.895"))

    def test_accepts_cart_dicts(self):
        items = [
            {"category_name": "Beer", "size_ml": 500, "quantity": 2},
            {"category_name": "Wine", "volume_ml": 750, "quantity": 1},
        ]
        self.assertEqual(self.calc.total_excise(items), Decimal("314.895"))

    def test_rejects_non_string_category(self):
        for bad in [["Beer"], {"name": "Beer"}, 42]:
            with self.subTest(category=bad):
                with self.assertRaises(InvalidInput):
                    self.calc.total_excise([{"category_name": bad, "size_ml": 500, "quantity": 1}])
                with self.assertRaises(InvalidInput):
                    self.calc.excise_for_item(bad, 500)
                with self.assertRaises(InvalidInput):
                    LineItem(category_name=bad, volume_ml=500, quantity=1)

    def test_rejects_bad_items(self):
        with self.assertRaises(InvalidInput):
            self.calc.total_excise([{"category_name": "Beer", "size_ml": 500, "quantity": 0}])
        with self.assertRaises(InvalidInput):
            self.calc.total_excise(["Beer"])

    def test_additive(self):
        a = LineItem(category_name="Gin", volume_ml=750, quantity=3)
        b = LineItem(category_name="Beer", volume_ml=330, quantity=6)
        self.assertEqual(
            self.calc.total_excise([a, b]),
            self.calc.total_excise([a]) + self.calc.total_excise([b]),
        )

    def test_order_does_not_matter(self):
        items = [
            LineItem("Beer", 330, 24),
            LineItem("Whiskey", 1000, 1),
            LineItem(None, 200, 5),
        ]
        self.assertEqual(
            self.calc.total_excise(items),
            self.calc.total_excise(list(reversed(items))),
        )


class ComposeTaxesTests(SimpleTestCase):
    def setUp(self):
        self.calc = KRATaxCalculator()

    def test_no_excise_round_trips_subtotal(self):
        tb = self.calc.compose_taxes(1000, 0)
        self.assertEqual(money(tb.base_price, Decimal("0.0001")), Decimal("862.0690"))
        self.assertEqual(money(tb.vat, Decimal("0.001")), Decimal("137.931"))
        self.assertLess(abs(tb.total - Decimal("1000")), TOLERANCE)
        self.assertEqual(tb.vat_rate, Decimal("0.16"))

    def test_with_excise(self):
        tb = self.calc.compose_taxes(1160, 100)
        self.assertEqual(tb.base_price, Decimal("1000"))
        self.assertEqual(tb.vat_base, Decimal("1100"))
        self.assertEqual(tb.vat, Decimal("176"))
        self.assertEqual(tb.total, Decimal("1276"))
        self.assertEqual(tb.excise_duty, Decimal("100"))

    def test_zero_subtotal(self):
        tb = self.calc.compose_taxes(0, 0)
        self.assertEqual(tb.total, Decimal("0"))
        self.assertEqual(tb.vat, Decimal("0"))

    def test_negative_inputs_rejected(self):
        with self.assertRaises(InvalidInput):
            self.calc.compose_taxes(-1, 0)
        with self.assertRaises(InvalidInput):
            self.calc.compose_taxes(100, "-0.5")

    def test_breakdown_identity_and_reconstruction(self):
        for subtotal in ["0", "0.01", "99.99", "1000", "1234.56", "987654.32"]:
            for excise in ["0", "0.01", "71.22", "314.895", "5000"]:
                with self.subTest(subtotal=subtotal, excise=excise):
                    tb = self.calc.compose_taxes(subtotal, excise)
                    self.assertLess(abs(tb.total - (tb.base_price + tb.excise_duty + tb.vat)), TOLERANCE)
                    self.assertLess(abs(tb.base_price * (1 + tb.vat_rate) - Decimal(subtotal)), TOLERANCE)

    def test_vat_rate_comes_from_config(self):
        calc = KRATaxCalculator(TaxConfig(vat_rate="0.14"))
        tb = calc.compose_taxes(1140, 0)
        self.assertEqual(tb.base_price, Decimal("1000"))
        self.assertEqual(tb.vat, Decimal("140"))
        self.assertEqual(tb.vat_rate, Decimal("0.14"))


class RoundingTests(SimpleTestCase):
    def setUp(self):
        self.calc = KRATaxCalculator()

    def test_rounded_keeps_identity(self):
        r = self.calc.compose_taxes(1000, 0).rounded()
        self.assertEqual(r.base_price, Decimal("862.07"))
        self.assertEqual(r.vat, Decimal("137.93"))
        self.assertEqual(r.total, Decimal("1000.00"))
        self.assertEqual(r.total, r.base_price + r.excise_duty + r.vat)

    def test_half_up(self):
        self.assertEqual(money(Decimal("314.895")), Decimal("314.90"))
        self.assertEqual(money(Decimal("0.005")), Decimal("0.01"))
        self.assertEqual(money(Decimal("0.004")), Decimal("0.00"))

    def test_total_is_sum_of_rounded_parts(self):
        tb = self.calc.compose_taxes(1700, Decimal("314.895"))
        r = tb.rounded()
        self.assertEqual(r.base_price, Decimal("1465.52"))
        self.assertEqual(r.excise_duty, Decimal("314.90"))
        self.assertEqual(r.vat, Decimal("284.87"))
        self.assertEqual(r.total, Decimal("2065.29"))

    def test_sale_fields(self):
        fields = self.calc.compose_taxes(1160, 100).sale_fields()
        self.assertEqual(fields, {
            "total_amount": Decimal("1276.00"),
            "tax_amount": Decimal("176.00"),
            "excise_tax": Decimal("100.00"),
        })

    def test_receipt_lines(self):
        lines = self.calc.compose_taxes(1160, 100).receipt_lines()
        self.assertEqual(lines, [
            ("VAT (16%)", Decimal("176.00")),
            ("Excise Duty (KRA)", Decimal("100.00")),
        ])

    def test_receipt_label_for_fractional_rate(self):
        calc = KRATaxCalculator(TaxConfig(vat_rate="16.5"))
        label, _ = calc.compose_taxes(100, 0).receipt_lines()[0]
        self.assertEqual(label, "VAT (16.5%)")

    def test_whole_shilling_minor_unit(self):
        r = self.calc.compose_taxes(1000, 0).rounded(Decimal("1"))
        self.assertEqual(r.base_price, Decimal("862"))
        self.assertEqual(r.vat, Decimal("138"))
        self.assertEqual(r.total, Decimal("1000"))


class QuoteCartTests(SimpleTestCase):
    def setUp(self):
        self.calc = KRATaxCalculator()
        self.lines = [
            CartLine(category_name="Beer", volume_ml=500, quantity=2, unit_price="250.00", variant_id="v1"),
            CartLine(category_name="Wine", volume_ml=750, quantity=1, unit_price="1200.00", variant_id="v2"),
        ]

    def test_quote(self):
        quote = self.calc.quote_cart(self.lines)
        self.assertEqual(quote.subtotal, Decimal("1700"))
        self.assertEqual(quote.excise_duty, Decimal("314.895"))
        self.assertEqual(quote.taxes, self.calc.compose_taxes(Decimal("1700"), Decimal("314.895")))
        self.assertEqual([l.line_excise for l in quote.lines], [Decimal("142.44"), Decimal("172.455")])
        self.assertEqual([l.line_subtotal for l in quote.lines], [Decimal("500"), Decimal("1200")])
        self.assertEqual(quote.lines[0].excise_rate, Decimal("142.44"))

    def test_empty_cart(self):
        quote = self.calc.quote_cart([])
        self.assertEqual(quote.subtotal, Decimal("0"))
        self.assertEqual(quote.taxes.total, Decimal("0"))
        self.assertEqual(quote.lines, ())

    def test_unknown_category_warns_once_per_line(self):
        line = CartLine(category_name="Mystery", volume_ml=1000, quantity=3, unit_price="100")
        with self.assertLogs("domain_extensions.kenya_liquor.rates", level="WARNING") as logs:
            quote = self.calc.quote_cart([line])
        self.assertEqual(len(logs.records), 1)
        self.assertEqual(quote.lines[0].line_excise, Decimal("1069.26"))
        self.assertEqual(quote.excise_duty, self.calc.total_excise([line]))

    def test_rejects_lines_without_price(self):
        with self.assertRaises(InvalidInput):
            self.calc.quote_cart([LineItem("Beer", 500, 1)])

    def test_serialize_quote(self):
        data = serialize_quote(self.calc.quote_cart(self.lines))
        self.assertEqual(data["subtotal"], "1700.00")
        self.assertEqual(data["excise_duty"], "314.90")
        self.assertEqual(data["taxes"]["total"], "2065.29")
        self.assertEqual(data["sale"], {
            "total_amount": "2065.29",
            "tax_amount": "284.87",
            "excise_tax": "314.90",
        })
        self.assertEqual(data["lines"][1]["line_excise"], "172.46")
        self.assertEqual(data["lines"][0]["variant_id"], "v1")

    def test_serialize_breakdown(self):
        data = serialize_breakdown(self.calc.compose_taxes(1160, 100))
        self.assertEqual(data["base_price"], "1000.00")
        self.assertEqual(data["vat"], "176.00")
        self.assertEqual(data["total"], "1276.00")
        self.assertEqual(data["vat_rate"], "0.16")
        self.assertEqual(data["receipt"][0], {"label": "VAT (16%)", "amount": "176.00"})


class TaxConfigTests(SimpleTestCase):
    def test_defaults(self):
        config = TaxConfig()
        self.assertEqual(config.vat_rate, Decimal("0.16"))
        self.assertEqual(config.currency, "KES")
        self.assertEqual(config.rate_table.default, Decimal("356.42"))

    def test_percent_vat_rate_normalized(self):
        self.assertEqual(TaxConfig(vat_rate=16).vat_rate, Decimal("0.16"))
        self.assertEqual(TaxConfig(vat_rate="0.16").vat_rate, Decimal("0.16"))

    def test_negative_vat_rate_rejected(self):
        with self.assertRaises(InvalidInput):
            TaxConfig(vat_rate="-0.16")

    def test_minor_unit_must_be_positive(self):
        with self.assertRaises(InvalidInput):
            TaxConfig(minor_unit="0")

    def test_from_mapping_merges_rates(self):
        config = TaxConfig.from_mapping({"rates": {"Cider": "120.00", "Beer": "150"}, "vat_rate": "16"})
        table = config.rate_table
        self.assertEqual(table.rate_for_category("Cider"), Decimal("120.00"))
        self.assertEqual(table.rate_for_category("Beer"), Decimal("150"))
        self.assertEqual(table.rate_for_category("Vodka"), Decimal("356.42"))
        self.assertEqual(config.vat_rate, Decimal("0.16"))

    def test_from_mapping_replace_rates(self):
        config = TaxConfig.from_mapping({
            "replace_rates": True,
            "rates": {"Cider": "120", "default": "10"},
        })
        self.assertEqual(dict(config.rate_table.rates), {"Cider": Decimal("120")})
        self.assertEqual(config.rate_table.default, Decimal("10"))

    def test_default_rate_wins_over_rates_default(self):
        config = TaxConfig.from_mapping({"rates": {"default": "10"}, "default_rate": "20"})
        self.assertEqual(config.rate_table.default, Decimal("20"))
        self.assertNotIn("default", config.rate_table.rates)

    def test_empty_overrides_return_same_config(self):
        config = TaxConfig()
        self.assertIs(config.with_overrides({}), config)
        self.assertIs(config.with_overrides(None), config)

    def test_invalid_mapping_rejected(self):
        with self.assertRaises(InvalidInput):
            TaxConfig.from_mapping({"rates": {"Beer": "lots"}})

    def test_rates_must_be_a_mapping(self):
        for bad in [["Beer", "100"], "Beer=100", [("Beer", "100")]]:
            with self.subTest(rates=bad), self.assertRaises(InvalidInput):
                TaxConfig.from_mapping({"rates": bad})

    def test_settings_must_be_a_mapping(self):
        with self.assertRaises(InvalidInput):
            TaxConfig().with_overrides(["vat_rate", "0.16"])

    def test_replace_rates_parses_strings(self):
        kept = TaxConfig.from_mapping({"replace_rates": "false", "rates": {"Cider": "1"}})
        self.assertEqual(kept.rate_table.rate_for_category("Beer"), Decimal("142.44"))
        self.assertEqual(kept.rate_table.rate_for_category("Cider"), Decimal("1"))
        for flag in ["0", "no", "off", "", False]:
            with self.subTest(flag=flag):
                config = TaxConfig.from_mapping({"replace_rates": flag, "rates": {"Cider": "1"}})
                self.assertIn("Beer", config.rate_table.rates)
        for flag in ["true", "1", "Yes", True]:
            with self.subTest(flag=flag):
                config = TaxConfig.from_mapping({"replace_rates": flag, "rates": {"Cider": "1"}})
                self.assertEqual(dict(config.rate_table.rates), {"Cider": Decimal("1")})

    def test_replace_rates_rejects_unknown_values(self):
        for flag in ["maybe", 2, ["x"]]:
            with self.subTest(flag=flag), self.assertRaises(InvalidInput):
                TaxConfig.from_mapping({"replace_rates": flag, "rates": {"Cider": "1"}})

    def test_as_dict(self):
        data = TaxConfig.from_mapping({"replace_rates": True, "rates": {"Beer": "142.44"}}).as_dict()
        self.assertEqual(data, {
            "currency": "KES",
            "vat_rate": "0.16",
            "default_rate": "356.42",
            "rates": {"Beer": "142.44"},
        })

    def test_breakdown_is_immutable(self):
        tb = KRATaxCalculator().compose_taxes(100, 0)
        self.assertIsInstance(tb, TaxBreakdown)
        with self.assertRaises(AttributeError):
            tb.total = Decimal("0")
