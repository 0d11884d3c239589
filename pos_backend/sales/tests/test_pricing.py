# sales/tests/test_pricing.py

from decimal import Decimal

from django.test import SimpleTestCase

from pos.services.cart import CartLineItem
from sales.services.pricing import (
    DiscountConfig,
    compute_discount,
    compute_subtotal,
    compute_totals,
    to_decimal,
)


def _line(price, qty, product_id="P"):
    return CartLineItem(product_id=product_id, title=product_id, unit_price=Decimal(price), quantity=qty)


class PricingEngineTests(SimpleTestCase):
    """
    GUARANTEES:
    - subtotal = SUM(price * qty)
    - taxable = max(0, subtotal - discount)
    - total = taxable + tax
    - No rounding inside the engine
    """

    def test_flat_amount_discount(self):
        totals = compute_totals(
            [_line("100", 2)],
            DiscountConfig(kind="amount", value=Decimal("20")),
            Decimal("0.1"),
        )

        self.assertEqual(totals.subtotal, Decimal("200"))
        self.assertEqual(totals.discount, Decimal("20"))
        self.assertEqual(totals.taxable, Decimal("180"))
        self.assertEqual(totals.tax, Decimal("18"))
        self.assertEqual(totals.total, Decimal("198"))

    def test_percent_discount_matches_equivalent_amount(self):
        totals = compute_totals(
            [_line("100", 2)],
            DiscountConfig(kind="percent", value=Decimal("10")),
            Decimal("0.1"),
        )

        self.assertEqual(totals.discount, Decimal("20"))
        self.assertEqual(totals.taxable, Decimal("180"))
        self.assertEqual(totals.tax, Decimal("18"))
        self.assertEqual(totals.total, Decimal("198"))

    def test_discount_larger_than_subtotal_floors_taxable_at_zero(self):
        totals = compute_totals(
            [_line("10", 1)],
            DiscountConfig(kind="amount", value=Decimal("50")),
            Decimal("0.2"),
        )

        self.assertEqual(totals.taxable, Decimal("0"))
        self.assertEqual(totals.tax, Decimal("0"))
        self.assertEqual(totals.total, Decimal("0"))

    def test_negative_discount_is_treated_as_zero(self):
        self.assertEqual(
            compute_discount(Decimal("100"), DiscountConfig(kind="amount", value=Decimal("-5"))),
            Decimal("0"),
        )
        self.assertEqual(
            compute_discount(Decimal("100"), DiscountConfig(kind="percent", value=Decimal("-5"))),
            Decimal("0"),
        )

    def test_empty_cart_is_all_zero(self):
        totals = compute_totals([], DiscountConfig(), Decimal("0.1"))

        self.assertEqual(totals.subtotal, Decimal("0"))
        self.assertEqual(totals.total, Decimal("0"))

    def test_full_precision_is_kept(self):
        totals = compute_totals(
            [_line("0.10", 3)],
            DiscountConfig(kind="percent", value=Decimal("33.3333")),
            Decimal("0.0725"),
        )

        self.assertEqual(totals.subtotal, Decimal("0.30"))
        self.assertEqual(totals.discount, Decimal("0.30") * (Decimal("33.3333") / Decimal("100")))
        self.assertEqual(totals.total, totals.taxable + totals.tax)

    def test_subtotal_sums_lines(self):
        self.assertEqual(
            compute_subtotal([_line("2.50", 2, "A"), _line("1.25", 4, "B")]),
            Decimal("10.00"),
        )

    def test_unknown_discount_kind_raises(self):
        with self.assertRaises(ValueError):
            compute_discount(Decimal("10"), DiscountConfig(kind="bogus", value=Decimal("1")))

    def test_to_decimal(self):
        self.assertEqual(to_decimal(None), Decimal("0"))
        self.assertEqual(to_decimal(""), Decimal("0"))
        self.assertEqual(to_decimal("1.5"), Decimal("1.5"))
        with self.assertRaises(ValueError):
            to_decimal(True)
        with self.assertRaises(ValueError):
            to_decimal("abc")

    def test_to_decimal_rejects_non_finite_values(self):
        for raw in ("NaN", "sNaN", "Infinity", "-Infinity", Decimal("NaN"), float("inf")):
            with self.assertRaises(ValueError):
                to_decimal(raw)

    def test_discount_config_round_trips_through_dict(self):
        config = DiscountConfig(kind="percent", value=Decimal("12.5"))
        self.assertEqual(DiscountConfig.from_dict(config.to_dict()), config)
        self.assertEqual(DiscountConfig.from_dict(None), DiscountConfig())
