import unittest
from types import SimpleNamespace

from app.services.pricing import (
    apply_discount_update,
    discount_amount_from_percentage,
    final_price,
    webinar_price_fields,
)


def _webinar(paid_amount=500.0, is_paid=True):
    return SimpleNamespace(is_paid=is_paid, paid_amount=paid_amount, discount_percentage=None, discount_amount=None)


class TestPricing(unittest.TestCase):
    def test_final_price(self):
        self.assertEqual(final_price(500, 100), 400.0)
        self.assertEqual(final_price(500, None), 500.0)
        self.assertEqual(final_price(100, 150), 0.0)

    def test_percentage_amount(self):
        self.assertEqual(discount_amount_from_percentage(500, 20), 100.0)
        self.assertEqual(discount_amount_from_percentage(199, 10), 19.9)

    def test_percentage_then_amount(self):
        webinar = _webinar()
        apply_discount_update(webinar, discount_percentage=20)
        self.assertEqual(webinar.discount_percentage, 20.0)
        self.assertEqual(webinar.discount_amount, 100.0)
        self.assertEqual(webinar_price_fields(webinar)["finalPrice"], 400.0)

        apply_discount_update(webinar, discount_amount=150)
        self.assertEqual(webinar.discount_percentage, 20.0)
        self.assertEqual(webinar.discount_amount, 150.0)
        self.assertEqual(webinar_price_fields(webinar)["finalPrice"], 350.0)

    def test_explicit_amount_wins_in_same_update(self):
        webinar = _webinar()
        apply_discount_update(webinar, discount_percentage=20, discount_amount=50)
        self.assertEqual(webinar.discount_percentage, 20.0)
        self.assertEqual(webinar.discount_amount, 50.0)

    def test_zero_clears(self):
        webinar = _webinar()
        apply_discount_update(webinar, discount_percentage=20)
        apply_discount_update(webinar, discount_percentage=0)
        self.assertIsNone(webinar.discount_percentage)
        self.assertIsNone(webinar.discount_amount)

    def test_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            apply_discount_update(_webinar(), discount_percentage=120)
        with self.assertRaises(ValueError):
            apply_discount_update(_webinar(), discount_amount=-1)

    def test_free_webinar_price(self):
        fields = webinar_price_fields(_webinar(paid_amount=None, is_paid=False))
        self.assertFalse(fields["isPaid"])
        self.assertEqual(fields["finalPrice"], 0.0)


if __name__ == "__main__":
    unittest.main()
