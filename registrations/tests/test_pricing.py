from decimal import Decimal

from django.test import SimpleTestCase

from registrations.exceptions import ValidationError
from registrations.pricing import (
    PricingConfig,
    PricingEngine,
    PricingTier,
    calculate_school_discount,
    calculate_school_price,
)


class SchoolDiscountTests(SimpleTestCase):
    def test_thresholds_are_inclusive(self):
        self.assertEqual(calculate_school_discount(1), 0)
        self.assertEqual(calculate_school_discount(19), 0)
        self.assertEqual(calculate_school_discount(20), 10)
        self.assertEqual(calculate_school_discount(49), 10)
        self.assertEqual(calculate_school_discount(50), 20)
        self.assertEqual(calculate_school_discount(99), 20)
        self.assertEqual(calculate_school_discount(100), 30)
        self.assertEqual(calculate_school_discount(450), 30)

    def test_count_below_one_is_rejected(self):
        with self.assertRaises(ValidationError):
            calculate_school_discount(0)
        with self.assertRaises(ValidationError):
            calculate_school_price(-3)


class SchoolPriceTests(SimpleTestCase):
    def setUp(self):
        self.engine = PricingEngine(PricingConfig.from_settings())

    def test_twenty_five_students(self):
        quote = calculate_school_price(25)
        self.assertEqual(quote.programme_fee, 2250)
        self.assertEqual(quote.book_fee, 2500)
        self.assertEqual(quote.per_student, 4750)
        self.assertEqual(quote.discount_percent, 10)
        self.assertEqual(quote.total_amount, (2250 + 2500) * 25)
        self.assertEqual(quote.total_amount, 118750)

    def test_total_matches_both_representations(self):
        for count in (1, 19, 20, 37, 50, 64, 100, 230):
            quote = self.engine.price_for_school(count)
            tier = self.engine.tier_for(count)
            # exact: the tier's per-student fees times the head count
            self.assertEqual(quote.total_amount, (tier.programme_fee + quote.book_fee) * count)
            # approximate: list programme price less the discount, books undiscounted
            discounted = Decimal(self.engine.list_price_total(count)) * (100 - quote.discount_percent) / 100
            self.assertAlmostEqual(
                float(quote.total_amount - quote.book_fee * count), float(discounted), delta=count * 0.5
            )

    def test_total_is_linear_within_each_tier(self):
        for low, high in ((1, 19), (20, 49), (50, 99), (100, 140)):
            per_student = self.engine.price_for_school(low).per_student
            previous = 0
            for count in range(low, high + 1):
                total = self.engine.price_for_school(count).total_amount
                self.assertEqual(total, per_student * count)
                self.assertGreater(total, previous)
                previous = total

    def test_total_can_drop_across_a_tier_boundary(self):
        self.assertGreater(
            self.engine.price_for_school(49).total_amount,
            self.engine.price_for_school(50).total_amount,
        )

    def test_individual_categories_pay_flat_price(self):
        self.assertEqual(self.engine.price_for_individual('university'), 5000)
        self.assertEqual(self.engine.price_for_individual('general'), 5000)
        self.assertEqual(self.engine.price_for('general'), 5000)
        self.assertEqual(self.engine.price_for('school', 20), 95000)

    def test_school_is_not_an_individual_category(self):
        with self.assertRaises(ValidationError):
            self.engine.price_for_individual('school')


class PricingConfigTests(SimpleTestCase):
    def test_tier_fee_is_rounded_half_up_once(self):
        self.assertEqual(PricingTier.from_discount(20, 2505, 10).programme_fee, 2255)  # 2254.5
        self.assertEqual(PricingTier.from_discount(20, 2499, 10).programme_fee, 2249)  # 2249.1
        self.assertEqual(PricingTier.from_discount(100, 2500, 30).programme_fee, 1750)

    def test_default_tiers_match_published_table(self):
        config = PricingConfig.from_settings()
        self.assertEqual(
            [(t.min_students, t.programme_fee, t.discount_percent) for t in config.tiers],
            [(100, 1750, 30), (50, 2000, 20), (20, 2250, 10), (1, 2500, 0)],
        )

    def test_tiers_are_sorted_and_get_a_zero_discount_fallback(self):
        config = PricingConfig.from_dict({
            'programme_fee': 1000,
            'book_fee': 500,
            'tiers': [{'min_students': 10, 'discount_percent': 10}, {'min_students': 30, 'discount_percent': 25}],
        })
        self.assertEqual([t.min_students for t in config.tiers], [30, 10, 1])
        self.assertEqual(config.individual_price, 1500)

        engine = PricingEngine(config)
        self.assertEqual(engine.discount_for(5), 0)
        self.assertEqual(engine.price_for_school(5).total_amount, 1500 * 5)
        self.assertEqual(engine.price_for_school(30).programme_fee, 750)

    def test_explicit_programme_fee_is_kept(self):
        config = PricingConfig.from_dict({
            'programme_fee': 2500,
            'book_fee': 2500,
            'tiers': [{'min_students': 20, 'programme_fee': 2200, 'discount_percent': 12}],
        })
        self.assertEqual(config.tiers[0].programme_fee, 2200)

    def test_tier_table(self):
        rows = PricingEngine(PricingConfig.from_settings()).tier_table()
        self.assertEqual([row['description'] for row in rows], [
            '100+ students', '50–99 students', '20–49 students', '1–19 students',
        ])
        self.assertEqual([row['total'] for row in rows], [4250, 4500, 4750, 5000])
