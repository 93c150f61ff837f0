# registrations/pricing.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings

from .exceptions import ValidationError
from .models import Category


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricingTier:
    """Volume tier: schools with at least `min_students` pay `programme_fee` per student."""
    min_students: int
    programme_fee: int
    discount_percent: int

    @classmethod
    def from_discount(cls, min_students: int, base_programme_fee: int, discount_percent: int) -> "PricingTier":
        # The discounted fee is rounded here, once, so quotes never re-round per request.
        discounted = Decimal(base_programme_fee) * (Decimal(100) - Decimal(discount_percent)) / Decimal(100)
        return cls(
            min_students=int(min_students),
            programme_fee=_round_half_up(discounted),
            discount_percent=int(discount_percent),
        )


@dataclass(frozen=True)
class SchoolQuote:
    student_count: int
    programme_fee: int
    book_fee: int
    discount_percent: int
    total_amount: int

    @property
    def per_student(self) -> int:
        return self.programme_fee + self.book_fee


@dataclass(frozen=True)
class PricingConfig:
    programme_fee: int
    book_fee: int
    individual_price: int
    tiers: tuple

    def __post_init__(self):
        tiers = sorted(self.tiers, key=lambda tier: tier.min_students, reverse=True)
        if not tiers or tiers[-1].min_students > 1:
            tiers.append(PricingTier(min_students=1, programme_fee=self.programme_fee, discount_percent=0))
        object.__setattr__(self, 'tiers', tuple(tiers))

    @classmethod
    def from_dict(cls, raw: dict) -> "PricingConfig":
        programme_fee = int(raw['programme_fee'])
        tiers = []
        for entry in raw.get('tiers', []):
            if 'programme_fee' in entry:
                tiers.append(PricingTier(
                    min_students=int(entry['min_students']),
                    programme_fee=int(entry['programme_fee']),
                    discount_percent=int(entry.get('discount_percent', 0)),
                ))
            else:
                tiers.append(PricingTier.from_discount(
                    entry['min_students'], programme_fee, entry.get('discount_percent', 0)
                ))
        return cls(
            programme_fee=programme_fee,
            book_fee=int(raw['book_fee']),
            individual_price=int(raw.get('individual_price', programme_fee + int(raw['book_fee']))),
            tiers=tuple(tiers),
        )

    @classmethod
    def from_settings(cls) -> "PricingConfig":
        return cls.from_dict(settings.REGISTRATION_PRICING)


class PricingEngine:
    """
    Maps a registration to the amount charged for it.

    School groups are priced per student from the first tier (highest
    threshold first) whose minimum the head count reaches. University and
    general public registrations pay one flat price.
    """

    def __init__(self, config: PricingConfig):
        self.config = config

    def tier_for(self, student_count: int) -> PricingTier:
        if student_count < 1:
            raise ValidationError("At least one student is required.")
        for tier in self.config.tiers:
            if student_count >= tier.min_students:
                return tier
        return self.config.tiers[-1]

    def discount_for(self, student_count: int) -> int:
        return self.tier_for(student_count).discount_percent

    def price_for_school(self, student_count: int) -> SchoolQuote:
        tier = self.tier_for(student_count)
        book_fee = self.config.book_fee
        return SchoolQuote(
            student_count=student_count,
            programme_fee=tier.programme_fee,
            book_fee=book_fee,
            discount_percent=tier.discount_percent,
            total_amount=(tier.programme_fee + book_fee) * student_count,
        )

    def price_for_individual(self, category: str) -> int:
        if category not in (Category.UNIVERSITY, Category.GENERAL):
            raise ValidationError(f"'{category}' is not an individual registration category.")
        return self.config.individual_price

    def price_for(self, category: str, student_count: Optional[int] = None) -> int:
        if category == Category.SCHOOL:
            return self.price_for_school(student_count or 0).total_amount
        return self.price_for_individual(category)

    def list_price_total(self, student_count: int) -> int:
        """Undiscounted programme fees for `student_count` students (books excluded)."""
        return self.config.programme_fee * student_count

    def tier_table(self) -> list:
        rows = []
        upper = None
        for tier in self.config.tiers:
            if upper is None:
                description = f"{tier.min_students}+ students"
            else:
                description = f"{tier.min_students}–{upper - 1} students"
            rows.append({
                'students': tier.min_students,
                'programme': tier.programme_fee,
                'book': self.config.book_fee,
                'total': tier.programme_fee + self.config.book_fee,
                'discount': tier.discount_percent,
                'description': description,
            })
            upper = tier.min_students
        return rows


def default_engine() -> PricingEngine:
    return PricingEngine(PricingConfig.from_settings())


def calculate_school_discount(student_count: int) -> int:
    return default_engine().discount_for(student_count)


def calculate_school_price(student_count: int) -> SchoolQuote:
    return default_engine().price_for_school(student_count)
