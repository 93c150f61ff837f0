# registrations/services.py
"""
Registration lifecycle: create (authorise with Paystack, then persist as
pending), confirm (verify with Paystack, then move to completed or failed
exactly once) and the read side used by the lookup and admin views.
"""
import csv
import io
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from django.conf import settings
from django.utils import timezone

from cores.audit import record_event
from users.services import SchoolAccountProvisioner
from .exceptions import ConflictError, NotFoundError, ValidationError
from .gateway import PaymentAuthorization, PaystackClient, PaystackConfig, generate_payment_reference
from .models import Category, PaymentStatus, Registration, generate_registration_id
from .pricing import PricingEngine, default_engine
from .serializers import PAYLOAD_SERIALIZERS, RegistrationSummarySerializer
from .stores import RegistrationStore, build_registration_store

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ['ID', 'Category', 'Name/School', 'Email', 'Amount', 'Status', 'Date']


@dataclass(frozen=True)
class CreatedRegistration:
    registration: Registration
    authorization: PaymentAuthorization


class RegistrationService:
    def __init__(self, store: RegistrationStore, gateway, pricing: PricingEngine,
                 provisioner: Optional[Callable] = None, reference_prefix: str = "NAFS"):
        self.store = store
        self.gateway = gateway
        self.pricing = pricing
        self.provisioner = provisioner
        self.reference_prefix = reference_prefix

    # --- create ---

    def validate_payload(self, category, payload) -> dict:
        serializer_class = PAYLOAD_SERIALIZERS.get(category)
        if serializer_class is None:
            raise ValidationError(f"Unknown registration category '{category}'.")
        serializer = serializer_class(data=payload or {})
        if not serializer.is_valid():
            raise ValidationError(serializer.errors)
        return dict(serializer.validated_data)

    def create(self, category, payload, amount=None) -> CreatedRegistration:
        data = self.validate_payload(category, payload)

        if category == Category.SCHOOL:
            quote = self.pricing.price_for_school(len(data['student_names']))
            data.update(
                total_students=quote.student_count,
                programme_fee=quote.programme_fee,
                book_fee=quote.book_fee,
                discount_percent=quote.discount_percent,
            )
            price = quote.total_amount
            email = data['contact_email']
        else:
            price = self.pricing.price_for_individual(category)
            data.update(discount_percent=0)
            email = data['email']

        if amount is not None and int(amount) != price:
            raise ValidationError(f"Amount {amount} does not match the registration price {price}.")

        registration = Registration(
            id=generate_registration_id(),
            category=category,
            reference=generate_payment_reference(f"{self.reference_prefix}_{category.upper()}"),
            amount=price,
            status=PaymentStatus.PENDING,
            data=data,
        )

        # Nothing is stored unless Paystack accepted the transaction.
        authorization = self.gateway.initialize(
            email=email,
            amount=price,
            reference=registration.reference,
            metadata={
                'registration_id': registration.id,
                'category': category,
                'total_students': data.get('total_students', 1),
            },
            description=f"NAFS Registration - {category}",
        )
        registration.paystack_reference = authorization.reference
        registration.paystack_access_code = authorization.access_code
        self.store.insert(registration)

        logger.info("Registration %s created (%s, %s NGN)", registration.id, category, price)
        record_event('REGISTRATION', target=registration, details=f"{category} registration for {email}, amount {price}")
        return CreatedRegistration(registration=registration, authorization=authorization)

    # --- confirm ---

    def confirm(self, reference) -> Registration:
        registration = self.store.get_by_reference(reference)
        if registration is None:
            raise NotFoundError(f"No registration for reference '{reference}'.")

        if registration.is_terminal:
            logger.info("Duplicate confirmation for %s ignored (already %s)", registration.id, registration.status)
            return registration

        verification = self.gateway.verify(registration.paystack_reference or registration.reference)
        succeeded = verification.succeeded
        if succeeded and verification.amount is not None and verification.amount < registration.amount:
            logger.warning(
                "Underpayment on %s: paid %s, expected %s", registration.id, verification.amount, registration.amount
            )
            succeeded = False

        now = timezone.now()
        if succeeded:
            registration.mark_completed(now)
            stamp = {'verified_at': registration.verified_at}
        else:
            registration.mark_failed(now)
            stamp = {'failed_at': registration.failed_at}

        if not self.store.transition(registration.id, registration.status, **stamp):
            # Another confirmation finalised the row between our read and write.
            return self._reconcile(registration.id, registration.status)

        registration = self.store.get_by_id(registration.id)
        if succeeded:
            record_event('PAYMENT_VERIFIED', target=registration, details=f"Paystack reference {reference}")
            if registration.category == Category.SCHOOL:
                registration = self._provision(registration)
        else:
            record_event('PAYMENT_FAILED', target=registration, details=f"Paystack status '{verification.gateway_status}'")
        return registration

    def _reconcile(self, registration_id, wanted_status) -> Registration:
        current = self.store.get_by_id(registration_id)
        if current is None:
            raise NotFoundError(f"Registration '{registration_id}' not found.")
        try:
            if wanted_status == PaymentStatus.COMPLETED:
                current.mark_completed()
            else:
                current.mark_failed()
        except ConflictError as exc:
            logger.warning("Ignoring conflicting confirmation: %s", exc)
        return current

    def _provision(self, registration) -> Registration:
        if self.provisioner is None:
            return registration
        try:
            self.provisioner(registration)
        except Exception:
            # Payment is the source of truth; the account can be created later via signup.
            logger.exception("Error creating school account for %s", registration.id)
            return registration
        return self.store.get_by_id(registration.id) or registration

    # --- read side ---

    def get(self, registration_id) -> Registration:
        registration = self.store.get_by_id(registration_id)
        if registration is None:
            raise NotFoundError(f"Registration '{registration_id}' not found.")
        return registration

    def lookup(self, registration_id=None, reference=None, email=None) -> Optional[Registration]:
        if registration_id:
            return self.store.find_by_id(registration_id)
        if reference:
            reference = reference.strip()
            return self.store.get_by_reference(reference) or self.store.find_by_id(reference)
        if email:
            return self.store.find_by_email(email)
        raise ValidationError("Missing search parameter.")

    @staticmethod
    def summarize(registration) -> dict:
        return RegistrationSummarySerializer(registration).data

    def list_all(self):
        return self.store.list_all()

    def statistics(self) -> dict:
        rows = self.store.list_all()
        counts = {category: 0 for category in Category.values}
        for row in rows:
            counts[row.category] = counts.get(row.category, 0) + 1

        school_rows = [row for row in rows if row.category == Category.SCHOOL]
        school_total = sum(row.amount for row in school_rows)
        average_school = 0
        if school_rows:
            average_school = int(
                (Decimal(school_total) / Decimal(len(school_rows))).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
            )

        return {
            'total_registrations': len(rows),
            'schools': counts[Category.SCHOOL],
            'universities': counts[Category.UNIVERSITY],
            'general': counts[Category.GENERAL],
            'total_students': sum(row.student_count for row in rows),
            'total_revenue': sum(row.amount for row in rows if row.status == PaymentStatus.COMPLETED),
            'pending': sum(1 for row in rows if row.status == PaymentStatus.PENDING),
            'average_per_school': average_school,
        }

    def export_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
        writer.writerow(EXPORT_COLUMNS)
        for row in self.store.list_all():
            writer.writerow([
                row.id,
                row.category.capitalize(),
                row.display_name,
                row.contact_email,
                row.amount,
                row.status,
                timezone.localtime(row.created_at).date().isoformat() if row.created_at else '',
            ])
        return buffer.getvalue()


def build_registration_service(store=None, gateway=None) -> RegistrationService:
    store = store or build_registration_store()
    return RegistrationService(
        store=store,
        gateway=gateway or PaystackClient(PaystackConfig.from_settings()),
        pricing=default_engine(),
        provisioner=SchoolAccountProvisioner(store),
        reference_prefix=getattr(settings, 'REGISTRATION_REFERENCE_PREFIX', 'NAFS'),
    )
