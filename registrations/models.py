# registrations/models.py
import string
import time

from django.db import models
from django.utils import timezone
from django.utils.crypto import get_random_string

from .exceptions import ConflictError


class Category(models.TextChoices):
    SCHOOL = "school", "School"
    UNIVERSITY = "university", "University"
    GENERAL = "general", "General Public"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


TERMINAL_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.FAILED)


def generate_registration_id() -> str:
    suffix = get_random_string(9, allowed_chars=string.ascii_lowercase + string.digits)
    return f"REG-{int(time.time() * 1000)}-{suffix}"


class Registration(models.Model):
    """One applicant's (or one school's) signup, with its payment lifecycle."""
    id = models.CharField(primary_key=True, max_length=64, default=generate_registration_id, editable=False)
    category = models.CharField(max_length=20, choices=Category.choices)
    reference = models.CharField(max_length=100, unique=True)  # Our reference, sent to Paystack
    amount = models.PositiveIntegerField(help_text="Naira, whole units")
    status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )

    paystack_reference = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    paystack_access_code = models.CharField(max_length=100, blank=True, null=True)

    # Category specific payload (contact details, student names, derived pricing...)
    data = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.id} - {self.category} - {self.status}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_completed(self, when=None) -> bool:
        return self._finalise(PaymentStatus.COMPLETED, 'verified_at', when)

    def mark_failed(self, when=None) -> bool:
        return self._finalise(PaymentStatus.FAILED, 'failed_at', when)

    def _finalise(self, new_status, stamp_field, when) -> bool:
        """
        Applies a terminal transition in memory. Returns False when the
        registration is already in `new_status`.
        """
        if self.status == new_status:
            return False
        if self.is_terminal:
            raise ConflictError(f"Registration {self.id} is already {self.status}.")
        self.status = new_status
        setattr(self, stamp_field, when or timezone.now())
        return True

    @property
    def contact_email(self) -> str:
        data = self.data or {}
        return data.get('contact_email') or data.get('email') or ''

    @property
    def display_name(self) -> str:
        data = self.data or {}
        if self.category == Category.SCHOOL:
            return data.get('school_name') or data.get('contact_name') or 'School Registration'
        full_name = f"{data.get('first_name', '')} {data.get('last_name', '')}".strip()
        return full_name or data.get('name') or 'Registrant'

    @property
    def student_count(self) -> int:
        data = self.data or {}
        if self.category != Category.SCHOOL:
            return 1
        if data.get('total_students'):
            return int(data['total_students'])
        return len(data.get('student_names') or [])
