# users/services.py
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework_simplejwt.tokens import RefreshToken

from cores.audit import record_event
from registrations.exceptions import ValidationError
from registrations.models import Category, PaymentStatus

logger = logging.getLogger(__name__)

User = get_user_model()


@dataclass(frozen=True)
class Credential:
    user_id: int
    email: str
    password: str  # plaintext, shown once to the school contact


def generate_temp_password() -> str:
    return secrets.token_urlsafe(8)


def create_school_user(*, email: str, password: str, registration=None, school_name: Optional[str] = None) -> User:
    email = email.strip().lower()
    data = getattr(registration, 'data', None) or {}
    return User.objects.create_user(
        username=email,
        email=email,
        password=password,
        role=User.Role.SCHOOL,
        school_name=school_name or data.get('school_name'),
        registration_id=getattr(registration, 'id', None),
    )


def create_admin_user(*, email: str, password: str, name: str = '') -> User:
    email = email.strip().lower()
    first_name, _, last_name = (name or 'Admin').partition(' ')
    return User.objects.create_user(
        username=email,
        email=email,
        password=password,
        role=User.Role.ADMIN,
        first_name=first_name,
        last_name=last_name,
    )


def get_user_by_email(email: str) -> Optional[User]:
    return User.objects.filter(email__iexact=(email or '').strip()).first()


def update_password(user: User, password: str) -> User:
    user.set_password(password)
    user.save(update_fields=['password'])
    return user


def check_school_registration(registration, email: str) -> None:
    """
    A school account may only be attached to a paid school registration,
    and only by its contact email.
    """
    if registration.category != Category.SCHOOL:
        raise ValidationError("Registration is not a school registration.")
    if registration.status != PaymentStatus.COMPLETED:
        raise ValidationError("Payment not completed yet.")
    contact_email = (registration.data or {}).get('contact_email') or ''
    if not contact_email or contact_email.strip().lower() != (email or '').strip().lower():
        raise ValidationError("Email does not match registration contact email.")


class SchoolAccountProvisioner:
    """
    Creates the login for a school once its registration is paid, and keeps
    the temporary password on the registration for one-time display.

    Storing the plaintext password on the registration is a known weakness
    carried over from the first version of the platform.
    """

    def __init__(self, store):
        self.store = store

    def __call__(self, registration) -> Optional[Credential]:
        return self.provision(registration)

    def provision(self, registration) -> Optional[Credential]:
        if registration.category != Category.SCHOOL or registration.status != PaymentStatus.COMPLETED:
            logger.warning("Not provisioning %s: %s registration is %s",
                           registration.id, registration.category, registration.status)
            return None

        email = (registration.data or {}).get('contact_email')
        if not email:
            logger.warning("Not provisioning %s: no contact email", registration.id)
            return None

        if get_user_by_email(email) is not None:
            logger.info("Account for %s already exists, skipping provisioning of %s", email, registration.id)
            return None

        temp_password = generate_temp_password()
        try:
            with transaction.atomic():
                user = create_school_user(email=email, password=temp_password, registration=registration)
        except IntegrityError:
            logger.info("Account for %s was created concurrently, skipping %s", email, registration.id)
            return None

        data = dict(registration.data or {})
        data['temp_password'] = temp_password
        self.store.update(registration.id, data=data)

        logger.info("School account %s provisioned for %s", user.email, registration.id)
        record_event('ACCOUNT', target=user, actor=user, details=f"Provisioned from registration {registration.id}")
        return Credential(user_id=user.pk, email=user.email, password=temp_password)


def generate_token_pair(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role

    return {
        "refresh": str(refresh),
        "access": str(refresh.access_token),
    }
