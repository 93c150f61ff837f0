# registrations/stores.py
"""
Registration persistence.

Two interchangeable stores implement the same contract: the Django ORM store
used in normal deployments, and a JSON file store for running without a
database. Both hand back `Registration` instances (unsaved ones, for the file
store) and both make terminal transitions conditional on the row still being
pending.
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .models import PaymentStatus, Registration

logger = logging.getLogger(__name__)

FIELDS = (
    'id', 'category', 'reference', 'amount', 'status',
    'paystack_reference', 'paystack_access_code', 'data',
    'created_at', 'updated_at', 'verified_at', 'failed_at',
)
DATETIME_FIELDS = ('created_at', 'updated_at', 'verified_at', 'failed_at')
# Fixed at creation, or owned by `transition`
PROTECTED_FIELDS = ('id', 'category', 'reference', 'amount', 'status', 'created_at', 'verified_at', 'failed_at')


def _check_update_fields(fields):
    protected = sorted(set(fields) & set(PROTECTED_FIELDS))
    if protected:
        raise ValueError(f"Cannot update {', '.join(protected)} on a registration.")


class RegistrationStore:
    def insert(self, registration: Registration) -> Registration:
        raise NotImplementedError

    def get_by_id(self, registration_id: str) -> Optional[Registration]:
        raise NotImplementedError

    def get_by_reference(self, reference: str) -> Optional[Registration]:
        """Matches our reference or Paystack's, ignoring case."""
        raise NotImplementedError

    def find_by_email(self, email: str) -> Optional[Registration]:
        """Newest registration whose email or contact email matches, ignoring case."""
        raise NotImplementedError

    def find_by_id(self, registration_id: str) -> Optional[Registration]:
        """Like get_by_id, ignoring case."""
        raise NotImplementedError

    def update(self, registration_id: str, **fields) -> Optional[Registration]:
        """Enriches a row. Status and pricing fields only change through `transition`."""
        raise NotImplementedError

    def transition(self, registration_id: str, status: str, **fields) -> bool:
        """Sets a terminal status only if the row is still pending."""
        raise NotImplementedError

    def list_all(self) -> List[Registration]:
        raise NotImplementedError


class DatabaseRegistrationStore(RegistrationStore):
    def insert(self, registration):
        registration.save(force_insert=True)
        return registration

    def get_by_id(self, registration_id):
        if not registration_id:
            return None
        return Registration.objects.filter(pk=registration_id).first()

    def find_by_id(self, registration_id):
        registration_id = (registration_id or '').strip()
        if not registration_id:
            return None
        return Registration.objects.filter(pk__iexact=registration_id).first()

    def get_by_reference(self, reference):
        reference = (reference or '').strip()
        if not reference:
            return None
        return (
            Registration.objects
            .filter(Q(reference__iexact=reference) | Q(paystack_reference__iexact=reference))
            .order_by('-created_at')
            .first()
        )

    def find_by_email(self, email):
        email = (email or '').strip()
        if not email:
            return None
        return (
            Registration.objects
            .filter(Q(data__email__iexact=email) | Q(data__contact_email__iexact=email))
            .order_by('-created_at')
            .first()
        )

    def update(self, registration_id, **fields):
        _check_update_fields(fields)
        fields['updated_at'] = timezone.now()
        updated = Registration.objects.filter(pk=registration_id).update(**fields)
        return self.get_by_id(registration_id) if updated else None

    def transition(self, registration_id, status, **fields):
        with transaction.atomic():
            applied = Registration.objects.filter(
                pk=registration_id, status=PaymentStatus.PENDING
            ).update(status=status, updated_at=timezone.now(), **fields)
        return applied == 1

    def list_all(self):
        return list(Registration.objects.all().order_by('-created_at'))


class JsonFileRegistrationStore(RegistrationStore):
    # One lock per process; the file is rewritten whole on every change.
    _lock = threading.Lock()

    def __init__(self, path):
        self.path = Path(path)

    # --- file helpers ---

    def _read(self) -> list:
        if not self.path.exists():
            return []
        with self.path.open('r', encoding='utf-8') as fh:
            content = fh.read().strip()
        return json.loads(content) if content else []

    def _write(self, rows: list) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with tmp_path.open('w', encoding='utf-8') as fh:
            json.dump(rows, fh, indent=2)
        os.replace(tmp_path, self.path)

    @staticmethod
    def _to_row(registration: Registration) -> dict:
        row = {}
        for name in FIELDS:
            value = getattr(registration, name)
            if name in DATETIME_FIELDS and value is not None:
                value = value.isoformat()
            row[name] = value
        return row

    @staticmethod
    def _from_row(row: dict) -> Registration:
        values = {name: row.get(name) for name in FIELDS}
        for name in DATETIME_FIELDS:
            if values[name]:
                values[name] = parse_datetime(values[name])
        values['data'] = values['data'] or {}
        return Registration(**values)

    @staticmethod
    def _newest_first(rows: list) -> list:
        return sorted(rows, key=lambda row: row.get('created_at') or '', reverse=True)

    # --- contract ---

    def insert(self, registration):
        now = timezone.now()
        registration.created_at = registration.created_at or now
        registration.updated_at = now
        with self._lock:
            rows = self._read()
            for row in rows:
                if row['id'] == registration.id or row['reference'] == registration.reference:
                    raise IntegrityError(f"Registration {registration.id} already exists.")
            rows.append(self._to_row(registration))
            self._write(rows)
        return registration

    def get_by_id(self, registration_id):
        with self._lock:
            rows = self._read()
        for row in rows:
            if row['id'] == registration_id:
                return self._from_row(row)
        return None

    def find_by_id(self, registration_id):
        needle = (registration_id or '').strip().lower()
        if not needle:
            return None
        with self._lock:
            rows = self._read()
        for row in rows:
            if row['id'].lower() == needle:
                return self._from_row(row)
        return None

    def get_by_reference(self, reference):
        needle = (reference or '').strip().lower()
        if not needle:
            return None
        with self._lock:
            rows = self._newest_first(self._read())
        for row in rows:
            candidates = (row.get('reference'), row.get('paystack_reference'))
            if any(value and value.lower() == needle for value in candidates):
                return self._from_row(row)
        return None

    def find_by_email(self, email):
        needle = (email or '').strip().lower()
        if not needle:
            return None
        with self._lock:
            rows = self._newest_first(self._read())
        for row in rows:
            data = row.get('data') or {}
            candidates = (data.get('email'), data.get('contact_email'))
            if any(isinstance(value, str) and value.lower() == needle for value in candidates):
                return self._from_row(row)
        return None

    def _apply(self, registration_id, fields, only_if_pending=False):
        fields['updated_at'] = timezone.now()
        with self._lock:
            rows = self._read()
            for index, row in enumerate(rows):
                if row['id'] != registration_id:
                    continue
                if only_if_pending and row['status'] != PaymentStatus.PENDING:
                    return None
                registration = self._from_row(row)
                for name, value in fields.items():
                    setattr(registration, name, value)
                rows[index] = self._to_row(registration)
                self._write(rows)
                return registration
        return None

    def update(self, registration_id, **fields):
        _check_update_fields(fields)
        return self._apply(registration_id, fields)

    def transition(self, registration_id, status, **fields):
        fields['status'] = status
        return self._apply(registration_id, fields, only_if_pending=True) is not None

    def list_all(self):
        with self._lock:
            rows = self._newest_first(self._read())
        return [self._from_row(row) for row in rows]


def build_registration_store() -> RegistrationStore:
    backend = getattr(settings, 'REGISTRATION_STORE', 'database')
    if backend == 'json':
        return JsonFileRegistrationStore(settings.REGISTRATION_JSON_PATH)
    if backend != 'database':
        logger.warning("Unknown REGISTRATION_STORE %r, falling back to the database store.", backend)
    return DatabaseRegistrationStore()
