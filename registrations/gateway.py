# registrations/gateway.py
"""
Paystack client used by the registration flow.

Only two calls are consumed: initialise a transaction (returns the hosted
checkout URL) and verify a transaction by reference. Amounts cross this
boundary in Naira; the kobo conversion happens here and nowhere else.
"""
from __future__ import annotations

import logging
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from django.conf import settings
from django.utils.crypto import get_random_string

from .exceptions import GatewayError

logger = logging.getLogger(__name__)

KOBO_PER_NAIRA = 100


@dataclass(frozen=True)
class PaystackConfig:
    secret_key: str
    base_url: str = "https://api.paystack.co"
    callback_url: str = ""
    timeout: float = 20.0

    @classmethod
    def from_settings(cls) -> "PaystackConfig":
        return cls(
            secret_key=getattr(settings, 'PAYSTACK_SECRET_KEY', '') or '',
            base_url=getattr(settings, 'PAYSTACK_BASE_URL', cls.base_url),
            callback_url=getattr(settings, 'PAYSTACK_CALLBACK_URL', '') or '',
            timeout=float(getattr(settings, 'PAYSTACK_TIMEOUT_SECONDS', cls.timeout)),
        )


@dataclass(frozen=True)
class PaymentAuthorization:
    authorization_url: str
    access_code: str
    reference: str


@dataclass(frozen=True)
class PaymentVerification:
    succeeded: bool
    amount: Optional[int] = None  # Naira, when Paystack reports it
    gateway_status: str = ""


def generate_payment_reference(prefix: str = "NAFS") -> str:
    random_part = get_random_string(6, allowed_chars=string.ascii_uppercase + string.digits)
    return f"{prefix}_{int(time.time() * 1000)}_{random_part}"


class PaystackClient:
    def __init__(self, config: PaystackConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    @property
    def is_configured(self) -> bool:
        return bool(self.config.secret_key)

    def _request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.is_configured:
            logger.error("PAYSTACK_SECRET_KEY missing in settings.")
            raise GatewayError("Server misconfiguration: missing Paystack key.")

        url = f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {self.config.secret_key}"}

        try:
            resp = self.session.request(
                method, url, json=json_body, headers=headers, timeout=self.config.timeout
            )
        except requests.exceptions.Timeout:
            logger.error("Paystack timed out: %s %s", method, url)
            raise GatewayError("Payment provider timed out.")
        except requests.exceptions.ConnectionError:
            logger.error("Could not connect to Paystack: %s %s", method, url)
            raise GatewayError("Could not connect to the payment provider.")
        except requests.exceptions.RequestException as exc:
            logger.error("Paystack request failed: %s", exc)
            raise GatewayError("Payment provider request failed.")

        if resp.status_code >= 400:
            logger.error("Paystack API error %s on %s: %s", resp.status_code, path, resp.text)
            raise GatewayError(f"Payment provider rejected the request ({resp.status_code}).")

        try:
            return resp.json()
        except ValueError:
            logger.error("Paystack returned a non-JSON body on %s", path)
            raise GatewayError("Payment provider returned an unreadable response.")

    def initialize(self, email: str, amount: int, reference: str,
                   metadata: Optional[Dict[str, Any]] = None,
                   description: Optional[str] = None) -> PaymentAuthorization:
        body = {
            "email": email,
            "amount": int(amount) * KOBO_PER_NAIRA,
            "reference": reference,
            "description": description or "NAFS Conference Registration",
            "metadata": metadata or {},
        }
        if self.config.callback_url:
            body["callback_url"] = self.config.callback_url

        payload = self._request("POST", "/transaction/initialize", body)
        data = payload.get("data") or {}
        if not payload.get("status") or not data.get("authorization_url"):
            logger.error("Paystack refused to initialise %s: %s", reference, payload.get("message"))
            raise GatewayError("Failed to initialize payment with Paystack.")

        return PaymentAuthorization(
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code", ""),
            reference=data.get("reference") or reference,
        )

    def verify(self, reference: str) -> PaymentVerification:
        payload = self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        data = payload.get("data") or {}
        gateway_status = data.get("status") or ""

        amount = data.get("amount")
        if isinstance(amount, (int, float)):
            amount = int(amount) // KOBO_PER_NAIRA
        else:
            amount = None

        return PaymentVerification(
            succeeded=bool(payload.get("status")) and gateway_status == "success",
            amount=amount,
            gateway_status=gateway_status,
        )
