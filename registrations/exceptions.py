# registrations/exceptions.py
from rest_framework import status
from rest_framework.exceptions import APIException


class RegistrationError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Registration request could not be processed."
    default_code = "registration_error"


class ValidationError(RegistrationError):
    """Missing or malformed registration input."""
    default_detail = "Missing required fields."
    default_code = "invalid"


class NotFoundError(RegistrationError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Registration not found."
    default_code = "not_found"


class GatewayError(RegistrationError):
    """Payment provider unreachable, misconfigured or rejected the call."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment provider error."
    default_code = "gateway_error"


class ConflictError(RegistrationError):
    """
    A terminal registration was asked to move to the opposite terminal state.
    The confirmation flow treats this as a no-op.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Registration is already finalised."
    default_code = "conflict"
