import logging
import secrets

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import permissions, status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from cores.audit import record_event
from registrations.serializers import RegistrationSerializer
from registrations.services import build_registration_service
from .permissions import IsSchoolRole
from .serializers import (
    AdminLoginSerializer,
    AdminResetPasswordSerializer,
    AdminSetupSerializer,
    SchoolAccountSerializer,
    SchoolLoginSerializer,
    UserSerializer,
)
from .services import (
    check_school_registration,
    create_admin_user,
    create_school_user,
    generate_token_pair,
    get_user_by_email,
    update_password,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def _session_payload(user, **extra):
    return {"success": True, "user": UserSerializer(user).data, **generate_token_pair(user), **extra}


class SetupKeyMixin:
    """Admin bootstrap endpoints are guarded by ADMIN_SETUP_KEY instead of a login."""

    def check_setup_key(self, supplied):
        configured = (getattr(settings, 'ADMIN_SETUP_KEY', '') or '').strip()
        if not configured:
            logger.error("ADMIN_SETUP_KEY missing in settings.")
            return Response({"error": "ADMIN_SETUP_KEY is not configured"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        if not secrets.compare_digest(str(supplied).strip(), configured):
            raise PermissionDenied("Invalid setup key")
        return None


# --- Authentication Views ---

class AdminLoginView(TokenObtainPairView):
    serializer_class = AdminLoginSerializer


class SchoolLoginView(TokenObtainPairView):
    serializer_class = SchoolLoginSerializer


class AdminSetupView(SetupKeyMixin, APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = AdminSetupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        error_response = self.check_setup_key(data['setup_key'])
        if error_response is not None:
            return error_response

        if get_user_by_email(data['email']):
            raise ValidationError({"email": "An account with this email already exists"})

        user = create_admin_user(email=data['email'], password=data['password'], name=data.get('name', ''))
        record_event('ADMIN_SETUP', target=user, actor=user, request=request, details=f"Admin {user.email} created")
        return Response(_session_payload(user), status=status.HTTP_201_CREATED)


class AdminResetPasswordView(SetupKeyMixin, APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = AdminResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        error_response = self.check_setup_key(data['setup_key'])
        if error_response is not None:
            return error_response

        user = get_user_by_email(data['email'])
        if user is None:
            raise NotFound("Admin account not found")
        if user.role != User.Role.ADMIN:
            raise ValidationError({"email": "This email belongs to a non-admin account. Use the admin email."})

        update_password(user, data['password'])
        record_event('PASSWORD', target=user, actor=user, request=request, details="Admin password reset")
        return Response(_session_payload(user))


class SchoolSignupView(APIView):
    """
    Lets a school contact create their login after payment, if automatic
    provisioning did not (or they lost the temporary password).
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = SchoolAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        registration = build_registration_service().get(data['registration'])
        check_school_registration(registration, data['email'])

        if get_user_by_email(data['email']):
            raise ValidationError({"email": "An account with this email already exists"})

        user = create_school_user(email=data['email'], password=data['password'], registration=registration)
        record_event('SIGNUP', target=user, actor=user, request=request, details=f"Signup for {registration.id}")
        return Response(_session_payload(user), status=status.HTTP_201_CREATED)


class SchoolResetPasswordView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = SchoolAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        registration = build_registration_service().get(data['registration'])
        check_school_registration(registration, data['email'])

        user = get_user_by_email(data['email'])
        if user is None:
            raise NotFound("No account found for this email")

        update_password(user, data['password'])
        record_event('PASSWORD', target=user, actor=user, request=request, details="School password reset")
        return Response(_session_payload(user))


# --- School Dashboard ---

class SchoolProfileView(APIView):
    permission_classes = [IsSchoolRole]

    def get(self, request):
        user = request.user
        registration = None
        if user.registration_id:
            found = build_registration_service().lookup(registration_id=user.registration_id)
            registration = RegistrationSerializer(found).data if found else None

        return Response({
            "user": UserSerializer(user).data,
            "registration": registration,
        })
