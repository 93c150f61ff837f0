import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import HttpResponse, HttpResponseRedirect
from rest_framework import permissions, status, views
from rest_framework.response import Response

from users.permissions import IsAdminRole
from .exceptions import RegistrationError
from .models import PaymentStatus
from .serializers import (
    CreateRegistrationSerializer,
    LookupSerializer,
    RegistrationSerializer,
    VerifyPaymentSerializer,
)
from .services import build_registration_service

logger = logging.getLogger(__name__)


class RegistrationServiceMixin:
    def get_service(self):
        return build_registration_service()


class CreateRegistrationView(RegistrationServiceMixin, views.APIView):
    """
    Creates a pending registration and returns the Paystack checkout URL.
    Payload: { "category": "school", "school_name": ..., "student_names": [...], ... }
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = CreateRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payload = {key: value for key, value in request.data.items() if key not in ('category', 'amount')}
        created = self.get_service().create(
            serializer.validated_data['category'],
            payload,
            amount=serializer.validated_data.get('amount'),
        )
        registration = created.registration
        return Response({
            "success": True,
            "registration_id": registration.id,
            "reference": registration.reference,
            "amount": registration.amount,
            "authorization_url": created.authorization.authorization_url,
            "access_code": created.authorization.access_code,
        }, status=status.HTTP_201_CREATED)


class PricingView(RegistrationServiceMixin, views.APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        pricing = self.get_service().pricing
        return Response({
            "currency": "NGN",
            "tiers": pricing.tier_table(),
            "individual_price": pricing.config.individual_price,
        })


class VerifyPaymentView(RegistrationServiceMixin, views.APIView):
    """Client-side confirmation after Paystack's inline checkout closes."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        registration = self.get_service().confirm(serializer.validated_data['reference'])
        if registration.status == PaymentStatus.COMPLETED:
            return Response({
                "success": True,
                "message": "Payment verified successfully",
                "registration": registration.id,
                "status": registration.status,
            })
        return Response({
            "success": False,
            "message": "Payment verification failed",
            "registration": registration.id,
            "status": registration.status,
        }, status=status.HTTP_400_BAD_REQUEST)


class PaystackCallbackView(RegistrationServiceMixin, views.APIView):
    """Paystack redirects the payer here with ?reference=..."""
    permission_classes = [permissions.AllowAny]

    def _status_redirect(self, message):
        query = urlencode({"status": "error", "message": message})
        return HttpResponseRedirect(f"{settings.FRONTEND_STATUS_URL}?{query}")

    def get(self, request):
        reference = request.query_params.get('reference') or request.query_params.get('trxref')
        if not reference:
            return self._status_redirect("No payment reference provided")

        try:
            registration = self.get_service().confirm(reference)
        except RegistrationError as exc:
            logger.error("Paystack callback for %s failed: %s", reference, exc.detail)
            return self._status_redirect(str(exc.detail))
        except Exception:
            logger.exception("Paystack callback for %s crashed", reference)
            return self._status_redirect("An error occurred processing payment")

        if registration.status != PaymentStatus.COMPLETED:
            return self._status_redirect("Payment verification failed")

        query = urlencode({
            "registration": registration.id,
            "category": registration.category,
            "status": "success",
        })
        return HttpResponseRedirect(f"{settings.FRONTEND_CONFIRMATION_URL}?{query}")


class RegistrationLookupView(RegistrationServiceMixin, views.APIView):
    """
    GET ?id=REG-...            -> summary or 404
    POST {email | reference}   -> summary or null
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        registration_id = request.query_params.get('id')
        if not registration_id:
            return Response({"error": "Missing id"}, status=status.HTTP_400_BAD_REQUEST)

        service = self.get_service()
        registration = service.lookup(registration_id=registration_id)
        if registration is None:
            return Response({"error": "Registration not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response({"registration": service.summarize(registration)})

    def post(self, request):
        serializer = LookupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = self.get_service()
        registration = service.lookup(
            email=serializer.validated_data.get('email'),
            reference=serializer.validated_data.get('reference'),
        )
        return Response({"registration": service.summarize(registration) if registration else None})


# --- ADMIN VIEWS ---

class AdminRegistrationListView(RegistrationServiceMixin, views.APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        registrations = self.get_service().list_all()
        category = request.query_params.get('category')
        if category:
            registrations = [r for r in registrations if r.category == category]
        return Response({"registrations": RegistrationSerializer(registrations, many=True).data})


class AdminStatsView(RegistrationServiceMixin, views.APIView):
    """
    Returns aggregated statistics for the Admin Dashboard.
    """
    permission_classes = [IsAdminRole]

    def get(self, request):
        return Response(self.get_service().statistics())


class AdminExportView(RegistrationServiceMixin, views.APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        response = HttpResponse(self.get_service().export_csv(), content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="registrations.csv"'
        return response


class PaystackDebugView(views.APIView):
    """Reports whether a Paystack key is configured, never the key itself."""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({"configured": bool(getattr(settings, 'PAYSTACK_SECRET_KEY', ''))})
