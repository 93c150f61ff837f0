from django.urls import path
from .views import (
    AdminExportView,
    AdminRegistrationListView,
    AdminStatsView,
    CreateRegistrationView,
    PaystackCallbackView,
    PaystackDebugView,
    PricingView,
    RegistrationLookupView,
    VerifyPaymentView,
)

urlpatterns = [
    # --- Public registration flow ---
    path('registrations/', CreateRegistrationView.as_view(), name='registration-create'),
    path('registrations/pricing/', PricingView.as_view(), name='registration-pricing'),
    path('registrations/verify/', VerifyPaymentView.as_view(), name='verify-payment'),
    path('registrations/paystack-callback/', PaystackCallbackView.as_view(), name='paystack-callback'),
    path('registrations/lookup/', RegistrationLookupView.as_view(), name='registration-lookup'),

    # --- Admin Dashboard ---
    path('admin/registrations/', AdminRegistrationListView.as_view(), name='admin-registrations'),
    path('admin/registrations/stats/', AdminStatsView.as_view(), name='admin-registration-stats'),
    path('admin/registrations/export/', AdminExportView.as_view(), name='admin-registration-export'),

    path('debug/paystack/', PaystackDebugView.as_view(), name='debug-paystack'),
]
