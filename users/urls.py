from django.urls import path
from .views import (
    AdminLoginView,
    AdminResetPasswordView,
    AdminSetupView,
    SchoolLoginView,
    SchoolProfileView,
    SchoolResetPasswordView,
    SchoolSignupView,
)

urlpatterns = [
    # --- Authentication ---
    path('auth/admin-login/', AdminLoginView.as_view(), name='admin-login'),
    path('auth/admin-setup/', AdminSetupView.as_view(), name='admin-setup'),
    path('auth/admin-reset-password/', AdminResetPasswordView.as_view(), name='admin-reset-password'),
    path('auth/school-login/', SchoolLoginView.as_view(), name='school-login'),
    path('auth/school-signup/', SchoolSignupView.as_view(), name='school-signup'),
    path('auth/school-reset-password/', SchoolResetPasswordView.as_view(), name='school-reset-password'),

    # --- School Dashboard ---
    path('school/me/', SchoolProfileView.as_view(), name='school-me'),
]
