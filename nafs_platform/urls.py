from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Registrations, payments, admin dashboard ---
    path('api/', include('registrations.urls')),

    # --- Authentication & school dashboard ---
    path('api/', include('users.urls')),

    # --- Audit trail ---
    path('api/', include('cores.urls')),
]
