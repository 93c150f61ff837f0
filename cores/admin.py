from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'action', 'actor', 'target_model', 'target_object_id')
    list_filter = ('action',)
    search_fields = ('target_object_id', 'details')
