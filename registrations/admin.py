from django.contrib import admin

from .models import Registration


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ('id', 'category', 'reference', 'amount', 'status', 'created_at')
    list_filter = ('category', 'status')
    search_fields = ('id', 'reference', 'paystack_reference')
    # amount and category are fixed at creation
    readonly_fields = ('id', 'category', 'reference', 'amount', 'created_at', 'verified_at', 'failed_at')
