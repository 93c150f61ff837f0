from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class PlatformUserAdmin(UserAdmin):
    list_display = ('email', 'role', 'school_name', 'registration', 'is_active', 'date_joined')
    list_filter = ('role', 'is_active')
    search_fields = ('email', 'school_name')
    ordering = ('-date_joined',)
    fieldsets = UserAdmin.fieldsets + (
        ('Conference', {'fields': ('role', 'school_name', 'registration')}),
    )
