from django.db import models
from django.conf import settings


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('REGISTRATION', 'Registration Created'),
        ('PAYMENT_VERIFIED', 'Payment Verified'),
        ('PAYMENT_FAILED', 'Payment Failed'),
        ('ACCOUNT', 'Account Provisioned'),
        ('SIGNUP', 'School Signup'),
        ('LOGIN', 'Login'),
        ('PASSWORD', 'Password Reset'),
        ('ADMIN_SETUP', 'Admin Setup'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., Registration, User")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of what happened")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"
