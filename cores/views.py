from rest_framework import generics

from users.permissions import IsAdminRole
from .models import AuditLog
from .serializers import AuditLogSerializer


class AuditLogListView(generics.ListAPIView):
    """
    Admin audit trail, newest first.
    ?action=PAYMENT_VERIFIED narrows by event, ?target=REG-... by object id.
    """
    queryset = AuditLog.objects.select_related('actor').order_by('-timestamp')
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminRole]

    def get_queryset(self):
        queryset = super().get_queryset()
        action = self.request.query_params.get('action')
        if action:
            queryset = queryset.filter(action=action.upper())
        target = self.request.query_params.get('target')
        if target:
            queryset = queryset.filter(target_object_id=target.strip())
        return queryset
