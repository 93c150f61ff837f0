from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import RequestFactory, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from cores.audit import record_event
from cores.models import AuditLog

User = get_user_model()


class RecordEventTests(TestCase):
    def test_writes_target_and_forwarded_ip(self):
        user = User.objects.create_user(username='ops@nafs.ng', email='ops@nafs.ng', password='secret1', role='admin')
        request = RequestFactory().post('/', HTTP_X_FORWARDED_FOR='41.58.1.2, 10.0.0.1')
        request.user = user

        record_event('PASSWORD', target=user, details='Admin password reset', request=request)

        entry = AuditLog.objects.get()
        self.assertEqual(entry.actor, user)
        self.assertEqual(entry.target_model, 'User')
        self.assertEqual(entry.target_object_id, str(user.pk))
        self.assertEqual(entry.ip_address, '41.58.1.2')

    def test_never_raises(self):
        with mock.patch.object(AuditLog.objects, 'create', side_effect=DatabaseError('disk I/O error')):
            with self.assertLogs('cores.audit', level='ERROR'):
                record_event('LOGIN', details='database unavailable')
        self.assertFalse(AuditLog.objects.exists())


class AuditLogListViewTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin@educonf.com', email='admin@educonf.com', password='admin123', role='admin',
        )
        self.school = User.objects.create_user(
            username='school@example.com', email='school@example.com', password='school123', role='school',
        )
        record_event('LOGIN', target=self.admin, actor=self.admin)
        record_event('SIGNUP', target=self.school, actor=self.school)

    def test_admin_only(self):
        self.assertEqual(self.client.get(reverse('audit-logs')).status_code, status.HTTP_401_UNAUTHORIZED)
        self.client.force_authenticate(user=self.school)
        self.assertEqual(self.client.get(reverse('audit-logs')).status_code, status.HTTP_403_FORBIDDEN)

    def test_list_and_filter(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(reverse('audit-logs'))
        self.assertEqual(len(response.data), 2)

        response = self.client.get(reverse('audit-logs'), {'action': 'SIGNUP'})
        self.assertEqual([row['actor_email'] for row in response.data], ['school@example.com'])
        self.assertEqual(response.data[0]['actor_role'], 'school')

    def test_filter_by_target(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('audit-logs'), {'target': str(self.school.pk), 'action': 'signup'})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['target_model'], 'User')
