import csv
import io
from unittest import mock
from urllib.parse import parse_qs, urlparse

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from registrations.models import PaymentStatus, Registration
from registrations.services import build_registration_service
from registrations.stores import DatabaseRegistrationStore
from registrations.tests.fakes import FakeGateway, general_payload, school_payload, university_payload

User = get_user_model()


@override_settings(
    REGISTRATION_STORE='database',
    FRONTEND_CONFIRMATION_URL='/confirmation',
    FRONTEND_STATUS_URL='/status',
)
class RegistrationApiTestCase(APITestCase):
    def setUp(self):
        self.gateway = FakeGateway()
        patcher = mock.patch(
            'registrations.views.build_registration_service',
            side_effect=lambda: build_registration_service(gateway=self.gateway),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def register(self, category, payload, **extra):
        return self.client.post(
            reverse('registration-create'), {'category': category, **payload, **extra}, format='json'
        )


class CreateRegistrationViewTests(RegistrationApiTestCase):
    def test_school_registration_returns_checkout_url(self):
        response = self.register('school', school_payload(25), amount=118750)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['amount'], 118750)
        self.assertTrue(response.data['authorization_url'].startswith('https://checkout.paystack.com/'))
        registration = Registration.objects.get(pk=response.data['registration_id'])
        self.assertEqual(registration.status, PaymentStatus.PENDING)
        self.assertEqual(registration.reference, response.data['reference'])

    def test_missing_fields(self):
        payload = university_payload()
        del payload['university_name']
        response = self.register('university', payload)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Registration.objects.exists())

    def test_unknown_category(self):
        response = self.register('vip', general_payload())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_gateway_failure_is_bad_gateway(self):
        self.gateway.fail_initialize = True
        response = self.register('general', general_payload())
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertFalse(Registration.objects.exists())


class PricingViewTests(RegistrationApiTestCase):
    def test_pricing_table(self):
        response = self.client.get(reverse('registration-pricing'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['currency'], 'NGN')
        self.assertEqual(response.data['individual_price'], 5000)
        self.assertEqual(response.data['tiers'][0]['students'], 100)
        self.assertEqual(response.data['tiers'][0]['total'], 4250)


class VerifyPaymentViewTests(RegistrationApiTestCase):
    def test_verified_payment(self):
        reference = self.register('general', general_payload()).data['reference']

        response = self.client.post(reverse('verify-payment'), {'reference': reference}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['status'], PaymentStatus.COMPLETED)

    def test_failed_payment(self):
        reference = self.register('general', general_payload()).data['reference']
        self.gateway.succeed = False

        response = self.client.post(reverse('verify-payment'), {'reference': reference}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['status'], PaymentStatus.FAILED)

    def test_unknown_reference(self):
        response = self.client.post(reverse('verify-payment'), {'reference': 'NAFS_NOPE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_reference(self):
        response = self.client.post(reverse('verify-payment'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PaystackCallbackViewTests(RegistrationApiTestCase):
    def test_success_redirects_to_confirmation(self):
        created = self.register('school', school_payload(20)).data

        response = self.client.get(reverse('paystack-callback'), {'trxref': created['reference']})

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        target = urlparse(response['Location'])
        self.assertEqual(target.path, '/confirmation')
        query = parse_qs(target.query)
        self.assertEqual(query['registration'], [created['registration_id']])
        self.assertEqual(query['category'], ['school'])
        self.assertEqual(query['status'], ['success'])
        self.assertTrue(User.objects.filter(email='head@greenfieldacademy.ng').exists())

    def test_failed_payment_redirects_to_status(self):
        created = self.register('general', general_payload()).data
        self.gateway.succeed = False

        response = self.client.get(reverse('paystack-callback'), {'reference': created['reference']})

        target = urlparse(response['Location'])
        self.assertEqual(target.path, '/status')
        self.assertEqual(parse_qs(target.query)['status'], ['error'])

    def test_unexpected_error_redirects_to_status(self):
        created = self.register('general', general_payload()).data

        with mock.patch.object(
            DatabaseRegistrationStore, 'get_by_reference', side_effect=DatabaseError('db down')
        ):
            with self.assertLogs('registrations.views', level='ERROR'):
                response = self.client.get(reverse('paystack-callback'), {'reference': created['reference']})

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        target = urlparse(response['Location'])
        self.assertEqual(target.path, '/status')
        self.assertEqual(parse_qs(target.query)['message'], ['An error occurred processing payment'])
        self.assertEqual(Registration.objects.get(pk=created['registration_id']).status, PaymentStatus.PENDING)

    def test_missing_and_unknown_reference(self):
        for params in ({}, {'reference': 'NAFS_NOPE'}):
            response = self.client.get(reverse('paystack-callback'), params)
            self.assertEqual(response.status_code, status.HTTP_302_FOUND)
            self.assertTrue(response['Location'].startswith('/status?'))


class RegistrationLookupViewTests(RegistrationApiTestCase):
    def setUp(self):
        super().setUp()
        self.created = self.register('school', school_payload(25)).data
        self.client.get(reverse('paystack-callback'), {'reference': self.created['reference']})

    def test_get_by_id(self):
        response = self.client.get(reverse('registration-lookup'), {'id': self.created['registration_id']})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['registration']
        self.assertEqual(summary['name'], 'Greenfield Academy')
        self.assertEqual(summary['status'], PaymentStatus.COMPLETED)
        self.assertTrue(summary['temp_password'])

    def test_get_errors(self):
        self.assertEqual(self.client.get(reverse('registration-lookup')).status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get(reverse('registration-lookup'), {'id': 'REG-missing'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_post_by_email_and_reference(self):
        by_email = self.client.post(
            reverse('registration-lookup'), {'email': 'HEAD@greenfieldacademy.ng'}, format='json'
        )
        by_reference = self.client.post(
            reverse('registration-lookup'), {'reference': self.created['reference'].lower()}, format='json'
        )
        self.assertEqual(by_email.data['registration']['id'], self.created['registration_id'])
        self.assertEqual(by_reference.data['registration']['id'], self.created['registration_id'])

    def test_post_miss_returns_null(self):
        response = self.client.post(reverse('registration-lookup'), {'email': 'nobody@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['registration'])

    def test_post_without_parameters(self):
        response = self.client.post(reverse('registration-lookup'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AdminRegistrationViewTests(RegistrationApiTestCase):
    def setUp(self):
        super().setUp()
        self.admin = User.objects.create_user(
            username='admin@educonf.com', email='admin@educonf.com', password='admin123', role='admin',
        )
        self.school_user = User.objects.create_user(
            username='school@example.com', email='school@example.com', password='school123', role='school',
        )
        self.register('school', school_payload(25))
        self.register('university', university_payload())

    def test_requires_admin(self):
        for name in ('admin-registrations', 'admin-registration-stats', 'admin-registration-export'):
            self.client.force_authenticate(user=None)
            self.assertEqual(self.client.get(reverse(name)).status_code, status.HTTP_401_UNAUTHORIZED)
            self.client.force_authenticate(user=self.school_user)
            self.assertEqual(self.client.get(reverse(name)).status_code, status.HTTP_403_FORBIDDEN)

    def test_list_with_category_filter(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('admin-registrations'))
        self.assertEqual(len(response.data['registrations']), 2)

        response = self.client.get(reverse('admin-registrations'), {'category': 'university'})
        self.assertEqual([r['category'] for r in response.data['registrations']], ['university'])

    def test_stats(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('admin-registration-stats'))
        self.assertEqual(response.data['total_registrations'], 2)
        self.assertEqual(response.data['total_students'], 26)
        self.assertEqual(response.data['pending'], 2)
        self.assertEqual(response.data['total_revenue'], 0)

    def test_export(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('admin-registration-export'))
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertIn('registrations.csv', response['Content-Disposition'])
        rows = list(csv.reader(io.StringIO(response.content.decode('utf-8'))))
        self.assertEqual(rows[0][0], 'ID')
        self.assertEqual(len(rows), 3)


class PaystackDebugViewTests(APITestCase):
    @override_settings(PAYSTACK_SECRET_KEY='sk_test_secret')
    def test_reports_configured_without_leaking_key(self):
        response = self.client.get(reverse('debug-paystack'))
        self.assertEqual(response.data, {'configured': True})
        self.assertNotIn('sk_test_secret', response.content.decode('utf-8'))

    @override_settings(PAYSTACK_SECRET_KEY='')
    def test_reports_unconfigured(self):
        self.assertEqual(self.client.get(reverse('debug-paystack')).data, {'configured': False})
