from io import StringIO
from unittest import mock

from django.contrib.auth import authenticate, get_user_model
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from cores.models import AuditLog
from registrations.models import Category, PaymentStatus
from registrations.services import build_registration_service
from registrations.tests.fakes import FakeGateway, general_payload, school_payload
from users.services import SchoolAccountProvisioner, create_school_user

User = get_user_model()


class LoginTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin@educonf.com', email='admin@educonf.com', password='admin123', role='admin',
        )
        self.school = User.objects.create_user(
            username='school@example.com', email='school@example.com', password='school123', role='school',
        )

    def test_admin_login_returns_role_token(self):
        response = self.client.post(
            reverse('admin-login'), {'email': 'Admin@EduConf.com', 'password': 'admin123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['role'], 'admin')
        self.assertEqual(AccessToken(response.data['access'])['role'], 'admin')
        self.assertTrue(AuditLog.objects.filter(action='LOGIN', actor=self.admin).exists())

    def test_school_login(self):
        response = self.client.post(
            reverse('school-login'), {'email': 'school@example.com', 'password': 'school123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('refresh', response.data)

    def test_wrong_role_is_rejected_like_a_wrong_password(self):
        wrong_role = self.client.post(
            reverse('admin-login'), {'email': 'school@example.com', 'password': 'school123'}, format='json'
        )
        wrong_password = self.client.post(
            reverse('school-login'), {'email': 'school@example.com', 'password': 'nope'}, format='json'
        )
        self.assertEqual(wrong_role.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(wrong_password.status_code, status.HTTP_401_UNAUTHORIZED)


class EmailBackendTests(TestCase):
    def test_email_match_ignores_case(self):
        user = create_school_user(email='Head@Greenfield.ng', password='school123')
        self.assertEqual(user.email, 'head@greenfield.ng')
        self.assertEqual(authenticate(username='HEAD@greenfield.ng', password='school123'), user)
        self.assertEqual(authenticate(email='head@greenfield.ng', password='school123'), user)
        self.assertIsNone(authenticate(username='head@greenfield.ng', password='wrong'))
        self.assertIsNone(authenticate(username='missing@greenfield.ng', password='school123'))


@override_settings(ADMIN_SETUP_KEY='let-me-in')
class AdminSetupTests(APITestCase):
    def setup_admin(self, **overrides):
        body = {'setup_key': 'let-me-in', 'email': 'ops@nafs.ng', 'password': 'secret1', 'name': 'Ops Lead'}
        body.update(overrides)
        return self.client.post(reverse('admin-setup'), body, format='json')

    def test_creates_admin(self):
        response = self.setup_admin()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='ops@nafs.ng')
        self.assertEqual(user.role, User.Role.ADMIN)
        self.assertTrue(user.is_staff)
        self.assertEqual(user.first_name, 'Ops')
        self.assertIn('access', response.data)

    def test_wrong_key(self):
        self.assertEqual(self.setup_admin(setup_key='guess').status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(User.objects.exists())

    @override_settings(ADMIN_SETUP_KEY='')
    def test_unconfigured_key(self):
        self.assertEqual(self.setup_admin().status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_duplicate_email(self):
        self.setup_admin()
        self.assertEqual(self.setup_admin(email='OPS@nafs.ng').status_code, status.HTTP_400_BAD_REQUEST)

    def test_reset_password(self):
        self.setup_admin()
        response = self.client.post(reverse('admin-reset-password'), {
            'setup_key': 'let-me-in', 'email': 'ops@nafs.ng', 'password': 'newsecret',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(User.objects.get(email='ops@nafs.ng').check_password('newsecret'))

    def test_reset_password_rejects_school_and_missing_accounts(self):
        create_school_user(email='school@example.com', password='school123')
        body = {'setup_key': 'let-me-in', 'password': 'newsecret'}
        school = self.client.post(reverse('admin-reset-password'), dict(body, email='school@example.com'), format='json')
        missing = self.client.post(reverse('admin-reset-password'), dict(body, email='ghost@nafs.ng'), format='json')
        self.assertEqual(school.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)


@override_settings(REGISTRATION_STORE='database')
class SchoolAccountTests(APITestCase):
    def setUp(self):
        self.gateway = FakeGateway()
        self.service = build_registration_service(gateway=self.gateway)
        # Paid, but without automatic provisioning, so signup is needed
        self.service.provisioner = None
        self.registration = self.service.create(Category.SCHOOL, school_payload(25)).registration
        self.service.confirm(self.registration.reference)

    def signup(self, **overrides):
        body = {'registration': self.registration.id, 'email': 'head@greenfieldacademy.ng', 'password': 'school123'}
        body.update(overrides)
        return self.client.post(reverse('school-signup'), body, format='json')

    def test_signup_after_payment(self):
        response = self.signup()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['registration_id'], self.registration.id)
        user = User.objects.get(email='head@greenfieldacademy.ng')
        self.assertEqual(user.school_name, 'Greenfield Academy')
        self.assertTrue(user.check_password('school123'))

    def test_signup_checks(self):
        self.assertEqual(self.signup(registration='REG-missing').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.signup(email='other@example.com').status_code, status.HTTP_400_BAD_REQUEST)
        self.signup()
        self.assertEqual(self.signup().status_code, status.HTTP_400_BAD_REQUEST)

    def test_signup_requires_completed_payment(self):
        pending = self.service.create(Category.SCHOOL, school_payload(3, email='new@school.ng')).registration
        response = self.signup(registration=pending.id, email='new@school.ng')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_signup_rejects_individual_registration(self):
        general = self.service.create(Category.GENERAL, general_payload()).registration
        self.service.confirm(general.reference)
        response = self.signup(registration=general.id, email='ngozi@example.com')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reset_password(self):
        self.assertEqual(self.client.post(reverse('school-reset-password'), {
            'registration': self.registration.id, 'email': 'head@greenfieldacademy.ng', 'password': 'changed1',
        }, format='json').status_code, status.HTTP_404_NOT_FOUND)

        self.signup()
        response = self.client.post(reverse('school-reset-password'), {
            'registration': self.registration.id, 'email': 'head@greenfieldacademy.ng', 'password': 'changed1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(User.objects.get(email='head@greenfieldacademy.ng').check_password('changed1'))

    def test_school_profile(self):
        self.signup()
        user = User.objects.get(email='head@greenfieldacademy.ng')
        self.client.force_authenticate(user=user)

        response = self.client.get(reverse('school-me'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], 'head@greenfieldacademy.ng')
        self.assertEqual(response.data['registration']['id'], self.registration.id)
        self.assertEqual(response.data['registration']['status'], PaymentStatus.COMPLETED)

    def test_school_profile_is_school_only(self):
        admin = User.objects.create_user(
            username='admin@educonf.com', email='admin@educonf.com', password='admin123', role='admin',
        )
        self.client.force_authenticate(user=admin)
        self.assertEqual(self.client.get(reverse('school-me')).status_code, status.HTTP_403_FORBIDDEN)


@override_settings(REGISTRATION_STORE='database')
class SchoolAccountProvisionerTests(TestCase):
    def setUp(self):
        self.service = build_registration_service(gateway=FakeGateway())
        self.provisioner = SchoolAccountProvisioner(self.service.store)

    def test_skips_unpaid_and_individual_registrations(self):
        pending = self.service.create(Category.SCHOOL, school_payload(5)).registration
        self.assertIsNone(self.provisioner(pending))

        general = self.service.create(Category.GENERAL, general_payload()).registration
        general = self.service.confirm(general.reference)
        self.assertIsNone(self.provisioner(general))
        self.assertFalse(User.objects.exists())

    def test_provisions_once(self):
        self.service.provisioner = None
        registration = self.service.create(Category.SCHOOL, school_payload(5)).registration
        registration = self.service.confirm(registration.reference)

        credential = self.provisioner(registration)

        self.assertEqual(credential.email, 'head@greenfieldacademy.ng')
        self.assertTrue(User.objects.get(pk=credential.user_id).check_password(credential.password))
        self.assertEqual(self.service.get(registration.id).data['temp_password'], credential.password)
        self.assertIsNone(self.provisioner(registration))
        self.assertEqual(User.objects.count(), 1)

    def test_temp_password_comes_from_secrets(self):
        with mock.patch('users.services.secrets.token_urlsafe', return_value='fixed-pass') as token:
            self.service.provisioner = None
            registration = self.service.confirm(
                self.service.create(Category.SCHOOL, school_payload(5)).registration.reference
            )
            self.assertEqual(self.provisioner(registration).password, 'fixed-pass')
            token.assert_called_once_with(8)


class SeedUsersCommandTests(TestCase):
    def test_creates_demo_accounts_once(self):
        call_command('seed_users', stdout=StringIO())
        call_command('seed_users', stdout=StringIO())

        self.assertEqual(User.objects.count(), 2)
        admin = User.objects.get(email='admin@educonf.com')
        school = User.objects.get(email='school@example.com')
        self.assertEqual(admin.role, User.Role.ADMIN)
        self.assertTrue(admin.check_password('admin123'))
        self.assertEqual(school.role, User.Role.SCHOOL)
        self.assertEqual(school.school_name, 'Demo High School')
