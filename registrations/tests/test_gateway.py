from unittest import mock

import requests
from django.test import SimpleTestCase, override_settings

from registrations.exceptions import GatewayError
from registrations.gateway import PaystackClient, PaystackConfig, generate_payment_reference


def fake_response(status_code=200, body=None, json_error=False):
    response = mock.Mock()
    response.status_code = status_code
    response.text = str(body)
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


class PaystackClientTests(SimpleTestCase):
    def setUp(self):
        self.session = mock.Mock()
        self.session.headers = {}
        self.config = PaystackConfig(
            secret_key='sk_test_123',
            base_url='https://api.paystack.test/',
            callback_url='https://nafs.test/api/registrations/paystack-callback/',
            timeout=5,
        )
        self.client = PaystackClient(self.config, session=self.session)

    def test_initialize_sends_kobo_and_bearer_token(self):
        self.session.request.return_value = fake_response(body={
            'status': True,
            'data': {
                'authorization_url': 'https://checkout.paystack.com/abc',
                'access_code': 'abc',
                'reference': 'NAFS_SCHOOL_1_XYZ',
            },
        })

        authorization = self.client.initialize(
            email='head@greenfield.ng', amount=118750, reference='NAFS_SCHOOL_1_XYZ',
            metadata={'registration_id': 'REG-1-abc'},
        )

        self.assertEqual(authorization.authorization_url, 'https://checkout.paystack.com/abc')
        self.assertEqual(authorization.access_code, 'abc')
        self.assertEqual(authorization.reference, 'NAFS_SCHOOL_1_XYZ')

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('POST', 'https://api.paystack.test/transaction/initialize'))
        self.assertEqual(kwargs['json']['amount'], 11875000)
        self.assertEqual(kwargs['json']['callback_url'], self.config.callback_url)
        self.assertEqual(kwargs['json']['metadata'], {'registration_id': 'REG-1-abc'})
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer sk_test_123')
        self.assertEqual(kwargs['timeout'], 5)

    def test_initialize_rejected_by_paystack(self):
        self.session.request.return_value = fake_response(body={'status': False, 'message': 'Invalid key'})
        with self.assertRaises(GatewayError):
            self.client.initialize(email='a@b.ng', amount=5000, reference='R1')

    def test_http_error_status(self):
        self.session.request.return_value = fake_response(status_code=401, body={'status': False})
        with self.assertRaises(GatewayError):
            self.client.initialize(email='a@b.ng', amount=5000, reference='R1')

    def test_timeout(self):
        self.session.request.side_effect = requests.exceptions.Timeout()
        with self.assertRaises(GatewayError):
            self.client.verify('R1')

    def test_connection_error(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError()
        with self.assertRaises(GatewayError):
            self.client.verify('R1')

    def test_unreadable_body(self):
        self.session.request.return_value = fake_response(json_error=True)
        with self.assertRaises(GatewayError):
            self.client.verify('R1')

    def test_missing_secret_key_never_calls_paystack(self):
        client = PaystackClient(PaystackConfig(secret_key=''), session=self.session)
        self.assertFalse(client.is_configured)
        with self.assertRaises(GatewayError):
            client.verify('R1')
        self.session.request.assert_not_called()

    def test_verify_success_converts_amount_to_naira(self):
        self.session.request.return_value = fake_response(body={
            'status': True, 'data': {'status': 'success', 'amount': 500000},
        })

        verification = self.client.verify('NAFS_GENERAL_1 X')

        self.assertTrue(verification.succeeded)
        self.assertEqual(verification.amount, 5000)
        self.assertEqual(verification.gateway_status, 'success')
        args, _ = self.session.request.call_args
        self.assertEqual(args, ('GET', 'https://api.paystack.test/transaction/verify/NAFS_GENERAL_1%20X'))

    def test_verify_abandoned(self):
        self.session.request.return_value = fake_response(body={
            'status': True, 'data': {'status': 'abandoned'},
        })
        verification = self.client.verify('R1')
        self.assertFalse(verification.succeeded)
        self.assertIsNone(verification.amount)
        self.assertEqual(verification.gateway_status, 'abandoned')


class PaystackConfigTests(SimpleTestCase):
    @override_settings(PAYSTACK_SECRET_KEY='sk_live_x', PAYSTACK_TIMEOUT_SECONDS='7')
    def test_from_settings(self):
        config = PaystackConfig.from_settings()
        self.assertEqual(config.secret_key, 'sk_live_x')
        self.assertEqual(config.timeout, 7.0)

    def test_reference_shape(self):
        reference = generate_payment_reference('NAFS_SCHOOL')
        self.assertTrue(reference.startswith('NAFS_SCHOOL_'))
        random_part = reference.rsplit('_', 1)[1]
        self.assertEqual(len(random_part), 6)
        self.assertEqual(random_part, random_part.upper())
        self.assertNotEqual(reference, generate_payment_reference('NAFS_SCHOOL'))
