from django.test import TestCase
from rest_framework.test import APIClient

from accounts.models import CustomUser


class MeEndpointTest(TestCase):
    url = '/api/auth/me/'

    def setUp(self):
        self.client = APIClient()
        self.user = CustomUser.objects.create_user(
            email='me@test.com', password='MePass123!', first_name='Mia', last_name='Example',
        )

    def test_requires_authentication(self):
        self.assertEqual(self.client.get(self.url).status_code, 401)

    def test_profile(self):
        self.client.force_authenticate(user=self.user)
        body = self.client.get(self.url).json()
        self.assertEqual(body['email'], 'me@test.com')
        self.assertEqual(body['name'], 'Mia Example')
        self.assertEqual(body['role'], 'USER')
        self.assertEqual(body['timezone'], 'UTC')

    def test_update_timezone(self):
        self.client.force_authenticate(user=self.user)
        resp = self.client.patch(self.url, {'timezone': 'Europe/Berlin'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.timezone, 'Europe/Berlin')

    def test_unknown_timezone_rejected(self):
        self.client.force_authenticate(user=self.user)
        resp = self.client.patch(self.url, {'timezone': 'Nowhere/Special'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.user.refresh_from_db()
        self.assertEqual(self.user.timezone, 'UTC')

    def test_role_is_read_only(self):
        self.client.force_authenticate(user=self.user)
        self.client.patch(self.url, {'role': 'ADMIN'}, format='json')
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, 'USER')


class TokenLoginTest(TestCase):
    def test_obtain_pair_with_email(self):
        CustomUser.objects.create_user(email='login@test.com', password='LoginPass123!')
        resp = APIClient().post('/api/auth/token/', {'email': 'login@test.com', 'password': 'LoginPass123!'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertIn('access', resp.json())
        self.assertIn('refresh', resp.json())
