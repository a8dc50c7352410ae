import hmac

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from rest_framework import authentication, exceptions


class CronTrigger:
    """Auth marker placed on request.auth for calls carrying the cron secret."""

    def __repr__(self):
        return 'CronTrigger()'


class CronSecretAuthentication(authentication.BaseAuthentication):
    """
    Accepts `Authorization: Bearer <CRON_SECRET>`.

    A non-matching bearer token is passed on to the next authenticator
    (it may be a JWT); an unset secret never matches anything.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        auth = authentication.get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed('Invalid bearer header.')

        secret = getattr(settings, 'CRON_SECRET', '') or ''
        if not secret:
            return None
        if not hmac.compare_digest(auth[1], secret.encode()):
            return None
        return AnonymousUser(), CronTrigger()

    def authenticate_header(self, request):
        return self.keyword
