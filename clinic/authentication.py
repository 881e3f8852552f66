"""
Cookie based JWT authentication.

The browser front-end keeps the access token in an HTTP-only cookie,
so the simplejwt authenticator is extended to read it from there.  An
``Authorization: Bearer`` header still works for API clients and
takes precedence when both are present.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework.authentication import BaseAuthentication
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken


class CookieJWTAuthentication(JWTAuthentication):

    def authenticate(self, request):
        header = self.get_header(request)
        if header is not None:
            return super().authenticate(request)
        raw_token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
        if not raw_token:
            return None
        validated_token = self.get_validated_token(raw_token.encode())
        return self.get_user(validated_token), validated_token


def issue_tokens(user) -> RefreshToken:
    """Return a refresh token carrying role and e-mail claims.

    Access tokens derived from it copy the custom claims.
    """
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['email'] = user.email
    return refresh


def set_auth_cookies(response, refresh: RefreshToken):
    access = refresh.access_token
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        str(access),
        max_age=int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite=settings.AUTH_COOKIE_SAMESITE,
        path='/',
    )
    response.set_cookie(
        settings.AUTH_REFRESH_COOKIE_NAME,
        str(refresh),
        max_age=int(settings.SIMPLE_JWT['REFRESH_TOKEN_LIFETIME'].total_seconds()),
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite=settings.AUTH_COOKIE_SAMESITE,
        path='/api/',
    )
    return response


def clear_auth_cookies(response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path='/')
    response.delete_cookie(settings.AUTH_REFRESH_COOKIE_NAME, path='/api/')
    return response


class AnonymousEndpointAuthentication(BaseAuthentication):
    """For sign-in style endpoints: ignore any stale token, still answer 401."""

    def authenticate(self, request):
        return None

    def authenticate_header(self, request):
        return 'Bearer realm="api"'
