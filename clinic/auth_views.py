"""
Authentication views.

Sign-in issues a simplejwt token pair and stores both tokens in
HTTP-only cookies; the access token is also returned in the body for
clients that prefer the ``Authorization`` header.  Keeping these views
out of ``clinic.authentication`` avoids circular imports when DRF
initialises authentication classes.
"""
from __future__ import annotations

from django.conf import settings
from django.contrib.auth import authenticate
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.authentication import AnonymousEndpointAuthentication, clear_auth_cookies, issue_tokens, set_auth_cookies
from clinic.permissions import ADMIN_ROLES
from clinic.serializers.auth import SigninSerializer
from clinic.services.audit import log_action

from .models import User


def _authenticate_by_email(request, email: str, password: str) -> User | None:
    account = User.objects.filter(email__iexact=email).order_by('id').first()
    username = account.username if account else email
    return authenticate(request, username=username, password=password)


def _signin(request, *, admin_only: bool):
    s = SigninSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']
    ip = request.META.get('REMOTE_ADDR')
    action = 'admin_signin' if admin_only else 'signin'

    user = _authenticate_by_email(request, email, s.validated_data['password'])
    if user is None or (admin_only and user.role not in ADMIN_ROLES):
        log_action(user=user, action=action, object_type='user', object_id=getattr(user, 'id', None),
                   detail={'result': 'fail', 'email': email, 'ip': ip})
        raise AuthenticationFailed('Invalid credentials')

    log_action(user=user, action=action, object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    refresh = issue_tokens(user)
    resp = Response({
        'ok': True,
        'token': str(refresh.access_token),
        'user': {
            'id': user.id,
            'email': user.email,
            'fullName': user.display_name,
            'role': user.role,
        },
    })
    return set_auth_cookies(resp, refresh)


@api_view(['POST'])
@authentication_classes([AnonymousEndpointAuthentication])
@permission_classes([AllowAny])
def signin_view(request):
    """Sign in any role with e-mail and password."""
    return _signin(request, admin_only=False)

signin_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@authentication_classes([AnonymousEndpointAuthentication])
@permission_classes([AllowAny])
def admin_signin_view(request):
    """Sign in restricted to admin and superadmin accounts."""
    return _signin(request, admin_only=True)

admin_signin_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@authentication_classes([AnonymousEndpointAuthentication])
@permission_classes([AllowAny])
def refresh_view(request):
    """Issue a new access cookie from the refresh cookie (or body ``refresh``)."""
    raw = request.COOKIES.get(settings.AUTH_REFRESH_COOKIE_NAME) or request.data.get('refresh')
    if not raw:
        raise AuthenticationFailed('Refresh token missing')
    try:
        refresh = RefreshToken(raw)
    except TokenError as e:
        raise AuthenticationFailed(str(e))
    user = User.objects.filter(pk=refresh.get(settings.SIMPLE_JWT['USER_ID_CLAIM']), is_active=True).first()
    if user is None:
        raise AuthenticationFailed('User not found')
    refresh['role'] = user.role
    refresh['email'] = user.email
    resp = Response({'ok': True, 'token': str(refresh.access_token)})
    return set_auth_cookies(resp, refresh)


@api_view(['POST'])
@authentication_classes([AnonymousEndpointAuthentication])
@permission_classes([AllowAny])
def signout_view(request):
    """Blacklist the refresh token (if any) and clear the auth cookies."""
    raw = request.COOKIES.get(settings.AUTH_REFRESH_COOKIE_NAME) or request.data.get('refresh')
    blacklisted = 0
    user = None
    if raw:
        try:
            token = RefreshToken(raw)
            user = User.objects.filter(pk=token.get(settings.SIMPLE_JWT['USER_ID_CLAIM'])).first()
            token.blacklist()
            blacklisted = 1
        except TokenError:
            # already expired or blacklisted
            pass
    if user is not None:
        log_action(user=user, action='signout', object_type='user', object_id=user.id)
    return clear_auth_cookies(Response({'ok': True, 'blacklisted': blacklisted}))
