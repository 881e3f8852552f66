import pytest
from django.urls import reverse
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import AuditEvent

pytestmark = pytest.mark.django_db


def _signin(client, url_name='signin', email='patient1@example.com', password='P@ssw0rd1'):
    return client.post(reverse(url_name), {'email': email, 'password': password}, format='json')


def test_signin_sets_cookies_and_claims(api_client, patient):
    r = _signin(api_client)
    assert r.status_code == 200
    assert r.data['user'] == {
        'id': patient.pk, 'email': 'patient1@example.com', 'fullName': 'Pat Ient', 'role': 'patient',
    }
    assert r.cookies['token']['httponly']
    assert r.cookies['refresh_token']['path'] == '/api/'
    claims = AccessToken(r.data['token'])
    assert str(claims['userId']) == str(patient.pk)
    assert claims['role'] == 'patient'
    assert claims['email'] == 'patient1@example.com'


def test_cookie_authenticates_later_requests(api_client, patient, set_ledger):
    set_ledger(4, 4, 0)
    _signin(api_client)
    r = api_client.get(reverse('beds'))
    assert r.status_code == 200
    assert r.data['data']['totalBeds'] == 4


def test_bearer_header_authenticates(api_client, patient, set_ledger):
    set_ledger(4, 4, 0)
    token = _signin(api_client).data['token']
    api_client.cookies.clear()
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    assert api_client.get(reverse('beds')).status_code == 200


def test_signin_email_is_case_insensitive(api_client, patient):
    assert _signin(api_client, email='Patient1@Example.com').status_code == 200


def test_wrong_password_is_401_and_audited(api_client, patient):
    r = _signin(api_client, password='nope')
    assert r.status_code == 401
    assert r.data['error']['message'] == 'Invalid credentials'
    assert AuditEvent.objects.filter(action='signin', detail__result='fail').exists()


def test_admin_signin_rejects_patients(api_client, patient):
    r = _signin(api_client, 'admin_signin')
    assert r.status_code == 401
    assert 'token' not in r.cookies


def test_admin_signin(api_client, admin_user):
    r = _signin(api_client, 'admin_signin', email='admin1@example.com')
    assert r.status_code == 200
    assert r.data['user']['role'] == 'admin'


def test_signin_ignores_stale_cookie(api_client, patient):
    api_client.cookies['token'] = 'garbage'
    assert _signin(api_client).status_code == 200


def test_invalid_cookie_is_401(api_client):
    api_client.cookies['token'] = 'garbage'
    assert api_client.get(reverse('beds')).status_code == 401


def test_refresh_issues_new_access_token(api_client, patient):
    _signin(api_client)
    r = api_client.post(reverse('token_refresh'))
    assert r.status_code == 200
    assert AccessToken(r.data['token'])['role'] == 'patient'


def test_refresh_without_token_is_401(api_client):
    assert api_client.post(reverse('token_refresh')).status_code == 401


def test_signout_clears_cookies_and_blacklists(api_client, patient):
    _signin(api_client)
    r = api_client.post(reverse('signout'))
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1
    assert r.cookies['token'].value == ''
    assert r.cookies['refresh_token'].value == ''
    assert api_client.post(reverse('token_refresh')).status_code == 401


def test_login_is_throttled(api_client, patient):
    codes = [_signin(api_client, password='nope').status_code for _ in range(11)]
    assert codes[:10] == [401] * 10
    assert codes[10] == 429


def test_patient_cannot_reach_admin_endpoints(patient_client):
    for name in ('admin_appointments', 'admin_beds', 'admin_dashboard', 'inventory_analytics'):
        assert patient_client.get(reverse(name)).status_code == 403
