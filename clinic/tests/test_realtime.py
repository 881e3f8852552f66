import pytest
from asgiref.sync import async_to_sync
from channels.testing import WebsocketCommunicator
from django.core.management import call_command

from clinic.models import Doctor, InventoryItem, User
from clinic.realtime.consumers import BedLedgerConsumer, _token_from_scope


def test_token_is_read_from_cookie_header():
    scope = {'headers': [(b'host', b'localhost'), (b'cookie', b'theme=dark; token=abc.def.ghi')]}
    assert _token_from_scope(scope) == 'abc.def.ghi'
    assert _token_from_scope({'headers': []}) is None


@pytest.mark.django_db(transaction=True)
@pytest.mark.parametrize('headers', [[], [(b'cookie', b'token=not-a-jwt')]])
def test_socket_without_valid_token_is_refused(headers):
    async def scenario():
        communicator = WebsocketCommunicator(BedLedgerConsumer.as_asgi(), '/ws/beds/', headers=headers)
        connected, code = await communicator.connect()
        await communicator.disconnect()
        return connected, code

    assert async_to_sync(scenario)() == (False, 4401)


@pytest.mark.django_db
def test_demo_seed_is_idempotent():
    call_command('ensure_demo_users')
    call_command('ensure_demo_users')
    assert User.objects.filter(username__in=['superadmin', 'admin', 'doctor', 'patient']).count() == 4
    assert Doctor.objects.filter(email='doctor@medbook.local').count() == 1
    assert InventoryItem.objects.count() == 4
    assert User.objects.get(username='admin').check_password('medbook123')
