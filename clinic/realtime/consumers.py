import json
from http.cookies import SimpleCookie

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from clinic.services import ledger


def _token_from_scope(scope):
    for name, value in scope.get("headers", []):
        if name == b"cookie":
            cookie = SimpleCookie()
            cookie.load(value.decode("latin-1"))
            morsel = cookie.get(settings.AUTH_COOKIE_NAME)
            return morsel.value if morsel else None
    return None


class BedLedgerConsumer(AsyncWebsocketConsumer):
    """Pushes bed ledger counts to signed-in clients after every change."""
    GROUP = ledger.BEDS_GROUP

    async def connect(self):
        raw = _token_from_scope(self.scope)
        try:
            if not raw:
                raise TokenError("missing token")
            AccessToken(raw)
        except TokenError:
            await self.close(code=4401)
            return
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        status = await sync_to_async(ledger.get_status)()
        await self.send(json.dumps({"type": "ledger.snapshot", **status.as_payload()}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def ledger_update(self, event):
        # event: {"type": "ledger.update", "totalBeds": ..., "availableBeds": ..., "bedsInUse": ..., "version": ...}
        await self.send(json.dumps(event))
