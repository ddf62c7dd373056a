import json

from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from operations.services.approvals import UPDATES_GROUP


class ApprovalUpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes ``approval.updated`` events to signed-in clients."""
    GROUP = UPDATES_GROUP

    async def connect(self):
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4401)
            return
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def approval_updated(self, event):
        # event: {"type": "approval.updated", "approvalId": ..., "status": ..., "requestStatus": ...}
        await self.send(json.dumps(event))
