import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from operations.realtime.consumers import ApprovalUpdatesConsumer
from operations.services.approvals import UPDATES_GROUP

pytestmark = pytest.mark.django_db


def _communicator(user):
    communicator = WebsocketCommunicator(ApprovalUpdatesConsumer.as_asgi(), '/ws/approvals/')
    communicator.scope['user'] = user
    return communicator


def test_anonymous_socket_is_closed():
    async def scenario():
        connected, code = await _communicator(AnonymousUser()).connect()
        return connected, code

    connected, code = async_to_sync(scenario)()
    assert not connected
    assert code == 4401


def test_signed_in_socket_receives_approval_updates(bendahara):
    event = {'type': 'approval.updated', 'approvalId': 'a1', 'status': 'APPROVED', 'requestStatus': 'PENDING'}

    async def scenario():
        communicator = _communicator(bendahara)
        connected, _ = await communicator.connect()
        assert connected
        welcome = await communicator.receive_json_from()
        await get_channel_layer().group_send(UPDATES_GROUP, event)
        update = await communicator.receive_json_from()
        await communicator.disconnect()
        return welcome, update

    welcome, update = async_to_sync(scenario)()
    assert welcome == {'type': 'welcome', 'message': 'connected'}
    assert update == event
