import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class ApprovalConflict(APIException):
    """The approval exists but its state does not allow the requested action."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'This approval has already been processed'
    default_code = 'approval_conflict'


class DuplicateResource(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists'
    default_code = 'duplicate'


def _first_message(data):
    if isinstance(data, dict):
        if 'detail' in data:
            return _first_message(data['detail'])
        data = list(data.values())
    if isinstance(data, list):
        for value in data:
            message = _first_message(value)
            if message:
                return message
        return ''
    return str(data)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.error('Unhandled error in %s', getattr(view, '__name__', view), exc_info=exc)
        return Response({'success': False, 'error': 'Internal server error'}, status=500)
    # normalize response
    body = {'success': False, 'error': _first_message(resp.data)}
    if isinstance(resp.data, dict) and 'detail' not in resp.data:
        body['details'] = resp.data
    return Response(body, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp):
    headers = {}
    for name in ('WWW-Authenticate', 'Retry-After'):
        if resp.has_header(name):
            headers[name] = resp[name]
    return headers
