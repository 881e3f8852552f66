"""
Domain errors and the project-wide DRF exception handler.

Services raise DRF exceptions directly (``ValidationError``,
``NotFound``, ``PermissionDenied``) or one of the domain errors below;
the handler turns all of them into the same JSON envelope.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class IllegalTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This status change is not allowed.'
    default_code = 'illegal_transition'

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f'Cannot change appointment status from {current} to {target}')


class SlotUnavailable(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The requested time slot is already booked.'
    default_code = 'slot_unavailable'


class ResourceExhausted(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'No beds available'
    default_code = 'resource_exhausted'


class InsufficientStock(ResourceExhausted):
    default_code = 'insufficient_stock'

    def __init__(self, name: str, requested: int, available: int):
        self.name = name
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f'Insufficient stock for {name}. Requested: {requested}, available: {available}, '
            f'short by {self.shortfall}'
        )


def _message(data):
    if isinstance(data, dict) and set(data) == {'detail'}:
        return _message(data['detail'])
    if isinstance(data, list) and len(data) == 1:
        return _message(data[0])
    return data


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('Unhandled error in %s', view.__class__.__name__ if view else 'view', exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    code = getattr(exc, 'default_code', None) or 'api_error'
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    return Response(
        {'ok': False, 'error': {'code': code, 'message': _message(resp.data)}},
        status=resp.status_code,
        headers={k: resp[k] for k in ('WWW-Authenticate', 'Retry-After') if resp.has_header(k)},
    )
