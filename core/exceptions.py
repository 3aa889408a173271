"""
Core — Exception Handling

Domain exceptions raised by the service layer and the DRF exception handler
that wraps them in the standard error envelope.

Taxonomy:
  BusinessRuleViolation  — malformed input, rejected synchronously (400)
  ResourceNotFoundError  — unknown item / batch / order / supplier (404)
  ConflictError          — concurrent write on the same item or order (409)
  InvalidStateTransition — lifecycle violation, incl. over-receipt (400)

@file core/exceptions.py
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('pharmastock')


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class BusinessRuleViolation(APIException):
    """Raised when input breaks a business rule at the service layer."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violation.'
    default_code = 'BUSINESS_RULE_VIOLATION'


class ResourceNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'RESOURCE_NOT_FOUND'

    def __init__(self, detail=None, code=None, resource_id=None):
        super().__init__(detail=detail, code=code)
        self.resource_id = resource_id


class ConflictError(APIException):
    """A concurrent writer advanced the item or order past the caller's view."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Concurrent modification detected. Please retry.'
    default_code = 'CONFLICT'


class InsufficientStockError(APIException):
    """Raised when an outbound movement would drive a balance below zero."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Insufficient stock for this operation.'
    default_code = 'INSUFFICIENT_STOCK'


class InvalidStateTransition(BusinessRuleViolation):
    """Raised when a state machine transition is not allowed."""
    default_detail = 'Invalid state transition.'
    default_code = 'INVALID_STATE_TRANSITION'


class OverReceiptError(InvalidStateTransition):
    """A receipt quantity exceeds what remains to be received on the line."""
    default_detail = 'Received quantity exceeds the remaining ordered quantity.'
    default_code = 'OVER_RECEIPT'


# ---------------------------------------------------------------------------
# Standard exception handler
# ---------------------------------------------------------------------------

def standard_exception_handler(exc, context):
    """
    Wraps every error response in the standard envelope:
      { "success": false, "errors": {...}, "code": "ERROR_CODE" }

    Anything DRF does not know how to render (database errors included) is
    logged with full context and surfaced as a generic INTERNAL_ERROR.
    """
    if isinstance(exc, Http404):
        exc = ResourceNotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = APIException(detail='Permission denied.', code='PERMISSION_DENIED')
        exc.status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, ValidationError):
        data = {
            'success': False,
            'errors': exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages},
            'code': 'VALIDATION_ERROR',
        }
        return Response(data, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view') if context else None
        logger.exception(
            'Unhandled exception in view %s: %s',
            view.__class__.__name__ if view is not None else '?', exc,
        )
        return Response(
            {'success': False, 'errors': {'detail': ['Internal server error.']}, 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    code = getattr(exc, 'default_code', 'ERROR')
    if isinstance(response.data, dict):
        errors = response.data
        code = errors.pop('code', code)
    elif isinstance(response.data, list):
        errors = {'detail': response.data}
    else:
        errors = {'detail': [str(response.data)]}

    resource_id = getattr(exc, 'resource_id', None)
    if resource_id is not None:
        errors['resource_id'] = str(resource_id)

    response.data = {
        'success': False,
        'errors': errors,
        'code': code,
    }
    return response
