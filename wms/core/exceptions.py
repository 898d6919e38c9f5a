"""
Business-rule exceptions and the API exception handler

Services raise these; the handler renders them (and every other DRF
APIException) as {'error': ..., 'code': ..., 'details': ...}.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BusinessRuleError(APIException):
    """A request that is well-formed but violates a business rule"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Operation not allowed.'
    default_code = 'business_rule'

    def __init__(self, detail=None, code=None, details=None):
        super().__init__(detail=detail, code=code)
        self.details = details


class InsufficientStockError(BusinessRuleError):
    default_detail = 'Insufficient stock.'
    default_code = 'insufficient_stock'


class InvalidStatusTransition(BusinessRuleError):
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_status_transition'


def _first_message(detail):
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    if isinstance(detail, dict) and detail:
        return _first_message(next(iter(detail.values())))
    return str(detail)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        response.data = {
            'error': _first_message(exc.detail),
            'code': 'validation_error',
            'details': exc.detail,
        }
        return response

    if isinstance(exc, APIException):
        codes = exc.get_codes()
        response.data = {
            'error': str(exc.detail),
            'code': codes if isinstance(codes, str) else exc.default_code,
            'details': getattr(exc, 'details', None),
        }
        if isinstance(exc, BusinessRuleError):
            logger.warning(f"Business rule rejected ({response.data['code']}): {exc.detail}")
    return response
