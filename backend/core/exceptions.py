"""Domain exceptions raised by services and translated to HTTP responses by views"""
from rest_framework import status
from rest_framework.response import Response


class BusinessRuleError(Exception):
    """A request that is well-formed but violates a business rule"""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EdgeFunctionError(Exception):
    """A serverless function call failed or returned a non-success status"""

    def __init__(self, function_name, message, status_code=None):
        super().__init__(f'{function_name}: {message}')
        self.function_name = function_name
        self.message = message
        self.status_code = status_code


def business_error_response(exc):
    body = {'error': exc.message}
    if exc.details:
        body['details'] = exc.details
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


def edge_error_response(exc):
    return Response(
        {'error': f'{exc.function_name} failed', 'message': exc.message},
        status=status.HTTP_502_BAD_GATEWAY,
    )
