"""
Client for the hosted serverless functions (invite-user, enrich-product-data,
extract-from-pdf).

The functions are opaque request/response contracts: JSON in, JSON out.
Approving users and changing their roles happen on the local user table,
so approve-user and update-user-roles are not called from here.
"""
import logging

import requests
from django.conf import settings

from .exceptions import EdgeFunctionError

logger = logging.getLogger(__name__)

KNOWN_FUNCTIONS = (
    'invite-user',
    'enrich-product-data',
    'extract-from-pdf',
)


def get_function_url(name):
    base_url = (settings.EDGE_FUNCTIONS_URL or '').rstrip('/')
    if not base_url:
        raise EdgeFunctionError(name, 'EDGE_FUNCTIONS_URL is not configured')
    return f"{base_url}/{name}"


def invoke_edge_function(name, payload=None, timeout=None):
    """
    POST a JSON payload to a serverless function and return its decoded JSON body.

    Raises EdgeFunctionError on transport errors, non-2xx responses or
    undecodable bodies.
    """
    if name not in KNOWN_FUNCTIONS:
        raise EdgeFunctionError(name, 'Unknown function')

    url = get_function_url(name)
    headers = {'Content-Type': 'application/json'}
    if settings.EDGE_FUNCTIONS_KEY:
        headers['Authorization'] = f"Bearer {settings.EDGE_FUNCTIONS_KEY}"

    try:
        response = requests.post(
            url,
            json=payload or {},
            headers=headers,
            timeout=timeout or settings.EDGE_FUNCTIONS_TIMEOUT,
        )
    except requests.exceptions.Timeout:
        logger.warning(f"Edge function {name} timed out")
        raise EdgeFunctionError(name, 'Request timed out')
    except requests.exceptions.RequestException as e:
        logger.warning(f"Edge function {name} request failed: {str(e)}")
        raise EdgeFunctionError(name, str(e))

    if not response.ok:
        try:
            body = response.json()
        except ValueError:
            body = None
        message = (body.get('error') if isinstance(body, dict) else None) or response.text
        logger.warning(f"Edge function {name} returned {response.status_code}: {message}")
        raise EdgeFunctionError(name, message or f'HTTP {response.status_code}', status_code=response.status_code)

    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        raise EdgeFunctionError(name, 'Response is not valid JSON', status_code=response.status_code)
