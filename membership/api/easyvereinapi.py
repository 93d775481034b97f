#!/usr/bin/env python
"""
Client for the easyVerein REST API v2.0. Every call is authenticated with a bearer token obtained from the
TokenManager; a 401 triggers exactly one forced token refresh and one retry of the original call.
"""
import json
import logging
import os

import requests

from membership.api.requests_utils import create_session
from membership.api.results import ApiFailure, ApiSuccess, FailureKind

DEFAULT_API_URL = 'https://easyverein.com/api/v2.0/'

BODY_METHODS = frozenset(['POST', 'PUT', 'PATCH'])
ERROR_DETAIL_KEYS = ['detail', 'error', 'non_field_errors']


class EasyVereinApi:
    def __init__(self, token_manager, url=None, session=None, timeout=30):
        self.logger = logging.getLogger(__name__)
        self.session = session or create_session()
        self.token_manager = token_manager
        self.timeout = timeout

        if not url and 'EV_API_URL' in os.environ:
            url = os.environ['EV_API_URL']
            # expand interpolated env vars
            url = os.path.expandvars(url)
        self.url = url if url else DEFAULT_API_URL
        self.headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
        self.logger.info(f"using {self.url} for easyVerein API")

    def get_full_url(self, endpoint):
        return f'{self.url.rstrip("/")}/{endpoint.lstrip("/")}'

    def get_headers(self, token):
        headers = dict(self.headers)
        headers['Authorization'] = f'Bearer {token}'
        return headers

    def request(self, endpoint, method='POST', body=None, allow_retry=True):
        method = method.upper()

        token = self.token_manager.get_valid_token()
        if isinstance(token, ApiFailure):
            self.logger.error(f'No valid API token available for request to {endpoint}: {token.message}')
            return ApiFailure(FailureKind.TOKEN_UNAVAILABLE,
                              'Could not obtain a valid API token. Check API key and connectivity.',
                              http_status=token.http_status)

        data = None
        if body and method in BODY_METHODS:
            try:
                data = json.dumps(body, allow_nan=False)
            except (TypeError, ValueError) as e:
                self.logger.error(f'JSON encode error for body data: {e}')
                return ApiFailure(FailureKind.ENCODING_ERROR, 'Failed to encode request data.')

        self.logger.info(f'API request - endpoint: {endpoint}, method: {method}')
        try:
            r = self.session.request(method, self.get_full_url(endpoint), data=data,
                                     headers=self.get_headers(token), timeout=self.timeout,
                                     allow_redirects=False)
        except requests.exceptions.RequestException as e:
            self.logger.error(f'API request failed - endpoint: {endpoint}, error: {e}')
            return ApiFailure(FailureKind.TRANSPORT_ERROR, str(e))

        status_code = r.status_code
        response_body = r.text or ''
        self.logger.info(f'API response - endpoint: {endpoint}, status: {status_code}')
        self.logger.debug(f'API response - body snippet: {response_body[:300]}')

        if status_code == requests.codes.unauthorized:
            return self._handle_unauthorized(endpoint, method, body, allow_retry, response_body)

        if status_code >= 400:
            details = self._error_details(response_body)
            self.logger.error(f'API request error - endpoint: {endpoint}, status: {status_code}, body: {response_body[:300]}')
            return ApiFailure(FailureKind.API_ERROR,
                              f'API request failed. Status: {status_code}. Details: {details}',
                              http_status=status_code, raw_body=response_body)

        if status_code == requests.codes.no_content:
            return ApiSuccess({})

        if not response_body.strip():
            return ApiSuccess(None)

        try:
            payload = json.loads(response_body)
        except ValueError:
            self.logger.warning(f'API response - endpoint: {endpoint}, status: {status_code}, body is not valid JSON')
            return ApiFailure(FailureKind.MALFORMED_RESPONSE, 'API response was not valid JSON.',
                              http_status=status_code, raw_body=response_body)
        return ApiSuccess(payload)

    def _handle_unauthorized(self, endpoint, method, body, allow_retry, response_body):
        if not allow_retry:
            self.logger.error(f'API request for {endpoint} still unauthorized after token refresh.')
            return ApiFailure(FailureKind.AUTH_FAILURE, 'API request unauthorized after token refresh.',
                              http_status=requests.codes.unauthorized, raw_body=response_body)

        self.logger.info(f'API request received 401 - attempting token refresh and retry for {endpoint}.')
        refreshed = self.token_manager.refresh(forced=True)
        if isinstance(refreshed, ApiFailure):
            self.logger.error(f'Token refresh failed after receiving 401. Cannot retry request for {endpoint}.')
            return ApiFailure(FailureKind.AUTH_FAILURE, 'API token expired and could not be refreshed.',
                              http_status=requests.codes.unauthorized, raw_body=response_body)

        self.logger.info(f'Token refreshed successfully. Retrying original request for {endpoint}.')
        return self.request(endpoint, method, body, allow_retry=False)

    @staticmethod
    def _error_details(response_body):
        try:
            decoded = json.loads(response_body)
        except ValueError:
            return response_body

        if isinstance(decoded, dict):
            for key in ERROR_DETAIL_KEYS:
                value = decoded.get(key)
                if value:
                    return ', '.join(str(v) for v in value) if isinstance(value, list) else str(value)
            if len(decoded) == 1:
                value = next(iter(decoded.values()))
                if value:
                    return ', '.join(str(v) for v in value) if isinstance(value, list) else str(value)
        elif isinstance(decoded, list) and len(decoded) == 1 and decoded[0]:
            return str(decoded[0])

        return json.dumps(decoded)

    def create_contact_details(self, data):
        self.logger.info('Attempting to create contact details.')
        return self.request('contact-details/', 'POST', data)

    def create_member_application(self, data):
        self.logger.info('Attempting to create member application.')
        data = dict(data)
        data['isApplication'] = True
        return self.request('member/', 'POST', data)
