import json
import logging

import requests

from membership.api.requests_utils import create_session

TOKEN_ENDPOINT = 'refresh-token'
TOKEN_FIELD = 'Bearer'


class TokenRequestFailed(Exception):
    """The token endpoint could not be reached."""


class TokenRefreshRejected(Exception):

    def __init__(self, status_code, detail, body=None):
        message = f'Token refresh rejected with status {status_code}: {detail}'
        super(TokenRefreshRejected, self).__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.body = body


class ApiKeyTokenClient:
    """
    Exchanges the long-lived easyVerein API key for a short-lived bearer token. The key itself is sent as
    the bearer credential of this one call.
    """

    def __init__(self, url, session=None, method='GET', timeout=45):
        self.url = f'{url.rstrip("/")}/{TOKEN_ENDPOINT}'
        self.session = session or create_session()
        self.method = method.upper()
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def retrieve_token(self, api_key: str) -> str:
        headers = {
            'Authorization': f'Bearer {api_key}',
            'Accept': 'application/json'
        }
        self.logger.info(f'{self.method} {self.url}')
        try:
            r = self.session.request(self.method, self.url, headers=headers, timeout=self.timeout,
                                     allow_redirects=False)
        except requests.exceptions.RequestException as e:
            raise TokenRequestFailed(str(e)) from e

        body = r.text or ''
        self.logger.info(f'Token refresh - response code: {r.status_code}')

        try:
            data = json.loads(body)
        except ValueError:
            data = None

        token = data.get(TOKEN_FIELD) if isinstance(data, dict) else None
        if not 200 <= r.status_code < 300 or not token:
            detail = data.get('detail', body) if isinstance(data, dict) else body
            self.logger.debug(f'Token refresh - response body snippet: {body[:200]}')
            raise TokenRefreshRejected(r.status_code, detail, body)
        return token
