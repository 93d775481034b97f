import hashlib
import logging
import time

from membership.api.results import ApiFailure, FailureKind
from membership.utils.token_client import TokenRefreshRejected, TokenRequestFailed
from membership.utils.token_store import ACCESS_TOKEN, API_KEY_FINGERPRINT, TOKEN_EXPIRES


def api_key_fingerprint(api_key):
    return hashlib.sha256(api_key.encode('utf-8')).hexdigest()[:16]


class TokenManager:
    """
    Owns the cached easyVerein bearer token. A single instance is shared by every client built from the same
    configuration; it is the only writer of the token state in the store.
    """

    def __init__(self, token_client, api_key, token_store, clock=time.time):
        self.token_client = token_client
        self.api_key = (api_key or '').strip()
        self.token_store = token_store
        self.clock = clock
        self.token = None
        self._loaded = False
        self.TOKEN_DURATION = 3600  # presumed remote lifetime, in s
        self.SAFETY_MARGIN = 300  # in s
        self.logger = logging.getLogger(__name__)

    def get_valid_token(self):
        token = self._get_token()
        if token and not token.is_expired(self.clock()):
            self.logger.debug('Using existing valid token.')
            return token.value

        self.logger.info('Existing token absent or expired, refreshing.')
        return self.refresh()

    def refresh(self, forced=False):
        self._get_token()
        if not self.api_key:
            self.logger.error('API key is missing, cannot refresh token.')
            return ApiFailure(FailureKind.CONFIG_ERROR, 'The easyVerein API key is not configured.')

        self.logger.info('Refreshing API token.', extra={'forced': forced})
        try:
            value = self.token_client.retrieve_token(self.api_key)
        except TokenRefreshRejected as e:
            self.logger.error(f'Token refresh failed. Status: {e.status_code}, Detail: {e.detail}')
            self.clear()
            return ApiFailure(FailureKind.AUTH_FAILURE, 'API token could not be refreshed.',
                              http_status=e.status_code, raw_body=e.body)
        except TokenRequestFailed as e:
            self.logger.error(f'Token refresh failed: {e}')
            return ApiFailure(FailureKind.TRANSPORT_ERROR, f'Token endpoint unreachable: {e}')

        expires_at = int(self.clock()) + self.TOKEN_DURATION - self.SAFETY_MARGIN
        self.token = Token(value=value, expires_at=expires_at)
        self.token_store.set(ACCESS_TOKEN, value)
        self.token_store.set(TOKEN_EXPIRES, expires_at)
        self.token_store.set(API_KEY_FINGERPRINT, api_key_fingerprint(self.api_key))
        self.logger.info(f'Token successfully refreshed. New expiry: {time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime(expires_at))}')
        return value

    def clear(self):
        self.token = None
        self._loaded = True
        self.token_store.delete(ACCESS_TOKEN)
        self.token_store.delete(TOKEN_EXPIRES)
        self.token_store.delete(API_KEY_FINGERPRINT)
        self.logger.debug('Stored token cleared.')

    def update_api_key(self, api_key):
        api_key = (api_key or '').strip()
        if api_key == self.api_key:
            return
        self.api_key = api_key
        self.clear()
        self.logger.info('API key changed, previous access token cleared.')

    def _get_token(self):
        if not self._loaded:
            self.token = self._load_token()
            self._loaded = True
        return self.token

    def _load_token(self):
        value = self.token_store.get(ACCESS_TOKEN)
        try:
            expires_at = int(self.token_store.get(TOKEN_EXPIRES) or 0)
        except (TypeError, ValueError):
            expires_at = 0
        if not value or not expires_at:
            return None
        if self.token_store.get(API_KEY_FINGERPRINT) != api_key_fingerprint(self.api_key):
            self.logger.info('Stored token was issued for a different API key, discarding it.')
            self.clear()
            return None
        return Token(value=value, expires_at=expires_at)


class Token:
    def __init__(self, value, expires_at):
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now):
        return now >= self.expires_at
