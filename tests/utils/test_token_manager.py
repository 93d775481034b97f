import os
import tempfile
from unittest import TestCase

from mock import MagicMock, Mock

from membership.api.results import ApiFailure, FailureKind
from membership.utils.token_client import TokenRefreshRejected, TokenRequestFailed
from membership.utils.token_manager import TokenManager, Token, api_key_fingerprint
from membership.utils.token_store import InMemoryTokenStore, JsonFileTokenStore


class TestTokenManager(TestCase):
    def setUp(self):
        self.token_client = MagicMock()
        self.token_client.retrieve_token = MagicMock(return_value='token')
        self.token_store = InMemoryTokenStore()
        self.clock = Mock(return_value=1000)

    def _token_manager(self, api_key='api-key'):
        return TokenManager(token_client=self.token_client, api_key=api_key, token_store=self.token_store,
                            clock=self.clock)

    def test_get_valid_token(self):
        token_manager = self._token_manager()

        token = token_manager.get_valid_token()

        self.assertEqual(token, 'token')
        self.token_client.retrieve_token.assert_called_once_with('api-key')
        self.assertEqual(self.token_store.get('access_token'), 'token')
        self.assertEqual(self.token_store.get('token_expires'), 1000 + 3300)

    def test_get_valid_token_uses_cached_token(self):
        token_manager = self._token_manager()
        token_manager.get_valid_token()

        self.clock.return_value = 1000 + 3299
        token = token_manager.get_valid_token()

        self.assertEqual(token, 'token')
        self.token_client.retrieve_token.assert_called_once()

    def test_get_valid_token_twice_without_time_passing(self):
        self.token_store.set('access_token', 'stored-token')
        self.token_store.set('token_expires', 2000)
        self.token_store.set('api_key_fingerprint', api_key_fingerprint('api-key'))
        token_manager = self._token_manager()

        self.assertEqual(token_manager.get_valid_token(), 'stored-token')
        self.assertEqual(token_manager.get_valid_token(), 'stored-token')

        self.token_client.retrieve_token.assert_not_called()

    def test_get_valid_token_when_expired(self):
        self.token_store.set('access_token', 'token_1')
        self.token_store.set('token_expires', 1000)
        self.token_client.retrieve_token = MagicMock(return_value='token_2')
        token_manager = self._token_manager()

        new_token = token_manager.get_valid_token()

        self.assertEqual(new_token, 'token_2')
        self.token_client.retrieve_token.assert_called_once()
        self.assertEqual(self.token_store.get('access_token'), 'token_2')

    def test_get_valid_token_when_expiry_absent(self):
        self.token_store.set('access_token', 'token_1')
        token_manager = self._token_manager()

        token_manager.get_valid_token()

        self.token_client.retrieve_token.assert_called_once()

    def test_refresh_always_calls_token_endpoint(self):
        token_manager = self._token_manager()
        token_manager.get_valid_token()

        token_manager.refresh(forced=True)

        self.assertEqual(self.token_client.retrieve_token.call_count, 2)

    def test_refresh_without_api_key(self):
        token_manager = self._token_manager(api_key='  ')

        result = token_manager.refresh()

        self.assertIsInstance(result, ApiFailure)
        self.assertEqual(result.kind, FailureKind.CONFIG_ERROR)
        self.token_client.retrieve_token.assert_not_called()

    def test_refresh_rejected_clears_stored_token(self):
        self.token_store.set('access_token', 'old-token')
        self.token_store.set('token_expires', 5000)
        self.token_client.retrieve_token.side_effect = TokenRefreshRejected(403, 'Invalid key', '{"detail": "Invalid key"}')
        token_manager = self._token_manager()

        result = token_manager.refresh(forced=True)

        self.assertEqual(result.kind, FailureKind.AUTH_FAILURE)
        self.assertEqual(result.http_status, 403)
        self.assertIsNone(self.token_store.get('access_token'))
        self.assertIsNone(self.token_store.get('token_expires'))
        self.assertIsNone(token_manager.token)

    def test_refresh_transport_error_keeps_stored_token(self):
        self.token_store.set('access_token', 'old-token')
        self.token_store.set('token_expires', 5000)
        self.token_store.set('api_key_fingerprint', api_key_fingerprint('api-key'))
        self.token_client.retrieve_token.side_effect = TokenRequestFailed('connection refused')
        token_manager = self._token_manager()

        result = token_manager.refresh()

        self.assertEqual(result.kind, FailureKind.TRANSPORT_ERROR)
        self.assertEqual(self.token_store.get('access_token'), 'old-token')

    def test_update_api_key_clears_token(self):
        token_manager = self._token_manager()
        token_manager.get_valid_token()

        token_manager.update_api_key('new-api-key')

        self.assertIsNone(self.token_store.get('access_token'))
        token_manager.get_valid_token()
        self.token_client.retrieve_token.assert_called_with('new-api-key')

    def test_update_api_key_unchanged_keeps_token(self):
        token_manager = self._token_manager()
        token_manager.get_valid_token()

        token_manager.update_api_key(' api-key ')

        self.assertEqual(self.token_store.get('access_token'), 'token')

    def test_refresh_transport_error_before_first_use(self):
        self.token_store.set('access_token', 'stored-token')
        self.token_store.set('token_expires', 5000)
        self.token_store.set('api_key_fingerprint', api_key_fingerprint('api-key'))
        self.token_client.retrieve_token.side_effect = TokenRequestFailed('connection refused')
        token_manager = self._token_manager()

        token_manager.refresh()
        token = token_manager.get_valid_token()

        self.assertEqual(token, 'stored-token')
        self.token_client.retrieve_token.assert_called_once()

    def test_stored_token_for_other_api_key_is_discarded(self):
        self.token_store.set('access_token', 'old-key-token')
        self.token_store.set('token_expires', 5000)
        self.token_store.set('api_key_fingerprint', api_key_fingerprint('old-api-key'))
        token_manager = self._token_manager()

        token = token_manager.get_valid_token()

        self.assertEqual(token, 'token')
        self.token_client.retrieve_token.assert_called_once_with('api-key')
        self.assertEqual(self.token_store.get('api_key_fingerprint'), api_key_fingerprint('api-key'))

    def test_stored_token_without_fingerprint_is_discarded(self):
        self.token_store.set('access_token', 'old-token')
        self.token_store.set('token_expires', 5000)
        token_manager = self._token_manager()

        token_manager.get_valid_token()

        self.token_client.retrieve_token.assert_called_once_with('api-key')

    def test_valid_token(self):
        token = Token(value='token', expires_at=1000)
        self.assertFalse(token.is_expired(999))

    def test_expired_token(self):
        token = Token(value='token', expires_at=1000)
        self.assertTrue(token.is_expired(1000))


class TestTokenManagerWithJsonFileStore(TestCase):
    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.directory.name, 'token.json')
        self.clock = Mock(return_value=1000)

    def tearDown(self):
        self.directory.cleanup()

    def _token_manager(self, api_key, token):
        token_client = MagicMock()
        token_client.retrieve_token = MagicMock(return_value=token)
        return TokenManager(token_client=token_client, api_key=api_key,
                            token_store=JsonFileTokenStore(self.path), clock=self.clock)

    def test_token_reused_after_restart(self):
        self._token_manager('key-A', 'token-for-key-A').get_valid_token()
        token_manager = self._token_manager('key-A', 'another-token')

        self.assertEqual(token_manager.get_valid_token(), 'token-for-key-A')
        token_manager.token_client.retrieve_token.assert_not_called()

    def test_api_key_changed_between_restarts(self):
        self._token_manager('key-A', 'token-for-key-A').get_valid_token()
        token_manager = self._token_manager('key-B', 'token-for-key-B')

        self.assertEqual(token_manager.get_valid_token(), 'token-for-key-B')
        token_manager.token_client.retrieve_token.assert_called_once_with('key-B')
        self.assertEqual(JsonFileTokenStore(self.path).get('access_token'), 'token-for-key-B')
