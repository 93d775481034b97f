from unittest import TestCase

import requests
from mock import MagicMock, Mock

from membership.utils.token_client import ApiKeyTokenClient, TokenRefreshRejected, TokenRequestFailed


def _response(status_code, text):
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


class ApiKeyTokenClientTest(TestCase):
    def setUp(self):
        self.session = MagicMock()

    def test_retrieve_token(self):
        self.session.request.return_value = _response(200, '{"Bearer": "short-lived"}')
        client = ApiKeyTokenClient('https://easyverein.com/api/v2.0/', session=self.session)

        token = client.retrieve_token('api-key')

        self.assertEqual(token, 'short-lived')
        self.session.request.assert_called_once_with(
            'GET', 'https://easyverein.com/api/v2.0/refresh-token',
            headers={'Authorization': 'Bearer api-key', 'Accept': 'application/json'},
            timeout=45, allow_redirects=False)

    def test_retrieve_token_with_configured_method(self):
        self.session.request.return_value = _response(200, '{"Bearer": "short-lived"}')
        client = ApiKeyTokenClient('https://easyverein.com/api/v2.0', session=self.session, method='post')

        client.retrieve_token('api-key')

        args, _ = self.session.request.call_args
        self.assertEqual(args, ('POST', 'https://easyverein.com/api/v2.0/refresh-token'))

    def test_retrieve_token_rejected(self):
        self.session.request.return_value = _response(401, '{"detail": "Invalid token."}')
        client = ApiKeyTokenClient('https://easyverein.com/api/v2.0/', session=self.session)

        with self.assertRaises(TokenRefreshRejected) as context:
            client.retrieve_token('api-key')

        self.assertEqual(context.exception.status_code, 401)
        self.assertEqual(context.exception.detail, 'Invalid token.')

    def test_retrieve_token_missing_token_field(self):
        self.session.request.return_value = _response(200, '{"token": "wrong-field"}')
        client = ApiKeyTokenClient('https://easyverein.com/api/v2.0/', session=self.session)

        self.assertRaises(TokenRefreshRejected, lambda: client.retrieve_token('api-key'))

    def test_retrieve_token_non_json_body(self):
        self.session.request.return_value = _response(200, '<html>maintenance</html>')
        client = ApiKeyTokenClient('https://easyverein.com/api/v2.0/', session=self.session)

        self.assertRaises(TokenRefreshRejected, lambda: client.retrieve_token('api-key'))

    def test_retrieve_token_connection_error(self):
        self.session.request.side_effect = requests.exceptions.ConnectTimeout('timed out')
        client = ApiKeyTokenClient('https://easyverein.com/api/v2.0/', session=self.session)

        self.assertRaises(TokenRequestFailed, lambda: client.retrieve_token('api-key'))
