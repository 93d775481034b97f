import json
import logging
import os
import tempfile

ACCESS_TOKEN = 'access_token'
TOKEN_EXPIRES = 'token_expires'
API_KEY_FINGERPRINT = 'api_key_fingerprint'


class InMemoryTokenStore:
    def __init__(self, values=None):
        self.values = dict(values or {})

    def get(self, key, default=None):
        return self.values.get(key, default)

    def set(self, key, value):
        self.values[key] = value

    def delete(self, key):
        self.values.pop(key, None)


class JsonFileTokenStore:
    """
    Key-value store backed by a single JSON document on disk, so that the cached token survives process
    restarts. Every write rewrites the whole document; concurrent writers are not coordinated and the last
    one to replace the file wins.
    """

    def __init__(self, path):
        self.path = path
        self.logger = logging.getLogger(__name__)

    def get(self, key, default=None):
        return self._load().get(key, default)

    def set(self, key, value):
        values = self._load()
        values[key] = value
        self._dump(values)

    def delete(self, key):
        values = self._load()
        if key in values:
            del values[key]
            self._dump(values)

    def _load(self):
        if not os.path.exists(self.path):
            return {}
        with open(self.path) as fh:
            try:
                values = json.load(fh)
            except ValueError:
                self.logger.warning(f'Token store at {self.path} is not valid JSON, ignoring its content.')
                return {}
        return values if isinstance(values, dict) else {}

    def _dump(self, values):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.token-store-')
        try:
            with os.fdopen(fd, 'w') as fh:
                json.dump(values, fh)
            os.replace(tmp_path, self.path)
        except Exception:
            os.remove(tmp_path)
            raise
