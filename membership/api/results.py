from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class FailureKind(Enum):
    CONFIG_ERROR = 'config_error'
    TOKEN_UNAVAILABLE = 'token_unavailable'
    TRANSPORT_ERROR = 'transport_error'
    AUTH_FAILURE = 'auth_failure'
    ENCODING_ERROR = 'encoding_error'
    API_ERROR = 'api_error'
    MALFORMED_RESPONSE = 'malformed_response'


@dataclass
class ApiSuccess:
    payload: Any = field(default_factory=dict)

    def get(self, key, default=None):
        if isinstance(self.payload, dict):
            return self.payload.get(key, default)
        return default


@dataclass
class ApiFailure:
    """
    A failed call to the easyVerein API. Failures are returned to the caller, never raised.
    """
    kind: FailureKind
    message: str
    http_status: Optional[int] = None
    raw_body: Optional[str] = None

    def getJSON(self):
        return {
            'kind': self.kind.value,
            'message': self.message,
            'status': self.http_status
        }
