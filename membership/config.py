import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional

import yaml

from membership.api.easyvereinapi import DEFAULT_API_URL
from membership.application.exceptions import ConfigurationError

TOKEN_METHODS = frozenset(['GET', 'POST'])

ENV_VARS = {
    'api_key': 'EV_API_KEY',
    'api_url': 'EV_API_URL',
    'success_url': 'EV_SUCCESS_URL',
    'error_url': 'EV_ERROR_URL',
    'membership_types': 'EV_MEMBERSHIP_TYPES',
    'token_store_path': 'EV_TOKEN_STORE',
    'token_method': 'EV_TOKEN_METHOD'
}

logger = logging.getLogger(__name__)


def parse_membership_types(raw) -> Dict[str, str]:
    """
    Parses newline-delimited `Label=RemoteID` pairs into an ordered mapping of remote id to label. Lines
    without a label or an id are skipped.
    """
    membership_types = OrderedDict()
    if isinstance(raw, dict):
        raw = '\n'.join(f'{label}={remote_id}' for label, remote_id in raw.items())
    for line in (raw or '').strip().splitlines():
        parts = line.strip().split('=', 1)
        if len(parts) != 2:
            continue
        label, remote_id = parts[0].strip(), parts[1].strip()
        if label and remote_id:
            membership_types[remote_id] = label
    return membership_types


@dataclass
class FormSettings:
    api_key: str = ''
    api_url: str = DEFAULT_API_URL
    success_url: str = ''
    error_url: str = ''
    membership_types: Dict[str, str] = field(default_factory=OrderedDict)
    token_store_path: Optional[str] = None
    token_method: str = 'GET'

    @staticmethod
    def from_dict(values: dict) -> 'FormSettings':
        token_method = str(values.get('token_method') or 'GET').upper()
        if token_method not in TOKEN_METHODS:
            raise ConfigurationError(f'Unsupported token method [{token_method}], expected one of {sorted(TOKEN_METHODS)}')

        settings = FormSettings(
            api_key=str(values.get('api_key') or '').strip(),
            api_url=values.get('api_url') or DEFAULT_API_URL,
            success_url=values.get('success_url') or '',
            error_url=values.get('error_url') or '',
            membership_types=parse_membership_types(values.get('membership_types')),
            token_store_path=values.get('token_store_path') or None,
            token_method=token_method
        )
        if not settings.api_key:
            logger.warning('API key is not configured in settings.')
        return settings

    @staticmethod
    def from_env(environ=None) -> 'FormSettings':
        environ = os.environ if environ is None else environ
        values = {}
        for name, env_var in ENV_VARS.items():
            if env_var in environ:
                # expand interpolated env vars
                values[name] = os.path.expandvars(environ[env_var])
        return FormSettings.from_dict(values)

    @staticmethod
    def from_yaml(path) -> 'FormSettings':
        try:
            with open(path) as fh:
                values = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f'Could not read settings from {path}: {e}') from e

        if not isinstance(values, dict):
            raise ConfigurationError(f'Settings in {path} must be a mapping')
        return FormSettings.from_dict(values)
