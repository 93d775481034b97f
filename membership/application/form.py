import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from membership.api.utils import parse_date_string
from membership.application.exceptions import FormValidationError

FIELD_PREFIX = 'ev_'

REQUIRED_FIELDS = [
    'salutation', 'first_name', 'last_name', 'email', 'street', 'house_number', 'zip_code', 'city', 'country',
    'membership_type', 'iban', 'sepa_agreement', 'privacy_agreement'
]

AGREEMENTS = {
    'sepa_agreement': 'SEPA Mandate Agreement',
    'privacy_agreement': 'Privacy Policy Agreement'
}

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
IBAN_PATTERN = re.compile(r'^[A-Z]{2}[0-9]{2}[A-Z0-9]{11,30}$')
DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
PHONE_DISALLOWED = re.compile(r'[^-+() \d]')


@dataclass
class ApplicationForm:
    salutation: str
    first_name: str
    last_name: str
    email: str
    street: str
    house_number: str
    zip_code: str
    city: str
    country: str
    membership_type: str
    iban: str
    phone: Optional[str] = None
    birthdate: Optional[str] = None
    account_holder: Optional[str] = None

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    @staticmethod
    def from_form_data(form_data: dict, membership_types: Dict[str, str] = None) -> 'ApplicationForm':
        """
        Sanitizes the posted `ev_` fields and builds the normalized form. All problems are collected and
        raised together as one FormValidationError.
        """
        values = {}
        errors = []
        for key, value in form_data.items():
            if not key.startswith(FIELD_PREFIX):
                continue
            name = key[len(FIELD_PREFIX):]
            values[name] = _sanitize(name, value, errors)

        for name in REQUIRED_FIELDS:
            if name in AGREEMENTS:
                if not values.get(name):
                    errors.append(f'You must agree to the {AGREEMENTS[name]}.')
            elif not values.get(name):
                errors.append(f'The field "{name.replace("_", " ").title()}" is required.')

        membership_type = values.get('membership_type')
        if membership_type and membership_types and membership_type not in membership_types:
            errors.append('Please choose a valid membership type.')

        if errors:
            raise FormValidationError(_unique(errors))

        return ApplicationForm(
            salutation=values['salutation'],
            first_name=values['first_name'],
            last_name=values['last_name'],
            email=values['email'],
            street=values['street'],
            house_number=values['house_number'],
            zip_code=values['zip_code'],
            city=values['city'],
            country=values['country'],
            membership_type=values['membership_type'],
            iban=values['iban'],
            phone=values.get('phone'),
            birthdate=values.get('birthdate'),
            account_holder=values.get('account_holder')
        )


def _sanitize(name, value, errors):
    value = value if isinstance(value, str) else ('' if value is None else str(value))

    if name in AGREEMENTS:
        return value == '1'

    if name == 'email':
        value = value.strip()
        if value and not EMAIL_PATTERN.match(value):
            errors.append('Please enter a valid email address.')
        return value

    if name == 'iban':
        value = value.replace(' ', '').strip().upper()
        if value and not IBAN_PATTERN.match(value):
            errors.append('Please enter a valid IBAN format.')
        return value

    if name == 'birthdate':
        value = value.strip()
        if not value:
            return None
        if not DATE_PATTERN.match(value) or not _is_date(value):
            errors.append('Invalid date format for Date of Birth (must be YYYY-MM-DD).')
        return value

    if name == 'phone':
        value = PHONE_DISALLOWED.sub('', value).strip()
        return value or None

    value = ' '.join(value.split())
    if name == 'account_holder':
        return value or None
    return value


def _is_date(value):
    try:
        parse_date_string(value)
    except ValueError:
        return False
    return True


def _unique(errors: List[str]) -> List[str]:
    seen = set()
    unique = []
    for error in errors:
        if error not in seen:
            seen.add(error)
            unique.append(error)
    return unique
