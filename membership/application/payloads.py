import hashlib
from dataclasses import dataclass, field
from typing import Any, List, Optional

from membership.api.utils import to_date, to_iso_datetime
from membership.application.form import ApplicationForm

MANDATE_REFERENCE_PREFIX = 'WPAPP'


def mandate_reference(email: str, timestamp: float) -> str:
    # not unique for two submissions from the same email within one second
    email_hash = hashlib.md5(email.encode('utf-8')).hexdigest()[:6]
    return f'{MANDATE_REFERENCE_PREFIX}-{int(timestamp)}-{email_hash}'


def _without_absent(content: dict) -> dict:
    return {key: value for key, value in content.items() if value is not None}


@dataclass
class ContactDetails:
    salutation: str
    first_name: str
    family_name: str
    address: str
    zip: str
    city: str
    country: str
    email: str
    private_phone: Optional[str] = None
    date_of_birth: Optional[str] = None

    @staticmethod
    def from_form(form: ApplicationForm) -> 'ContactDetails':
        return ContactDetails(
            salutation=form.salutation,
            first_name=form.first_name,
            family_name=form.last_name,
            address=f'{form.street} {form.house_number}'.strip(),
            zip=form.zip_code,
            city=form.city,
            country=form.country,
            email=form.email,
            private_phone=form.phone,
            date_of_birth=form.birthdate
        )

    def getJSON(self):
        return _without_absent({
            'salutation': self.salutation,
            'firstName': self.first_name,
            'familyName': self.family_name,
            'address': self.address,
            'zip': self.zip,
            'city': self.city,
            'country': self.country,
            'email': self.email,
            'privatePhone': self.private_phone,
            'dateOfBirth': self.date_of_birth
        })


@dataclass
class MemberApplication:
    contact_details: Any
    join_date: str
    declaration_of_application: str
    membership_number: str
    sepa_iban: str
    sepa_account_owner: str
    sepa_mandate_reference: str
    sepa_mandate_date: str
    email_or_user_name: str
    member_groups: List[str] = field(default_factory=list)
    use_sepa: bool = True

    @staticmethod
    def from_form(form: ApplicationForm, contact_id, timestamp: float) -> 'MemberApplication':
        submitted_at = to_iso_datetime(timestamp)
        return MemberApplication(
            contact_details=contact_id,
            join_date=submitted_at,
            declaration_of_application=submitted_at,
            membership_number=form.membership_type,
            sepa_iban=form.iban,
            sepa_account_owner=form.account_holder or form.full_name,
            sepa_mandate_reference=mandate_reference(form.email, timestamp),
            sepa_mandate_date=to_date(timestamp),
            email_or_user_name=form.email,
            member_groups=[form.membership_type]
        )

    def getJSON(self):
        return _without_absent({
            'contactDetails': self.contact_details,
            'joinDate': self.join_date,
            'declarationOfApplication': self.declaration_of_application,
            'membershipNumber': self.membership_number,
            'useSepa': self.use_sepa,
            'sepaIban': self.sepa_iban,
            'sepaAccountOwner': self.sepa_account_owner,
            'sepaMandateReference': self.sepa_mandate_reference,
            'sepaMandateDate': self.sepa_mandate_date,
            'emailOrUserName': self.email_or_user_name,
            'memberGroups': list(self.member_groups)
        })
