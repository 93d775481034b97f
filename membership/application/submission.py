import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from membership.api.easyvereinapi import EasyVereinApi
from membership.api.requests_utils import create_session
from membership.api.results import ApiFailure
from membership.application.exceptions import FormValidationError
from membership.application.form import ApplicationForm
from membership.application.payloads import ContactDetails, MemberApplication
from membership.utils.token_client import ApiKeyTokenClient
from membership.utils.token_manager import TokenManager
from membership.utils.token_store import InMemoryTokenStore, JsonFileTokenStore

SUCCESS_MESSAGE = 'Thank you! Your membership application has been received successfully.'


class SubmissionOutcome(Enum):
    VALIDATION_REJECTED = 'validation'
    CONTACT_CREATION_FAILED = 'contact_creation_failed'
    APPLICATION_CREATION_FAILED = 'application_creation_failed'
    SUCCEEDED = 'success'


@dataclass
class SubmissionResult:
    outcome: SubmissionOutcome
    message: str
    errors: List[str] = field(default_factory=list)
    contact_id: Optional[Any] = None
    member_id: Optional[Any] = None
    failure: Optional[ApiFailure] = None

    @property
    def succeeded(self):
        return self.outcome == SubmissionOutcome.SUCCEEDED

    @property
    def user_correctable(self):
        return self.outcome == SubmissionOutcome.VALIDATION_REJECTED


class MembershipSubmitter:
    """
    Submits one membership application in two non-atomic steps: the contact details are created first and
    the member application is then linked to the new contact. A failure in the second step leaves the
    contact in easyVerein; its id is logged so it can be reconciled by hand.
    """

    def __init__(self, api: EasyVereinApi, membership_types=None, clock=time.time):
        self.api = api
        self.membership_types = membership_types or {}
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def submit(self, form_data: dict) -> SubmissionResult:
        try:
            form = ApplicationForm.from_form_data(form_data, self.membership_types)
        except FormValidationError as e:
            self.logger.info(f'Form validation failed: {e.message}')
            return SubmissionResult(SubmissionOutcome.VALIDATION_REJECTED, e.message, errors=e.errors)

        contact = ContactDetails.from_form(form)
        contact_result = self.api.create_contact_details(contact.getJSON())
        if isinstance(contact_result, ApiFailure):
            self.logger.error(f'API error creating contact: [{contact_result.kind.value}] {contact_result.message}')
            return SubmissionResult(SubmissionOutcome.CONTACT_CREATION_FAILED,
                                    f'Error submitting contact details: {contact_result.message}',
                                    failure=contact_result)

        contact_id = contact_result.get('id')
        if contact_id is None:
            self.logger.error(f'Unexpected response format after creating contact details: {contact_result.payload}')
            return SubmissionResult(SubmissionOutcome.CONTACT_CREATION_FAILED,
                                    'An unexpected error occurred after submitting contact details (Code: C1). '
                                    'Please contact support.')
        self.logger.info(f'Contact details created successfully. ID: {contact_id}')

        application = MemberApplication.from_form(form, contact_id, self.clock())
        member_result = self.api.create_member_application(application.getJSON())
        if isinstance(member_result, ApiFailure):
            self.logger.error(f'API error creating member application for contact ID {contact_id}: '
                              f'[{member_result.kind.value}] {member_result.message}. '
                              f'Contact {contact_id} is orphaned and needs manual cleanup.',
                              extra={'orphaned_contact_id': contact_id})
            return SubmissionResult(SubmissionOutcome.APPLICATION_CREATION_FAILED,
                                    f'Error submitting membership application details: {member_result.message}',
                                    contact_id=contact_id, failure=member_result)

        member_id = member_result.get('id')
        if member_id is None:
            self.logger.error(f'Unexpected response format after creating member application for contact ID '
                              f'{contact_id}: {member_result.payload}. '
                              f'Contact {contact_id} is orphaned and needs manual cleanup.',
                              extra={'orphaned_contact_id': contact_id})
            return SubmissionResult(SubmissionOutcome.APPLICATION_CREATION_FAILED,
                                    'An unexpected error occurred after submitting the application (Code: M1). '
                                    'Please contact support.',
                                    contact_id=contact_id)

        self.logger.info(f'Member application created successfully for contact ID {contact_id}. Member ID: {member_id}')
        return SubmissionResult(SubmissionOutcome.SUCCEEDED, SUCCESS_MESSAGE, contact_id=contact_id,
                                member_id=member_id)


def create_submitter(settings) -> MembershipSubmitter:
    session = create_session()
    if settings.token_store_path:
        token_store = JsonFileTokenStore(settings.token_store_path)
    else:
        token_store = InMemoryTokenStore()
    token_client = ApiKeyTokenClient(settings.api_url, session=session, method=settings.token_method)
    token_manager = TokenManager(token_client=token_client, api_key=settings.api_key, token_store=token_store)
    api = EasyVereinApi(token_manager, url=settings.api_url, session=session)
    return MembershipSubmitter(api, membership_types=settings.membership_types)
