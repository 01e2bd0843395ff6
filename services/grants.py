# services/grants.py
"""
Grant application intake and review
"""

import logging
from typing import Any, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from core.exceptions import BadRequestError, FoundationError, NotFoundError
from core.hosted_backend import HostedBackend
from core.models import ApplicationStatus, GrantApplication, Table
from core.template_engine import FoundationTemplateEngine
from services.email_sender import ContentType, EmailDispatcher, EmailRequest

logger = logging.getLogger(__name__)

DECISION_STATUSES = (ApplicationStatus.GRANTED.value, ApplicationStatus.REJECTED.value)


def _optional(value: Any) -> Optional[str]:
    text = str(value).strip() if value is not None else ''
    return text or None


class GrantApplicationService:
    """Stores applications and notifies applicants of decisions"""

    def __init__(self, backend: HostedBackend, template_engine: FoundationTemplateEngine,
                 dispatcher: Optional[EmailDispatcher] = None):
        self.backend = backend
        self.template_engine = template_engine
        self.dispatcher = dispatcher

    def submit(self, payload: Optional[Dict[str, Any]]) -> GrantApplication:
        payload = payload or {}
        child_name = _optional(payload.get('childName'))
        email = _optional(payload.get('email'))
        if not child_name or not email:
            raise BadRequestError('Missing required fields: childName, email')
        try:
            email = validate_email(email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise BadRequestError(f'Invalid email address: {e}')

        rows = self.backend.insert(Table.GRANT_APPLICATIONS, [{
            'child_name': child_name,
            'email': email,
            'phone': _optional(payload.get('phone')),
            'parent_name': _optional(payload.get('parentName')),
            'additional_notes': _optional(payload.get('additionalNotes')),
        }])
        application = GrantApplication.from_row(rows[0]) if rows else GrantApplication(
            id=None, child_name=child_name, email=email
        )
        logger.info(f"Grant application received from {email}")
        return application

    def list_applications(self, status: Optional[str] = None) -> List[GrantApplication]:
        filters = {}
        if status:
            filters['status'] = self._validated_status(status)
        rows = self.backend.select(
            Table.GRANT_APPLICATIONS, filters, order='created_at.desc'
        )
        return [GrantApplication.from_row(row) for row in rows]

    def update_status(self, application_id: int, status: Optional[str]) -> Dict[str, Any]:
        """
        Change an application's status

        Moving to granted or rejected emails the applicant. The status change
        stands even when that email fails; the outcome is reported under
        ``email``.
        """
        status = self._validated_status(status)
        rows = self.backend.update(
            Table.GRANT_APPLICATIONS, {'status': status}, {'id': application_id}
        )
        if not rows:
            raise NotFoundError('Application not found')

        application = GrantApplication.from_row(rows[0])
        logger.info(f"Grant application {application_id} marked {status}")

        result = {'success': True, 'application': application.to_dict()}
        if status in DECISION_STATUSES:
            result['email'] = self._notify_decision(application, status)
        return result

    def _notify_decision(self, application: GrantApplication, status: str) -> Dict[str, Any]:
        if self.dispatcher is None:
            return {'sent': False, 'error': 'Email delivery is not available'}

        try:
            subject, body = self.template_engine.grant_decision_email(application, status)
            dispatch = self.dispatcher.dispatch(EmailRequest(
                subject=subject,
                recipients=[application.email],
                content_type=ContentType.HTML,
                content=body
            ))
        except FoundationError as e:
            logger.error(f"Decision email for application {application.id} failed: {e.message}")
            return {'sent': False, 'recipient': application.email, 'error': e.message}

        outcome = dispatch.results[0]
        if outcome.error:
            return {'sent': False, 'recipient': application.email, 'error': outcome.error}
        return {'sent': True, 'recipient': application.email}

    def delete(self, application_id: int) -> None:
        rows = self.backend.delete(Table.GRANT_APPLICATIONS, {'id': application_id})
        if not rows:
            raise NotFoundError('Application not found')
        logger.info(f"Grant application {application_id} deleted")

    @staticmethod
    def _validated_status(status: Optional[str]) -> str:
        try:
            return ApplicationStatus(status).value
        except ValueError:
            allowed = ', '.join(s.value for s in ApplicationStatus)
            raise BadRequestError(f'Invalid status. Must be one of: {allowed}')
