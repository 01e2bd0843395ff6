# services/contact.py
"""
Contact form handling
"""

import logging
from typing import Any, Dict, Optional

from email_validator import EmailNotValidError, validate_email

from core.exceptions import BadRequestError
from core.template_engine import FoundationTemplateEngine
from services.email_sender import ContentType, EmailDispatcher, EmailRequest

logger = logging.getLogger(__name__)


def _text_field(payload: Dict[str, Any], field_name: str) -> str:
    value = payload.get(field_name)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise BadRequestError(f'{field_name} must be a string')
    return value.strip()


class ContactFormService:
    """Validates submissions and forwards them to the notify address"""

    def __init__(self, template_engine: FoundationTemplateEngine,
                 dispatcher: Optional[EmailDispatcher] = None,
                 notify_email: str = ''):
        self.template_engine = template_engine
        self.dispatcher = dispatcher
        self.notify_email = notify_email

    def submit(self, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            payload = {}
        name = _text_field(payload, 'name')
        email = _text_field(payload, 'email')
        message = _text_field(payload, 'message')
        subject = _text_field(payload, 'subject')

        if not name or not email or not message:
            raise BadRequestError('Missing required fields: name, email, message')
        try:
            email = validate_email(email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise BadRequestError(f'Invalid email address: {e}')

        logger.info(f"Contact form submission from {email}")
        result = {'success': True, 'message': 'Contact form submitted successfully'}

        if self.notify_email and self.dispatcher is not None and self.dispatcher.gmail.configured:
            mail_subject, body = self.template_engine.contact_notification(
                name, email, message, subject
            )
            dispatch = self.dispatcher.dispatch(EmailRequest(
                subject=mail_subject,
                recipients=[self.notify_email],
                content_type=ContentType.HTML,
                content=body
            ))
            result['notified'] = dispatch.sent_count > 0
        else:
            logger.debug("Contact notification skipped, no notify address or mail setup")
            result['notified'] = False

        return result
