# services/newsletter.py
"""
Newsletter subscription and campaign delivery
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from core.exceptions import BackendError, BadRequestError, NotFoundError
from core.hosted_backend import HostedBackend
from core.models import NewsletterSubscriber, Table
from services.email_sender import ContentType, DispatchResult, EmailDispatcher, EmailRequest

logger = logging.getLogger(__name__)


class SubscribeStatus(Enum):
    SUBSCRIBED = "subscribed"
    RESUBSCRIBED = "resubscribed"
    EXISTS = "exists"


SUBSCRIBE_MESSAGES = {
    SubscribeStatus.SUBSCRIBED: "Thank you for subscribing! We'll keep you updated.",
    SubscribeStatus.RESUBSCRIBED: "Welcome back! You've been re-subscribed to our newsletter.",
    SubscribeStatus.EXISTS: "You are already subscribed to our newsletter!",
}


@dataclass
class SubscribeResult:
    status: SubscribeStatus
    email: str

    @property
    def message(self) -> str:
        return SUBSCRIBE_MESSAGES[self.status]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'status': self.status.value,
            'message': self.message,
            'email': self.email,
        }


def split_name(name: Optional[str]) -> Tuple[str, str]:
    """Split a full name on the first space into (first, last)"""
    trimmed = (name or '').strip()
    first, _, last = trimmed.partition(' ')
    return first, last.strip()


class NewsletterService:
    """Subscriber lifecycle and newsletter sends"""

    def __init__(self, backend: HostedBackend, dispatcher: Optional[EmailDispatcher] = None):
        self.backend = backend
        self.dispatcher = dispatcher

    def subscribe(self, email: Optional[str], name: Optional[str] = None) -> SubscribeResult:
        """
        Add an address to the newsletter

        An active subscriber is left alone, an unsubscribed one is
        re-subscribed with the new name, anything else is inserted.
        """
        if not email:
            raise BadRequestError('Email is required')
        if not isinstance(email, str):
            raise BadRequestError('email must be a string')
        if name is not None and not isinstance(name, str):
            raise BadRequestError('name must be a string')
        try:
            email = validate_email(email.strip(), check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise BadRequestError(f'Invalid email address: {e}')

        first_name, last_name = split_name(name)
        existing = self.backend.select_one(
            Table.NEWSLETTER, {'email': email}, columns='email,unsubscribed'
        )

        if existing:
            if not existing.get('unsubscribed'):
                return SubscribeResult(SubscribeStatus.EXISTS, email)
            self.backend.update(
                Table.NEWSLETTER,
                {'unsubscribed': False, 'first_name': first_name, 'last_name': last_name},
                {'email': email}
            )
            logger.info(f"Newsletter re-subscription: {email}")
            return SubscribeResult(SubscribeStatus.RESUBSCRIBED, email)

        try:
            self.backend.insert(Table.NEWSLETTER, [{
                'email': email,
                'first_name': first_name,
                'last_name': last_name,
                'unsubscribed': False,
                'created_at': datetime.now(timezone.utc).isoformat(),
            }])
        except BackendError as e:
            # Lost a race with a concurrent signup for the same address
            if e.is_unique_violation:
                return SubscribeResult(SubscribeStatus.EXISTS, email)
            raise

        logger.info(f"New newsletter subscriber: {email}")
        return SubscribeResult(SubscribeStatus.SUBSCRIBED, email)

    def list_subscribers(self, status: str = 'active') -> List[NewsletterSubscriber]:
        if status not in ('active', 'unsubscribed'):
            raise BadRequestError('status must be "active" or "unsubscribed"')
        rows = self.backend.select(
            Table.NEWSLETTER,
            {'unsubscribed': status == 'unsubscribed'},
            order='created_at.desc'
        )
        return [NewsletterSubscriber.from_row(row) for row in rows]

    def set_unsubscribed(self, subscriber_id: int, unsubscribed: bool) -> NewsletterSubscriber:
        rows = self.backend.update(
            Table.NEWSLETTER, {'unsubscribed': unsubscribed}, {'id': subscriber_id}
        )
        if not rows:
            raise NotFoundError('Subscriber not found')
        action = 'unsubscribed' if unsubscribed else 'resubscribed'
        logger.info(f"Subscriber {subscriber_id} {action}")
        return NewsletterSubscriber.from_row(rows[0])

    def delete_subscriber(self, subscriber_id: int) -> None:
        rows = self.backend.delete(Table.NEWSLETTER, {'id': subscriber_id})
        if not rows:
            raise NotFoundError('Subscriber not found')
        logger.info(f"Subscriber {subscriber_id} permanently deleted")

    def active_emails(self) -> List[str]:
        rows = self.backend.select(Table.NEWSLETTER, {'unsubscribed': False}, columns='email')
        return [row['email'] for row in rows if row.get('email')]

    def send_newsletter(self, payload: Optional[Dict[str, Any]]) -> DispatchResult:
        """
        Send a newsletter to every active subscriber

        ``recipientEmails`` in the payload narrows the send to those addresses.
        """
        payload = payload or {}
        subject = payload.get('subject')
        content = payload.get('content')
        if not subject or not content:
            raise BadRequestError('Missing required fields: subject, content')

        try:
            content_type = ContentType(payload.get('contentType') or ContentType.HTML.value)
        except ValueError:
            raise BadRequestError('Invalid contentType. Must be "text" or "html"')

        if self.dispatcher is None:
            raise BadRequestError('Email delivery is not available')
        self.dispatcher.ensure_configured()

        recipients = payload.get('recipientEmails') or self.active_emails()
        if isinstance(recipients, str):
            recipients = [recipients]
        if not recipients:
            raise BadRequestError('No active subscribers to send to')

        logger.info(f"Sending newsletter '{subject}' to {len(recipients)} subscriber(s)")
        return self.dispatcher.dispatch(EmailRequest(
            subject=str(subject),
            recipients=[str(r).strip() for r in recipients],
            content_type=content_type,
            content=str(content)
        ))
