# services/email_sender.py
"""
Gmail-backed email dispatch

Builds RFC 2822 messages (multipart/alternative for HTML, single-part for
plain text), base64url-encodes them and submits each one to the Gmail API.
Recipients are processed sequentially; a failure for one recipient is
recorded and the batch continues.
"""

import base64
import logging
from dataclasses import dataclass, field
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from enum import Enum
from typing import Any, Dict, List, Optional

import requests
from email_validator import EmailNotValidError, validate_email

from core.exceptions import BadRequestError, ConfigurationError, FoundationError, VendorError
from core.google_oauth import GoogleOAuthClient
from core.template_engine import FoundationTemplateEngine

logger = logging.getLogger(__name__)


class ContentType(Enum):
    TEXT = "text"
    HTML = "html"


class DeliveryStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class RecipientResult:
    recipient: str
    status: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'recipient': self.recipient, 'status': self.status}
        if self.error:
            result['error'] = self.error
        return result


@dataclass
class DispatchResult:
    """Outcome of one dispatch across all recipients"""
    results: List[RecipientResult] = field(default_factory=list)

    @property
    def sent_count(self) -> int:
        return sum(1 for r in self.results if r.status == DeliveryStatus.SUCCESS.value)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.status == DeliveryStatus.FAILED.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'sentCount': self.sent_count,
            'failedCount': self.failed_count,
            'results': [r.to_dict() for r in self.results],
        }


@dataclass
class EmailRequest:
    subject: str
    recipients: List[str]
    content_type: ContentType
    content: str


def parse_email_request(payload: Optional[Dict[str, Any]]) -> EmailRequest:
    """Validate a send-email request body"""
    payload = payload or {}
    subject = payload.get('subject')
    recipients = payload.get('recipients')
    content = payload.get('content')

    if not subject or not recipients or not content:
        raise BadRequestError('Missing required fields: subject, recipients, content')
    if isinstance(recipients, str):
        recipients = [recipients]
    if not isinstance(recipients, list):
        raise BadRequestError('recipients must be a list of email addresses')

    try:
        content_type = ContentType(payload.get('contentType'))
    except ValueError:
        raise BadRequestError('Invalid contentType. Must be "text" or "html"')

    return EmailRequest(
        subject=str(subject),
        recipients=[str(r).strip() for r in recipients],
        content_type=content_type,
        content=str(content)
    )


class EmailMessageBuilder:
    """Builds the MIME message for one recipient"""

    def __init__(self, sender_address: str, sender_name: str,
                 template_engine: FoundationTemplateEngine):
        self.sender_address = sender_address
        self.sender_name = sender_name
        self.template_engine = template_engine

    def build(self, recipient: str, subject: str, content: str,
              content_type: ContentType) -> MIMEText:
        if content_type is ContentType.HTML:
            html_content = self.template_engine.wrap_html_document(content)
            plain_text = self.template_engine.html_to_text(html_content)

            msg = MIMEMultipart('alternative')
            msg.attach(MIMEText(plain_text, 'plain', 'utf-8'))
            msg.attach(MIMEText(html_content, 'html', 'utf-8'))
        else:
            msg = MIMEText(content.replace('\r\n', '\n'), 'plain', 'utf-8')

        # Header values must stay on one line
        subject = ' '.join(subject.splitlines()).strip()

        msg['From'] = formataddr((self.sender_name, self.sender_address))
        msg['To'] = recipient
        msg['Subject'] = subject if subject.isascii() else Header(subject, 'utf-8')
        msg['Date'] = formatdate(usegmt=True)
        msg['Message-ID'] = make_msgid(domain=self.sender_address.rpartition('@')[2] or None)
        return msg

    @staticmethod
    def encode_raw(msg) -> str:
        """base64url without padding, as the Gmail API expects"""
        return base64.urlsafe_b64encode(msg.as_bytes()).decode('ascii').rstrip('=')


class GmailClient:
    """Sends pre-built messages through the Gmail API"""

    SEND_URL = 'https://gmail.googleapis.com/gmail/v1/users/me/messages/send'

    def __init__(self, oauth: GoogleOAuthClient, refresh_token: str, user: str,
                 timeout: float = 30, session: Optional[requests.Session] = None):
        self.oauth = oauth
        self.refresh_token = refresh_token
        self.user = user
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.oauth.configured and self.refresh_token and self.user)

    def access_token(self) -> str:
        return self.oauth.access_token(self.refresh_token)

    def send_raw(self, access_token: str, raw: str) -> Dict[str, Any]:
        try:
            response = self.session.post(
                self.SEND_URL,
                headers={
                    'Authorization': f'Bearer {access_token}',
                    'Content-Type': 'application/json',
                },
                json={'raw': raw},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise VendorError(f'Gmail API unreachable: {e}', 502)

        if not response.ok:
            logger.error(f"Gmail API error {response.status_code}: {response.text}")
            raise VendorError(
                f'Gmail API error: {response.status_code} - {response.text}',
                response.status_code, body=response.text
            )
        return response.json() if response.content else {}


class EmailDispatcher:
    """
    Sends one message per recipient and collects per-recipient outcomes
    """

    CONFIG_MISSING = (
        'Gmail configuration missing. Please ensure GA_CLIENT_ID and GA_CLIENT_SECRET '
        'are set (shared with Analytics), and either GMAIL_REFRESH_TOKEN or '
        'GA_REFRESH_TOKEN (with Gmail scope) is set. Also set GMAIL_USER with your '
        'Gmail address.'
    )

    def __init__(self, gmail: GmailClient, builder: EmailMessageBuilder):
        self.gmail = gmail
        self.builder = builder

    def ensure_configured(self) -> None:
        if not self.gmail.configured:
            raise ConfigurationError(self.CONFIG_MISSING, 500)

    def dispatch(self, request: EmailRequest) -> DispatchResult:
        """
        Send ``request`` to each recipient in order

        Invalid addresses are rejected without a network call. The access token
        is fetched once, on the first valid recipient; if that fails every
        remaining recipient is marked failed with the same error.
        """
        self.ensure_configured()

        logger.info(
            f"Dispatching email '{request.subject}' to {len(request.recipients)} "
            f"recipient(s) as {request.content_type.value}"
        )

        result = DispatchResult()
        access_token = None
        token_error = None

        for recipient in request.recipients:
            try:
                address = validate_email(recipient, check_deliverability=False).normalized
            except EmailNotValidError as e:
                logger.warning(f"Skipping invalid recipient {recipient!r}: {e}")
                result.results.append(RecipientResult(
                    recipient, DeliveryStatus.FAILED.value, f'Invalid email address: {e}'
                ))
                continue

            if token_error is None and access_token is None:
                try:
                    access_token = self.gmail.access_token()
                except FoundationError as e:
                    token_error = e.message

            if token_error is not None:
                result.results.append(RecipientResult(
                    recipient, DeliveryStatus.FAILED.value, token_error
                ))
                continue

            try:
                msg = self.builder.build(address, request.subject, request.content,
                                         request.content_type)
                self.gmail.send_raw(access_token, self.builder.encode_raw(msg))
            except FoundationError as e:
                logger.error(f"Error sending email to {recipient}: {e.message}")
                result.results.append(RecipientResult(
                    recipient, DeliveryStatus.FAILED.value, e.message
                ))
                continue

            logger.info(f"Successfully sent email to {recipient}")
            result.results.append(RecipientResult(recipient, DeliveryStatus.SUCCESS.value))

        logger.info(f"Dispatch finished: {result.sent_count} sent, {result.failed_count} failed")
        return result
