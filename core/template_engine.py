# core/template_engine.py
"""
Email and content templating for the foundation site

Renders the transactional emails (grant decisions, contact notifications),
wraps admin-authored HTML into a complete document, derives plain-text
alternatives, and sanitizes third-party HTML before it is served.
"""

import html
import logging
import re
from typing import Any, Dict, Tuple

import bleach
from bleach.css_sanitizer import CSSSanitizer
from bs4 import BeautifulSoup
from jinja2 import Environment, StrictUndefined, select_autoescape
from jinja2.exceptions import TemplateError
from markupsafe import Markup

from core.exceptions import BadRequestError
from core.models import ApplicationStatus, GrantApplication

logger = logging.getLogger(__name__)


HTML_DOCUMENT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
{{ body }}
</body>
</html>"""

GRANT_GREETING = (
    "<p>Dear {{ application.child_name }}"
    "{% if application.parent_name %} and {{ application.parent_name }}{% endif %},</p>\n"
)

GRANT_TEMPLATES = {
    ApplicationStatus.GRANTED.value: (
        "Your grant application has been approved – {{ organization }}",
        GRANT_GREETING +
        "<p>We are pleased to inform you that your grant application has been "
        "<strong>approved</strong>.</p>\n"
        "<p>You will receive further details about next steps shortly.</p>\n"
        "<p>Thank you for your interest in {{ organization }}.</p>\n"
        "<p>Best regards,<br/>{{ organization }}</p>"
    ),
    ApplicationStatus.REJECTED.value: (
        "Update on your grant application – {{ organization }}",
        GRANT_GREETING +
        "<p>Thank you for your interest in {{ organization }} and for submitting "
        "a grant application.</p>\n"
        "<p>After careful review, we are unable to approve your application at "
        "this time.</p>\n"
        "<p>We encourage you to apply again in the future when your circumstances "
        "or our criteria may have changed.</p>\n"
        "<p>Best regards,<br/>{{ organization }}</p>"
    ),
}

CONTACT_TEMPLATE = (
    "Website contact: {{ subject or 'New message' }}",
    "<p><strong>From:</strong> {{ name }} &lt;{{ email }}&gt;</p>\n"
    "{% if subject %}<p><strong>Subject:</strong> {{ subject }}</p>\n{% endif %}"
    "<p>{{ message }}</p>"
)


class FoundationTemplateEngine:
    """
    Jinja2-backed renderer with HTML helpers for outgoing mail and blog content
    """

    # Tags allowed in blog HTML served to the public pages
    SAFE_TAGS = [
        'p', 'br', 'strong', 'em', 'b', 'i', 'u', 's', 'sub', 'sup',
        'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
        'ul', 'ol', 'li', 'dl', 'dt', 'dd',
        'a', 'img', 'figure', 'figcaption',
        'table', 'thead', 'tbody', 'tfoot', 'tr', 'td', 'th', 'caption',
        'div', 'span', 'section', 'article', 'header', 'footer',
        'hr', 'blockquote', 'pre', 'code'
    ]

    SAFE_ATTRIBUTES = {
        '*': ['class', 'id', 'style', 'title', 'dir', 'lang'],
        'a': ['href', 'title', 'rel', 'target'],
        'img': ['src', 'alt', 'width', 'height', 'srcset', 'sizes', 'loading'],
        'td': ['colspan', 'rowspan', 'align', 'valign'],
        'th': ['colspan', 'rowspan', 'align', 'valign'],
    }

    def __init__(self, organization: str = 'BallFour Foundation'):
        self.organization = organization
        self.env = Environment(
            autoescape=select_autoescape(['html', 'xml'], default_for_string=True),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True
        )
        self.html_cleaner = bleach.Cleaner(
            tags=self.SAFE_TAGS,
            attributes=self.SAFE_ATTRIBUTES,
            protocols=['http', 'https', 'mailto'],
            css_sanitizer=CSSSanitizer(),
            strip=True,
            strip_comments=True
        )

    def render(self, template_content: str, variables: Dict[str, Any]) -> str:
        try:
            return self.env.from_string(template_content).render(**variables)
        except TemplateError as e:
            logger.error(f"Template rendering failed: {e}")
            raise BadRequestError(f'Template rendering failed: {e}')

    def wrap_html_document(self, content: str) -> str:
        """Wrap an HTML fragment in a complete document unless it already is one"""
        body = content.strip()
        if '<html' in body.lower():
            return body
        # body is trusted admin HTML
        return self.env.from_string(HTML_DOCUMENT).render(body=Markup(body))

    def html_to_text(self, html_content: str) -> str:
        """
        Derive the plain-text alternative of an HTML email

        Scripts and styles are dropped, tags removed, entities unescaped and
        runs of blank lines collapsed.
        """
        if not html_content:
            return ''

        soup = BeautifulSoup(html_content, 'html.parser')
        for tag in soup(['script', 'style', 'head']):
            tag.decompose()
        for br in soup.find_all('br'):
            br.replace_with('\n')

        text = soup.get_text()
        text = text.replace('\xa0', ' ')
        text = re.sub(r'[ \t]+\n', '\n', text)
        text = re.sub(r'\n\s*\n\s*\n', '\n\n', text)
        return text.strip()

    def strip_html(self, fragment: str) -> str:
        """Plain text of a short HTML fragment such as a post title"""
        if not fragment:
            return ''
        text = BeautifulSoup(fragment, 'html.parser').get_text()
        return html.unescape(text).replace('\xa0', ' ').strip()

    def sanitize_html(self, content: str) -> str:
        return self.html_cleaner.clean(content or '')

    def grant_decision_email(self, application: GrantApplication,
                             status: str) -> Tuple[str, str]:
        """
        Build the subject and HTML body announcing a grant decision

        Returns:
            Tuple of (subject, html)
        """
        if status not in GRANT_TEMPLATES:
            raise BadRequestError(f'No decision email for status "{status}"')

        subject_template, body_template = GRANT_TEMPLATES[status]
        variables = {'application': application, 'organization': self.organization}
        # Subjects are header text, not HTML
        subject = self.env.from_string(subject_template).render(**variables)
        return html.unescape(subject), self.render(body_template, variables)

    def contact_notification(self, name: str, email: str, message: str,
                             subject: str = '') -> Tuple[str, str]:
        subject_template, body_template = CONTACT_TEMPLATE
        variables = {'name': name, 'email': email, 'message': message, 'subject': subject}
        rendered_subject = html.unescape(self.render(subject_template, variables))
        return rendered_subject, self.render(body_template, variables)
