# services/content.py
"""
Public article content: notes from the hosted database and WordPress posts
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from core.exceptions import NotFoundError, VendorError
from core.hosted_backend import HostedBackend
from core.models import Note, Table, WordPressPost
from core.template_engine import FoundationTemplateEngine

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 100


def shorten(text: str, max_length: int = EXCERPT_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length].strip()}…"


class NotesService:
    def __init__(self, backend: HostedBackend):
        self.backend = backend

    def list_notes(self, featured: Optional[bool] = None) -> List[Note]:
        filters = {'featured': featured} if featured is not None else {}
        rows = self.backend.select(Table.NOTES, filters, order='date.desc')
        return [Note.from_row(row) for row in rows]

    def get_note(self, note_id: int) -> Note:
        row = self.backend.select_one(Table.NOTES, {'id': note_id})
        if not row:
            raise NotFoundError('Article not found')
        return Note.from_row(row)


class WordPressClient:
    """
    Reads published posts from the WordPress REST API

    Titles and excerpts are reduced to plain text; post bodies are sanitized
    before they are handed to the public pages.
    """

    def __init__(self, api_url: str, template_engine: FoundationTemplateEngine,
                 timeout: float = 30, session: Optional[requests.Session] = None):
        self.api_url = (api_url or '').rstrip('/')
        self.template_engine = template_engine
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        try:
            return self.session.get(f"{self.api_url}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"WordPress API unreachable: {e}")
            raise VendorError(f'WordPress API unreachable: {e}', 502)

    def list_posts(self, per_page: int = 100) -> List[WordPressPost]:
        per_page = max(1, min(per_page, 100))
        response = self._get('/posts', {'_embed': '1', 'per_page': per_page, 'orderby': 'date'})
        if not response.ok:
            raise VendorError(f'Failed to load posts: {response.status_code}',
                              response.status_code, body=response.text)
        return [self._to_post(item) for item in response.json()]

    def get_post(self, post_id: int) -> WordPressPost:
        response = self._get(f'/posts/{post_id}', {'_embed': '1'})
        if response.status_code == 404:
            raise NotFoundError('Post not found')
        if not response.ok:
            raise VendorError(f'Failed to load post: {response.status_code}',
                              response.status_code, body=response.text)
        return self._to_post(response.json())

    def _to_post(self, item: Dict[str, Any]) -> WordPressPost:
        title = self.template_engine.strip_html(_rendered(item, 'title'))
        excerpt = self.template_engine.strip_html(_rendered(item, 'excerpt'))

        media = (item.get('_embedded') or {}).get('wp:featuredmedia') or []
        first_media = media[0] if media and isinstance(media[0], dict) else {}

        return WordPressPost(
            id=item.get('id'),
            title=title,
            excerpt=shorten(excerpt),
            content=self.template_engine.sanitize_html(_rendered(item, 'content')),
            date=item.get('date'),
            link=item.get('link'),
            featured_image=first_media.get('source_url'),
            featured_image_alt=first_media.get('alt_text') or title,
            categories=item.get('categories') or []
        )


def _rendered(item: Dict[str, Any], field_name: str) -> str:
    value = item.get(field_name)
    if isinstance(value, dict):
        return value.get('rendered') or ''
    return value or ''
