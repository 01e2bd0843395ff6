"""
Tests for notes and WordPress posts
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import NotFoundError, VendorError
from core.models import Table
from services.content import NotesService, WordPressClient, shorten
from tests.helpers import make_response

POST = {
    'id': 12,
    'date': '2024-04-02T10:00:00',
    'link': 'https://blog.ballfour.org/2024/04/spring-clinic',
    'title': {'rendered': 'Spring Clinic &amp; Open House'},
    'excerpt': {'rendered': '<p>' + 'Join us for a morning of drills and games. ' * 4 + '</p>'},
    'content': {'rendered': '<p>Details</p><script>steal()</script>'},
    'categories': [3],
    '_embedded': {
        'wp:featuredmedia': [{'source_url': 'https://blog.ballfour.org/clinic.jpg',
                              'alt_text': 'Kids on court'}]
    },
}


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def wordpress(session, template_engine):
    return WordPressClient('https://blog.ballfour.org/wp-json/wp/v2/', template_engine,
                           session=session)


def test_shorten_keeps_short_text():
    assert shorten('Short excerpt') == 'Short excerpt'


def test_shorten_cuts_at_limit_with_ellipsis():
    text = 'x' * 150
    assert shorten(text) == 'x' * 100 + '…'


def test_list_posts_shapes_titles_excerpts_and_images(wordpress, session):
    session.get.return_value = make_response(200, [POST])

    posts = wordpress.list_posts()

    args, kwargs = session.get.call_args
    assert args[0] == 'https://blog.ballfour.org/wp-json/wp/v2/posts'
    assert kwargs['params'] == {'_embed': '1', 'per_page': 100, 'orderby': 'date'}

    post = posts[0]
    assert post.title == 'Spring Clinic & Open House'
    assert post.excerpt.endswith('…')
    assert len(post.excerpt) <= 101
    assert '<p>' not in post.excerpt
    assert post.featured_image == 'https://blog.ballfour.org/clinic.jpg'
    assert post.featured_image_alt == 'Kids on court'
    assert '<script' not in post.content
    assert '<p>Details</p>' in post.content


def test_post_without_featured_media(wordpress, session):
    session.get.return_value = make_response(200, dict(POST, _embedded={}))

    post = wordpress.get_post(12)

    assert post.featured_image is None
    assert post.featured_image_alt == 'Spring Clinic & Open House'


def test_missing_post(wordpress, session):
    session.get.return_value = make_response(404, {'code': 'rest_post_invalid_id'})

    with pytest.raises(NotFoundError):
        wordpress.get_post(999)


def test_wordpress_error_status(wordpress, session):
    session.get.return_value = make_response(503, text='maintenance')

    with pytest.raises(VendorError) as exc_info:
        wordpress.list_posts()

    assert exc_info.value.status_code == 503


def test_notes_ordered_by_date(backend):
    backend.select.return_value = [
        {'id': 2, 'title': 'Newer', 'date': '2024-05-01', 'featured': True},
        {'id': 1, 'title': 'Older', 'date': '2024-01-01'},
    ]

    notes = NotesService(backend).list_notes()

    assert [n.title for n in notes] == ['Newer', 'Older']
    assert notes[0].featured is True
    backend.select.assert_called_once_with(Table.NOTES, {}, order='date.desc')


def test_unknown_note(backend):
    with pytest.raises(NotFoundError):
        NotesService(backend).get_note(404)
