# core/models.py
"""
Record types for rows owned by the hosted database
"""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, Optional


class Role(Enum):
    ADMIN = "admin"
    USER = "user"


class ApplicationStatus(Enum):
    PENDING = "pending"
    GRANTED = "granted"
    REJECTED = "rejected"


class Table:
    """Hosted database table names"""
    PROFILES = 'profiles'
    NEWSLETTER = 'newsletter'
    NOTES = 'notes'
    GRANT_APPLICATIONS = 'grant_applications'


@dataclass
class AuthUser:
    """Account held by the hosted auth provider"""
    id: str
    email: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'AuthUser':
        return cls(id=row['id'], email=row.get('email'))


@dataclass
class Profile:
    id: str
    email: Optional[str] = None
    role: str = Role.USER.value
    created_at: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Profile':
        return cls(
            id=row['id'],
            email=row.get('email'),
            role=row.get('role') or Role.USER.value,
            created_at=row.get('created_at')
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NewsletterSubscriber:
    id: Optional[int]
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    unsubscribed: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'NewsletterSubscriber':
        return cls(
            id=row.get('id'),
            email=row['email'],
            first_name=row.get('first_name'),
            last_name=row.get('last_name'),
            unsubscribed=bool(row.get('unsubscribed')),
            created_at=row.get('created_at')
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Note:
    id: int
    title: str
    excerpt: Optional[str] = None
    content: Optional[str] = None
    date: Optional[str] = None
    featured: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Note':
        return cls(
            id=row['id'],
            title=row.get('title') or '',
            excerpt=row.get('excerpt'),
            content=row.get('content'),
            date=row.get('date'),
            featured=bool(row.get('featured'))
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GrantApplication:
    id: Optional[int]
    child_name: str
    email: str
    phone: Optional[str] = None
    parent_name: Optional[str] = None
    additional_notes: Optional[str] = None
    status: str = ApplicationStatus.PENDING.value
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'GrantApplication':
        return cls(
            id=row.get('id'),
            child_name=row.get('child_name') or '',
            email=row.get('email') or '',
            phone=row.get('phone'),
            parent_name=row.get('parent_name'),
            additional_notes=row.get('additional_notes'),
            status=row.get('status') or ApplicationStatus.PENDING.value,
            created_at=row.get('created_at')
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WordPressPost:
    """Blog post as served to the public pages"""
    id: int
    title: str
    excerpt: str
    content: str
    date: Optional[str] = None
    link: Optional[str] = None
    featured_image: Optional[str] = None
    featured_image_alt: Optional[str] = None
    categories: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
