# services/accounts.py
"""
Admin account management

Creating or deleting an admin touches two records held by the hosted
provider: the auth user and its profile row. Each operation is run as a
two-phase step with an inverse action, so a failure in the second phase
undoes the first and no orphaned record is left behind.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from core.exceptions import BadRequestError
from core.hosted_backend import HostedBackend
from core.models import AuthUser, Profile, Role, Table

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass
class Phase:
    """One step of a two-phase operation and the action that reverses it"""
    name: str
    action: Callable[[], Any]
    compensate: Optional[Callable[[Any], None]] = None


class TwoPhaseOperation:
    """
    Run ``first`` then ``second``; undo ``first`` if ``second`` fails

    The error raised by ``second`` is re-raised after compensation. A failing
    compensation is logged and does not replace the original error.
    """

    def __init__(self, name: str, first: Phase, second: Phase):
        self.name = name
        self.first = first
        self.second = second

    def run(self) -> Any:
        first_result = self.first.action()
        logger.debug(f"{self.name}: {self.first.name} done")

        try:
            self.second.action()
        except Exception as e:
            logger.error(f"{self.name}: {self.second.name} failed ({e}), compensating")
            if self.first.compensate is not None:
                try:
                    self.first.compensate(first_result)
                    logger.info(f"{self.name}: {self.first.name} rolled back")
                except Exception as rollback_error:
                    logger.critical(
                        f"{self.name}: rollback of {self.first.name} failed: {rollback_error}"
                    )
            raise

        logger.debug(f"{self.name}: {self.second.name} done")
        return first_result


class AdminAccountService:
    """Creates, deletes and lists admin accounts"""

    def __init__(self, backend: HostedBackend):
        self.backend = backend

    def create_admin_user(self, email: Optional[str], password: Optional[str]) -> AuthUser:
        """
        Create a confirmed auth user and give its profile the admin role

        Raises:
            BadRequestError: missing email/password or password too short
            BackendError: the hosted provider rejected either phase
        """
        if not email or not password:
            raise BadRequestError('Email and password are required')
        if len(password) < MIN_PASSWORD_LENGTH:
            raise BadRequestError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        try:
            email = validate_email(email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise BadRequestError(f'Invalid email address: {e}')

        created: Dict[str, AuthUser] = {}

        def create_auth_user() -> AuthUser:
            created['user'] = self.backend.create_auth_user(email, password)
            return created['user']

        def grant_admin_profile() -> None:
            self._upsert_admin_profile(created['user'])

        operation = TwoPhaseOperation(
            'create-admin-user',
            Phase('create auth user', create_auth_user,
                  compensate=lambda user: self.backend.delete_auth_user(user.id)),
            Phase('grant admin profile', grant_admin_profile)
        )
        user = operation.run()
        logger.info(f"Admin user created: {user.email} ({user.id})")
        return user

    def _upsert_admin_profile(self, user: AuthUser) -> None:
        # A signup trigger may already have created the profile with the user role
        existing = self.backend.select_one(Table.PROFILES, {'id': user.id}, columns='id')
        values = {'email': user.email, 'role': Role.ADMIN.value}
        if existing:
            self.backend.update(Table.PROFILES, values, {'id': user.id})
        else:
            self.backend.insert(Table.PROFILES, [dict(values, id=user.id)])

    def delete_admin_user(self, user_id: Optional[str], caller_id: str) -> None:
        """
        Delete a user's profile row and auth account

        The profile row is deleted first; if the auth account cannot be
        deleted the saved row is inserted again.
        """
        if not user_id:
            raise BadRequestError('User ID is required')
        if user_id == caller_id:
            raise BadRequestError('You cannot delete your own profile')

        target = self.backend.select_one(Table.PROFILES, {'id': user_id})
        if not target:
            raise BadRequestError('User not found')

        operation = TwoPhaseOperation(
            'delete-admin-user',
            Phase('delete profile',
                  lambda: self.backend.delete(Table.PROFILES, {'id': user_id}),
                  compensate=lambda _: self.backend.insert(Table.PROFILES, [target])),
            Phase('delete auth user', lambda: self.backend.delete_auth_user(user_id))
        )
        operation.run()
        logger.info(f"User deleted: {target.get('email')} ({user_id})")

    def list_admins(self) -> List[Profile]:
        rows = self.backend.select(
            Table.PROFILES, {'role': Role.ADMIN.value}, order='created_at.desc'
        )
        return [Profile.from_row(row) for row in rows]
