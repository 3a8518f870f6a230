"""Mapping between browser-session subjects and canonical user ids.

Device tokens carry the canonical ``users.id``. Session cookies carry the
subject issued by the web surface. Both resolve to a ``User`` row here, so
nothing downstream has to guess whether an id is one or the other.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from pairing_server.models.user import User

logger = logging.getLogger(__name__)


class UserDirectory:
    def __init__(self, session: Session):
        self._session = session

    def get(self, user_id: str) -> User | None:
        return self._session.get(User, user_id)

    def find_by_external_id(self, external_id: str) -> User | None:
        return self._session.exec(
            select(User).where(User.external_id == external_id)
        ).first()

    def ensure_user(self, external_id: str, email: str) -> User:
        """Return the user for a session subject, creating it on first sight."""
        user = self.find_by_external_id(external_id)
        if user:
            if email and user.email != email:
                user.email = email
                self._session.add(user)
                self._session.commit()
                self._session.refresh(user)
            return user

        user = User(external_id=external_id, email=email)
        self._session.add(user)
        try:
            self._session.commit()
        except IntegrityError:
            # Another request created the same user first
            self._session.rollback()
            existing = self.find_by_external_id(external_id)
            if existing is None:
                raise
            return existing

        self._session.refresh(user)
        logger.info("Created user %s for session subject %s", user.id, external_id)
        return user
