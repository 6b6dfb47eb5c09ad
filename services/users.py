# services/users.py
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from db import db
from models.user import User

__all__ = ["UserRepository", "RepositoryError"]


class RepositoryError(Exception):
    """Persistence failed; the session has been rolled back."""


class UserRepository:
    """Thin persistence seam over the ``users`` table."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def find_by_email(self, email: str) -> User | None:
        if not email:
            return None
        try:
            return self.session.query(User).filter_by(email=email).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryError(str(e)) from e

    def get(self, user_id) -> User | None:
        try:
            pk = int(user_id)
        except (TypeError, ValueError):
            return None
        try:
            return self.session.get(User, pk)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryError(str(e)) from e

    def create(self, *, name: str, email: str, password_hash: str) -> User:
        user = User(name=name, email=email, password_hash=password_hash)
        self.session.add(user)
        self._commit()
        return user

    def save(self, user: User) -> User:
        self.session.add(user)
        self._commit()
        return user

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryError(str(e)) from e
