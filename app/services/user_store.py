"""User persistence: the store handle the auth flow is constructed with.

Wraps a request-scoped SQLAlchemy session. Callers never touch the session
directly; commit/rollback happen here so the service sees one call per write.
"""

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from app.models import User


class UserStore:
    """Repository for User rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter(User.email == email).first()

    def get_by_username(self, username: str) -> User | None:
        return self.session.query(User).filter(User.username == username).first()

    def find_by_email_or_username(self, email: str, username: str) -> User | None:
        return (
            self.session.query(User)
            .filter(or_(User.email == email, User.username == username))
            .first()
        )

    def create(self, *, username: str, email: str, full_name: str, password_hash: str) -> User:
        """
        Insert a user whose password is already hashed.

        Raises sqlalchemy.exc.IntegrityError when a unique index rejects the row
        (the session is rolled back first).
        """
        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=password_hash,
        )
        self.session.add(user)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(user)
        return user

    def set_refresh_token(self, user_id: int, refresh_token: str | None) -> None:
        """Write only the refresh_token column (None unsets it)."""
        try:
            self.session.execute(
                update(User)
                .where(User.id == user_id)
                .values(refresh_token=refresh_token)
                .execution_options(synchronize_session="fetch")
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
