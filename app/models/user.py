"""ORM model for application users (registration and JWT sessions)."""

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.models.base import Base


class User(Base):
    """
    User account for credential login and cookie/JWT sessions.

    refresh_token holds the single currently valid refresh token; a new login
    overwrites it and logout clears it.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    refresh_token = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
