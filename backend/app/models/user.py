import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, Index, text
from sqlalchemy.sql import func
from app.core.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Marketplace account with profile and verification state.

    Passwords are stored as bcrypt hashes. A pending phone verification exists
    when both phone_verification_code and phone_verification_expires_at are set.
    """
    __tablename__ = "users"
    __table_args__ = (
        # No two verified accounts may share a phone number
        Index(
            "uq_users_verified_phone",
            "phone",
            unique=True,
            postgresql_where=text("phone_verified"),
            sqlite_where=text("phone_verified = 1"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=True)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    name = Column(String(100), nullable=True)  # Display name
    # E.164, set through phone verification only
    phone = Column(String(20), nullable=True, index=True)
    avatar = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String(100), nullable=True)
    # Email verification
    verified = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)
    # Derived: verified AND phone_verified
    verified_seller = Column(Boolean, default=False, nullable=False)
    response_time = Column(String(100), nullable=True)
    phone_verification_code = Column(String(6), nullable=True)
    phone_verification_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def has_pending_verification(self) -> bool:
        return bool(self.phone_verification_code and self.phone_verification_expires_at)
