import logging
from typing import Dict, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.core.exceptions import InvalidCredentialsError, NotFoundError, ValidationError
from app.core.security import get_password_hash, verify_password
from app.models.product import Product, ProductStatus
from app.models.user import User
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

USER_NOT_FOUND_MESSAGE = "User not found"


class ProfileService:
    @staticmethod
    def get_profile(db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        return user

    @staticmethod
    def get_public_profile(db: Session, user_id: str) -> Tuple[User, Dict[str, int]]:
        """
        Return the user together with listing counters.

        Counters: activeListings (status=active) and soldListings (status=sold).
        """
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")

        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)

        counts = dict(
            db.query(Product.status, func.count(Product.id))
            .filter(
                Product.seller_id == user_id,
                Product.status.in_([ProductStatus.ACTIVE.value, ProductStatus.SOLD.value]),
            )
            .group_by(Product.status)
            .all()
        )
        stats = {
            "activeListings": counts.get(ProductStatus.ACTIVE.value, 0),
            "soldListings": counts.get(ProductStatus.SOLD.value, 0),
        }
        return user, stats

    @staticmethod
    def update_profile(
        db: Session,
        user_id: str,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """Partial update: only provided fields are written."""
        # Email uniqueness is not checked here; the unique column rejects clashes
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)

        if email is not None:
            user.email = email
        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name
        user.updated_at = utcnow()

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def change_password(db: Session, user_id: str, current_password: str, new_password: str) -> None:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)

        if not verify_password(current_password, user.password):
            raise InvalidCredentialsError()

        user.password = get_password_hash(new_password)
        user.updated_at = utcnow()
        db.commit()
        logger.info("Password changed", extra={"user_id": user_id})


profile_service = ProfileService()
