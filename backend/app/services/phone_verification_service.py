"""
Phone verification lifecycle.

States per user:
    NONE     - no phone, or no pending code
    PENDING  - code and expiry set, not yet confirmed
    VERIFIED - phone_verified is true (terminal here)

Every write is a conditional UPDATE guarded by phone_verified = false, and a
partial unique index keeps two verified accounts from sharing a number, so
concurrent requests cannot both win.
"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.exceptions import (
    AlreadyVerifiedError,
    CodeExpiredError,
    DeliveryFailedError,
    InvalidCodeError,
    NoPendingVerificationError,
    NoPhoneOnFileError,
    NotFoundError,
    PhoneTakenError,
    SmsConfigurationError,
    ValidationError,
)
from app.core.logging import mask_phone
from app.models.user import User
from app.services.sms_service import SmsGateway
from app.utils.time_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

E164_PATTERN = re.compile(r"\+?[1-9][0-9]{1,14}")


@dataclass
class PendingVerification:
    phone: str
    code: str
    expires_at: datetime


class PhoneVerificationService:
    def __init__(
        self,
        gateway: SmsGateway,
        code_ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.gateway = gateway
        self.code_ttl = code_ttl
        self.clock = clock

    def request_verification(self, db: Session, user_id: str, phone: str) -> PendingVerification:
        """
        Attach a phone number to the user and send a fresh code to it.

        If delivery fails the pending code is cleared again, but the phone
        number written alongside it is kept. When SMS is disabled nothing is
        written at all, so the previous phone value stays in place.
        """
        if not phone or not E164_PATTERN.fullmatch(phone):
            raise ValidationError(
                "Invalid phone number format. Please use E.164 format (e.g., +381601234567)"
            )

        user = self._get_user(db, user_id)
        if user.phone_verified:
            raise AlreadyVerifiedError(
                "Phone number is already verified and cannot be changed. "
                "Please contact support if you need to update your phone number."
            )
        self._ensure_gateway()

        taken = db.query(User.id).filter(
            User.phone == phone,
            User.phone_verified.is_(True),
            User.id != user_id,
        ).first()
        if taken:
            raise PhoneTakenError()

        pending = self._issue_code(phone)
        now = self.clock()
        updated = db.query(User).filter(
            User.id == user_id,
            User.phone_verified.is_(False),
        ).update(
            {
                User.phone: phone,
                User.phone_verification_code: pending.code,
                User.phone_verification_expires_at: pending.expires_at,
                User.phone_verified: False,
                User.verified_seller: False,
                User.updated_at: now,
            },
            synchronize_session=False,
        )
        if not updated:
            db.rollback()
            raise AlreadyVerifiedError()
        db.commit()

        try:
            self.gateway.send_verification_code(phone, pending.code)
        except (DeliveryFailedError, SmsConfigurationError):
            logger.error(
                "Failed to send verification SMS, clearing pending code",
                extra={"user_id": user_id, "phone": mask_phone(phone)},
            )
            self._clear_pending(db, user_id)
            raise

        logger.info(
            "Phone verification SMS sent",
            extra={"user_id": user_id, "phone": mask_phone(phone)},
        )
        return pending

    def confirm_verification(self, db: Session, user_id: str, code: str) -> User:
        """Check the submitted code and mark the phone verified on a match."""
        user = self._get_user(db, user_id)

        if not user.has_pending_verification:
            raise NoPendingVerificationError()

        if as_utc(user.phone_verification_expires_at) < self.clock():
            self._clear_pending(db, user_id)
            logger.info("Expired verification code cleared", extra={"user_id": user_id})
            raise CodeExpiredError()

        stored_code = user.phone_verification_code
        if not secrets.compare_digest(str(code).encode(), stored_code.encode()):
            # Pending state is kept so the user can retry until expiry
            raise InvalidCodeError()

        verified_seller = bool(user.verified)
        try:
            updated = db.query(User).filter(
                User.id == user_id,
                User.phone_verified.is_(False),
                User.phone_verification_code == stored_code,
            ).update(
                {
                    User.phone_verified: True,
                    User.verified_seller: verified_seller,
                    User.phone_verification_code: None,
                    User.phone_verification_expires_at: None,
                    User.updated_at: self.clock(),
                },
                synchronize_session=False,
            )
            db.commit()
        except IntegrityError:
            # Another account verified the same number first
            db.rollback()
            raise PhoneTakenError()

        if not updated:
            raise NoPendingVerificationError()

        db.refresh(user)
        logger.info(
            "Phone verified",
            extra={"user_id": user_id, "phone": mask_phone(user.phone)},
        )
        return user

    def resend_verification(self, db: Session, user_id: str) -> PendingVerification:
        """
        Issue a new code for the phone already on file.

        A delivery failure leaves the new code in place. When SMS is disabled
        the stored code and expiry are left untouched.
        """
        user = self._get_user(db, user_id)
        if not user.phone:
            raise NoPhoneOnFileError()
        if user.phone_verified:
            raise AlreadyVerifiedError()
        self._ensure_gateway()

        phone = user.phone
        pending = self._issue_code(phone)
        updated = db.query(User).filter(
            User.id == user_id,
            User.phone_verified.is_(False),
        ).update(
            {
                User.phone_verification_code: pending.code,
                User.phone_verification_expires_at: pending.expires_at,
                User.updated_at: self.clock(),
            },
            synchronize_session=False,
        )
        if not updated:
            db.rollback()
            raise AlreadyVerifiedError()
        db.commit()

        try:
            self.gateway.send_verification_code(phone, pending.code)
        except (DeliveryFailedError, SmsConfigurationError):
            logger.error(
                "Failed to resend verification SMS",
                extra={"user_id": user_id, "phone": mask_phone(phone)},
            )
            raise

        logger.info(
            "Phone verification SMS resent",
            extra={"user_id": user_id, "phone": mask_phone(phone)},
        )
        return pending

    def _issue_code(self, phone: str) -> PendingVerification:
        return PendingVerification(
            phone=phone,
            code=self.gateway.generate_code(),
            expires_at=self.clock() + self.code_ttl,
        )

    def _ensure_gateway(self) -> None:
        # Fail before touching the row when SMS cannot be sent at all
        if not self.gateway.is_configured:
            raise SmsConfigurationError()

    @staticmethod
    def _get_user(db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _clear_pending(db: Session, user_id: str) -> None:
        db.query(User).filter(User.id == user_id).update(
            {
                User.phone_verification_code: None,
                User.phone_verification_expires_at: None,
            },
            synchronize_session=False,
        )
        db.commit()
