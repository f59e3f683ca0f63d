from datetime import datetime
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session
from app.api.dependencies import (
    get_current_user,
    get_phone_verification_service,
    require_verified_email,
)
from app.core.database import get_db
from app.models.product import ProductCondition
from app.models.user import User
from app.services.phone_verification_service import PhoneVerificationService
from app.services.product_service import ProductFilters, product_service
from app.services.profile_service import profile_service

router = APIRouter(prefix="/users", tags=["users"])

MAX_PAGE_SIZE = 100


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class UserProfile(CamelModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    verified: bool
    phone_verified: bool
    verified_seller: bool
    response_time: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UpdatedUser(CamelModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    updated_at: Optional[datetime] = None


class ListingStats(CamelModel):
    active_listings: int
    sold_listings: int


class PublicProfile(CamelModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    verified: bool
    verified_seller: bool
    response_time: Optional[str] = None
    created_at: Optional[datetime] = None
    stats: Optional[ListingStats] = None


class ProfileResponse(BaseModel):
    user: UserProfile


class PublicProfileResponse(BaseModel):
    user: PublicProfile


class UpdateProfileResponse(BaseModel):
    message: str
    user: UpdatedUser


class MessageResponse(BaseModel):
    message: str


class VerifyPhoneResponse(CamelModel):
    message: str
    phone_verified: bool
    verified_seller: bool


class UpdateProfileRequest(CamelModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)


class SendPhoneVerificationRequest(CamelModel):
    phone: str = Field(pattern=r"^\+?[1-9][0-9]{1,14}$")


class VerifyPhoneRequest(CamelModel):
    code: str = Field(min_length=6, max_length=6)


# Static paths first: /{user_id} would otherwise capture them

@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's own profile"""
    user = profile_service.get_profile(db, current_user.id)
    return {"user": UserProfile.model_validate(user)}


@router.put("/profile", response_model=UpdateProfileResponse)
def update_profile(
    body: UpdateProfileRequest,
    current_user: User = Depends(require_verified_email),
    db: Session = Depends(get_db)
):
    """Update email and/or name"""
    user = profile_service.update_profile(
        db,
        current_user.id,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return {"message": "Profile updated successfully", "user": UpdatedUser.model_validate(user)}


@router.put("/password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(require_verified_email),
    db: Session = Depends(get_db)
):
    """Change password after confirming the current one"""
    profile_service.change_password(db, current_user.id, body.current_password, body.new_password)
    return {"message": "Password changed successfully"}


@router.post("/phone/send-verification", response_model=MessageResponse)
def send_phone_verification(
    body: SendPhoneVerificationRequest,
    current_user: User = Depends(require_verified_email),
    db: Session = Depends(get_db),
    verification: PhoneVerificationService = Depends(get_phone_verification_service)
):
    """Set the phone number and text a verification code to it"""
    verification.request_verification(db, current_user.id, body.phone)
    return {"message": "Verification code sent successfully. Please check your phone."}


@router.post("/phone/verify", response_model=VerifyPhoneResponse)
def verify_phone(
    body: VerifyPhoneRequest,
    current_user: User = Depends(require_verified_email),
    db: Session = Depends(get_db),
    verification: PhoneVerificationService = Depends(get_phone_verification_service)
):
    """Confirm the code sent by SMS"""
    user = verification.confirm_verification(db, current_user.id, body.code)
    return VerifyPhoneResponse(
        message="Phone number verified successfully.",
        phone_verified=user.phone_verified,
        verified_seller=user.verified_seller,
    )


@router.post("/phone/resend-verification", response_model=MessageResponse)
def resend_phone_verification(
    current_user: User = Depends(require_verified_email),
    db: Session = Depends(get_db),
    verification: PhoneVerificationService = Depends(get_phone_verification_service)
):
    """Send a new code to the phone number on file"""
    verification.resend_verification(db, current_user.id)
    return {"message": "Verification code resent successfully. Please check your phone."}


@router.get("/{user_id}/products")
def get_user_products(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    status: Literal["active", "reserved", "sold", "deleted", "all"] = Query("active"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    min_price: Optional[int] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[int] = Query(None, alias="maxPrice", ge=0),
    condition: Optional[List[ProductCondition]] = Query(None),
    sort_by: Literal["newest", "oldest", "price-asc", "price-desc"] = Query("newest", alias="sortBy"),
    db: Session = Depends(get_db)
):
    """List a seller's products with filters and pagination"""
    filters = ProductFilters(
        page=page,
        limit=min(limit, MAX_PAGE_SIZE),
        status=status,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        condition=condition,
        sort_by=sort_by,
    )
    return product_service.get_user_products(db, user_id, filters)


@router.get("/{user_id}", response_model=PublicProfileResponse)
def get_public_profile(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Public profile with listing counters"""
    user, stats = profile_service.get_public_profile(db, user_id)
    profile = PublicProfile.model_validate(user).model_copy(update={"stats": ListingStats(**stats)})
    return {"user": profile}
