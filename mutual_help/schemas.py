from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UserType = Literal["admin", "standard", "restricted"]


# -------------------- AUTH --------------------

class RegisterRequest(BaseModel):
    firstname: str = Field(..., min_length=1, max_length=100)
    lastname: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=4, max_length=72)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=72)


class TokenResponse(BaseModel):
    token: str
    user_type: UserType
    token_type: str = "bearer"


class PasswordChange(BaseModel):
    old_password: str = Field(..., min_length=1, max_length=72)
    new_password: str = Field(..., min_length=4, max_length=72)


class ResetPasswordRequest(BaseModel):
    email: str


class ResetTokenCheck(BaseModel):
    token: str


class IsValid(BaseModel):
    is_valid: bool


class ResetPasswordData(BaseModel):
    token: str
    password: str = Field(..., min_length=4, max_length=72)


# -------------------- USER --------------------

class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    firstname: str
    lastname: str
    email: str
    user_type: UserType


class UserUpdate(BaseModel):
    # full overwrite, like the other PUT handlers
    firstname: str = Field(..., min_length=1, max_length=100)
    lastname: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)


class UserTypeUpdate(BaseModel):
    user_type: UserType


# -------------------- GEOGRAPHY --------------------

class CountryCreate(BaseModel):
    country: str = Field(..., min_length=1, max_length=100)


class CountryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    country: str
    created_at: datetime


class DepartmentCreate(BaseModel):
    department_number: int
    department_name: str = Field(..., min_length=1, max_length=100)
    country_id: uuid.UUID


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    department_number: int
    department_name: str
    country_id: uuid.UUID


class CountryWithDepartments(BaseModel):
    country: CountryOut
    departments: list[DepartmentOut]


class DepartmentWithPerimeter(BaseModel):
    department: DepartmentOut
    perimeter: list[DepartmentOut]


class CityCreate(BaseModel):
    city: str = Field(..., min_length=1, max_length=100)
    department_id: uuid.UUID


class CityUpdate(BaseModel):
    city: str = Field(..., min_length=1, max_length=100)
    department_id: uuid.UUID


class CityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    city: str
    department_id: uuid.UUID


class CityWithDepartment(BaseModel):
    city: CityOut
    department: DepartmentOut


# -------------------- TAGS --------------------

class DemandCreate(BaseModel):
    demand: str = Field(..., min_length=1, max_length=255)
    ad_id: uuid.UUID


class DemandOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    demand: str
    ad_id: uuid.UUID


class OfferOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    offer: str
    ad_id: uuid.UUID


class TagStrings(BaseModel):
    # several demands or offers for one ad
    strings: list[str]
    ad_id: uuid.UUID


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    main_category_id: Optional[uuid.UUID] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    main_category_id: Optional[uuid.UUID]


# -------------------- ADS --------------------

class AdCreate(BaseModel):
    note: str = Field(..., min_length=1)
    city_id: uuid.UUID
    generosity: int = Field(default=0, ge=0, le=100)
    demands: list[str] = Field(default_factory=list)
    offers: list[str] = Field(default_factory=list)


class AdUpdate(BaseModel):
    note: str = Field(..., min_length=1)
    demands: list[str] = Field(default_factory=list)
    offers: list[str] = Field(default_factory=list)
    city_id: Optional[uuid.UUID] = None
    generosity: Optional[int] = Field(default=None, ge=0, le=100)
    show: Optional[bool] = None


class AdOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    note: str
    city_id: uuid.UUID
    user_id: uuid.UUID
    generosity: int
    images: Optional[list[str]] = None
    show: bool
    created_at: datetime
    updated_at: datetime


class AdData(BaseModel):
    ad_id: uuid.UUID
    note: str
    images: Optional[list[str]]
    demands: list[DemandOut]
    offers: list[OfferOut]
    department: DepartmentOut
    city: CityOut
    hearts: int
    created_at: datetime
    created_at_label: str
    user_id: uuid.UUID


class AdOfUserData(BaseModel):
    ad_id: uuid.UUID
    note: str
    images: Optional[list[str]]
    demands: list[DemandOut]
    offers: list[OfferOut]
    city: CityOut
    hearts: int
    created_at: datetime
    created_at_label: str


class AdObject(BaseModel):
    ad_id: uuid.UUID
    note: str
    generosity: int
    demands: list[DemandOut]
    offers: list[OfferOut]
    city: CityOut
    department: DepartmentOut


class AdsOfPerimeter(BaseModel):
    ads: list[AdObject]
    selected_department: DepartmentOut


class AdWithUser(BaseModel):
    ad: AdOut
    user: UserPublic
    demands: list[DemandOut]
    offers: list[OfferOut]
    city: CityOut
    department: DepartmentOut
    hearts: int
    created_at_label: str


class LikeResult(BaseModel):
    liked: bool


# -------------------- HEARTS --------------------

class HeartCreate(BaseModel):
    ad_id: uuid.UUID


class HeartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    ad_id: uuid.UUID
    created_at: datetime


# -------------------- CONTACTS --------------------

class ContactCreate(BaseModel):
    ad_link: str = Field(..., min_length=1, max_length=512)
    facebook_link: str = Field(..., min_length=1, max_length=512)
    contact_name: str = Field(..., min_length=1, max_length=100)


class ContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    ad_link: str
    facebook_link: str
    contact_name: str
    created_at: datetime


class UserContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_user_id: uuid.UUID
    second_user_id: uuid.UUID
    are_contacts: bool


class ContactRequestFrom(BaseModel):
    user_id: uuid.UUID
    firstname: str


class ContactInfo(BaseModel):
    contact: UserPublic
    ads: list[AdOut]


class ContactData(BaseModel):
    # what the caller may see about the owner of an ad
    contact_id: uuid.UUID
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    you_accepted: bool
    other_accepted: bool


# -------------------- IMAGES --------------------

class ImageUploadRequest(BaseModel):
    ad_id: uuid.UUID
    content_type: str = "image/png"


class ImageUploadResponse(BaseModel):
    filename: str
    url: str
