"""Request bodies for the complaint, evidence and user endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator

from complaint_desk.entities import ComplaintPriority, ComplaintStatus, IdentityType, UserRole
from complaint_desk.identity import validate_identity_number


def _as_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# --- Complaints ---


class ComplaintCreate(BaseModel):
    """Complaint submitted by staff or through the public form."""

    reporter: str = Field(min_length=2, max_length=255)
    reporter_email: Optional[EmailStr] = None
    reporter_phone_number: Optional[str] = Field(default=None, max_length=20)
    reporter_identity_type: IdentityType
    reporter_identity_number: str = Field(min_length=1)
    incident_title: str = Field(min_length=5, max_length=255)
    incident_description: str = Field(min_length=20, max_length=2000)
    incident_time: datetime
    reported_person: Optional[str] = Field(default=None, max_length=255)

    @field_validator("reporter_identity_number")
    @classmethod
    def check_identity_number(cls, value: str, info: ValidationInfo) -> str:
        identity_type = info.data.get("reporter_identity_type")
        if identity_type is None:
            return value
        error = validate_identity_number(identity_type, value)
        if error:
            raise ValueError(error)
        return value

    @field_validator("incident_time")
    @classmethod
    def check_not_in_future(cls, value: datetime) -> datetime:
        value = _as_local_naive(value)
        if value > datetime.now():
            raise ValueError("Incident time cannot be in the future.")
        return value


class ComplaintUpdate(BaseModel):
    """Partial complaint update; omitted fields are left unchanged."""

    reporter: Optional[str] = None
    reporter_email: Optional[EmailStr] = None
    reporter_phone_number: Optional[str] = None
    reporter_identity_type: Optional[IdentityType] = None
    reporter_identity_number: Optional[str] = None
    incident_title: Optional[str] = None
    incident_description: Optional[str] = None
    incident_time: Optional[datetime] = None
    reported_person: Optional[str] = None
    status: Optional[ComplaintStatus] = None
    priority: Optional[ComplaintPriority] = None

    @field_validator("incident_time")
    @classmethod
    def normalize_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_local_naive(value) if value is not None else None


# --- Evidences ---


class ComplaintEvidenceCreate(BaseModel):
    complaint_id: int
    title: str = Field(min_length=1)
    file_path: str = Field(min_length=1)
    file_type: Optional[str] = None


class ComplaintEvidenceUpdate(ComplaintEvidenceCreate):
    pass


# --- Users ---


class UserCreate(BaseModel):
    nip: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    email: EmailStr = Field(max_length=255)
    home_address: str = Field(min_length=1)
    role: UserRole
    password: str = Field(min_length=8)
    password_confirmation: str

    @field_validator("password_confirmation")
    @classmethod
    def check_confirmation(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Password confirmation does not match.")
        return value


class UserUpdate(BaseModel):
    """
    Full user update.

    A blank or missing password keeps the stored hash.
    """

    nip: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    email: EmailStr = Field(max_length=255)
    home_address: str = Field(min_length=1)
    role: UserRole
    password: Optional[str] = Field(default=None, min_length=8)
    password_confirmation: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("password", mode="before")
    @classmethod
    def blank_password_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("password_confirmation")
    @classmethod
    def check_confirmation(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        password = info.data.get("password")
        if password is not None and value != password:
            raise ValueError("Password confirmation does not match.")
        return value
