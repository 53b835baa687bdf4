"""Database entities: complaints, their evidence files, and staff users."""

import logging
import os
from datetime import datetime
from enum import StrEnum
from typing import List, Optional

from sqlalchemy import Column, DateTime, Index, Text, event, text, update
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import Field, Relationship, SQLModel

from complaint_desk.relations import RelationDescriptor, RelationKind, register_relations

logger = logging.getLogger(__name__)


class ComplaintStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class ComplaintPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IdentityType(StrEnum):
    KTP = "KTP"
    SIM = "SIM"
    PASSPORT = "PASSPORT"


class UserRole(StrEnum):
    SUPER_ADMIN = "SuperAdmin"
    EMPLOYEE = "Employee"


def _enum_column(enum_cls: type, name: str, default: Optional[StrEnum] = None) -> Column:
    """Enum column storing member values (not names)."""
    return Column(
        SAEnum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=default,
    )


def _now() -> datetime:
    return datetime.now()


class Complaint(SQLModel, table=True):
    """A citizen-filed case record."""

    __tablename__ = "complaints"

    id: Optional[int] = Field(default=None, primary_key=True)
    complaint_number: Optional[str] = Field(default=None, unique=True, nullable=True)
    reporter: Optional[str] = Field(default=None)
    reporter_email: Optional[str] = Field(default=None)
    reporter_phone_number: Optional[str] = Field(default=None)
    reporter_identity_type: str = Field(sa_column=Column(Text, nullable=False))
    reporter_identity_number: Optional[str] = Field(default=None, index=True)
    incident_title: Optional[str] = Field(default=None)
    incident_description: Optional[str] = Field(default=None, sa_column=Column(Text))
    incident_time: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime, nullable=True)
    )
    reported_person: Optional[str] = Field(default=None)
    status: ComplaintStatus = Field(
        default=ComplaintStatus.PENDING,
        sa_column=_enum_column(ComplaintStatus, "complaint_status", ComplaintStatus.PENDING),
    )
    priority: ComplaintPriority = Field(
        default=ComplaintPriority.MEDIUM,
        sa_column=_enum_column(ComplaintPriority, "complaint_priority", ComplaintPriority.MEDIUM),
    )
    created_at: datetime = Field(default_factory=_now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(
        default_factory=_now, sa_column=Column(DateTime, nullable=False, onupdate=_now)
    )

    evidences: List["ComplaintEvidence"] = Relationship(
        back_populates="complaint",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class ComplaintEvidence(SQLModel, table=True):
    """A file attached to a complaint."""

    __tablename__ = "complaint_evidences"

    id: Optional[int] = Field(default=None, primary_key=True)
    complaint_id: int = Field(foreign_key="complaints.id", index=True)
    title: str
    file_path: str
    file_type: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=_now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(
        default_factory=_now, sa_column=Column(DateTime, nullable=False, onupdate=_now)
    )

    complaint: Optional[Complaint] = Relationship(back_populates="evidences")


class User(SQLModel, table=True):
    """Staff account, keyed by NIP."""

    __tablename__ = "users"
    # At most one SuperAdmin row
    __table_args__ = (
        Index(
            "uq_users_single_super_admin",
            "role",
            unique=True,
            sqlite_where=text("role = 'SuperAdmin'"),
            postgresql_where=text("role = 'SuperAdmin'"),
        ),
    )

    nip: str = Field(primary_key=True, max_length=255)
    name: str = Field(max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    email: str = Field(unique=True, max_length=255)
    home_address: str = Field(sa_column=Column(Text, nullable=False))
    role: UserRole = Field(
        default=UserRole.EMPLOYEE, sa_column=_enum_column(UserRole, "user_role")
    )
    password: str
    created_at: datetime = Field(default_factory=_now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(
        default_factory=_now, sa_column=Column(DateTime, nullable=False, onupdate=_now)
    )

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_employee(self) -> bool:
        return self.role == UserRole.EMPLOYEE

    @staticmethod
    def roles() -> List[str]:
        return [role.value for role in UserRole]


register_relations(
    Complaint,
    RelationDescriptor(
        name="evidences",
        kind=RelationKind.HAS_MANY,
        target=ComplaintEvidence,
        local_key="id",
        foreign_key="complaint_id",
    ),
)
register_relations(
    ComplaintEvidence,
    RelationDescriptor(
        name="complaint",
        kind=RelationKind.BELONGS_TO,
        target=Complaint,
        foreign_key="complaint_id",
        owner_key="id",
    ),
)


# --- Complaint numbering ---


def format_complaint_number(created_at: datetime, complaint_id: int) -> str:
    """``YYYYMMDD-0007``; ids above 9999 keep their natural width."""
    return f"{created_at:%Y%m%d}-{complaint_id:04d}"


@event.listens_for(Complaint, "after_insert")
def _assign_complaint_number(mapper, connection, target: Complaint) -> None:
    if target.complaint_number:
        return
    number = format_complaint_number(target.created_at or _now(), target.id)
    connection.execute(
        update(Complaint.__table__)
        .where(Complaint.__table__.c.id == target.id)
        .values(complaint_number=number)
    )
    set_committed_value(target, "complaint_number", number)
    logger.info("Assigned complaint number %s to complaint %s", number, target.id)


# --- Evidence file type inference ---

EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "m4v": "video/mp4",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "flac": "audio/flac",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "wma": "audio/x-ms-wma",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "zip": "application/zip",
    "rar": "application/vnd.rar",
    "7z": "application/x-7z-compressed",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def infer_file_type(file_path: Optional[str]) -> str:
    """MIME type for ``file_path`` from its lower-cased extension."""
    extension = os.path.splitext(file_path or "")[1].lstrip(".").lower()
    return EXTENSION_MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


@event.listens_for(ComplaintEvidence, "before_insert")
@event.listens_for(ComplaintEvidence, "before_update")
def _fill_file_type(mapper, connection, target: ComplaintEvidence) -> None:
    if not target.file_type:
        target.file_type = infer_file_type(target.file_path)
