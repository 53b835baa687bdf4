"""Application services: business rules on top of the repositories."""

import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from complaint_desk.entities import Complaint, ComplaintEvidence, User, UserRole
from complaint_desk.exceptions import NotFoundError, ValidationFailed
from complaint_desk.models import ListQuery
from complaint_desk.pagination import PaginationEngine
from complaint_desk.repositories import (
    BaseRepository,
    ComplaintEvidenceRepository,
    ComplaintRepository,
    UserRepository,
)
from complaint_desk.security import PasswordHasher
from complaint_desk.storage import EvidenceStorage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

MAX_EVIDENCE_FILES = 5
MAX_EVIDENCE_FILE_SIZE = 100 * 1024 * 1024
EVIDENCE_EXTENSIONS = ("jpg", "jpeg", "png", "mp4", "pdf")

REPORT_CONTENT_TYPE = "application/pdf"


class BaseCrudService(Generic[ModelT]):
    """
    CRUD operations delegating to a repository.

    Attributes:
        repository_class: Repository used for the entity
        entity_name: Entity name used in not-found messages
    """

    repository_class: Type[BaseRepository]
    entity_name: str = "Record"

    def __init__(self, session: Session, strict_mode: bool = False):
        self.session = session
        self.repository = self.repository_class(session, strict_mode=strict_mode)

    def get_all_paginated(
        self, query: ListQuery, paginator: PaginationEngine
    ) -> Tuple[List[ModelT], int]:
        return self.repository.get_all_paginated(query, paginator)

    def find_or_fail(self, key: Any, load: Sequence[Any] = ()) -> ModelT:
        """
        Fetch a record by primary key.

        Raises:
            NotFoundError: If no record has the key
        """
        instance = self.repository.find(key, load=load)
        if instance is None:
            raise NotFoundError(self.entity_name, key)
        return instance

    def create(self, data: Dict[str, Any]) -> ModelT:
        instance = self.repository.create(data)
        logger.info("Created %s %s", self.entity_name, self._key_of(instance))
        return instance

    def update(self, key_or_model: Any, data: Dict[str, Any]) -> ModelT:
        instance = self._resolve(key_or_model)
        return self.repository.update(instance, data)

    def delete(self, key_or_model: Any) -> None:
        instance = self._resolve(key_or_model)
        key = self._key_of(instance)
        self.repository.delete(instance)
        logger.info("Deleted %s %s", self.entity_name, key)

    def _resolve(self, key_or_model: Any) -> ModelT:
        if isinstance(key_or_model, self.repository.model):
            return key_or_model
        return self.find_or_fail(key_or_model)

    @staticmethod
    def _key_of(instance: Any) -> Any:
        return getattr(instance, "id", None)


# --- Complaints ---


@dataclass
class ComplaintReport:
    """Data handed to the PDF renderer for one complaint."""

    filename: str
    content_type: str
    complaint: Complaint


def report_filename(complaint_id: int, on: date) -> str:
    return f"RRI-Complaint-Report-{complaint_id}-{on:%Y-%m-%d}.pdf"


def validate_evidence_uploads(files: Sequence[UploadFile]) -> None:
    """
    Check count, extension and size of evidence uploads.

    Raises:
        ValidationFailed: Keyed on ``evidence_files`` or ``evidence_files.{index}``
    """
    errors: Dict[str, List[str]] = {}
    if len(files) > MAX_EVIDENCE_FILES:
        errors["evidence_files"] = [
            f"A maximum of {MAX_EVIDENCE_FILES} evidence files can be uploaded."
        ]

    for index, upload in enumerate(files):
        messages = []
        extension = os.path.splitext(upload.filename or "")[1].lstrip(".").lower()
        if extension not in EVIDENCE_EXTENSIONS:
            messages.append("Evidence files must be JPG, PNG, MP4, or PDF.")
        if upload.size is not None and upload.size > MAX_EVIDENCE_FILE_SIZE:
            messages.append("Evidence files may not be larger than 100MB.")
        if messages:
            errors[f"evidence_files.{index}"] = messages

    if errors:
        raise ValidationFailed(errors)


class ComplaintService(BaseCrudService[Complaint]):
    repository_class = ComplaintRepository
    entity_name = "Complaint"
    repository: ComplaintRepository

    def __init__(
        self,
        session: Session,
        storage: Optional[EvidenceStorage] = None,
        strict_mode: bool = False,
    ):
        super().__init__(session, strict_mode=strict_mode)
        self.storage = storage

    def get(self, complaint_id: int) -> Complaint:
        return self.find_or_fail(complaint_id, load=[Complaint.evidences])

    def create(
        self, data: Dict[str, Any], evidence_files: Optional[Sequence[UploadFile]] = None
    ) -> Complaint:
        """
        Create a complaint, then store and attach any evidence files.

        The complaint number is assigned when the row is inserted.
        """
        if evidence_files:
            validate_evidence_uploads(evidence_files)
        complaint = super().create(data)
        if evidence_files:
            self._store_evidence_files(complaint, evidence_files)
        return complaint

    def submit_public(
        self, data: Dict[str, Any], evidence_files: Optional[Sequence[UploadFile]] = None
    ) -> Complaint:
        """
        Create a complaint from the public form.

        Raises:
            ValidationFailed: If the identity number was already used
        """
        identity_number = data.get("reporter_identity_number")
        if identity_number and self.repository.identity_number_exists(identity_number):
            raise ValidationFailed.single(
                "reporter_identity_number",
                "This identity number has already been used for a previous complaint.",
            )
        complaint = self.create(data, evidence_files)
        logger.info("Public complaint %s submitted", complaint.complaint_number)
        return complaint

    def update(
        self,
        key_or_model: Any,
        data: Dict[str, Any],
        evidence_files: Optional[Sequence[UploadFile]] = None,
    ) -> Complaint:
        if evidence_files:
            validate_evidence_uploads(evidence_files)
        complaint = super().update(key_or_model, data)
        if evidence_files:
            self._store_evidence_files(complaint, evidence_files)
        return complaint

    def attach_evidence_files(
        self, complaint_id: int, files: Sequence[UploadFile]
    ) -> List[ComplaintEvidence]:
        complaint = self.find_or_fail(complaint_id)
        validate_evidence_uploads(files)
        return self._store_evidence_files(complaint, files)

    def _store_evidence_files(
        self, complaint: Complaint, files: Sequence[UploadFile]
    ) -> List[ComplaintEvidence]:
        if self.storage is None:
            raise RuntimeError("No evidence storage configured")

        evidences = []
        for upload in files:
            filename = upload.filename or "upload"
            path = self.storage.save(filename, upload.file)
            evidence = ComplaintEvidence(
                complaint_id=complaint.id,
                title=filename,
                file_path=path,
                file_type=upload.content_type,
            )
            self.session.add(evidence)
            evidences.append(evidence)

        self.session.commit()
        for evidence in evidences:
            self.session.refresh(evidence)
        logger.info("Attached %d evidence file(s) to complaint %s", len(evidences), complaint.id)
        return evidences

    def report(self, complaint_id: int) -> ComplaintReport:
        complaint = self.get(complaint_id)
        filename = report_filename(complaint.id, date.today())
        logger.info("Prepared report %s", filename)
        return ComplaintReport(
            filename=filename, content_type=REPORT_CONTENT_TYPE, complaint=complaint
        )


# --- Evidences ---


class ComplaintEvidenceService(BaseCrudService[ComplaintEvidence]):
    repository_class = ComplaintEvidenceRepository
    entity_name = "Complaint evidence"

    def get(self, evidence_id: int) -> ComplaintEvidence:
        return self.find_or_fail(evidence_id, load=[ComplaintEvidence.complaint])

    def _check_complaint(self, data: Dict[str, Any]) -> None:
        complaint_id = data.get("complaint_id")
        if complaint_id is not None and self.session.get(Complaint, complaint_id) is None:
            raise ValidationFailed.single("complaint_id", "The selected complaint does not exist.")

    def create(self, data: Dict[str, Any]) -> ComplaintEvidence:
        self._check_complaint(data)
        return super().create(data)

    def update(self, key_or_model: Any, data: Dict[str, Any]) -> ComplaintEvidence:
        self._check_complaint(data)
        return super().update(key_or_model, data)


# --- Users ---

ONLY_ONE_SUPER_ADMIN = "Only one SuperAdmin can exist in the system."
SUPER_ADMIN_EXISTS = "SuperAdmin already exists in the system."
SUPER_ADMIN_NOT_DELETABLE = "SuperAdmin cannot be deleted."
NIP_TAKEN = "This NIP is already registered."
EMAIL_TAKEN = "This email is already registered."


class UserService(BaseCrudService[User]):
    """
    Staff accounts.

    Enforces the single-SuperAdmin rule before writing; the partial unique
    index on ``users.role`` rejects any concurrent second SuperAdmin at commit.
    """

    repository_class = UserRepository
    entity_name = "User"
    repository: UserRepository

    def __init__(
        self,
        session: Session,
        hasher: Optional[PasswordHasher] = None,
        strict_mode: bool = False,
    ):
        super().__init__(session, strict_mode=strict_mode)
        self.hasher = hasher or PasswordHasher()

    @staticmethod
    def _key_of(instance: Any) -> Any:
        return getattr(instance, "nip", None)

    @staticmethod
    def roles() -> List[str]:
        return User.roles()

    def find_by_nip(self, nip: str) -> User:
        return self.find_or_fail(nip)

    def _check_unique(self, data: Dict[str, Any], current: Optional[User] = None) -> None:
        errors: Dict[str, List[str]] = {}
        nip = data.get("nip")
        if nip and (current is None or nip != current.nip):
            if self.repository.find_by_nip(nip) is not None:
                errors["nip"] = [NIP_TAKEN]
        email = data.get("email")
        if email:
            other = self.repository.find_by_email(email)
            if other is not None and (current is None or other.nip != current.nip):
                errors["email"] = [EMAIL_TAKEN]
        if errors:
            raise ValidationFailed(errors)

    def _commit_guarded(self, fn, *args) -> User:
        try:
            return fn(*args)
        except IntegrityError as e:
            self.session.rollback()
            logger.warning("User write rejected by the database: %s", e.orig)
            detail = str(e.orig)
            if "email" in detail:
                raise ValidationFailed.single("email", EMAIL_TAKEN) from e
            if "nip" in detail:
                raise ValidationFailed.single("nip", NIP_TAKEN) from e
            raise ValidationFailed.single("role", ONLY_ONE_SUPER_ADMIN) from e

    def create(self, data: Dict[str, Any]) -> User:
        """
        Create a user with a hashed password.

        Raises:
            ValidationFailed: On a second SuperAdmin (``role``) or a taken
                NIP/e-mail
        """
        data = dict(data)
        data.pop("password_confirmation", None)

        if data.get("role") == UserRole.SUPER_ADMIN and self.repository.count_super_admins() > 0:
            logger.warning("Rejected creation of a second SuperAdmin (%s)", data.get("nip"))
            raise ValidationFailed.single("role", ONLY_ONE_SUPER_ADMIN)
        self._check_unique(data)

        if data.get("password"):
            data["password"] = self.hasher.hash(data["password"])

        user = self._commit_guarded(self.repository.create, data)
        logger.info("Created user %s with role %s", user.nip, user.role)
        return user

    def update(self, key_or_model: Any, data: Dict[str, Any]) -> User:
        """
        Update a user; a blank password keeps the current hash.

        Raises:
            NotFoundError: If the NIP is unknown
            ValidationFailed: When promoting while another SuperAdmin exists,
                or on a taken NIP/e-mail
        """
        user = self._resolve(key_or_model)
        data = dict(data)
        data.pop("password_confirmation", None)

        if data.get("role") == UserRole.SUPER_ADMIN:
            existing = self.repository.get_super_admin()
            if existing is not None and existing.nip != user.nip:
                logger.warning("Rejected promotion of %s to SuperAdmin", user.nip)
                raise ValidationFailed.single("role", ONLY_ONE_SUPER_ADMIN)
        self._check_unique(data, current=user)

        if data.get("password"):
            data["password"] = self.hasher.hash(data["password"])
        else:
            data.pop("password", None)

        return self._commit_guarded(self.repository.update, user, data)

    def delete(self, key_or_model: Any) -> None:
        """
        Delete a user.

        Raises:
            ValidationFailed: If the user is the SuperAdmin (keyed on ``nip``)
        """
        user = self._resolve(key_or_model)
        if user.is_super_admin:
            logger.warning("Rejected deletion of SuperAdmin %s", user.nip)
            raise ValidationFailed.single("nip", SUPER_ADMIN_NOT_DELETABLE)
        super().delete(user)

    def create_super_admin(self, data: Dict[str, Any]) -> User:
        if self.repository.count_super_admins() > 0:
            raise ValidationFailed.single("role", SUPER_ADMIN_EXISTS)
        return self.create({**data, "role": UserRole.SUPER_ADMIN})
