"""Resource transformers turning entities into response dictionaries."""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import inspect as sa_inspect

from complaint_desk.entities import Complaint, ComplaintEvidence, User
from complaint_desk.selection import Deferred, filter_data, resource_key


def _is_loaded(obj: Any, relation: str) -> bool:
    return relation not in sa_inspect(obj).unloaded


class Resource:
    """
    Base transformer with per-request field selection.

    Subclasses implement :meth:`data_source`. The query parameter named
    after the resource (see :func:`resource_key`) selects which fields are
    returned, e.g. ``?complaint=incident_title,status``.
    """

    default_fields: Optional[Iterable[str]] = None

    def __init__(
        self, obj: Any, params: Optional[Mapping[str, str]] = None, include_relations: bool = True
    ):
        self.obj = obj
        self.params = params or {}
        # Nested resources do not expand their own relations again
        self.include_relations = include_relations

    @classmethod
    def key(cls) -> str:
        return resource_key(cls)

    def data_source(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return filter_data(self.params.get(self.key()), self.data_source(), self.default_fields)

    @classmethod
    def make(
        cls, obj: Any, params: Optional[Mapping[str, str]] = None, include_relations: bool = True
    ) -> Dict[str, Any]:
        return cls(obj, params, include_relations).to_dict()

    @classmethod
    def collection(
        cls,
        objs: Iterable[Any],
        params: Optional[Mapping[str, str]] = None,
        include_relations: bool = True,
    ) -> List[Dict[str, Any]]:
        return [cls(obj, params, include_relations).to_dict() for obj in objs]


class ComplaintResource(Resource):
    def data_source(self) -> Dict[str, Any]:
        complaint: Complaint = self.obj
        data: Dict[str, Any] = {
            "id": complaint.id,
            "complaint_number": complaint.complaint_number,
            "reporter": complaint.reporter,
            "reporter_email": complaint.reporter_email,
            "reporter_phone_number": complaint.reporter_phone_number,
            "reporter_identity_type": complaint.reporter_identity_type,
            "reporter_identity_number": complaint.reporter_identity_number,
            "incident_title": complaint.incident_title,
            "incident_description": complaint.incident_description,
            "incident_time": complaint.incident_time,
            "reported_person": complaint.reported_person,
            "status": complaint.status,
            "priority": complaint.priority,
        }
        if self.include_relations and _is_loaded(complaint, "evidences"):
            data["evidences"] = Deferred(
                lambda: ComplaintEvidenceResource.collection(
                    complaint.evidences, self.params, include_relations=False
                )
            )
        data["created_at"] = complaint.created_at
        data["updated_at"] = complaint.updated_at
        return data


class ComplaintEvidenceResource(Resource):
    def data_source(self) -> Dict[str, Any]:
        evidence: ComplaintEvidence = self.obj
        data: Dict[str, Any] = {
            "id": evidence.id,
            "complaint_id": evidence.complaint_id,
            "title": evidence.title,
            "file_path": evidence.file_path,
            "file_type": evidence.file_type,
            "created_at": evidence.created_at,
            "updated_at": evidence.updated_at,
        }
        if self.include_relations and _is_loaded(evidence, "complaint"):
            data["complaint"] = Deferred(
                lambda: ComplaintResource.make(
                    evidence.complaint, self.params, include_relations=False
                )
                if evidence.complaint is not None
                else None
            )
        return data


class UserResource(Resource):
    """User fields; the password hash is never exposed."""

    def data_source(self) -> Dict[str, Any]:
        user: User = self.obj
        return {
            "nip": user.nip,
            "name": user.name,
            "phone_number": user.phone_number,
            "email": user.email,
            "home_address": user.home_address,
            "role": user.role,
            "is_super_admin": Deferred(lambda: user.is_super_admin),
            "created_at": user.created_at,
            "updated_at": user.updated_at,
        }
