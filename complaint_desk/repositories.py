"""Repositories composing listing queries and persisting entities."""

from types import MappingProxyType
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import Select, func
from sqlalchemy.orm import selectinload
from sqlmodel import Session, SQLModel, select

from complaint_desk.entities import Complaint, ComplaintEvidence, User, UserRole
from complaint_desk.filters import FilterEngine
from complaint_desk.models import ListQuery, RelationFilterConfig
from complaint_desk.pagination import PaginationEngine
from complaint_desk.sorting import SortEngine

ModelT = TypeVar("ModelT", bound=SQLModel)


class BaseRepository(Generic[ModelT]):
    """
    Listing and persistence for one entity.

    Subclasses set :attr:`model` and the allow-lists consulted by
    :meth:`apply_filters`.

    Attributes:
        model: Entity class
        searchable_columns: Columns matched by the free-text search
        filterable_columns: Columns accepted in column filters
        relation_filters: Relation filter name -> relation/column configuration
    """

    model: Type[ModelT]
    searchable_columns: Sequence[str] = ()
    filterable_columns: Sequence[str] = ()
    relation_filters: Mapping[str, RelationFilterConfig] = MappingProxyType({})

    def __init__(self, session: Session, strict_mode: bool = False):
        self.session = session
        self.filter_engine = FilterEngine(strict_mode=strict_mode)
        self.sort_engine = SortEngine(strict_mode=strict_mode)

    def get_query(self) -> Select:
        return select(self.model)

    def apply_filters(self, query: ListQuery, base: Optional[Select] = None) -> Select:
        """
        Build the listing query.

        Applies search, relation filters, column filters, then column,
        relation-count and relation-field sorting.

        Args:
            query: Parsed listing query
            base: Starting query (defaults to :meth:`get_query`)

        Returns:
            Select: Filtered and sorted query
        """
        statement = base if base is not None else self.get_query()
        columns_map = statement.selected_columns

        statement = self.filter_engine.apply_search(
            statement, columns_map, query.search, self.searchable_columns
        )
        statement = self.filter_engine.apply_relation_filters(
            statement, query.relation_filters, self.relation_filters
        )
        statement = self.filter_engine.apply_column_filters(
            statement, columns_map, query.column_filters, self.filterable_columns
        )
        statement = self.sort_engine.apply_sort(statement, columns_map, query.sorting)
        statement = self.sort_engine.apply_relation_count_sort(
            statement, query.relation_count_sort
        )
        return self.sort_engine.apply_relation_field_sorts(
            statement, query.relation_field_sorts
        )

    def get_all_paginated(
        self, query: ListQuery, paginator: PaginationEngine
    ) -> Tuple[List[ModelT], int]:
        """
        Filtered page of rows and the total number of matching rows.

        Args:
            query: Parsed listing query
            paginator: Pagination engine for the current request

        Returns:
            Tuple[List[ModelT], int]: (page_rows, total_count)
        """
        return paginator.paginate_with_count(self.apply_filters(query), self.session)

    def find(self, key: Any, load: Sequence[Any] = ()) -> Optional[ModelT]:
        if not load:
            return self.session.get(self.model, key)
        return self.session.get(
            self.model,
            key,
            options=[selectinload(relation) for relation in load],
            populate_existing=True,
        )

    def create(self, data: Dict[str, Any]) -> ModelT:
        instance = self.model(**data)
        self.session.add(instance)
        self.session.commit()
        self.session.refresh(instance)
        return instance

    def update(self, instance: ModelT, data: Dict[str, Any]) -> ModelT:
        for name, value in data.items():
            setattr(instance, name, value)
        self.session.add(instance)
        self.session.commit()
        self.session.refresh(instance)
        return instance

    def delete(self, instance: ModelT) -> None:
        self.session.delete(instance)
        self.session.commit()


class ComplaintRepository(BaseRepository[Complaint]):
    model = Complaint
    searchable_columns = (
        "complaint_number",
        "reporter",
        "reporter_identity_type",
        "reporter_identity_number",
        "incident_title",
        "incident_description",
        "incident_time",
        "reported_person",
    )
    filterable_columns = (
        "id",
        "complaint_number",
        "reporter",
        "reporter_identity_type",
        "reporter_identity_number",
        "incident_title",
        "incident_description",
        "incident_time",
        "reported_person",
        "status",
        "priority",
        "created_at",
        "updated_at",
    )
    relation_filters = {
        "evidence_types": RelationFilterConfig(relation="evidences", column="file_type"),
        "evidence_titles": RelationFilterConfig(relation="evidences", column="title"),
    }

    def identity_number_exists(self, identity_number: str) -> bool:
        statement = select(Complaint.id).where(
            Complaint.reporter_identity_number == identity_number
        )
        return self.session.exec(statement).first() is not None


class ComplaintEvidenceRepository(BaseRepository[ComplaintEvidence]):
    model = ComplaintEvidence
    searchable_columns = ("complaint_id", "title", "file_path", "file_type")
    filterable_columns = (
        "id",
        "complaint_id",
        "title",
        "file_path",
        "file_type",
        "created_at",
        "updated_at",
    )
    relation_filters = {
        "complaint_status": RelationFilterConfig(relation="complaint", column="status"),
        "complaint_priority": RelationFilterConfig(relation="complaint", column="priority"),
    }


class UserRepository(BaseRepository[User]):
    model = User
    searchable_columns = ("nip", "name", "phone_number", "email", "home_address", "role")
    filterable_columns = ("nip", "name", "email", "role", "created_at", "updated_at")

    def find_by_nip(self, nip: str) -> Optional[User]:
        return self.session.get(User, nip)

    def find_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email)).first()

    def get_super_admin(self) -> Optional[User]:
        return self.session.exec(select(User).where(User.role == UserRole.SUPER_ADMIN)).first()

    def count_super_admins(self) -> int:
        statement = select(func.count()).select_from(User).where(User.role == UserRole.SUPER_ADMIN)
        return self.session.exec(statement).one()
