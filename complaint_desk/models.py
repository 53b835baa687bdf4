"""Query and response models for listing endpoints"""

from enum import StrEnum
from typing import Annotated, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field


class SortingOrder(StrEnum):
    """Sorting orders"""

    ASC = "asc"  # ascending order
    DESC = "desc"  # descending order


T = TypeVar("T")


# --- Column filters ---


class Equality(BaseModel):
    """``column = value``"""

    kind: Literal["eq"] = "eq"
    field: str
    value: str


class Range(BaseModel):
    """Inclusive range; a missing bound makes the predicate one-sided."""

    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["range"] = "range"
    field: str
    start: Optional[str] = Field(default=None, alias="from")
    end: Optional[str] = Field(default=None, alias="to")


class MembershipIn(BaseModel):
    """``column IN (values)``"""

    kind: Literal["in"] = "in"
    field: str
    values: List[str]


ColumnFilter = Annotated[Union[Equality, Range, MembershipIn], Field(discriminator="kind")]


# --- Relation filters ---


class RelationHas(BaseModel):
    """Rows having at least one related row whose column is in ``values``."""

    kind: Literal["has"] = "has"
    name: str
    values: List[str]


class RelationNotHas(BaseModel):
    """Rows having no related row whose column is in ``values``."""

    kind: Literal["not_has"] = "not_has"
    name: str
    values: List[str]


RelationFilter = Annotated[Union[RelationHas, RelationNotHas], Field(discriminator="kind")]


class RelationFilterConfig(BaseModel):
    """
    Repository-side configuration of one relations_array_filters key.

    ``relation`` defaults to the filter key itself.
    """

    relation: Optional[str] = None
    column: str = "name"


# --- Sorting ---


class SortingQuery(BaseModel):
    """Sorting query model"""

    sort_by: str
    order: SortingOrder = SortingOrder.DESC


class RelationCountSort(BaseModel):
    """Order by the number of related rows."""

    relation: str
    order: SortingOrder = SortingOrder.DESC


class RelationFieldSort(BaseModel):
    """Order by a column of a (possibly dot-nested) relation."""

    relation: str
    field: str
    order: SortingOrder = SortingOrder.DESC

    @property
    def is_nested(self) -> bool:
        return "." in self.relation


class ListQuery(BaseModel):
    """Everything a listing request asks for, parsed once per request."""

    search: Optional[str] = None
    column_filters: List[ColumnFilter] = Field(default_factory=list)
    relation_filters: List[RelationFilter] = Field(default_factory=list)
    sorting: Optional[SortingQuery] = None
    relation_count_sort: Optional[RelationCountSort] = None
    relation_field_sorts: List[RelationFieldSort] = Field(default_factory=list)


# --- Pagination ---


class PaginationQuery(BaseModel):
    """Pagination query model; ``per_page=None`` returns every row."""

    page: int = 1
    per_page: Optional[int] = 10

    @property
    def is_unpaginated(self) -> bool:
        return self.per_page is None


class Pagination(BaseModel):
    """Pagination model"""

    total_items: Optional[int] = None
    per_page: int
    current_page: int
    total_pages: Optional[int] = None


class Meta(BaseModel):
    """Meta model"""

    pagination: Pagination
    query: Optional[ListQuery] = None


class Links(BaseModel):
    """Links model"""

    self: str
    first: str
    next: Optional[str] = None
    prev: Optional[str] = None
    last: Optional[str] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response model"""

    data: List[T]
    meta: Meta
    links: Links
