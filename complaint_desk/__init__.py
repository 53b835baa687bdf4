"""complaint-desk: public complaint intake and case management on FastAPI + SQLModel."""

from . import models as models  # noqa: F401
from .app import create_app  # noqa: F401
from .config import QueryConfig, QueryKeys, Settings  # noqa: F401
from .entities import (  # noqa: F401
    Complaint,
    ComplaintEvidence,
    ComplaintPriority,
    ComplaintStatus,
    IdentityType,
    User,
    UserRole,
)
from .exceptions import ComplaintDeskError, NotFoundError, ValidationFailed  # noqa: F401
from .filters import FILTER_STRATEGIES, FilterEngine  # noqa: F401
from .fsp import FSPManager  # noqa: F401
from .models import (  # noqa: F401
    Equality,
    Links,
    ListQuery,
    MembershipIn,
    Meta,
    PaginatedResponse,
    Pagination,
    PaginationQuery,
    Range,
    RelationHas,
    RelationNotHas,
    SortingOrder,
    SortingQuery,
)
from .pagination import PaginationEngine  # noqa: F401
from .relations import RelationDescriptor, RelationKind, register_relations  # noqa: F401
from .selection import Deferred  # noqa: F401
from .sorting import SortEngine  # noqa: F401

__all__ = [
    # Application
    "create_app",
    "Settings",
    # Listing
    "FSPManager",
    "FilterEngine",
    "SortEngine",
    "PaginationEngine",
    "FILTER_STRATEGIES",
    "QueryConfig",
    "QueryKeys",
    # Relations
    "RelationDescriptor",
    "RelationKind",
    "register_relations",
    # Field selection
    "Deferred",
    # Entities
    "Complaint",
    "ComplaintEvidence",
    "ComplaintPriority",
    "ComplaintStatus",
    "IdentityType",
    "User",
    "UserRole",
    # Errors
    "ComplaintDeskError",
    "NotFoundError",
    "ValidationFailed",
    # Models
    "Equality",
    "Range",
    "MembershipIn",
    "RelationHas",
    "RelationNotHas",
    "ListQuery",
    "SortingOrder",
    "SortingQuery",
    "PaginationQuery",
    "Pagination",
    "Meta",
    "Links",
    "PaginatedResponse",
    # Module
    "models",
]
