"""Configuration classes for complaint-desk."""

import os
from dataclasses import dataclass, field, fields
from typing import Optional


@dataclass(frozen=True)
class QueryKeys:
    """
    Query-string key names understood by listing endpoints.

    Every key can be renamed per deployment; the defaults are the canonical
    names used by the bundled front end.

    Example:
        keys = QueryKeys(search="q")
        # ?q=radio&column_filters[status]=pending
    """

    search: str = "search"
    column_filters: str = "column_filters"
    relations_array_filters: str = "relations_array_filters"

    sort_by: str = "sort_by"
    sort_dir: str = "sort_dir"
    sort_by_relation_count: str = "sort_by_relation_count"
    sort_dir_relation_count: str = "sort_dir_relation_count"
    sort_by_relation_field: str = "sort_by_relation_field"
    sort_dir_relation_field: str = "sort_dir_relation_field"

    page: str = "page"
    per_page: tuple = ("perPage", "per_page", "page_size")

    # Prefix marking an exclusion inside relations_array_filters values
    negation_prefix: str = "!"

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not value:
                raise ValueError(f"{f.name} must not be empty")


@dataclass
class QueryConfig:
    """
    Configuration for filtering, sorting and pagination behavior.

    Attributes:
        keys: Query-string key names
        max_per_page: Maximum allowed items per page (default: 100)
        default_per_page: Default items per page when not specified (default: 10)
        default_page: Default page number when not specified (default: 1)
        min_per_page: Minimum allowed items per page (default: 1)
        page_size_all: Page size value that disables pagination (default: "all")
        strict_mode: If True, raise errors for unknown fields (default: False)

    Example:
        def get_query_config():
            return QueryConfig(strict_mode=True)

        app.dependency_overrides[get_query_config] = ...
    """

    keys: QueryKeys = field(default_factory=QueryKeys)

    # Pagination settings
    max_per_page: int = 100
    default_per_page: int = 10
    default_page: int = 1
    min_per_page: int = 1
    page_size_all: str = "all"

    # Validation settings
    strict_mode: bool = False

    def __post_init__(self):
        """Validate configuration values."""
        if self.max_per_page < 1:
            raise ValueError("max_per_page must be >= 1")
        if self.default_per_page < 1:
            raise ValueError("default_per_page must be >= 1")
        if self.default_per_page > self.max_per_page:
            raise ValueError("default_per_page cannot exceed max_per_page")
        if self.min_per_page < 1:
            raise ValueError("min_per_page must be >= 1")
        if self.min_per_page > self.max_per_page:
            raise ValueError("min_per_page cannot exceed max_per_page")
        if self.default_page < 1:
            raise ValueError("default_page must be >= 1")
        if not self.page_size_all:
            raise ValueError("page_size_all must not be empty")

    def validate_page(self, page: int) -> int:
        """
        Validate and constrain a page number.

        Args:
            page: Requested page number

        Returns:
            int: Valid page number
        """
        if page < 1:
            return self.default_page
        return page

    def validate_per_page(self, per_page: int) -> int:
        """
        Validate and constrain items per page.

        Args:
            per_page: Requested items per page

        Returns:
            int: Valid per_page value, constrained to min/max bounds
        """
        if per_page < self.min_per_page:
            return self.min_per_page
        if per_page > self.max_per_page:
            return self.max_per_page
        return per_page


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(f"COMPLAINT_DESK_{name}", default)


@dataclass
class Settings:
    """
    Application settings.

    Attributes:
        database_url: SQLAlchemy database URL
        storage_dir: Root directory for uploaded evidence files
        log_level: Root logging level name
        bcrypt_rounds: bcrypt cost factor for password hashes
        query: Listing query configuration
    """

    database_url: str = "sqlite:///./complaint_desk.db"
    storage_dir: str = "./storage"
    log_level: str = "INFO"
    bcrypt_rounds: int = 12
    query: QueryConfig = field(default_factory=QueryConfig)

    def __post_init__(self):
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``COMPLAINT_DESK_*`` environment variables."""
        strict = (_env("STRICT_MODE", "false") or "").strip().lower() in {"1", "true", "yes"}
        return cls(
            database_url=_env("DATABASE_URL", cls.database_url),
            storage_dir=_env("STORAGE_DIR", cls.storage_dir),
            log_level=_env("LOG_LEVEL", cls.log_level),
            bcrypt_rounds=int(_env("BCRYPT_ROUNDS", str(cls.bcrypt_rounds))),
            query=QueryConfig(strict_mode=strict),
        )
