"""Pagination engine and paginated response building."""

from math import ceil
from typing import Any, List, Optional, Tuple

from fastapi import Request
from sqlalchemy import Select, func
from sqlmodel import Session, select

from complaint_desk.models import (
    Links,
    ListQuery,
    Meta,
    PaginatedResponse,
    Pagination,
    PaginationQuery,
)


class PaginationEngine:
    """
    Engine for paginating queries and building paginated responses.

    A ``per_page`` of None (the "all" page size) returns every row on a
    single page.
    """

    def __init__(self, pagination: PaginationQuery, request: Optional[Request] = None):
        """
        Initialize PaginationEngine.

        Args:
            pagination: Pagination parameters (page, per_page)
            request: FastAPI Request object (for building HATEOAS links)
        """
        self.pagination = pagination
        self.request = request

    def paginate(self, query: Select, session: Session) -> List[Any]:
        """
        Execute pagination on a query.

        Args:
            query: SQLAlchemy Select query
            session: Database session

        Returns:
            List[Any]: Query results
        """
        if self.pagination.is_unpaginated:
            return list(session.exec(query).all())
        return list(
            session.exec(
                query.offset((self.pagination.page - 1) * self.pagination.per_page).limit(
                    self.pagination.per_page
                )
            ).all()
        )

    @staticmethod
    def count_total(query: Select, session: Session) -> int:
        """
        Count total items matching the query.

        Args:
            query: SQLAlchemy Select query with filters applied
            session: Database session

        Returns:
            int: Total count of items
        """
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        return session.exec(count_query).one()

    def paginate_with_count(self, query: Select, session: Session) -> Tuple[List[Any], int]:
        """
        Count and paginate.

        Args:
            query: SQLAlchemy Select query (with filters/sort already applied)
            session: Database session

        Returns:
            Tuple[List[Any], int]: (page_data, total_count)
        """
        total = self.count_total(query, session)
        data = self.paginate(query, session)
        return data, total

    def _page_url(self, page: int, per_page: Any) -> str:
        return str(self.request.url.include_query_params(page=page, per_page=per_page))

    def build_response(
        self,
        total_items: int,
        data_page: List[Any],
        query: Optional[ListQuery] = None,
        page_size_all: str = "all",
    ) -> PaginatedResponse[Any]:
        """
        Build the final paginated response with HATEOAS links.

        Args:
            total_items: Total number of items matching filters
            data_page: Current page of data (already serialized)
            query: Active listing query (for meta)
            page_size_all: Query value that requests every row

        Returns:
            PaginatedResponse: Final response object
        """
        if self.pagination.is_unpaginated:
            per_page = max(total_items, len(data_page))
            current_page = 1
            total_pages = 1
            link_per_page: Any = page_size_all
        else:
            per_page = self.pagination.per_page
            current_page = self.pagination.page
            total_pages = max(1, ceil(total_items / per_page))
            link_per_page = per_page

        next_url = (
            self._page_url(current_page + 1, link_per_page) if current_page < total_pages else None
        )
        prev_url = self._page_url(current_page - 1, link_per_page) if current_page > 1 else None

        return PaginatedResponse(
            data=data_page,
            meta=Meta(
                pagination=Pagination(
                    total_items=total_items,
                    per_page=per_page,
                    current_page=current_page,
                    total_pages=total_pages,
                ),
                query=query,
            ),
            links=Links(
                self=self._page_url(current_page, link_per_page),
                first=self._page_url(1, link_per_page),
                last=self._page_url(total_pages, link_per_page),
                next=next_url,
                prev=prev_url,
            ),
        )
