"""Tests for PaginationEngine."""

from unittest.mock import Mock

import pytest
from sqlmodel import select

from complaint_desk.entities import Complaint
from complaint_desk.models import PaginationQuery
from complaint_desk.pagination import PaginationEngine


@pytest.fixture
def seeded(make_complaint):
    return [make_complaint(reporter=f"Reporter {i}") for i in range(15)]


@pytest.fixture
def mock_request():
    request = Mock()
    request.url = Mock()
    request.url.include_query_params = Mock(
        side_effect=lambda page, per_page: f"http://example.com/complaints?page={page}&per_page={per_page}"
    )
    return request


def ordered():
    return select(Complaint).order_by(Complaint.id)


class TestPaginate:
    def test_first_page(self, session, seeded):
        engine = PaginationEngine(PaginationQuery(page=1, per_page=10))
        data = engine.paginate(ordered(), session)
        assert [row.id for row in data] == [c.id for c in seeded[:10]]

    def test_last_partial_page(self, session, seeded):
        engine = PaginationEngine(PaginationQuery(page=2, per_page=10))
        assert len(engine.paginate(ordered(), session)) == 5

    def test_page_beyond_end(self, session, seeded):
        engine = PaginationEngine(PaginationQuery(page=5, per_page=10))
        assert engine.paginate(ordered(), session) == []

    def test_unpaginated_returns_everything(self, session, seeded):
        engine = PaginationEngine(PaginationQuery(page=3, per_page=None))
        assert len(engine.paginate(ordered(), session)) == 15


class TestCount:
    def test_count_total(self, session, seeded):
        assert PaginationEngine.count_total(ordered(), session) == 15

    def test_count_ignores_order_and_respects_filters(self, session, seeded):
        query = ordered().where(Complaint.reporter.in_(["Reporter 1", "Reporter 2"]))
        assert PaginationEngine.count_total(query, session) == 2

    def test_paginate_with_count(self, session, seeded):
        engine = PaginationEngine(PaginationQuery(page=2, per_page=4))
        data, total = engine.paginate_with_count(ordered(), session)
        assert total == 15
        assert [row.id for row in data] == [c.id for c in seeded[4:8]]

    def test_empty_table(self, session):
        engine = PaginationEngine(PaginationQuery(page=1, per_page=10))
        assert engine.paginate_with_count(ordered(), session) == ([], 0)


class TestBuildResponse:
    def test_middle_page_links(self, mock_request):
        engine = PaginationEngine(PaginationQuery(page=2, per_page=5), mock_request)
        response = engine.build_response(total_items=15, data_page=[{"id": 6}])

        assert response.meta.pagination.total_pages == 3
        assert response.meta.pagination.current_page == 2
        assert response.links.self == "http://example.com/complaints?page=2&per_page=5"
        assert response.links.first.endswith("page=1&per_page=5")
        assert response.links.last.endswith("page=3&per_page=5")
        assert response.links.next.endswith("page=3&per_page=5")
        assert response.links.prev.endswith("page=1&per_page=5")

    def test_single_page_has_no_neighbours(self, mock_request):
        engine = PaginationEngine(PaginationQuery(page=1, per_page=10), mock_request)
        response = engine.build_response(total_items=3, data_page=[1, 2, 3])
        assert response.links.next is None
        assert response.links.prev is None

    def test_empty_result_has_one_page(self, mock_request):
        engine = PaginationEngine(PaginationQuery(page=1, per_page=10), mock_request)
        response = engine.build_response(total_items=0, data_page=[])
        assert response.meta.pagination.total_pages == 1
        assert response.links.last.endswith("page=1&per_page=10")

    def test_all_sentinel(self, mock_request):
        engine = PaginationEngine(PaginationQuery(page=1, per_page=None), mock_request)
        response = engine.build_response(total_items=15, data_page=list(range(15)))

        pagination = response.meta.pagination
        assert pagination.per_page == 15
        assert pagination.total_pages == 1
        assert pagination.current_page == 1
        assert response.links.self.endswith("per_page=all")
        assert response.links.next is None

    def test_all_sentinel_custom_value(self, mock_request):
        engine = PaginationEngine(PaginationQuery(page=1, per_page=None), mock_request)
        response = engine.build_response(total_items=0, data_page=[], page_size_all="-1")
        assert response.links.first.endswith("per_page=-1")
