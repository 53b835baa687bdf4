"""Tests for SortEngine: column, relation-count and relation-field sorting."""

from typing import Optional

import pytest
from fastapi import HTTPException
from sqlalchemy import Column, ForeignKey, Integer, Table
from sqlmodel import Field, SQLModel, select

from complaint_desk.entities import Complaint, ComplaintEvidence
from complaint_desk.models import (
    RelationCountSort,
    RelationFieldSort,
    SortingOrder,
    SortingQuery,
)
from complaint_desk.relations import RelationDescriptor, RelationKind, register_relations
from complaint_desk.sorting import SortEngine, aggregate_column_name


class SortArticle(SQLModel, table=True):
    """Model with a many-to-many relation for join tests."""

    __tablename__ = "sort_article"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(default="")


class SortTag(SQLModel, table=True):
    __tablename__ = "sort_tag"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="")


sort_article_tag = Table(
    "sort_article_tag",
    SQLModel.metadata,
    Column("article_id", Integer, ForeignKey("sort_article.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("sort_tag.id"), primary_key=True),
)

register_relations(
    SortArticle,
    RelationDescriptor(
        name="tags",
        kind=RelationKind.BELONGS_TO_MANY,
        target=SortTag,
        pivot=sort_article_tag,
        foreign_pivot_key="article_id",
        related_pivot_key="tag_id",
    ),
    RelationDescriptor(
        name="owner", kind=RelationKind.HAS_ONE_THROUGH, target=SortTag, foreign_key="article_id"
    ),
)


@pytest.fixture
def columns():
    return select(Complaint).selected_columns


@pytest.fixture
def counted(make_complaint):
    """Complaints with 0, 3 and 1 evidence rows."""
    return [
        make_complaint(reporter="zero"),
        make_complaint(reporter="three", evidences=["a", "b", "c"]),
        make_complaint(reporter="one", evidences=["a"]),
    ]


class TestColumnSort:
    def test_no_sorting(self, columns):
        result = SortEngine().apply_sort(select(Complaint), columns, None)
        assert "ORDER BY" not in str(result)

    def test_sort_desc(self, columns):
        sorting = SortingQuery(sort_by="reporter")
        result = SortEngine().apply_sort(select(Complaint), columns, sorting)
        assert "ORDER BY complaints.reporter DESC" in str(result)

    def test_unknown_field_non_strict(self, columns):
        sorting = SortingQuery(sort_by="nonexistent", order=SortingOrder.ASC)
        result = SortEngine().apply_sort(select(Complaint), columns, sorting)
        assert "ORDER BY" not in str(result)

    def test_unknown_field_strict(self, columns):
        sorting = SortingQuery(sort_by="nonexistent", order=SortingOrder.ASC)
        with pytest.raises(HTTPException) as exc_info:
            SortEngine(strict_mode=True).apply_sort(select(Complaint), columns, sorting)
        assert exc_info.value.status_code == 400
        assert "nonexistent" in str(exc_info.value.detail).lower()


class TestRelationCountSort:
    def test_count_desc(self, session, counted):
        query = SortEngine().apply_relation_count_sort(
            select(Complaint), RelationCountSort(relation="evidences")
        )
        rows = session.exec(query).all()
        assert [len(row.evidences) for row in rows] == [3, 1, 0]

    def test_count_asc(self, session, counted):
        query = SortEngine().apply_relation_count_sort(
            select(Complaint), RelationCountSort(relation="evidences", order=SortingOrder.ASC)
        )
        rows = session.exec(query).all()
        assert [len(row.evidences) for row in rows] == [0, 1, 3]

    def test_count_is_correlated_subquery(self):
        query = SortEngine().apply_relation_count_sort(
            select(Complaint), RelationCountSort(relation="evidences")
        )
        compiled = str(query)
        assert "count(*)" in compiled
        assert "complaint_evidences" in compiled

    def test_unknown_relation_is_noop(self):
        query = SortEngine().apply_relation_count_sort(
            select(Complaint), RelationCountSort(relation="witnesses")
        )
        assert "ORDER BY" not in str(query)

    def test_unknown_relation_strict(self):
        with pytest.raises(HTTPException) as exc_info:
            SortEngine(strict_mode=True).apply_relation_count_sort(
                select(Complaint), RelationCountSort(relation="witnesses")
            )
        assert exc_info.value.status_code == 400
        assert "evidences" in exc_info.value.detail

    def test_chains_after_column_sort(self, columns):
        se = SortEngine()
        query = se.apply_sort(select(Complaint), columns, SortingQuery(sort_by="reporter"))
        query = se.apply_relation_count_sort(query, RelationCountSort(relation="evidences"))
        order_by = str(query).split("ORDER BY", 1)[1]
        assert order_by.index("complaints.reporter") < order_by.index("count(*)")

    def test_many_to_many_count(self):
        query = SortEngine().apply_relation_count_sort(
            select(SortArticle), RelationCountSort(relation="tags")
        )
        assert "sort_article_tag" in str(query)


class TestRelationFieldSort:
    def test_direct_has_many_join(self, session, make_complaint):
        b = make_complaint(reporter="b")
        a = make_complaint(reporter="a")
        session.add_all(
            [
                ComplaintEvidence(complaint_id=b.id, title="beta", file_path="b.png"),
                ComplaintEvidence(complaint_id=a.id, title="alpha", file_path="a.png"),
            ]
        )
        session.commit()

        query = SortEngine().apply_relation_field_sort(
            select(Complaint),
            RelationFieldSort(relation="evidences", field="title", order=SortingOrder.ASC),
        )
        compiled = str(query)
        assert "LEFT OUTER JOIN complaint_evidences" in compiled
        assert "DISTINCT" in compiled
        assert [row.id for row in session.exec(query).all()] == [a.id, b.id]

    def test_direct_join_keeps_rows_without_match(self, session, counted):
        query = SortEngine().apply_relation_field_sort(
            select(Complaint), RelationFieldSort(relation="evidences", field="title")
        )
        assert len(session.exec(query).all()) == 3

    def test_belongs_to_join(self, session, make_complaint):
        zed = make_complaint(reporter="Zed", evidences=["image/png"])
        amy = make_complaint(reporter="Amy", evidences=["image/png"])

        query = SortEngine().apply_relation_field_sort(
            select(ComplaintEvidence),
            RelationFieldSort(relation="complaint", field="reporter", order=SortingOrder.ASC),
        )
        rows = session.exec(query).all()
        assert [row.complaint_id for row in rows] == [amy.id, zed.id]

    def test_many_to_many_join_through_pivot(self):
        query = SortEngine().apply_relation_field_sort(
            select(SortArticle),
            RelationFieldSort(relation="tags", field="name", order=SortingOrder.ASC),
        )
        compiled = str(query)
        assert compiled.count("LEFT OUTER JOIN") == 2
        assert "sort_article_tag" in compiled
        assert "sort_tag" in compiled

    def test_nested_aggregate(self):
        sort = RelationFieldSort(relation="complaint.evidences", field="title")
        query = SortEngine().apply_relation_field_sort(select(ComplaintEvidence), sort)
        compiled = str(query)
        assert "max(" in compiled
        assert aggregate_column_name(sort) == "complaint_evidences_title_max"

    def test_nested_aggregate_asc_uses_min(self, session, make_complaint):
        make_complaint(reporter="b", evidences=["x"])
        sort = RelationFieldSort(
            relation="complaint.evidences", field="title", order=SortingOrder.ASC
        )
        query = SortEngine().apply_relation_field_sort(select(ComplaintEvidence), sort)
        assert "min(" in str(query)
        assert aggregate_column_name(sort) == "complaint_evidences_title_min"
        assert len(session.exec(query).all()) == 1

    def test_unknown_relation_is_noop(self):
        query = SortEngine().apply_relation_field_sort(
            select(Complaint), RelationFieldSort(relation="witnesses", field="name")
        )
        assert "ORDER BY" not in str(query)

    def test_unknown_nested_relation_is_noop(self):
        query = SortEngine().apply_relation_field_sort(
            select(Complaint), RelationFieldSort(relation="evidences.witnesses", field="name")
        )
        assert "ORDER BY" not in str(query)

    def test_unknown_field_is_noop(self):
        query = SortEngine().apply_relation_field_sort(
            select(Complaint), RelationFieldSort(relation="evidences", field="nope")
        )
        assert "JOIN" not in str(query)

    def test_unsupported_kind_is_noop(self):
        query = SortEngine().apply_relation_field_sort(
            select(SortArticle), RelationFieldSort(relation="owner", field="name")
        )
        assert "ORDER BY" not in str(query)

    def test_unknown_relation_strict(self):
        with pytest.raises(HTTPException) as exc_info:
            SortEngine(strict_mode=True).apply_relation_field_sort(
                select(Complaint), RelationFieldSort(relation="witnesses", field="name")
            )
        assert exc_info.value.status_code == 400

    def test_multiple_sorts_chain(self):
        query = SortEngine().apply_relation_field_sorts(
            select(ComplaintEvidence),
            [
                RelationFieldSort(relation="complaint", field="reporter"),
                RelationFieldSort(relation="complaint.evidences", field="title"),
            ],
        )
        compiled = str(query)
        assert "LEFT OUTER JOIN complaints" in compiled
        assert "max(" in compiled
