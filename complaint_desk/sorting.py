"""Sort engine for applying ordering to queries."""

import logging
from typing import Any, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import ColumnCollection, ColumnElement, Select, func

from complaint_desk.filters import FilterEngine
from complaint_desk.models import RelationCountSort, RelationFieldSort, SortingOrder, SortingQuery
from complaint_desk.relations import (
    correlated_path_select,
    get_relation,
    has_column,
    outerjoin_relation,
    relation_names,
    resolve_path,
)

logger = logging.getLogger(__name__)


def _ordered(expression: Any, order: SortingOrder) -> Any:
    return expression.desc() if order == SortingOrder.DESC else expression.asc()


def aggregate_column_name(sort: RelationFieldSort) -> str:
    """Name of the MIN/MAX aggregate used for a nested relation-field sort."""
    kind = "min" if sort.order == SortingOrder.ASC else "max"
    return f"{sort.relation.replace('.', '_')}_{sort.field}_{kind}"


class SortEngine:
    """
    Engine for applying sorting to SQL queries.

    Column sort, relation-count sort and relation-field sorts are independent
    and chain as successive ORDER BY clauses, in that order.
    """

    def __init__(self, strict_mode: bool = False):
        """
        Initialize SortEngine.

        Args:
            strict_mode: If True, raise errors for unknown sort fields and relations
        """
        self.strict_mode = strict_mode

    def _unknown(self, kind: str, name: str, available: List[str]) -> None:
        if self.strict_mode:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Unknown sort {kind} '{name}'. "
                    f"Available: {', '.join(sorted(available))}"
                ),
            )
        logger.debug("Ignoring unknown sort %s %r", kind, name)

    def apply_sort(
        self,
        query: Select,
        columns_map: ColumnCollection[str, ColumnElement[Any]],
        sorting: Optional[SortingQuery],
    ) -> Select:
        """
        Apply column sorting to a query.

        Args:
            query: Base SQLAlchemy Select query
            columns_map: Map of column names to column elements
            sorting: Sorting configuration

        Returns:
            Select: Query with sorting applied

        Raises:
            HTTPException: If strict_mode is True and unknown sort field is encountered
        """
        if not sorting or not sorting.sort_by:
            return query

        column = columns_map.get(sorting.sort_by)
        if column is None:
            self._unknown("field", sorting.sort_by, list(columns_map.keys()))
            return query

        return query.order_by(_ordered(column, sorting.order))

    def apply_relation_count_sort(
        self, query: Select, sort: Optional[RelationCountSort]
    ) -> Select:
        """
        Order by the number of related rows.

        The count is a correlated subquery labelled ``{relation}_count``.
        """
        if not sort or not sort.relation:
            return query

        model = FilterEngine.get_query_entity(query)
        rel = get_relation(model, sort.relation) if model is not None else None
        if rel is None:
            self._unknown("relation", sort.relation, relation_names(model))
            return query

        built = correlated_path_select(model, [rel], lambda related: func.count())
        if built is None:
            return query
        subquery, _ = built
        count = subquery.scalar_subquery().label(f"{sort.relation}_count")
        return query.order_by(_ordered(count, sort.order))

    def apply_relation_field_sort(self, query: Select, sort: RelationFieldSort) -> Select:
        """
        Order by a column of a related entity.

        A direct relation is LEFT OUTER JOINed (base columns only, DISTINCT).
        A dot-nested relation is ordered by a correlated MIN (asc) or MAX
        (desc) aggregate.
        """
        model = FilterEngine.get_query_entity(query)
        if model is None:
            return query

        if not sort.is_nested:
            rel = get_relation(model, sort.relation)
            if rel is None:
                self._unknown("relation", sort.relation, relation_names(model))
                return query
            if not has_column(rel.target, sort.field):
                return query
            joined, related = outerjoin_relation(query, model, rel)
            if related is None:
                return query
            column = getattr(related, sort.field)
            return joined.order_by(_ordered(column, sort.order)).distinct()

        hops = resolve_path(model, sort.relation)
        if hops is None:
            self._unknown("relation", sort.relation, relation_names(model))
            return query

        if not has_column(hops[-1].target, sort.field):
            return query

        aggregate = func.min if sort.order == SortingOrder.ASC else func.max
        built = correlated_path_select(
            model, hops, lambda related: aggregate(getattr(related, sort.field))
        )
        if built is None:
            return query
        subquery, _ = built
        value = subquery.scalar_subquery().label(aggregate_column_name(sort))
        return query.order_by(_ordered(value, sort.order))

    def apply_relation_field_sorts(
        self, query: Select, sorts: Optional[List[RelationFieldSort]]
    ) -> Select:
        for sort in sorts or []:
            query = self.apply_relation_field_sort(query, sort)
        return query
