"""Filter engine with strategy pattern for column, search and relation filters."""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from dateutil.parser import parse
from fastapi import HTTPException, status
from sqlalchemy import ColumnCollection, ColumnElement, Select, String, cast, literal, or_
from sqlmodel import not_

from complaint_desk.models import (
    ColumnFilter,
    Equality,
    MembershipIn,
    Range,
    RelationFilter,
    RelationFilterConfig,
    RelationHas,
    RelationNotHas,
)
from complaint_desk.relations import correlated_path_select, has_column, resolve_path

logger = logging.getLogger(__name__)

# Type alias for column filter strategy functions
FilterStrategyFn = Callable[[ColumnElement[Any], Any, Optional[type]], Optional[Any]]


def _coerce_value(column: ColumnElement[Any], raw: str, pytype: Optional[type] = None) -> Any:
    """
    Coerce raw string value to column's Python type.

    Args:
        column: SQLAlchemy column element
        raw: Raw string value
        pytype: Optional pre-fetched python type (for performance)

    Returns:
        Any: Coerced value
    """
    if pytype is None:
        try:
            pytype = getattr(column.type, "python_type", None)
        except NotImplementedError:
            pytype = None
    if pytype is None or isinstance(raw, pytype):
        return raw
    if pytype is bool:
        val = raw.strip().lower()
        if val in {"true", "1", "t", "yes", "y"}:
            return True
        if val in {"false", "0", "f", "no", "n"}:
            return False
    if pytype is int:
        try:
            return int(raw)
        except ValueError:
            try:
                return int(float(raw))
            except ValueError:
                return raw
    if pytype in (datetime, date):
        try:
            value = datetime.fromisoformat(raw)
        except (ValueError, AttributeError):
            try:
                value = parse(raw)
            except (ValueError, OverflowError):
                return raw
        return value.date() if pytype is date else value
    try:
        return pytype(raw)
    except (TypeError, ValueError):
        return raw


def _split_values(raw: str) -> List[str]:
    """
    Split comma-separated values, dropping empty items.

    Args:
        raw: Raw string of comma-separated values

    Returns:
        List[str]: List of stripped values
    """
    return [item.strip() for item in raw.split(",") if item.strip()]


def _is_string_column(col: ColumnElement[Any]) -> bool:
    """
    Check if a column has a string type in the database.

    Non-string columns (integer, datetime, ...) are cast to text before
    pattern matching.
    """
    return isinstance(getattr(col, "type", None), String)


def _contains(column: ColumnElement[Any], term: str) -> Any:
    target = column if _is_string_column(column) else cast(column, String)
    return target.ilike(f"%{term}%")


# --- Strategy functions for each column filter kind ---


def _strategy_eq(column: ColumnElement[Any], f: Equality, pytype: Optional[type]) -> Any:
    return column == _coerce_value(column, f.value, pytype)


def _strategy_range(
    column: ColumnElement[Any], f: Range, pytype: Optional[type]
) -> Optional[Any]:
    if f.start is not None and f.end is not None:
        return column.between(
            _coerce_value(column, f.start, pytype), _coerce_value(column, f.end, pytype)
        )
    if f.start is not None:
        return column >= _coerce_value(column, f.start, pytype)
    if f.end is not None:
        return column <= _coerce_value(column, f.end, pytype)
    return None


def _strategy_in(column: ColumnElement[Any], f: MembershipIn, pytype: Optional[type]) -> Any:
    return column.in_([_coerce_value(column, v, pytype) for v in f.values])


# Strategy registry: maps column filter kind -> handler function
FILTER_STRATEGIES: Dict[str, FilterStrategyFn] = {
    "eq": _strategy_eq,
    "range": _strategy_range,
    "in": _strategy_in,
}


class FilterEngine:
    """
    Engine for building and applying SQL filter conditions.

    Column filters dispatch through :data:`FILTER_STRATEGIES` by filter kind.
    Search and relation filters are applied by dedicated methods.
    """

    def __init__(self, strict_mode: bool = False):
        """
        Initialize FilterEngine.

        Args:
            strict_mode: If True, raise errors for unknown fields
        """
        self.strict_mode = strict_mode
        self._type_cache: dict[int, Optional[type]] = {}

    def get_column_type(self, column: ColumnElement[Any]) -> Optional[type]:
        """
        Get the Python type of a column with caching.

        Args:
            column: SQLAlchemy column element

        Returns:
            Optional[type]: Python type of the column or None
        """
        col_id = id(column)
        if col_id not in self._type_cache:
            try:
                self._type_cache[col_id] = getattr(column.type, "python_type", None)
            except (AttributeError, NotImplementedError):
                self._type_cache[col_id] = None
        return self._type_cache[col_id]

    @staticmethod
    def get_query_entity(query: Select) -> Optional[type]:
        """Return the entity class the query selects from, if any."""
        descriptions = query.column_descriptions
        if not descriptions:
            return None
        return descriptions[0].get("entity")

    @staticmethod
    def build_filter_condition(
        column: ColumnElement[Any], f: ColumnFilter, pytype: Optional[type] = None
    ) -> Optional[Any]:
        """
        Build a filter condition using strategy pattern dispatch.

        Args:
            column: Column to apply filter to
            f: Filter to apply
            pytype: Optional pre-fetched python type (for performance)

        Returns:
            Optional[Any]: SQLAlchemy condition or None if the filter is empty
        """
        strategy = FILTER_STRATEGIES.get(f.kind)
        if strategy is None:
            return None
        return strategy(column, f, pytype)

    def _unknown(self, kind: str, name: str, available: Iterable[str]) -> None:
        if self.strict_mode:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Unknown {kind} '{name}'. "
                    f"Available fields: {', '.join(sorted(available))}"
                ),
            )
        logger.debug("Ignoring unknown %s %r", kind, name)

    def apply_search(
        self,
        query: Select,
        columns_map: ColumnCollection[str, ColumnElement[Any]],
        search: Optional[str],
        searchable: Iterable[str],
    ) -> Select:
        """
        OR-match ``search`` as a case-insensitive substring across columns.

        Args:
            query: Base SQLAlchemy Select query
            columns_map: Map of column names to column elements
            search: Search term
            searchable: Allow-list of column names

        Returns:
            Select: Query with the search condition applied
        """
        if not search or not search.strip():
            return query

        conditions = [
            _contains(columns_map[name], search) for name in searchable if name in columns_map
        ]
        if conditions:
            query = query.where(or_(*conditions))
        return query

    def apply_column_filters(
        self,
        query: Select,
        columns_map: ColumnCollection[str, ColumnElement[Any]],
        filters: Optional[List[ColumnFilter]],
        filterable: Iterable[str],
    ) -> Select:
        """
        Apply equality, range and membership filters on allow-listed columns.

        Args:
            query: Base SQLAlchemy Select query
            columns_map: Map of column names to column elements
            filters: Parsed column filters
            filterable: Allow-list of column names

        Returns:
            Select: Query with filters applied

        Raises:
            HTTPException: If strict_mode is True and a field is not filterable
        """
        if not filters:
            return query

        allowed = set(filterable)
        conditions = []
        for f in filters:
            column = columns_map.get(f.field) if f.field in allowed else None
            if column is None:
                self._unknown("field", f.field, allowed)
                continue

            pytype = self.get_column_type(column)
            condition = self.build_filter_condition(column, f, pytype)
            if condition is not None:
                conditions.append(condition)

        if conditions:
            query = query.where(*conditions)

        return query

    def apply_relation_filters(
        self,
        query: Select,
        filters: Optional[List[RelationFilter]],
        config: Mapping[str, RelationFilterConfig],
    ) -> Select:
        """
        Apply EXISTS / NOT EXISTS filters on configured relations.

        Filter names without an entry in ``config`` are ignored.

        Args:
            query: Base SQLAlchemy Select query
            filters: Parsed relation filters
            config: Filter name -> relation/column configuration

        Returns:
            Select: Query with relation filters applied
        """
        if not filters:
            return query

        model = self.get_query_entity(query)
        if model is None:
            return query

        for f in filters:
            if f.name not in config or not f.values:
                continue
            relation_config = config[f.name]
            relation = relation_config.relation or f.name
            hops = resolve_path(model, relation)
            if hops is None:
                self._unknown("relation", relation, config)
                continue

            column_name = relation_config.column
            if not has_column(hops[-1].target, column_name):
                self._unknown("relation column", column_name, [])
                continue
            built = correlated_path_select(model, hops, lambda related: literal(1))
            if built is None:
                continue
            subquery, related = built
            column = getattr(related, column_name)

            values = [_coerce_value(column, v) for v in f.values]
            condition = subquery.where(column.in_(values)).exists()
            if isinstance(f, RelationHas):
                query = query.where(condition)
            elif isinstance(f, RelationNotHas):
                query = query.where(not_(condition))

        return query

    @staticmethod
    def register_strategy(kind: str, strategy: FilterStrategyFn) -> None:
        """
        Register a custom column filter strategy for a filter kind.

        Args:
            kind: Filter kind ("eq", "range", "in")
            strategy: A callable with signature (column, filter, pytype) -> condition
        """
        FILTER_STRATEGIES[kind] = strategy
