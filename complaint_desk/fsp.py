"""Query-string parsing and the FastAPI dependency for listing endpoints"""

import re
from typing import Annotated, Any, Dict, Iterable, List, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status

from complaint_desk.config import QueryConfig, QueryKeys
from complaint_desk.filters import _split_values
from complaint_desk.models import (
    ColumnFilter,
    Equality,
    ListQuery,
    MembershipIn,
    PaginatedResponse,
    PaginationQuery,
    Range,
    RelationCountSort,
    RelationFieldSort,
    RelationFilter,
    RelationHas,
    RelationNotHas,
    SortingOrder,
    SortingQuery,
)
from complaint_desk.pagination import PaginationEngine

_BRACKET = re.compile(r"\[([^\[\]]*)\]")


def _assign(node: Dict[str, Any], path: List[str], value: str) -> None:
    for part in path[:-1]:
        if part == "":
            part = str(len(node))
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    last = path[-1]
    if last == "":
        last = str(len(node))
    node[last] = value


def _listify(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    if value and all(key.isdigit() for key in value):
        return [_listify(value[key]) for key in sorted(value, key=int)]
    return {key: _listify(item) for key, item in value.items()}


def parse_nested_params(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Parse bracketed query-string keys into nested dicts and lists.

    ``a[b]=1`` -> ``{"a": {"b": "1"}}``, ``a[]=1&a[]=2`` -> ``{"a": ["1", "2"]}``,
    ``a[0][x]=1`` -> ``{"a": [{"x": "1"}]}``. A repeated plain key keeps the
    last value.

    Args:
        items: (key, value) pairs in query-string order

    Returns:
        Dict[str, Any]: Nested parameter map
    """
    result: Dict[str, Any] = {}
    for key, value in items:
        head, bracket, rest = key.partition("[")
        if not head:
            continue
        path = [head]
        if bracket:
            path.extend(_BRACKET.findall(bracket + rest))
        _assign(result, path, value)
    return {key: _listify(value) for key, value in result.items()}


def _parse_order(value: Any, default: SortingOrder = SortingOrder.DESC) -> SortingOrder:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        try:
            return SortingOrder(value.strip().lower())
        except ValueError:
            pass
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid sort direction '{value}'. Use 'asc' or 'desc'.",
    )


def _first(params: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = params.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_column_filters(raw: Any) -> List[ColumnFilter]:
    if not isinstance(raw, dict):
        return []

    filters: List[ColumnFilter] = []
    for field, value in raw.items():
        if isinstance(value, str):
            filters.append(Equality(field=field, value=value))
        elif isinstance(value, list):
            values = [v for v in value if isinstance(v, str)]
            if values:
                filters.append(MembershipIn(field=field, values=values))
        elif isinstance(value, dict) and ("from" in value or "to" in value):
            start, end = value.get("from"), value.get("to")
            if isinstance(start, (str, type(None))) and isinstance(end, (str, type(None))):
                filters.append(Range(field=field, start=start, end=end))
    return filters


def _parse_relation_filters(raw: Any, negation_prefix: str) -> List[RelationFilter]:
    if not isinstance(raw, dict):
        return []

    filters: List[RelationFilter] = []
    for name, value in raw.items():
        if isinstance(value, str):
            values = _split_values(value)
        elif isinstance(value, list):
            values = [v.strip() for v in value if isinstance(v, str) and v.strip()]
        else:
            continue

        include = [v for v in values if not v.startswith(negation_prefix)]
        exclude = [
            v[len(negation_prefix) :]
            for v in values
            if v.startswith(negation_prefix) and len(v) > len(negation_prefix)
        ]
        if include:
            filters.append(RelationHas(name=name, values=include))
        if exclude:
            filters.append(RelationNotHas(name=name, values=exclude))
    return filters


def _parse_relation_field_sorts(
    raw: Any, fallback_direction: Any
) -> List[RelationFieldSort]:
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        return []

    sorts = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        relation, field = item.get("relation"), item.get("field")
        if not (isinstance(relation, str) and relation and isinstance(field, str) and field):
            continue
        direction = item.get("direction") or fallback_direction
        sorts.append(
            RelationFieldSort(relation=relation, field=field, order=_parse_order(direction))
        )
    return sorts


def build_list_query(params: Dict[str, Any], keys: QueryKeys) -> ListQuery:
    """
    Build the typed listing query from a nested parameter map.

    Args:
        params: Output of :func:`parse_nested_params`
        keys: Query key names

    Returns:
        ListQuery: Parsed search, filters and sorts

    Raises:
        HTTPException: If a sort direction is not asc/desc
    """
    search = params.get(keys.search)
    sort_by = params.get(keys.sort_by)
    sort_dir = params.get(keys.sort_dir)
    count_relation = params.get(keys.sort_by_relation_count)

    sorting = None
    if isinstance(sort_by, str) and sort_by:
        sorting = SortingQuery(sort_by=sort_by, order=_parse_order(sort_dir))

    count_sort = None
    if isinstance(count_relation, str) and count_relation:
        direction = _first(params, keys.sort_dir_relation_count, keys.sort_dir)
        count_sort = RelationCountSort(relation=count_relation, order=_parse_order(direction))

    return ListQuery(
        search=search if isinstance(search, str) and search.strip() else None,
        column_filters=_parse_column_filters(params.get(keys.column_filters)),
        relation_filters=_parse_relation_filters(
            params.get(keys.relations_array_filters), keys.negation_prefix
        ),
        sorting=sorting,
        relation_count_sort=count_sort,
        relation_field_sorts=_parse_relation_field_sorts(
            params.get(keys.sort_by_relation_field),
            _first(params, keys.sort_dir_relation_field, keys.sort_dir),
        ),
    )


def get_query_config(request: Request) -> QueryConfig:
    """Listing configuration of the running application."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        return QueryConfig()
    return settings.query


def _parse_list_query(
    request: Request, config: Annotated[QueryConfig, Depends(get_query_config)]
) -> ListQuery:
    params = parse_nested_params(request.query_params.multi_items())
    return build_list_query(params, config.keys)


def _parse_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"'{name}' must be an integer.",
        ) from e


def _parse_pagination(
    request: Request, config: Annotated[QueryConfig, Depends(get_query_config)]
) -> PaginationQuery:
    """
    Parse pagination parameters.

    The page size is read from the first present key of ``QueryKeys.per_page``;
    the ``page_size_all`` sentinel disables pagination.
    """
    params = request.query_params
    raw_page = params.get(config.keys.page)
    page = config.default_page if raw_page in (None, "") else _parse_int("page", raw_page)

    raw_per_page = _first(dict(params), *config.keys.per_page)
    if raw_per_page is None:
        per_page: Optional[int] = config.default_per_page
    elif raw_per_page.strip().lower() == config.page_size_all.lower():
        per_page = None
    else:
        per_page = config.validate_per_page(_parse_int("per_page", raw_per_page))

    return PaginationQuery(page=config.validate_page(page), per_page=per_page)


class FSPManager:
    """
    Filtering, Sorting, and Pagination request state for listing endpoints.

    Parses the query string once into a :class:`ListQuery` and a
    :class:`PaginationQuery`; repositories apply the former, the
    :class:`PaginationEngine` builds the response envelope.

    Example:
        @router.get("/complaints")
        def index(fsp: FSPManager = Depends(FSPManager), service=Depends(...)):
            rows, total = service.get_all_paginated(fsp.query, fsp.paginator)
            return fsp.build_response(rows, total, serialize)
    """

    def __init__(
        self,
        request: Request,
        query: Annotated[ListQuery, Depends(_parse_list_query)],
        pagination: Annotated[PaginationQuery, Depends(_parse_pagination)],
        config: Annotated[QueryConfig, Depends(get_query_config)],
    ):
        self.request = request
        self.query = query
        self.pagination = pagination
        self.config = config
        self.paginator = PaginationEngine(pagination=pagination, request=request)

    def build_response(
        self, rows: List[Any], total_items: int, serialize=None
    ) -> PaginatedResponse[Any]:
        """
        Serialize a page of rows and wrap it in the paginated envelope.

        Args:
            rows: Page of ORM rows
            total_items: Total rows matching the query
            serialize: Optional callable applied to each row

        Returns:
            PaginatedResponse: Complete paginated response
        """
        data = [serialize(row) for row in rows] if serialize else rows
        return self.paginator.build_response(
            total_items=total_items,
            data_page=data,
            query=self.query,
            page_size_all=self.config.page_size_all,
        )
