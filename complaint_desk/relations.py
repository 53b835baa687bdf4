"""Relation descriptor table used to build joins and correlated subqueries.

Each entity declares its relations once, at import time, with
:func:`register_relations`. Query builders look relations up here instead of
introspecting ORM relationships while a request is being served.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from sqlalchemy import Select, Table, inspect, select
from sqlalchemy.orm import aliased


class RelationKind(StrEnum):
    """Relation kinds"""

    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO_MANY = "belongs_to_many"
    HAS_ONE_THROUGH = "has_one_through"  # declared only, no join strategy


@dataclass(frozen=True)
class RelationDescriptor:
    """
    How a parent entity reaches a related entity.

    Attributes:
        name: Relation name as used in query strings
        kind: Relation kind
        target: Related entity class
        local_key: Key on the parent (has-one/has-many/many-to-many)
        foreign_key: Key on the parent for belongs-to, on the related entity for has-one/has-many
        owner_key: Key on the related entity (belongs-to/many-to-many)
        pivot: Pivot table for many-to-many
        foreign_pivot_key: Pivot column pointing at the parent
        related_pivot_key: Pivot column pointing at the related entity
    """

    name: str
    kind: RelationKind
    target: Type[Any]
    local_key: str = "id"
    foreign_key: Optional[str] = None
    owner_key: str = "id"
    pivot: Optional[Table] = None
    foreign_pivot_key: Optional[str] = None
    related_pivot_key: Optional[str] = None


_REGISTRY: Dict[type, Dict[str, RelationDescriptor]] = {}


def register_relations(model: type, *descriptors: RelationDescriptor) -> None:
    """
    Register relation descriptors for an entity.

    Args:
        model: Parent entity class
        descriptors: Relations reachable from the parent
    """
    table = _REGISTRY.setdefault(model, {})
    for descriptor in descriptors:
        if descriptor.kind == RelationKind.BELONGS_TO_MANY and descriptor.pivot is None:
            raise ValueError(f"Relation '{descriptor.name}' needs a pivot table")
        table[descriptor.name] = descriptor


def get_relation(model: type, name: str) -> Optional[RelationDescriptor]:
    """Return the descriptor for ``model.name`` or None."""
    return _REGISTRY.get(model, {}).get(name)


def has_column(model: type, name: str) -> bool:
    """True if ``name`` is a mapped column (not a relationship) of ``model``."""
    return name in inspect(model).columns


def relation_names(model: type) -> List[str]:
    return sorted(_REGISTRY.get(model, {}))


def resolve_path(model: type, path: str) -> Optional[List[RelationDescriptor]]:
    """
    Resolve a dot-separated relation path into descriptors.

    Args:
        model: Entity the path starts from
        path: Relation path, e.g. ``"complaint.evidences"``

    Returns:
        Optional[List[RelationDescriptor]]: One descriptor per hop, or None if
        any hop is unknown
    """
    hops = []
    current = model
    for name in path.split("."):
        descriptor = get_relation(current, name)
        if descriptor is None:
            return None
        hops.append(descriptor)
        current = descriptor.target
    return hops


# --- Join strategies for direct relations ---

JoinStrategyFn = Callable[[Select, Any, RelationDescriptor], Tuple[Select, Any]]


def _join_belongs_to(query: Select, parent: Any, rel: RelationDescriptor) -> Tuple[Select, Any]:
    related = aliased(rel.target)
    on = getattr(parent, rel.foreign_key) == getattr(related, rel.owner_key)
    return query.outerjoin(related, on), related


def _join_has(query: Select, parent: Any, rel: RelationDescriptor) -> Tuple[Select, Any]:
    related = aliased(rel.target)
    on = getattr(parent, rel.local_key) == getattr(related, rel.foreign_key)
    return query.outerjoin(related, on), related


def _join_belongs_to_many(
    query: Select, parent: Any, rel: RelationDescriptor
) -> Tuple[Select, Any]:
    pivot = rel.pivot.alias()
    related = aliased(rel.target)
    query = query.outerjoin(
        pivot, getattr(parent, rel.local_key) == pivot.c[rel.foreign_pivot_key]
    ).outerjoin(related, pivot.c[rel.related_pivot_key] == getattr(related, rel.owner_key))
    return query, related


JOIN_STRATEGIES: Dict[RelationKind, JoinStrategyFn] = {
    RelationKind.BELONGS_TO: _join_belongs_to,
    RelationKind.HAS_ONE: _join_has,
    RelationKind.HAS_MANY: _join_has,
    RelationKind.BELONGS_TO_MANY: _join_belongs_to_many,
}


def outerjoin_relation(
    query: Select, parent: Any, rel: RelationDescriptor
) -> Tuple[Select, Optional[Any]]:
    """
    LEFT OUTER JOIN a direct relation onto ``query``.

    Returns:
        Tuple[Select, Optional[Any]]: The joined query and the aliased related
        entity, or the untouched query and None when the relation kind has no
        join strategy
    """
    strategy = JOIN_STRATEGIES.get(rel.kind)
    if strategy is None:
        return query, None
    return strategy(query, parent, rel)


# --- Correlated subqueries over relation paths ---


def _link_condition(parent: Any, rel: RelationDescriptor, related: Any):
    if rel.kind == RelationKind.BELONGS_TO:
        return getattr(parent, rel.foreign_key) == getattr(related, rel.owner_key)
    if rel.kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
        return getattr(parent, rel.local_key) == getattr(related, rel.foreign_key)
    return None


def correlated_path_select(
    model: type, hops: List[RelationDescriptor], *columns: Callable[[Any], Any]
) -> Optional[Tuple[Select, Any]]:
    """
    Build ``SELECT ... FROM <last hop>`` correlated to ``model`` through ``hops``.

    Every hop gets its own alias, so a path may revisit the parent table.

    Args:
        model: Parent entity of the outer query
        hops: Resolved relation path
        columns: Callables receiving the last hop's alias and returning the
            selected expressions

    Returns:
        Optional[Tuple[Select, Any]]: The subquery and the last hop's alias, or
        None when a hop has no supported link
    """
    parent = model
    conditions = []
    joins = []
    first_from = None
    last = None

    for index, rel in enumerate(hops):
        related = aliased(rel.target)
        if rel.kind == RelationKind.BELONGS_TO_MANY:
            pivot = rel.pivot.alias()
            to_pivot = getattr(parent, rel.local_key) == pivot.c[rel.foreign_pivot_key]
            to_related = pivot.c[rel.related_pivot_key] == getattr(related, rel.owner_key)
            if index == 0:
                first_from = pivot
                conditions.append(to_pivot)
            else:
                joins.append((pivot, to_pivot))
            joins.append((related, to_related))
        else:
            condition = _link_condition(parent, rel, related)
            if condition is None:
                return None
            if index == 0:
                first_from = related
                conditions.append(condition)
            else:
                joins.append((related, condition))
        parent = related
        last = related

    subquery = select(*(col(last) for col in columns)).select_from(first_from)
    for target, on in joins:
        subquery = subquery.join(target, on)
    subquery = subquery.where(*conditions).correlate(model)
    return subquery, last
