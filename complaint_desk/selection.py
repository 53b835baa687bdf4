"""Per-response field selection with lazily evaluated values."""

import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class Deferred:
    """
    Zero-argument computation evaluated only when its field is selected.

    Example:
        data = {"evidence_count": Deferred(lambda: len(complaint.evidences))}
    """

    __slots__ = ("fn",)

    def __init__(self, fn: Callable[[], Any]):
        self.fn = fn

    def __call__(self) -> Any:
        return self.fn()


def snake_case(name: str) -> str:
    """``ComplaintEvidence`` -> ``complaint_evidence``"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def resource_key(resource_cls: type) -> str:
    """Query-string key selecting fields of ``resource_cls``.

    The snake_cased class name without its ``Resource`` suffix.
    """
    name = resource_cls.__name__
    if name.endswith("Resource") and name != "Resource":
        name = name[: -len("Resource")]
    return snake_case(name)


def parse_field_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _resolve(value: Any) -> Any:
    return value() if isinstance(value, Deferred) else value


def filter_data(
    requested: Optional[str],
    data_source: Mapping[str, Any],
    default: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Restrict ``data_source`` to the requested fields and resolve deferred values.

    Requested names missing from ``data_source`` are ignored. Without a
    request the ``default`` fields (or every field) are returned. A
    :class:`Deferred` value is called only if its key survives selection.

    Args:
        requested: Comma-separated field list from the query string
        data_source: Field name -> value or Deferred
        default: Field names returned when nothing is requested

    Returns:
        Dict[str, Any]: Selected fields with resolved values
    """
    fields = set(parse_field_list(requested))
    if not fields and default is not None:
        fields = set(default)

    if fields:
        keys = [name for name in data_source if name in fields]
    elif requested:
        keys = []
    else:
        keys = list(data_source)

    return {name: _resolve(data_source[name]) for name in keys}
