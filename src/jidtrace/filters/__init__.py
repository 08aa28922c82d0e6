"""Filter engine: predicate catalog and boolean combinators."""

from jidtrace.filters.catalog import (
    BUILTIN_PREDICATES,
    Predicate,
    PredicateCatalog,
    default_catalog,
)
from jidtrace.filters.expression import (
    AllFilter,
    AnyFilter,
    FilterExpression,
    FilterSpec,
    LeafFilter,
    all_of,
    any_of,
    evaluate,
    from_spec,
    is_filter,
    leaf,
    stream,
    to_spec,
)

__all__ = [
    "AllFilter",
    "AnyFilter",
    "BUILTIN_PREDICATES",
    "FilterExpression",
    "FilterSpec",
    "LeafFilter",
    "Predicate",
    "PredicateCatalog",
    "all_of",
    "any_of",
    "default_catalog",
    "evaluate",
    "from_spec",
    "is_filter",
    "leaf",
    "stream",
    "to_spec",
]
