"""Boolean filter expressions over trace events."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from jidtrace.errors import InvalidFilterSpecError
from jidtrace.filters.catalog import Predicate, PredicateCatalog, default_catalog
from jidtrace.models.trace import TraceEvent


@dataclass(frozen=True)
class LeafFilter:
    """Invoke a single predicate.

    ``name`` is the catalog name the predicate was resolved from, or
    ``None`` for an inline function.
    """

    predicate: Predicate
    name: str | None = None

    def evaluate(self, event: TraceEvent) -> bool:
        return bool(self.predicate(event))

    def __call__(self, event: TraceEvent) -> bool:
        return self.evaluate(event)


@dataclass(frozen=True)
class AnyFilter:
    """True iff at least one child is true; children run in order."""

    children: tuple[FilterExpression, ...]

    def evaluate(self, event: TraceEvent) -> bool:
        return any(child.evaluate(event) for child in self.children)

    def __call__(self, event: TraceEvent) -> bool:
        return self.evaluate(event)


@dataclass(frozen=True)
class AllFilter:
    """True iff every child is true; stops at the first false child."""

    children: tuple[FilterExpression, ...]

    def evaluate(self, event: TraceEvent) -> bool:
        return all(child.evaluate(event) for child in self.children)

    def __call__(self, event: TraceEvent) -> bool:
        return self.evaluate(event)


FilterExpression = LeafFilter | AnyFilter | AllFilter
FilterSpec = str | Predicate | FilterExpression | Mapping[str, Any]

_COMBINATORS = ("any", "all")


def is_filter(value: object) -> bool:
    return isinstance(value, LeafFilter | AnyFilter | AllFilter)


def leaf(
    spec: str | Predicate | FilterExpression, catalog: PredicateCatalog | None = None
) -> FilterExpression:
    """Normalise a predicate name, function or expression to an expression.

    Raises:
        InvalidFilterSpecError: If a name is not in the catalog or *spec*
            is neither a name, a callable nor an expression.
    """
    catalog = catalog if catalog is not None else default_catalog
    if is_filter(spec):
        return spec  # type: ignore[return-value]
    if isinstance(spec, str):
        fn = catalog.get(spec)
        if fn is None:
            raise InvalidFilterSpecError(f"Unknown predicate: {spec!r}")
        return LeafFilter(fn, spec)
    if callable(spec):
        return LeafFilter(spec, catalog.name_of(spec))
    raise InvalidFilterSpecError(f"Not a filter: {spec!r}")


def _children(
    specs: Iterable[Any], catalog: PredicateCatalog | None
) -> tuple[FilterExpression, ...]:
    if isinstance(specs, str | bytes | Mapping) or not isinstance(specs, Iterable):
        raise InvalidFilterSpecError(f"Expected a sequence of filters, got {specs!r}")
    return tuple(from_spec(spec, catalog) for spec in specs)


def any_of(specs: Iterable[Any], catalog: PredicateCatalog | None = None) -> AnyFilter:
    """Build an ``any`` node from names, functions, expressions or plain data."""
    return AnyFilter(_children(specs, catalog))


def all_of(specs: Iterable[Any], catalog: PredicateCatalog | None = None) -> AllFilter:
    """Build an ``all`` node from names, functions, expressions or plain data."""
    return AllFilter(_children(specs, catalog))


def stream(catalog: PredicateCatalog | None = None) -> AnyFilter:
    """Client stream traffic: ``any_of(["rx", "tx"])``."""
    return any_of(["rx", "tx"], catalog)


def evaluate(expression: FilterExpression, event: TraceEvent) -> bool:
    """Evaluate *expression* against a single event."""
    return expression.evaluate(event)


def from_spec(spec: FilterSpec, catalog: PredicateCatalog | None = None) -> FilterExpression:
    """Build an expression from any accepted filter form.

    Besides names, callables and expressions, plain data is accepted:
    ``{"any": [...]}`` and ``{"all": [...]}`` with nested specs, as
    produced by :func:`to_spec` or read from configuration.

    Raises:
        InvalidFilterSpecError: On unknown names or malformed data.
    """
    if isinstance(spec, Mapping):
        if len(spec) != 1:
            raise InvalidFilterSpecError(f"Expected one of {_COMBINATORS}, got {dict(spec)!r}")
        ((op, children),) = spec.items()
        if op not in _COMBINATORS:
            raise InvalidFilterSpecError(f"Unknown combinator: {op!r}")
        nodes = _children(children, catalog)
        return AnyFilter(nodes) if op == "any" else AllFilter(nodes)
    return leaf(spec, catalog)


def to_spec(expression: FilterExpression) -> str | dict[str, list[Any]]:
    """Serialise an expression of named predicates to plain data.

    Raises:
        InvalidFilterSpecError: If the expression holds an inline function.
    """
    if isinstance(expression, LeafFilter):
        if expression.name is None:
            raise InvalidFilterSpecError(
                f"Inline predicate {expression.predicate!r} cannot be serialised"
            )
        return expression.name
    if isinstance(expression, AnyFilter):
        return {"any": [to_spec(child) for child in expression.children]}
    if isinstance(expression, AllFilter):
        return {"all": [to_spec(child) for child in expression.children]}
    raise InvalidFilterSpecError(f"Not a filter: {expression!r}")
