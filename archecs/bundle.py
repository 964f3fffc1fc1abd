"""Bundles: groups of components stored on one entity.

A bundle is one of:

* a tuple of component values, each stored under its own Python type;
* an instance of a class carrying ``__bundle_fields__``, a sequence of
  ``(attribute name, component type)`` pairs;
* any object with ``type_info()`` and ``components()`` methods, such as the
  output of an entity builder.

A bundle *spec*, used to rebuild a bundle from stored components, is either a
tuple of component types or a class carrying ``__bundle_fields__``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from archecs.archetype import TypeInfo

BUNDLE_FIELDS = "__bundle_fields__"


class MissingComponent(LookupError):
    """Raised when an entity lacks a required component."""

    def __init__(self, component_type: Any) -> None:
        self.component_type = component_type
        self.type_name = TypeInfo.of(component_type).name
        super().__init__(f"missing {self.type_name} component")


def _fields(cls: Any) -> tuple[tuple[str, Any], ...] | None:
    if isinstance(cls, type):
        fields = getattr(cls, BUNDLE_FIELDS, None)
        if fields is not None:
            return tuple(fields)
    return None


def _is_dynamic(bundle: Any) -> bool:
    return callable(getattr(bundle, "components", None)) and callable(
        getattr(bundle, "type_info", None)
    )


def _not_a_bundle(obj: Any) -> TypeError:
    return TypeError(f"{type(obj).__name__} object is not a bundle")


def _spec_types(bundle_cls: Any) -> list[Any]:
    fields = _fields(bundle_cls)
    if fields is not None:
        return [component_type for _, component_type in fields]
    if isinstance(bundle_cls, tuple):
        return list(bundle_cls)
    raise TypeError(f"{bundle_cls!r} is not a bundle spec")


def static_type_info(bundle_cls: Any) -> list[TypeInfo]:
    """Sorted type metadata of the components a bundle spec describes."""
    return sorted(TypeInfo.of(t) for t in _spec_types(bundle_cls))


def components(bundle: Any) -> Iterator[tuple[TypeInfo, Any]]:
    """Iterate over ``(type info, value)`` pairs of the bundle, in declaration order."""
    fields = _fields(type(bundle))
    if fields is not None:
        return ((TypeInfo.of(t), getattr(bundle, name)) for name, t in fields)
    if isinstance(bundle, tuple):
        return ((TypeInfo.of(type(value)), value) for value in bundle)
    if _is_dynamic(bundle):
        return iter(bundle.components())
    raise _not_a_bundle(bundle)


def type_info(bundle: Any) -> list[TypeInfo]:
    """Type metadata of the bundle's components, in sorted order."""
    fields = _fields(type(bundle))
    if fields is not None:
        return sorted(TypeInfo.of(t) for _, t in fields)
    if isinstance(bundle, tuple):
        return sorted(TypeInfo.of(type(value)) for value in bundle)
    if _is_dynamic(bundle):
        return list(bundle.type_info())
    raise _not_a_bundle(bundle)


def bundle_key(bundle: Any) -> Any:
    """A hashable key identifying the bundle's static shape, or ``None`` if it has none."""
    if _fields(type(bundle)) is not None:
        return type(bundle)
    if isinstance(bundle, tuple):
        return tuple(type(value) for value in bundle)
    if _is_dynamic(bundle):
        return None
    raise _not_a_bundle(bundle)


def _fetch(fetch: Callable[[TypeInfo], Any], component_type: Any) -> Any:
    try:
        return fetch(TypeInfo.of(component_type))
    except KeyError:
        raise MissingComponent(component_type) from None


def build_bundle(bundle_cls: Any, fetch: Callable[[TypeInfo], Any]) -> Any:
    """Construct a bundle described by ``bundle_cls`` from values supplied by ``fetch``.

    ``fetch`` is called once per component type in declaration order and
    raises KeyError when a component is absent, which is reported as
    :class:`MissingComponent`.
    """
    fields = _fields(bundle_cls)
    if fields is not None:
        values = {name: _fetch(fetch, t) for name, t in fields}
        return bundle_cls(**values)
    if isinstance(bundle_cls, tuple):
        return tuple([_fetch(fetch, t) for t in bundle_cls])
    raise TypeError(f"{bundle_cls!r} is not a bundle spec")