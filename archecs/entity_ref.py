"""Handles to single entities and borrows of their components."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from archecs.archetype import Archetype, TypeInfo
from archecs.bundle import MissingComponent
from archecs.entity import Entity


class _Borrow:
    """Shared machinery of component borrows: release once, context management."""

    _unique = False

    def __init__(self, archetype: Archetype, index: int, component_type: Any) -> None:
        self._released = True
        if not archetype.has(component_type):
            raise MissingComponent(component_type)
        self._archetype = archetype
        self._index = index
        self._type = TypeInfo.of(component_type).id
        if self._unique:
            archetype.borrow_mut(self._type)
        else:
            archetype.borrow(self._type)
        self._released = False

    def _read(self) -> Any:
        if self._released:
            raise RuntimeError("borrow already released")
        return self._archetype.get_dynamic(self._type, self._index)

    def _release_borrow(self) -> None:
        if self._released:
            return
        self._released = True
        if self._unique:
            self._archetype.release_mut(self._type)
        else:
            self._archetype.release(self._type)

    def release(self) -> None:
        """Give up the borrow; later calls do nothing."""
        self._release_borrow()

    def __enter__(self) -> Any:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __del__(self) -> None:
        try:
            self.release()
        except Exception:
            pass

    def __repr__(self) -> str:
        state = "released" if self._released else repr(self._read())
        return f"{type(self).__name__}({state})"


class Ref(_Borrow):
    """Shared borrow of an entity's component."""

    @property
    def value(self) -> Any:
        """The borrowed component."""
        return self._read()

    def release(self) -> None:
        """Give up the shared borrow; later calls do nothing."""
        self._release_borrow()

    def __copy__(self) -> Ref:
        return Ref(self._archetype, self._index, self._type)


class RefMut(_Borrow):
    """Unique borrow of an entity's component."""

    _unique = True

    @property
    def value(self) -> Any:
        """The borrowed component."""
        return self._read()

    @value.setter
    def value(self, new_value: Any) -> None:
        if self._released:
            raise RuntimeError("borrow already released")
        self._archetype.put_dynamic(self._type, self._index, new_value)

    def release(self) -> None:
        """Give up the unique borrow; later calls do nothing."""
        self._release_borrow()


class EntityRef:
    """Handle to an entity with any component types."""

    __slots__ = ("_archetype", "_entity", "_index")

    def __init__(self, archetype: Archetype, entity: Entity, index: int) -> None:
        self._archetype = archetype
        self._entity = entity
        self._index = index

    @property
    def entity(self) -> Entity:
        """The handle of this entity."""
        return self._entity

    def has(self, component_type: Any) -> bool:
        """Whether the entity has a ``component_type`` component, without borrowing it."""
        return self._archetype.has(component_type)

    def get(self, component_type: Any) -> Ref | None:
        """Borrow the ``component_type`` component, if present.

        Raises RuntimeError if that column is uniquely borrowed.
        """
        if not self.has(component_type):
            return None
        return Ref(self._archetype, self._index, component_type)

    def get_mut(self, component_type: Any) -> RefMut | None:
        """Uniquely borrow the ``component_type`` component, if present.

        Raises RuntimeError if that column is borrowed at all.
        """
        if not self.has(component_type):
            return None
        return RefMut(self._archetype, self._index, component_type)

    def component_types(self) -> Iterator[Any]:
        """Iterate over the types of the entity's components."""
        return self._archetype.component_types()

    def __len__(self) -> int:
        return len(self._archetype.types)

    def is_empty(self) -> bool:
        """Whether the entity has no components."""
        return len(self) == 0

    def __copy__(self) -> EntityRef:
        return EntityRef(self._archetype, self._entity, self._index)

    def __repr__(self) -> str:
        return f"EntityRef({self._entity!r})"