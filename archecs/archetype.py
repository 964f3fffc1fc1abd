"""Storage for entities that share exactly the same set of component types."""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any

from archecs.borrow import AtomicBorrow

_NO_ENTITY = 0xFFFF_FFFF
_MIN_GROWTH = 64


@total_ordering
@dataclass(frozen=True, eq=False)
class TypeInfo:
    """Metadata identifying a component type.

    Equality and hashing follow the component type alone; ordering is a
    total order over types, used to lay out an archetype's columns.
    """

    id: Any
    name: str

    @classmethod
    def of(cls, component_type: Any) -> TypeInfo:
        """Metadata for ``component_type``."""
        if isinstance(component_type, TypeInfo):
            return component_type
        name = getattr(component_type, "__name__", None) or repr(component_type)
        return cls(id=component_type, name=name)

    def _sort_key(self) -> tuple[str, str, int]:
        module = getattr(self.id, "__module__", "") or ""
        qualname = getattr(self.id, "__qualname__", None) or self.name
        return (module, qualname, id(self.id))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeInfo):
            return NotImplemented
        return self.id is other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, TypeInfo):
            return NotImplemented
        return self._sort_key() < other._sort_key()


def _assert_type_info(types: Sequence[TypeInfo]) -> None:
    for first, second in zip(types, types[1:]):
        if first == second:
            raise ValueError(
                f"attempted to allocate entity with duplicate {first.name} components; "
                "each type must occur at most once!"
            )
        if second < first:
            raise ValueError("type info is unsorted")


@dataclass
class _Column:
    info: TypeInfo
    values: list[Any] = field(default_factory=list)
    state: AtomicBorrow = field(default_factory=AtomicBorrow)


class Archetype:
    """A collection of entities having the same component types."""

    def __init__(self, types: Iterable[TypeInfo]) -> None:
        type_list = [TypeInfo.of(t) for t in types]
        _assert_type_info(type_list)
        self._types: tuple[TypeInfo, ...] = tuple(type_list)
        self._index: dict[Any, int] = {info.id: i for i, info in enumerate(type_list)}
        self._len = 0
        self._entities: list[int] = []
        self._columns: list[_Column] = [_Column(info) for info in type_list]
        self.remove_edges: dict[Any, int] = {}

    # -- introspection -------------------------------------------------

    @property
    def types(self) -> tuple[TypeInfo, ...]:
        """The component types stored here, in column order."""
        return self._types

    @property
    def capacity(self) -> int:
        """Number of entity slots allocated."""
        return len(self._entities)

    def __len__(self) -> int:
        return self._len

    def is_empty(self) -> bool:
        """Whether this archetype contains no entities."""
        return self._len == 0

    def has(self, component_type: Any) -> bool:
        """Whether this archetype stores components of ``component_type``."""
        return TypeInfo.of(component_type).id in self._index

    def component_types(self) -> Iterator[Any]:
        """Iterate over the component types of entities stored here."""
        return (info.id for info in self._types)

    def ids(self) -> list[int]:
        """Raw ids of the entities in this archetype."""
        return self._entities[: self._len]

    def entity_id(self, index: int) -> int:
        """Raw id of the entity stored at ``index``."""
        return self._entities[index]

    def set_entity_id(self, index: int, id: int) -> None:
        """Record that the entity at ``index`` has raw id ``id``."""
        self._entities[index] = id

    # -- columns and borrowing -----------------------------------------

    def _state(self, component_type: Any) -> int | None:
        return self._index.get(TypeInfo.of(component_type).id)

    def _column(self, component_type: Any) -> _Column:
        state = self._state(component_type)
        if state is None:
            raise KeyError(f"archetype has no {TypeInfo.of(component_type).name} components")
        return self._columns[state]

    def get(self, component_type: Any) -> ColumnRef | None:
        """Borrow the column of ``component_type`` components, if present."""
        if self._state(component_type) is None:
            return None
        column = self._column(component_type)
        self.borrow(component_type)
        return ColumnRef(self, column.info, column.values, self._len)

    def borrow(self, component_type: Any) -> None:
        """Take a shared borrow of a column; raise if it is uniquely borrowed."""
        column = self._column(component_type)
        if not column.state.borrow():
            raise RuntimeError(f"{column.info.name} already borrowed uniquely")

    def borrow_mut(self, component_type: Any) -> None:
        """Take a unique borrow of a column; raise if it is borrowed at all."""
        column = self._column(component_type)
        if not column.state.borrow_mut():
            raise RuntimeError(f"{column.info.name} already borrowed")

    def release(self, component_type: Any) -> None:
        """Release a shared borrow of a column."""
        self._column(component_type).state.release()

    def release_mut(self, component_type: Any) -> None:
        """Release a unique borrow of a column."""
        self._column(component_type).state.release_mut()

    # -- storage management --------------------------------------------

    def clear(self) -> None:
        """Drop every entity's components."""
        for column in self._columns:
            for index in range(self._len):
                column.values[index] = None
        self._len = 0

    def _grow(self, min_increment: int) -> None:
        self._grow_exact(max(self.capacity, min_increment))

    def _grow_exact(self, increment: int) -> None:
        self._entities.extend([_NO_ENTITY] * increment)
        for column in self._columns:
            column.values.extend([None] * increment)

    def reserve(self, additional: int) -> None:
        """Ensure room for at least ``additional`` more entities."""
        free = self.capacity - self._len
        if additional > free:
            self._grow(max(additional - free, _MIN_GROWTH))

    def set_len(self, length: int) -> None:
        """Declare the first ``length`` slots as holding entities."""
        if not 0 <= length <= self.capacity:
            raise ValueError(f"length {length} exceeds capacity {self.capacity}")
        self._len = length

    def allocate(self, id: int) -> int:
        """Append an entity slot for raw id ``id`` and return its index.

        Every component must be written with :meth:`put_dynamic` right after.
        """
        if self._len == self.capacity:
            self._grow(_MIN_GROWTH)
        self._entities[self._len] = id
        self._len += 1
        return self._len - 1

    def _check_slot(self, index: int) -> None:
        if not 0 <= index < self.capacity:
            raise IndexError(f"slot {index} out of range for capacity {self.capacity}")

    def get_dynamic(self, component_type: Any, index: int) -> Any:
        """Component of ``component_type`` stored at ``index``.

        Raises KeyError if the archetype lacks the type.
        """
        column = self._column(component_type)
        self._check_slot(index)
        return column.values[index]

    def put_dynamic(self, component_type: Any, index: int, value: Any) -> None:
        """Store ``value`` as the ``component_type`` component at ``index``."""
        column = self._column(component_type)
        self._check_slot(index)
        column.values[index] = value

    def _swap_remove(self, index: int, visit: Callable[[Any, Any], None] | None) -> int | None:
        if not 0 <= index < self._len:
            raise IndexError(f"entity index {index} out of range for length {self._len}")
        last = self._len - 1
        for column in self._columns:
            if visit is not None:
                visit(column.values[index], column.info.id)
            column.values[index] = column.values[last]
            column.values[last] = None
        self._len = last
        if index != last:
            self._entities[index] = self._entities[last]
            return self._entities[last]
        return None

    def remove(self, index: int) -> int | None:
        """Drop the entity at ``index``; return the raw id moved into its slot, if any."""
        return self._swap_remove(index, None)

    def move_to(self, index: int, f: Callable[[Any, Any], None]) -> int | None:
        """Hand each component at ``index`` to ``f(value, component_type)``, then remove it.

        Returns the raw id of the entity moved into ``index``, if any.
        """
        return self._swap_remove(index, f)

    def merge(self, other: Archetype) -> None:
        """Append the component data of ``other``, which must have identical types."""
        if self._types != other._types:
            raise ValueError("cannot merge archetypes with different component types")
        count = other._len
        self.reserve(count)
        start = self._len
        for dst, src in zip(self._columns, other._columns):
            dst.values[start : start + count] = src.values[:count]
        self._len += count
        other.clear()

    def __repr__(self) -> str:
        names = ", ".join(info.name for info in self._types)
        return f"Archetype([{names}], len={self._len})"


class ColumnRef(Sequence):
    """Shared borrow of one column of component data in an :class:`Archetype`."""

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, archetype: Archetype, info: TypeInfo, values: list[Any], length: int) -> None:
        self._archetype = archetype
        self._info = info
        self._values = values
        self._len = length
        self._released = False

    def __len__(self) -> int:
        return self._len

    def __getitem__(self, item: Any) -> Any:
        if isinstance(item, slice):
            return self._values[: self._len][item]
        if item < 0:
            item += self._len
        if not 0 <= item < self._len:
            raise IndexError("column index out of range")
        return self._values[item]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Sequence) and not isinstance(other, (str, bytes)):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return repr(list(self))

    def __copy__(self) -> ColumnRef:
        self._archetype.borrow(self._info.id)
        return ColumnRef(self._archetype, self._info, self._values, self._len)

    def release(self) -> None:
        """Give up the borrow; later calls do nothing."""
        if not self._released:
            self._released = True
            self._archetype.release(self._info.id)

    def __enter__(self) -> ColumnRef:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __del__(self) -> None:
        try:
            self.release()
        except Exception:
            pass


# Keep the copy module referenced for callers that clone columns explicitly.
_copy = copy.copy