"""Column-oriented construction of many entities with the same component types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from archecs.archetype import Archetype, TypeInfo


class BatchIncomplete(Exception):
    """Raised when a column batch is built with components missing."""

    def __init__(self) -> None:
        super().__init__("batch incomplete")

    def __str__(self) -> str:
        return "batch incomplete"


@dataclass
class ColumnBatchType:
    """A collection of component types."""

    types: list[TypeInfo] = field(default_factory=list)

    def add(self, component_type: Any) -> ColumnBatchType:
        """Include ``component_type`` components; returns ``self`` for chaining."""
        self.types.append(TypeInfo.of(component_type))
        return self

    def into_batch(self, size: int) -> ColumnBatchBuilder:
        """A builder for exactly ``size`` entities with these components."""
        return ColumnBatchBuilder(self, size)


class ColumnBatchBuilder:
    """An incomplete collection of component data for entities of one shape."""

    def __init__(self, ty: ColumnBatchType, size: int) -> None:
        if size < 0:
            raise ValueError("batch size must not be negative")
        types = sorted(set(ty.types))
        self.archetype: Archetype | None = Archetype(types)
        self.archetype.reserve(size)
        self._fill: dict[Any, int] = {}
        self._target_fill = size

    @property
    def target_fill(self) -> int:
        """Number of entities the batch holds once complete."""
        return self._target_fill

    def _live_archetype(self) -> Archetype:
        if self.archetype is None:
            raise RuntimeError("batch already built")
        return self.archetype

    def writer(self, component_type: Any) -> BatchWriter | None:
        """A handle for appending ``component_type`` components, if the type is in the batch."""
        archetype = self._live_archetype()
        if not archetype.has(component_type):
            return None
        info = TypeInfo.of(component_type)
        self._fill.setdefault(info.id, 0)
        return BatchWriter(self, info)

    def fill_of(self, component_type: Any) -> int:
        """How many ``component_type`` components have been written so far."""
        return self._fill.get(TypeInfo.of(component_type).id, 0)

    def _push(self, info: TypeInfo, value: Any) -> None:
        archetype = self._live_archetype()
        filled = self._fill.get(info.id, 0)
        if filled >= self._target_fill:
            raise OverflowError(f"batch already holds {self._target_fill} {info.name} components")
        archetype.put_dynamic(info.id, filled, value)
        self._fill[info.id] = filled + 1

    def build(self) -> ColumnBatch:
        """Finish the batch; raise :class:`BatchIncomplete` if any components are missing."""
        archetype = self._live_archetype()
        self.archetype = None
        if any(self._fill.get(info.id, 0) != self._target_fill for info in archetype.types):
            raise BatchIncomplete()
        archetype.set_len(self._target_fill)
        return ColumnBatch(archetype)


class BatchWriter:
    """Handle for appending components of one type to a batch."""

    def __init__(self, builder: ColumnBatchBuilder, info: TypeInfo) -> None:
        self._builder = builder
        self._info = info

    def push(self, x: Any) -> None:
        """Add a component; raise OverflowError if the batch has no room left."""
        self._builder._push(self._info, x)

    @property
    def fill(self) -> int:
        """How many components have been added so far."""
        return self._builder.fill_of(self._info.id)


@dataclass
class ColumnBatch:
    """A complete collection of component data for entities of one shape."""

    archetype: Archetype