"""Allocation of entity ids, including lock-free-style reservation ahead of a flush."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace

from archecs.entity import Entity, NoSuchEntity

_U32_MAX = 0xFFFF_FFFF


@dataclass
class Location:
    """Where an entity's components live: an archetype and a row within it."""

    archetype: int = 0
    index: int = _U32_MAX


@dataclass
class EntityMeta:
    """Current generation and location of one entity id."""

    generation: int = 1
    location: Location = field(default_factory=Location)


@dataclass
class AllocManyState:
    """Progress through the ids handed out by :meth:`Entities.alloc_many`."""

    pending_end: int
    fresh: range

    def next(self, entities: Entities) -> int | None:
        """Return the next allocated id, or ``None`` when all have been taken."""
        if self.pending_end < len(entities.pending):
            id = entities.pending[self.pending_end]
            self.pending_end += 1
            return id
        if self.fresh:
            id = self.fresh.start
            self.fresh = self.fresh[1:]
            return id
        return None

    def remaining(self, entities: Entities) -> int:
        """Number of ids not yet returned by :meth:`next`."""
        return len(self.fresh) + (len(entities.pending) - self.pending_end)


def _check_id(id: int) -> int:
    if id > _U32_MAX:
        raise OverflowError("too many entities")
    return id


class Entities:
    """Registry of entity ids, their generations and locations.

    Freed ids wait on a freelist and are preferred over brand-new ids.
    Ids may be reserved without mutating the metadata; :meth:`flush` then
    makes them fully allocated.
    """

    def __init__(self) -> None:
        self._meta: list[EntityMeta] = []
        # pending[:free_cursor] is the freelist, pending[free_cursor:] is reserved.
        # A negative free_cursor counts fresh ids reserved past the end of meta.
        self._pending: list[int] = []
        self._free_cursor = 0
        self._len = 0
        self._lock = threading.Lock()

    @property
    def meta(self) -> list[EntityMeta]:
        """Per-id metadata, indexed by entity id."""
        return self._meta

    @property
    def pending(self) -> list[int]:
        """Freed ids, followed by ids reserved from the freelist."""
        return self._pending

    @property
    def free_cursor(self) -> int:
        """Boundary between freelist and reserved ids; negative once fresh ids are reserved."""
        return self._free_cursor

    def __len__(self) -> int:
        return self._len

    def _take_cursor(self, count: int) -> int:
        with self._lock:
            previous = self._free_cursor
            self._free_cursor -= count
            return previous

    def reserve_entities(self, count: int) -> Iterator[Entity]:
        """Reserve ``count`` ids; storage for them is made by :meth:`flush`."""
        range_end = self._take_cursor(count)
        range_start = range_end - count

        reserved = [
            Entity(generation=self._meta[id].generation, id=id)
            for id in self._pending[max(range_start, 0) : max(range_end, 0)]
        ]
        if range_start < 0:
            base = len(self._meta)
            new_id_end = _check_id(base - range_start)
            new_id_start = base - min(range_end, 0)
            reserved.extend(Entity(generation=1, id=id) for id in range(new_id_start, new_id_end))
        return iter(reserved)

    def reserve_entity(self) -> Entity:
        """Reserve one id; equivalent to taking one item from :meth:`reserve_entities`."""
        n = self._take_cursor(1)
        if n > 0:
            id = self._pending[n - 1]
            return Entity(generation=self._meta[id].generation, id=id)
        return Entity(generation=1, id=_check_id(len(self._meta) - n))

    def needs_flush(self) -> bool:
        """Whether reserved ids are waiting for :meth:`flush`."""
        return self._free_cursor != len(self._pending)

    def _verify_flushed(self) -> None:
        if self.needs_flush():
            raise RuntimeError("flush() needs to be called before this operation is legal")

    def alloc(self) -> Entity:
        """Allocate an id directly; its location should be written immediately."""
        self._verify_flushed()
        if self._pending:
            id = self._pending.pop()
            self._free_cursor = len(self._pending)
            self._len += 1
            return Entity(generation=self._meta[id].generation, id=id)
        id = _check_id(len(self._meta))
        self._meta.append(EntityMeta())
        self._len += 1
        return Entity(generation=1, id=id)

    def alloc_many(self, n: int, archetype: int, first_index: int) -> AllocManyState:
        """Allocate ``n`` ids laid out contiguously in ``archetype`` from ``first_index``.

        :meth:`finish_alloc_many` must be called afterwards.
        """
        self._verify_flushed()
        fresh = max(n - len(self._pending), 0)
        if len(self._meta) + fresh >= _U32_MAX:
            raise OverflowError("too many entities")
        pending_end = max(len(self._pending) - n, 0)
        for id in self._pending[pending_end:]:
            self._meta[id].location = Location(archetype, first_index)
            first_index += 1

        fresh_start = len(self._meta)
        self._meta.extend(
            EntityMeta(generation=1, location=Location(archetype, index))
            for index in range(first_index, first_index + fresh)
        )
        self._len += n
        return AllocManyState(pending_end=pending_end, fresh=range(fresh_start, fresh_start + fresh))

    def finish_alloc_many(self, pending_end: int) -> None:
        """Drop the ids used by :meth:`alloc_many` from the freelist."""
        del self._pending[pending_end:]

    def alloc_at(self, entity: Entity) -> Location | None:
        """Allocate a specific id, overwriting its generation.

        Returns the location of the entity that was using the id, if any.
        """
        self._verify_flushed()
        location: Location | None = None
        if entity.id >= len(self._meta):
            self._pending.extend(range(len(self._meta), entity.id))
            self._free_cursor = len(self._pending)
            self._meta.extend(EntityMeta() for _ in range(entity.id + 1 - len(self._meta)))
            self._len += 1
        elif entity.id in self._pending:
            position = self._pending.index(entity.id)
            last = self._pending.pop()
            if position < len(self._pending):
                self._pending[position] = last
            self._free_cursor = len(self._pending)
            self._len += 1
        else:
            meta = self._meta[entity.id]
            location, meta.location = meta.location, Location()

        self._meta[entity.id].generation = entity.generation
        return location

    def free(self, entity: Entity) -> Location:
        """Destroy an entity so its id can be reused; return its last location."""
        self._verify_flushed()
        if entity.id >= len(self._meta):
            raise NoSuchEntity()
        meta = self._meta[entity.id]
        if meta.generation != entity.generation:
            raise NoSuchEntity()

        meta.generation = meta.generation + 1 if meta.generation < _U32_MAX else 1
        location, meta.location = meta.location, Location()

        self._pending.append(entity.id)
        self._free_cursor = len(self._pending)
        self._len -= 1
        return location

    def reserve(self, additional: int) -> None:
        """Prepare for ``additional`` allocations; storage here grows on demand."""
        self._verify_flushed()

    def contains(self, entity: Entity) -> bool:
        """Whether ``entity`` is live; unflushed reserved ids count as live."""
        if entity.id >= len(self._meta):
            return True
        return self._meta[entity.id].generation == entity.generation

    def clear(self) -> None:
        """Forget every entity."""
        self._meta.clear()
        self._pending.clear()
        self._free_cursor = 0
        self._len = 0

    def get_mut(self, entity: Entity) -> Location:
        """The mutable location record of a live entity."""
        if entity.id >= len(self._meta):
            raise NoSuchEntity()
        meta = self._meta[entity.id]
        if meta.generation != entity.generation:
            raise NoSuchEntity()
        return meta.location

    def get(self, entity: Entity) -> Location:
        """A copy of the entity's location; pending ids report archetype 0."""
        if entity.id >= len(self._meta):
            return Location(archetype=0, index=_U32_MAX)
        meta = self._meta[entity.id]
        if meta.generation != entity.generation:
            raise NoSuchEntity()
        return replace(meta.location)

    def resolve_unknown_gen(self, id: int) -> Entity:
        """The handle currently using ``id``, which must be allocated or reserved."""
        if id < len(self._meta):
            return Entity(generation=self._meta[id].generation, id=id)
        num_pending = max(-self._free_cursor, 0)
        if id < len(self._meta) + num_pending:
            return Entity(generation=1, id=id)
        raise IndexError("entity id is out of range")

    def flush(self, init: Callable[[int, Location], None]) -> None:
        """Allocate storage for reserved ids, calling ``init(id, location)`` for each."""
        free_cursor = self._free_cursor
        if free_cursor >= 0:
            new_free_cursor = free_cursor
        else:
            old_meta_len = len(self._meta)
            self._meta.extend(EntityMeta() for _ in range(-free_cursor))
            self._len += -free_cursor
            for id in range(old_meta_len, len(self._meta)):
                init(id, self._meta[id].location)
            self._free_cursor = 0
            new_free_cursor = 0

        drained = self._pending[new_free_cursor:]
        del self._pending[new_free_cursor:]
        self._len += len(drained)
        for id in drained:
            init(id, self._meta[id].location)