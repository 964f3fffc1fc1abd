# archecs

Storage building blocks for an archetype-based entity-component system (ECS).
Entities are lightweight handles. Components are plain Python objects keyed by
their type. Entities with exactly the same set of component types share one
`Archetype`, which keeps each component type in its own column.

## Installation

```
pip install archecs
```

To run the test suite, install the `test` extra:

```
pip install "archecs[test]"
pytest
```

## Modules

- `archecs.entity` holds `Entity`, a frozen handle made of a `generation` and
  an `id`. `to_bits()` packs it into one 64-bit integer and `Entity.from_bits()`
  unpacks it, giving `None` when the generation bits are zero. The module also
  holds `NoSuchEntity`, a `LookupError` raised for stale or unknown handles.
- `archecs.entities` holds `Entities`, the id allocator. Freed ids go on a
  freelist and come back with their generation bumped. Ids can be reserved ahead
  of time with `reserve_entity()` or `reserve_entities(count)`. `flush(init)`
  then gives them storage and calls `init(id, location)` for each one. Other
  operations raise `RuntimeError` while a flush is still due. `alloc_many` and
  `finish_alloc_many` allocate a contiguous run of ids. `alloc_at` claims one
  particular id. `Location` and `EntityMeta` record where each id lives.
- `archecs.borrow` holds `AtomicBorrow`. It enforces the borrow rules at run
  time: many shared borrows, or one unique borrow. Its counter is guarded by a
  lock.
- `archecs.archetype` holds `TypeInfo`, `Archetype` and `ColumnRef`.
  - `TypeInfo` describes one component type.
  - `Archetype` stores rows. It provides `allocate`, `put_dynamic`,
    `get_dynamic`, `remove`, `move_to` and `merge`, plus per-column borrowing.
    It raises `ValueError` when a type appears twice, with the message
    "attempted to allocate entity with duplicate ... components".
  - `ColumnRef` is a shared, read-only view of one column. It works as a
    context manager.
- `archecs.bundle` treats a tuple of values, or a class that declares
  `__bundle_fields__`, as a set of components. It provides `type_info`,
  `components`, `bundle_key`, `static_type_info` and `build_bundle`. It also
  holds `MissingComponent`.
- `archecs.batch` builds component data column by column with
  `ColumnBatchType`, `ColumnBatchBuilder`, `BatchWriter` and `ColumnBatch`.
  `build()` raises `BatchIncomplete` when a column is short. `push` raises
  `OverflowError` once a column is full.
- `archecs.entity_ref` provides `EntityRef`, a handle to a single stored entity.
  Its `Ref` and `RefMut` borrow one component each and expose it as `.value`.
  `RefMut.value` can be assigned.

## Examples

Allocating and recycling ids:

```python
from archecs.entities import Entities

entities = Entities()
a = entities.alloc()
entities.free(a)
b = entities.alloc()
assert b.id == a.id and b.generation == 2
assert not entities.contains(a)
```

Storing a row and borrowing a component:

```python
from archecs.archetype import Archetype, TypeInfo
from archecs.entity import Entity
from archecs.entity_ref import EntityRef

arch = Archetype(sorted([TypeInfo.of(int), TypeInfo.of(str)]))
row = arch.allocate(0)
arch.put_dynamic(int, row, 123)
arch.put_dynamic(str, row, "abc")

ref = EntityRef(arch, Entity(generation=1, id=0), row)
with ref.get_mut(int) as number:
    number.value *= 2
with ref.get(int) as number:
    assert number.value == 246
```

Filling a column batch:

```python
from archecs.batch import ColumnBatchType

builder = ColumnBatchType().add(int).add(bool).into_batch(2)
ints = builder.writer(int)
ints.push(42)
ints.push(43)
flags = builder.writer(bool)
flags.push(True)
flags.push(False)
batch = builder.build()
with batch.archetype.get(int) as column:
    assert column == [42, 43]
```

Rebuilding a bundle from stored values:

```python
from archecs.bundle import MissingComponent, build_bundle

values = {int: 7, str: "x"}
assert build_bundle((int, str), lambda info: values[info.id]) == (7, "x")
try:
    build_bundle((bool,), lambda info: values[info.id])
except MissingComponent as err:
    print(err)  # missing bool component
```

## What this package does not do

There is no world object. Nothing here spawns entities from bundles, moves
them between archetypes, or runs queries over many archetypes at once. The
pieces above are the storage layer such a world would be built on, and the
caller puts them together.

The package has no incremental entity builder and no class decorator for
declaring bundles. To make a bundle class, set `__bundle_fields__` by hand to a
sequence of `(attribute name, component type)` pairs.

It has no command-line interface.