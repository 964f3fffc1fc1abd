import copy
import re

import pytest

from archecs.archetype import Archetype, ColumnRef, TypeInfo


def make_archetype(*types):
    return Archetype(sorted(TypeInfo.of(t) for t in types))


def spawn(arch, entity_id, values):
    index = arch.allocate(entity_id)
    for component_type, value in values.items():
        arch.put_dynamic(component_type, index, value)
    return index


def test_type_info_equality_and_hash():
    assert TypeInfo.of(int) == TypeInfo.of(int)
    assert TypeInfo.of(int) != TypeInfo.of(str)
    assert hash(TypeInfo.of(int)) == hash(TypeInfo.of(int))
    assert TypeInfo.of(int).name == "int"


def test_type_info_total_order():
    a, b = TypeInfo.of(int), TypeInfo.of(str)
    assert (a < b) != (b < a)
    assert sorted([a, b]) == sorted([b, a])


def test_duplicate_components_rejected():
    expected = (
        "attempted to allocate entity with duplicate int components; "
        "each type must occur at most once!"
    )
    with pytest.raises(ValueError, match=re.escape(expected)):
        Archetype([TypeInfo.of(int), TypeInfo.of(int)])


def test_unsorted_types_rejected():
    ordered = sorted([TypeInfo.of(int), TypeInfo.of(str)])
    with pytest.raises(ValueError, match="type info is unsorted"):
        Archetype(list(reversed(ordered)))


def test_allocate_and_access():
    arch = make_archetype(int, str)
    index = spawn(arch, 7, {int: 123, str: "abc"})
    assert index == 0
    assert len(arch) == 1
    assert not arch.is_empty()
    assert arch.ids() == [7]
    assert arch.entity_id(0) == 7
    assert arch.get_dynamic(int, 0) == 123
    assert arch.get_dynamic(str, 0) == "abc"


def test_first_allocation_grows_by_64():
    arch = make_archetype(int)
    assert arch.capacity == 0
    arch.allocate(0)
    assert arch.capacity == 64


def test_reserve_makes_room():
    arch = make_archetype(int)
    arch.allocate(0)
    arch.reserve(200)
    assert arch.capacity - len(arch) >= 200


def test_remove_swaps_last_into_place():
    arch = make_archetype(int)
    for entity_id, value in [(1, 10), (2, 20), (3, 30)]:
        spawn(arch, entity_id, {int: value})
    assert arch.remove(0) == 3
    assert arch.ids() == [3, 2]
    assert arch.get_dynamic(int, 0) == 30
    assert arch.remove(1) is None
    assert arch.ids() == [3]
    with pytest.raises(IndexError):
        arch.remove(5)


def test_move_to_hands_out_components():
    arch = make_archetype(int, str)
    spawn(arch, 1, {int: 10, str: "a"})
    spawn(arch, 2, {int: 20, str: "b"})
    seen = {}
    moved = arch.move_to(0, lambda value, ty: seen.__setitem__(ty, value))
    assert seen == {int: 10, str: "a"}
    assert moved == 2
    assert arch.get_dynamic(str, 0) == "b"
    assert len(arch) == 1


def test_merge_appends_columns():
    dst = make_archetype(int)
    src = make_archetype(int)
    spawn(dst, 1, {int: 10})
    spawn(src, 2, {int: 20})
    spawn(src, 3, {int: 30})
    dst.merge(src)
    assert len(dst) == 3
    assert len(src) == 0
    assert [dst.get_dynamic(int, i) for i in range(3)] == [10, 20, 30]
    assert dst.entity_id(0) == 1


def test_merge_rejects_mismatched_types():
    with pytest.raises(ValueError):
        make_archetype(int).merge(make_archetype(str))


def test_column_access_and_borrow_release():
    arch = make_archetype(int)
    spawn(arch, 1, {int: 456})
    spawn(arch, 2, {int: 789})
    with arch.get(int) as column:
        assert isinstance(column, ColumnRef)
        assert column == [456, 789]
        assert column[-1] == 789
        with pytest.raises(RuntimeError, match="already borrowed"):
            arch.borrow_mut(int)
    arch.borrow_mut(int)
    arch.release_mut(int)
    assert arch.get(bool) is None


def test_borrow_conflicts():
    arch = make_archetype(int)
    arch.borrow(int)
    with pytest.raises(RuntimeError, match="already borrowed"):
        arch.borrow_mut(int)
    arch.release(int)
    arch.borrow_mut(int)
    with pytest.raises(RuntimeError, match="already borrowed uniquely"):
        arch.borrow(int)
    arch.release_mut(int)


def test_copied_column_keeps_borrow():
    arch = make_archetype(int)
    spawn(arch, 1, {int: 5})
    column = arch.get(int)
    clone = copy.copy(column)
    column.release()
    with pytest.raises(RuntimeError):
        arch.borrow_mut(int)
    clone.release()
    arch.borrow_mut(int)
    arch.release_mut(int)
    assert list(clone) == [5]


def test_clear_empties_archetype():
    arch = make_archetype(int, str)
    spawn(arch, 1, {int: 1, str: "x"})
    arch.clear()
    assert len(arch) == 0
    assert arch.is_empty()
    assert arch.ids() == []


def test_has_and_component_types():
    arch = make_archetype(int, str)
    assert arch.has(int)
    assert not arch.has(bool)
    assert set(arch.component_types()) == {int, str}


def test_missing_type_access_raises_key_error():
    arch = make_archetype(int)
    spawn(arch, 1, {int: 1})
    with pytest.raises(KeyError):
        arch.get_dynamic(str, 0)
    with pytest.raises(KeyError):
        arch.put_dynamic(str, 0, "x")