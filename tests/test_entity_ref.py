import copy

import pytest

from archecs.archetype import Archetype, TypeInfo
from archecs.bundle import MissingComponent
from archecs.entity import Entity
from archecs.entity_ref import EntityRef, Ref, RefMut

ROWS = [(123, "abc"), (456, "def")]


@pytest.fixture
def archetype():
    arch = Archetype(sorted([TypeInfo.of(int), TypeInfo.of(str)]))
    for id, (number, text) in enumerate(ROWS):
        index = arch.allocate(id)
        arch.put_dynamic(int, index, number)
        arch.put_dynamic(str, index, text)
    return arch


def _ref(arch, index):
    return EntityRef(arch, Entity(generation=1, id=index), index)


def test_entity_handle(archetype):
    e = Entity(generation=1, id=0)
    assert EntityRef(archetype, e, 0).entity == e


def test_get_reads_component(archetype):
    first = _ref(archetype, 0).get(int)
    second = _ref(archetype, 1).get(str)
    assert first.value == ROWS[0][0]
    assert second.value == ROWS[1][1]


def test_get_missing_component(archetype):
    entity = _ref(archetype, 0)
    assert entity.get(bool) is None
    assert entity.get_mut(bool) is None
    assert not entity.has(bool)
    assert entity.has(int)


def test_unique_borrow_blocks_shared(archetype):
    held = _ref(archetype, 0).get_mut(int)
    with pytest.raises(RuntimeError, match="already borrowed"):
        _ref(archetype, 0).get(int)
    held.release()
    assert _ref(archetype, 0).get(int).value == ROWS[0][0]


def test_shared_borrow_blocks_unique(archetype):
    held = _ref(archetype, 1).get(int)
    with pytest.raises(RuntimeError, match="already borrowed"):
        _ref(archetype, 0).get_mut(int)
    other = _ref(archetype, 0).get(int)
    assert other.value == ROWS[0][0]
    held.release()


def test_ref_mut_writes(archetype):
    with _ref(archetype, 1).get_mut(int) as number:
        number.value = 42
    with _ref(archetype, 1).get(int) as number:
        assert number.value == 42


def test_context_manager_releases(archetype):
    with _ref(archetype, 0).get(str) as text:
        assert text.value == ROWS[0][1]
    with _ref(archetype, 0).get_mut(str) as text:
        assert text.value == ROWS[0][1]


def test_copied_ref_holds_its_own_borrow(archetype):
    original = _ref(archetype, 0).get(int)
    duplicate = copy.copy(original)
    original.release()
    with pytest.raises(RuntimeError):
        _ref(archetype, 0).get_mut(int)
    duplicate.release()
    assert _ref(archetype, 0).get_mut(int).value == ROWS[0][0]


def test_released_ref_cannot_be_read(archetype):
    ref = _ref(archetype, 0).get(int)
    assert ref.value == ROWS[0][0]
    ref.release()
    ref.release()
    with pytest.raises(RuntimeError, match="released"):
        _ = ref.value
    assert repr(ref) == "Ref(released)"


def test_direct_construction_missing_component(archetype):
    with pytest.raises(MissingComponent):
        Ref(archetype, 0, bool)
    with pytest.raises(MissingComponent):
        RefMut(archetype, 0, bool)


def test_component_types_and_len(archetype):
    entity = _ref(archetype, 0)
    assert set(entity.component_types()) == {int, str}
    assert len(entity) == 2
    assert not entity.is_empty()


def test_empty_entity_ref():
    arch = Archetype([])
    index = arch.allocate(0)
    e = Entity(generation=1, id=0)
    r = EntityRef(arch, e, index)
    assert r.entity == e
    assert r.is_empty()
    assert list(r.component_types()) == []