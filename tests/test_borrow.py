import pytest

from archecs.borrow import COUNTER_MASK, UNIQUE_BIT, AtomicBorrow


def test_borrow_counter_overflow():
    counter = AtomicBorrow(COUNTER_MASK)
    with pytest.raises(OverflowError, match="immutable borrow counter overflowed"):
        counter.borrow()


def test_mut_borrow_counter_overflow():
    counter = AtomicBorrow(COUNTER_MASK | UNIQUE_BIT)
    with pytest.raises(OverflowError, match="immutable borrow counter overflowed"):
        counter.borrow()


def test_borrow():
    counter = AtomicBorrow()
    assert counter.borrow()
    assert counter.borrow()
    assert not counter.borrow_mut()
    counter.release()
    counter.release()

    assert counter.borrow_mut()
    assert not counter.borrow()
    counter.release_mut()
    assert counter.borrow()


def test_failed_shared_borrow_rolls_back():
    counter = AtomicBorrow()
    assert counter.borrow_mut()
    assert not counter.borrow()
    assert counter.value == UNIQUE_BIT


def test_unique_borrow_exclusive():
    counter = AtomicBorrow()
    assert counter.borrow_mut()
    assert not counter.borrow_mut()
    counter.release_mut()
    assert counter.value == 0


def test_unbalanced_release():
    counter = AtomicBorrow()
    with pytest.raises(RuntimeError, match="unbalanced release"):
        counter.release()


def test_shared_release_of_unique_borrow():
    counter = AtomicBorrow()
    counter.borrow_mut()
    with pytest.raises(RuntimeError, match="shared release of unique borrow"):
        counter.release()


def test_unique_release_of_shared_borrow():
    counter = AtomicBorrow()
    counter.borrow()
    with pytest.raises(RuntimeError, match="unique release of shared borrow"):
        counter.release_mut()