import pytest

from flight_schedules import NIL, Membership, SchedulePool


def _activate(pool: SchedulePool, *names: str):
    refs = []
    for name in names:
        ref = pool.allocate()
        assert ref is not None
        pool.record(ref).destination = name
        refs.append(ref)
    return refs


def test_initialize_puts_every_slot_on_free_list_in_order():
    pool = SchedulePool(4)
    assert list(pool.free_refs()) == [0, 1, 2, 3]
    assert list(pool.active_refs()) == []
    assert pool.free_count == 4
    assert pool.active_count == 0
    pool.check_invariants()


def test_empty_pool_is_valid_and_never_allocates():
    pool = SchedulePool(0)
    assert pool.capacity == 0
    assert pool.allocate() is None
    assert pool.list_active() == []
    pool.check_invariants()


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        SchedulePool(-1)


def test_allocate_pops_free_head_and_pushes_active_head():
    pool = SchedulePool(3)
    first = pool.allocate()
    assert first == 0
    assert list(pool.free_refs()) == [1, 2]
    assert list(pool.active_refs()) == [0]

    pool.record(first).destination = "Rome"
    second = pool.allocate()
    assert second == 1
    assert list(pool.active_refs()) == [1, 0]
    assert pool.record(second).next == 0
    assert pool.record(first).prev == 1
    pool.record(second).destination = "Paris"
    pool.check_invariants()


def test_allocate_last_free_slot_empties_free_list():
    pool = SchedulePool(2)
    _activate(pool, "Rome", "Paris")
    assert list(pool.free_refs()) == []
    assert pool.allocate() is None
    assert pool.list_active() == ["Paris", "Rome"]
    pool.check_invariants()


def test_allocate_single_slot_pool():
    pool = SchedulePool(1)
    (ref,) = _activate(pool, "Rome")
    assert pool.record(ref).prev == NIL
    assert pool.record(ref).next == NIL
    assert pool.allocate() is None
    pool.check_invariants()


def test_list_active_is_most_recent_first():
    pool = SchedulePool(5)
    _activate(pool, "Rome", "Paris", "Oslo")
    assert pool.list_active() == ["Oslo", "Paris", "Rome"]


def test_release_sole_active_element():
    pool = SchedulePool(2)
    (ref,) = _activate(pool, "Rome")
    pool.release(ref)
    assert pool.list_active() == []
    assert list(pool.free_refs()) == [ref, 1]
    pool.check_invariants()


def test_release_sole_element_when_free_list_is_empty():
    pool = SchedulePool(1)
    (ref,) = _activate(pool, "Rome")
    pool.release(ref)
    assert list(pool.free_refs()) == [ref]
    assert pool.active_count == 0
    pool.check_invariants()


def test_release_head_of_active_list():
    pool = SchedulePool(3)
    rome, paris, oslo = _activate(pool, "Rome", "Paris", "Oslo")
    pool.release(oslo)
    assert pool.list_active() == ["Paris", "Rome"]
    assert pool.record(paris).prev == NIL
    assert list(pool.free_refs()) == [oslo]
    pool.check_invariants()


def test_release_tail_of_active_list():
    pool = SchedulePool(3)
    rome, paris, oslo = _activate(pool, "Rome", "Paris", "Oslo")
    pool.release(rome)
    assert pool.list_active() == ["Oslo", "Paris"]
    assert pool.record(paris).next == NIL
    pool.check_invariants()


def test_release_interior_of_active_list():
    pool = SchedulePool(4)
    rome, paris, oslo = _activate(pool, "Rome", "Paris", "Oslo")
    pool.release(paris)
    assert pool.list_active() == ["Oslo", "Rome"]
    assert pool.record(oslo).next == rome
    assert pool.record(rome).prev == oslo
    assert list(pool.free_refs()) == [paris, 3]
    pool.check_invariants()


def test_release_none_is_noop():
    pool = SchedulePool(2)
    _activate(pool, "Rome")
    pool.release(None)
    assert pool.list_active() == ["Rome"]
    assert pool.free_count == 1


def test_release_free_slot_is_an_error():
    pool = SchedulePool(2)
    with pytest.raises(ValueError):
        pool.release(0)
    pool.check_invariants()


def test_record_out_of_range():
    pool = SchedulePool(2)
    with pytest.raises(IndexError):
        pool.record(2)
    with pytest.raises(IndexError):
        pool.record(-1)


def test_most_recently_released_is_next_allocated():
    pool = SchedulePool(4)
    rome, paris, oslo = _activate(pool, "Rome", "Paris", "Oslo")
    pool.release(rome)
    pool.release(oslo)
    assert pool.allocate() == oslo
    assert pool.allocate() == rome
    assert pool.allocate() == 3


def test_released_slot_comes_back_reset():
    pool = SchedulePool(2)
    (ref,) = _activate(pool, "Rome")
    pool.record(ref).add_flight(600, 10)
    pool.release(ref)

    rec = pool.record(ref)
    assert rec.is_empty
    assert rec.membership == Membership.FREE

    again = pool.allocate()
    assert again == ref
    assert pool.record(again).is_empty
    assert pool.record(again).membership == Membership.ACTIVE


def test_allocate_release_round_trip_restores_sizes():
    pool = SchedulePool(3)
    _activate(pool, "Rome")
    before = (pool.free_count, pool.active_count)
    ref = pool.allocate()
    pool.release(ref)
    assert (pool.free_count, pool.active_count) == before


def test_find_active_exact_and_case_sensitive():
    pool = SchedulePool(3)
    rome, paris = _activate(pool, "Rome", "Paris")
    assert pool.find_active("Rome") == rome
    assert pool.find_active("Paris") == paris
    assert pool.find_active("rome") is None
    assert pool.find_active("Rom") is None


def test_find_active_ignores_free_slots():
    pool = SchedulePool(2)
    (ref,) = _activate(pool, "Rome")
    pool.release(ref)
    assert pool.find_active("Rome") is None
    assert pool.find_active("") is None


def test_partition_holds_through_mixed_cycles():
    pool = SchedulePool(5)
    names = ["A%d" % i for i in range(12)]
    live = {}
    for i, name in enumerate(names):
        if pool.free_count == 0 or i % 3 == 2:
            victim = sorted(live)[len(live) // 2]
            pool.release(live.pop(victim))
        ref = pool.allocate()
        pool.record(ref).destination = name
        live[name] = ref
        assert pool.free_count + pool.active_count == pool.capacity
        pool.check_invariants()
    assert sorted(pool.list_active()) == sorted(live)


def test_reset_returns_everything_to_free():
    pool = SchedulePool(3)
    _activate(pool, "Rome", "Paris")
    pool.reset()
    assert list(pool.free_refs()) == [0, 1, 2]
    assert pool.list_active() == []
    pool.check_invariants()


def test_check_invariants_detects_broken_link():
    pool = SchedulePool(3)
    _activate(pool, "Rome", "Paris")
    pool.record(0).prev = 2
    with pytest.raises(AssertionError):
        pool.check_invariants()


def test_check_invariants_detects_duplicate_destination():
    pool = SchedulePool(3)
    _activate(pool, "Rome", "Rome")
    with pytest.raises(AssertionError):
        pool.check_invariants()
