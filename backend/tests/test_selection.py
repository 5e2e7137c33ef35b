import random
from collections import Counter
from itertools import combinations
from types import SimpleNamespace

import pytest

from classroom.errors import (
    InsufficientCandidates, InvalidArgument, NoStudentsAvailable
)
from classroom.services.selection import (
    apply_fallback, pick_one, pick_pair, resolve_eligible
)

from conftest import OWNER, OTHER_OWNER


def _pool(n):
    return [SimpleNamespace(id="s{}".format(i)) for i in range(n)]


def test_pick_one_is_uniform():
    pool = _pool(5)
    rng = random.Random(1234)
    trials = 20000
    counts = Counter(pick_one(pool, rng).id for _ in range(trials))

    assert set(counts) == {s.id for s in pool}
    for count in counts.values():
        assert abs(count / trials - 0.2) < 0.02


def test_pick_one_rejects_empty_pool():
    with pytest.raises(NoStudentsAvailable):
        pick_one([])


def test_pick_pair_is_distinct_and_covers_every_pair():
    pool = _pool(5)
    rng = random.Random(99)
    trials = 20000
    counts = Counter()
    for _ in range(trials):
        first, second = pick_pair(pool, rng)
        assert first.id != second.id
        counts[frozenset((first.id, second.id))] += 1

    expected_pairs = {frozenset((a.id, b.id)) for a, b in combinations(pool, 2)}
    assert set(counts) == expected_pairs
    for count in counts.values():
        assert abs(count / trials - 0.1) < 0.02


def test_pick_pair_does_not_mutate_pool():
    pool = _pool(4)
    before = [s.id for s in pool]
    pick_pair(pool, random.Random(7))
    assert [s.id for s in pool] == before


def test_pick_pair_requires_two_distinct_students():
    with pytest.raises(InsufficientCandidates):
        pick_pair(_pool(1))
    same = SimpleNamespace(id="dup")
    with pytest.raises(InsufficientCandidates):
        pick_pair([same, same])


def test_fallback_keeps_eligible_when_non_empty():
    eligible, base = _pool(2), _pool(4)
    pool, reset = apply_fallback(eligible, base)
    assert pool == eligible
    assert reset is False


def test_fallback_widens_to_base_when_everyone_excluded():
    base = _pool(3)
    pool, reset = apply_fallback([], base)
    assert [s.id for s in pool] == [s.id for s in base]
    assert reset is True


def test_fallback_fails_without_any_student():
    with pytest.raises(NoStudentsAvailable):
        apply_fallback([], [])


def test_resolve_eligible_subtracts_recent_calls(db, make_students, add_call):
    students = make_students(4)
    add_call(students[0], hours_ago=1)
    add_call(students[0], hours_ago=2)
    add_call(students[1], hours_ago=30)

    result = resolve_eligible(db, OWNER, 24)

    assert {s.id for s in result.eligible} == {s.id for s in students[1:]}
    assert result.excluded_count == 1
    assert result.total_active == 4
    assert len(result.eligible) == len({s.id for s in result.eligible})


def test_resolve_eligible_window_zero_disables_avoidance(db, make_students, add_call):
    students = make_students(3)
    add_call(students[0], hours_ago=0)

    result = resolve_eligible(db, OWNER, 0)

    assert len(result.eligible) == 3
    assert result.excluded_count == 0


def test_resolve_eligible_ignores_archived_and_other_owners(db, make_students, add_call):
    mine = make_students(2)
    make_students(2, archived=True)
    theirs = make_students(3, owner_id=OTHER_OWNER)
    add_call(theirs[0], hours_ago=1, owner_id=OTHER_OWNER)

    result = resolve_eligible(db, OWNER, 24)

    assert {s.id for s in result.eligible} == {s.id for s in mine}
    assert result.total_active == 2
    assert result.excluded_count == 0


def test_resolve_eligible_manual_exclusions(db, make_students):
    students = make_students(3)

    result = resolve_eligible(db, OWNER, 24, exclude_ids=[students[2].id])

    assert {s.id for s in result.eligible} == {students[0].id, students[1].id}
    assert {s.id for s in result.base} == {students[0].id, students[1].id}
    assert result.excluded_count == 0


def test_resolve_eligible_without_active_students(db, make_students):
    make_students(2, archived=True)
    with pytest.raises(NoStudentsAvailable):
        resolve_eligible(db, OWNER, 24)


@pytest.mark.parametrize("owner_id, hours", [
    ("", 24),
    ("   ", 24),
    (None, 24),
    (OWNER, -1),
    (OWNER, 1.5),
    (OWNER, True),
])
def test_resolve_eligible_rejects_bad_arguments(db, owner_id, hours):
    with pytest.raises(InvalidArgument):
        resolve_eligible(db, owner_id, hours)
