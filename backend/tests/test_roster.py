import pytest

from conftest import T0
from volleyqueue import db
from volleyqueue.models import RosterEntry
from volleyqueue.services.rotation import engine, roster, store
from volleyqueue.services.rotation.errors import (
    InvalidInput, NotFound, NotYourTurn, QuotaExceeded, TurnExpired, Unauthorized,
)


@pytest.fixture()
def seeded(make_users):
    ids = make_users('admin', 'ana', 'bia')
    engine.ensure_seeded(T0)
    return ids


def _fill_confirmed(count, marked_by):
    for i in range(count):
        db.session.add(RosterEntry(
            player_name=f'Player {i + 1}', skill_level='beginner',
            marked_by=marked_by, position=i + 1, is_waiting=False,
        ))
    db.session.commit()


def test_active_member_marks_confirmed_name(seeded):
    admin_id = seeded[0]
    entry = roster.mark_name(admin_id, '  Ana Silva  ', 'Intermediate', now=T0 + 2)
    assert entry.player_name == 'Ana Silva'
    assert entry.skill_level == 'intermediate'
    assert entry.position == 1
    assert entry.is_waiting is False
    assert entry.marked_by == admin_id
    assert store.load_snapshot().marks_used == 1


def test_marking_does_not_advance_the_turn(seeded):
    admin_id = seeded[0]
    roster.mark_name(admin_id, 'A', 'beginner', now=T0 + 1)
    roster.mark_name(admin_id, 'B', 'beginner', now=T0 + 2)
    snapshot = store.load_snapshot()
    assert snapshot.active_member_id == admin_id
    assert snapshot.marks_used == 2


def test_other_member_cannot_mark(seeded):
    with pytest.raises(NotYourTurn):
        roster.mark_name(seeded[1], 'Bia', 'beginner', now=T0 + 2)
    assert RosterEntry.query.count() == 0


def test_mark_after_window_is_rejected_before_advance(seeded):
    with pytest.raises(TurnExpired):
        roster.mark_name(seeded[0], 'Late', 'beginner', now=T0 + 60)
    assert RosterEntry.query.count() == 0
    assert store.load_snapshot().marks_used == 0


def test_quota_of_two_marks_per_turn(seeded):
    admin_id = seeded[0]
    roster.mark_name(admin_id, 'One', 'beginner', now=T0 + 1)
    roster.mark_name(admin_id, 'Two', 'beginner', now=T0 + 2)
    with pytest.raises(QuotaExceeded):
        roster.mark_name(admin_id, 'Three', 'beginner', now=T0 + 3)
    assert RosterEntry.query.count() == 2
    assert store.load_snapshot().marks_used == 2


@pytest.mark.parametrize('name,skill', [
    ('   ', 'beginner'),
    ('', 'beginner'),
    (None, 'beginner'),
    ('x' * 65, 'beginner'),
    ('Valid', 'expert'),
    ('Valid', None),
])
def test_invalid_input_leaves_state_untouched(seeded, name, skill):
    with pytest.raises(InvalidInput):
        roster.mark_name(seeded[0], name, skill, now=T0 + 1)
    assert RosterEntry.query.count() == 0
    assert store.load_snapshot().marks_used == 0


def test_thirteenth_name_goes_to_waiting_list(seeded):
    admin_id = seeded[0]
    _fill_confirmed(12, admin_id)

    entry = roster.mark_name(admin_id, 'Overflow', 'advanced', now=T0 + 1)
    assert entry.is_waiting is True
    assert entry.position == 1
    assert RosterEntry.query.filter_by(is_waiting=False).count() == 12

    second = roster.mark_name(admin_id, 'Overflow 2', 'advanced', now=T0 + 2)
    assert second.is_waiting is True
    assert second.position == 2


def test_quota_race_loses_to_concurrent_mark(seeded, monkeypatch):
    admin_id = seeded[0]
    roster.mark_name(admin_id, 'One', 'beginner', now=T0 + 1)
    # Both requests observed marks_used == 1
    stale = store.load_snapshot()
    roster.mark_name(admin_id, 'Two', 'beginner', now=T0 + 2)

    calls = {'n': 0}

    def loader():
        calls['n'] += 1
        return stale if calls['n'] == 1 else store.load_snapshot()

    monkeypatch.setattr(roster, 'load_snapshot', loader)
    with pytest.raises(QuotaExceeded):
        roster.mark_name(admin_id, 'Three', 'beginner', now=T0 + 3)
    assert RosterEntry.query.count() == 2
    assert store.load_snapshot().marks_used == 2


def test_mark_against_a_turn_that_moved_on(seeded, monkeypatch):
    admin_id = seeded[0]
    stale = store.load_snapshot()
    engine.complete_turn(admin_id, now=T0 + 5)

    calls = {'n': 0}

    def loader():
        calls['n'] += 1
        return stale if calls['n'] == 1 else store.load_snapshot()

    monkeypatch.setattr(roster, 'load_snapshot', loader)
    with pytest.raises(NotYourTurn):
        roster.mark_name(admin_id, 'Too late', 'beginner', now=T0 + 6)
    assert RosterEntry.query.count() == 0


def test_delete_own_entry_keeps_positions_and_turn(seeded):
    admin_id = seeded[0]
    first = roster.mark_name(admin_id, 'One', 'beginner', now=T0 + 1).id
    second = roster.mark_name(admin_id, 'Two', 'beginner', now=T0 + 2).id
    before = store.load_snapshot()

    roster.delete_entry(admin_id, first)

    assert store.load_snapshot() == before
    remaining = roster.list_entries()
    assert [e.id for e in remaining] == [second]
    assert remaining[0].position == 2


def test_delete_requires_ownership_unless_admin(seeded):
    admin_id, ana_id, bia_id = seeded
    engine.complete_turn(admin_id, now=T0 + 1)
    entry_id = roster.mark_name(ana_id, 'Ana', 'advanced', now=T0 + 2).id

    with pytest.raises(Unauthorized):
        roster.delete_entry(bia_id, entry_id)
    assert db.session.get(RosterEntry, entry_id) is not None

    roster.delete_entry(admin_id, entry_id)
    assert db.session.get(RosterEntry, entry_id) is None


def test_delete_missing_entry(seeded):
    with pytest.raises(NotFound):
        roster.delete_entry(seeded[0], 9999)


def test_clear_roster_leaves_turn_state(seeded):
    admin_id = seeded[0]
    roster.mark_name(admin_id, 'One', 'beginner', now=T0 + 1)
    before = store.load_snapshot()

    assert roster.clear_roster() == 1
    assert RosterEntry.query.count() == 0
    assert store.load_snapshot() == before
