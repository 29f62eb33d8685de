from typing import List, Optional

from flask import current_app

from volleyqueue import db
from volleyqueue.models import RosterEntry, TurnState, SKILL_LEVELS
from . import clock, identity
from .errors import (
    ConflictRetry, InvalidInput, NotFound, NotYourTurn, QuotaExceeded,
    TurnExpired, Unauthorized,
)
from .store import TurnSnapshot, atomic, load_snapshot, setting, turn_state_as_observed


def list_entries(waiting: Optional[bool] = None) -> List[RosterEntry]:
    query = RosterEntry.query
    if waiting is not None:
        query = query.filter_by(is_waiting=waiting)
    return query.order_by(RosterEntry.is_waiting.asc(), RosterEntry.position.asc(), RosterEntry.id.asc()).all()


def check_can_mark(snapshot: Optional[TurnSnapshot], member_id: int, now: float) -> None:
    """Raise the first failing turn precondition for marking a name."""
    if snapshot is None or snapshot.active_member_id is None or snapshot.active_member_id != member_id:
        raise NotYourTurn()
    if snapshot.remaining(now, setting('TURN_WINDOW_SEC', 60)) <= 0:
        raise TurnExpired()
    if snapshot.marks_used >= setting('MAX_MARKS_PER_TURN', 2):
        raise QuotaExceeded()


def _clean_input(player_name, skill_level):
    name = player_name.strip() if isinstance(player_name, str) else ''
    if not name:
        raise InvalidInput('Player name is required')
    max_len = setting('PLAYER_NAME_MAX_LENGTH', 64)
    if len(name) > max_len:
        raise InvalidInput(f'Player name must be at most {max_len} characters')
    level = skill_level.strip().lower() if isinstance(skill_level, str) else ''
    if level not in SKILL_LEVELS:
        raise InvalidInput(f"Skill level must be one of: {', '.join(SKILL_LEVELS)}")
    return name, level


def mark_name(member_id: int, player_name, skill_level, now: Optional[float] = None) -> RosterEntry:
    """Append a name to the roster on behalf of the active member.

    The quota slot is reserved with a conditional increment on the turn
    row before the entry is inserted, in the same transaction, so two
    concurrent marks can never both take the last slot. Does not advance
    the turn.
    """
    now = clock.now() if now is None else now
    try:
        with atomic():
            snapshot = load_snapshot()
            check_can_mark(snapshot, member_id, now)
            name, level = _clean_input(player_name, skill_level)

            reserved = turn_state_as_observed(snapshot).filter(
                TurnState.marks_used < setting('MAX_MARKS_PER_TURN', 2),
            ).update({'marks_used': TurnState.marks_used + 1}, synchronize_session=False)
            if reserved != 1:
                raise ConflictRetry()

            confirmed = RosterEntry.query.filter_by(is_waiting=False).count()
            is_waiting = confirmed >= setting('CONFIRMED_CAPACITY', 12)
            in_list = RosterEntry.query.filter_by(is_waiting=True).count() if is_waiting else confirmed
            entry = RosterEntry(
                player_name=name,
                skill_level=level,
                marked_by=member_id,
                position=in_list + 1,
                is_waiting=is_waiting,
            )
            db.session.add(entry)
            db.session.flush()
            current_app.logger.info(
                f"[mark] member={member_id} name={name!r} skill={level} "
                f"list={'waiting' if is_waiting else 'confirmed'} position={entry.position} "
                f"marks_used={snapshot.marks_used + 1}"
            )
        return entry
    except ConflictRetry:
        # Lost the race: report the precondition that now fails, if any
        with atomic():
            check_can_mark(load_snapshot(), member_id, now)
        current_app.logger.info(f"[conflict] mark by member={member_id} lost a concurrent update")
        raise


def delete_entry(member_id: int, entry_id: int) -> None:
    """Remove an entry the caller marked. Admins may remove any entry."""
    with atomic():
        entry = db.session.get(RosterEntry, entry_id)
        if entry is None:
            raise NotFound('Roster entry not found')
        if entry.marked_by != member_id and not identity.is_admin(member_id):
            raise Unauthorized('You can only remove names you marked')
        db.session.delete(entry)
        current_app.logger.info(
            f"[unmark] member={member_id} entry={entry_id} name={entry.player_name!r} position={entry.position}"
        )


def clear_roster() -> int:
    with atomic():
        removed = RosterEntry.query.delete(synchronize_session='fetch')
    current_app.logger.info(f"[clear-roster] removed={removed}")
    return removed
