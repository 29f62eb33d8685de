"""Turn rotation state machine.

Members move pending -> active -> finished along ``turn_order``; at most
one is active. Every transition is a single conditional update on the
TurnState row, so any number of pollers may call ``advance_if_due``
concurrently and only one of them performs a given transition.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from flask import current_app

from volleyqueue import db
from volleyqueue.models import (
    QueueMember, TurnState, TURN_STATE_ID,
    MEMBER_ACTIVE, MEMBER_FINISHED, MEMBER_PENDING,
)
from . import clock, identity, liveness, roster
from .errors import ConflictRetry, NotYourTurn
from .store import TurnSnapshot, atomic, load_snapshot, setting, turn_state_as_observed

REASON_NONE = 'none'
REASON_STARTED = 'started'
REASON_TIMEOUT = 'timeout'
REASON_OFFLINE = 'offline'
REASON_COMPLETED = 'completed'


@dataclass
class RotationState:
    active_member_id: Optional[int] = None
    active_display_name: Optional[str] = None
    turn_started_at: Optional[float] = None
    turn_window_seconds: int = 60
    remaining_seconds: int = 0
    marks_used: int = 0
    marks_remaining: int = 0
    rotation_complete: bool = False
    last_reason: Optional[str] = None
    last_advanced_at: Optional[float] = None
    members: List[dict] = field(default_factory=list)
    confirmed: List[dict] = field(default_factory=list)
    waiting: List[dict] = field(default_factory=list)
    viewer_id: Optional[int] = None

    @property
    def is_my_turn(self) -> bool:
        return self.viewer_id is not None and self.viewer_id == self.active_member_id

    def to_dict(self):
        return {
            'active_member_id': self.active_member_id,
            'active_display_name': self.active_display_name,
            'turn_started_at': self.turn_started_at,
            'turn_window_seconds': self.turn_window_seconds,
            'remaining_seconds': self.remaining_seconds,
            'marks_used': self.marks_used,
            'marks_remaining': self.marks_remaining,
            'rotation_complete': self.rotation_complete,
            'last_reason': self.last_reason,
            'last_advanced_at': self.last_advanced_at,
            'is_my_turn': self.is_my_turn,
            'members': self.members,
            'roster': {
                'confirmed': self.confirmed,
                'waiting': self.waiting,
                'capacity': setting('CONFIRMED_CAPACITY', 12),
            },
        }


@dataclass
class AdvanceResult:
    state: RotationState
    was_advanced: bool
    reason: str = REASON_NONE

    def to_dict(self):
        return {
            'state': self.state.to_dict(),
            'was_advanced': self.was_advanced,
            'reason': self.reason,
        }


def _next_pending() -> Optional[QueueMember]:
    return (
        QueueMember.query.filter_by(status=MEMBER_PENDING)
        .order_by(QueueMember.turn_order.asc())
        .first()
    )


def _seed(now: float) -> int:
    """Replace the member list with all users, first one active."""
    users = identity.list_members()
    QueueMember.query.delete(synchronize_session='fetch')
    if not users:
        return 0
    for order, user in enumerate(users, start=1):
        db.session.add(QueueMember(
            member_id=user.id,
            display_name=user.display_name,
            turn_order=order,
            status=MEMBER_ACTIVE if order == 1 else MEMBER_PENDING,
        ))
    db.session.add(TurnState(
        id=TURN_STATE_ID,
        active_member_id=users[0].id,
        turn_started_at=now,
        marks_used=0,
    ))
    return len(users)


def _enroll_late_members() -> int:
    """Append users missing from an unfinished rotation as pending, after the last order."""
    members = QueueMember.query.all()
    if all(m.status == MEMBER_FINISHED for m in members):
        # Exhausted (or empty) rotations only pick up newcomers on reset
        return 0
    enrolled = {m.member_id for m in members}
    missing = [u for u in identity.list_members() if u.id not in enrolled]
    last_order = max(m.turn_order for m in members)
    for order, user in enumerate(missing, start=last_order + 1):
        db.session.add(QueueMember(
            member_id=user.id,
            display_name=user.display_name,
            turn_order=order,
            status=MEMBER_PENDING,
        ))
    return len(missing)


def ensure_seeded(now: Optional[float] = None) -> bool:
    """Seed the rotation if it has never been set, else enroll late registrations.

    Returns True only if this call seeded.
    """
    now = clock.now() if now is None else now
    try:
        with atomic():
            if TurnState.query.filter_by(id=TURN_STATE_ID).count():
                seeded, enrolled = 0, _enroll_late_members()
            else:
                seeded, enrolled = _seed(now), 0
    except ConflictRetry:
        current_app.logger.info("[seed] another caller updated the member list first")
        return False
    if enrolled:
        current_app.logger.info(f"[seed] enrolled late members={enrolled}")
    if seeded:
        current_app.logger.info(f"[seed] rotation seeded members={seeded}")
    return bool(seeded)


def _due_reason(snapshot: Optional[TurnSnapshot], now: float) -> Optional[str]:
    if snapshot is None:
        return None
    if snapshot.active_member_id is None:
        return REASON_STARTED if _next_pending() is not None else None
    elapsed = now - snapshot.turn_started_at
    if elapsed >= setting('TURN_WINDOW_SEC', 60):
        return REASON_TIMEOUT
    if elapsed > setting('OFFLINE_GRACE_SEC', 10) and liveness.is_stale(snapshot.active_member_id, now):
        return REASON_OFFLINE
    return None


def _transition(snapshot: TurnSnapshot, reason: str, now: float) -> Optional[int]:
    """Finish the observed active member and activate the next pending one.

    Raises ConflictRetry when the turn row no longer matches ``snapshot``.
    """
    nxt = _next_pending()
    next_id = nxt.member_id if nxt else None
    updated = turn_state_as_observed(snapshot).update({
        'active_member_id': next_id,
        'turn_started_at': now if nxt else None,
        'marks_used': 0,
        'last_reason': reason,
        'last_advanced_at': now,
    }, synchronize_session=False)
    if updated != 1:
        raise ConflictRetry()
    if snapshot.active_member_id is not None:
        QueueMember.query.filter_by(
            member_id=snapshot.active_member_id, status=MEMBER_ACTIVE,
        ).update({'status': MEMBER_FINISHED}, synchronize_session=False)
    if nxt:
        QueueMember.query.filter_by(
            id=nxt.id, status=MEMBER_PENDING,
        ).update({'status': MEMBER_ACTIVE}, synchronize_session=False)
    current_app.logger.info(
        f"[advance] reason={reason} from={snapshot.active_member_id} to={next_id} at={now:.3f}"
    )
    return next_id


def _build_state(snapshot: Optional[TurnSnapshot], now: float, viewer_id: Optional[int] = None) -> RotationState:
    window = setting('TURN_WINDOW_SEC', 60)
    quota = setting('MAX_MARKS_PER_TURN', 2)
    members = QueueMember.query.order_by(QueueMember.turn_order.asc()).all()
    state = RotationState(
        turn_window_seconds=window,
        members=[m.to_dict() for m in members],
        confirmed=[e.to_dict() for e in roster.list_entries(waiting=False)],
        waiting=[e.to_dict() for e in roster.list_entries(waiting=True)],
        viewer_id=viewer_id,
    )
    if snapshot is None:
        return state
    state.active_member_id = snapshot.active_member_id
    state.turn_started_at = snapshot.turn_started_at
    state.last_reason = snapshot.last_reason
    state.last_advanced_at = snapshot.last_advanced_at
    if snapshot.active_member_id is not None:
        state.active_display_name = next(
            (m.display_name for m in members if m.member_id == snapshot.active_member_id), None
        )
        state.remaining_seconds = snapshot.remaining_display(now, window)
        state.marks_used = snapshot.marks_used
        state.marks_remaining = max(0, quota - snapshot.marks_used)
    else:
        state.rotation_complete = bool(members) and not any(m.status == MEMBER_PENDING for m in members)
    return state


def get_current_state(now: Optional[float] = None, viewer_id: Optional[int] = None) -> RotationState:
    now = clock.now() if now is None else now
    ensure_seeded(now)
    with atomic():
        return _build_state(load_snapshot(), now, viewer_id)


def advance_if_due(now: Optional[float] = None, viewer_id: Optional[int] = None) -> AdvanceResult:
    """Advance the rotation if the active turn is over; otherwise a no-op.

    Safe to call from every poller. Only the caller whose conditional
    update lands gets ``was_advanced=True``; the others get the
    post-transition state.
    """
    now = clock.now() if now is None else now
    ensure_seeded(now)
    try:
        with atomic():
            snapshot = load_snapshot()
            reason = _due_reason(snapshot, now)
            if reason is None:
                return AdvanceResult(_build_state(snapshot, now, viewer_id), False)
            _transition(snapshot, reason, now)
    except ConflictRetry:
        current_app.logger.info("[conflict] advance lost to a concurrent caller")
        return AdvanceResult(get_current_state(now, viewer_id), False)
    return AdvanceResult(get_current_state(now, viewer_id), True, reason)


def complete_turn(member_id: int, now: Optional[float] = None) -> AdvanceResult:
    """The active member hands over before their window runs out.

    A window that already ran out is recorded as a timeout.
    """
    now = clock.now() if now is None else now
    ensure_seeded(now)
    try:
        with atomic():
            snapshot = load_snapshot()
            if snapshot is None or snapshot.active_member_id != member_id:
                raise NotYourTurn()
            if snapshot.remaining(now, setting('TURN_WINDOW_SEC', 60)) <= 0:
                reason = REASON_TIMEOUT
            else:
                reason = REASON_COMPLETED
            _transition(snapshot, reason, now)
    except ConflictRetry:
        # The turn moved on under us; it is no longer ours to complete
        current_app.logger.info(f"[conflict] complete by member={member_id} lost to a concurrent caller")
        raise NotYourTurn()
    return AdvanceResult(get_current_state(now, member_id), True, reason)


def reset_rotation(now: Optional[float] = None) -> RotationState:
    """Drop the current order and start a fresh cycle from all users."""
    now = clock.now() if now is None else now
    with atomic():
        TurnState.query.filter_by(id=TURN_STATE_ID).delete(synchronize_session='fetch')
        seeded = _seed(now)
    current_app.logger.info(f"[reset] rotation re-seeded members={seeded}")
    return get_current_state(now)
