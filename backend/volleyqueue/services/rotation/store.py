import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from volleyqueue import db
from volleyqueue.models import TurnState, TURN_STATE_ID
from .errors import ConflictRetry, RotationError, StoreUnavailable


@dataclass(frozen=True)
class TurnSnapshot:
    """What a caller observed of the TurnState row before deciding."""
    active_member_id: Optional[int]
    turn_started_at: Optional[float]
    marks_used: int
    last_reason: Optional[str] = None
    last_advanced_at: Optional[float] = None

    def remaining(self, now: float, window: int) -> float:
        if self.active_member_id is None or self.turn_started_at is None:
            return 0.0
        # A start stamped ahead of this clock counts as just started
        elapsed = max(0.0, now - self.turn_started_at)
        return max(0.0, window - elapsed)

    def remaining_display(self, now: float, window: int) -> int:
        return int(math.ceil(self.remaining(now, window)))


@contextmanager
def atomic():
    """One store transaction with commit on success, rollback on any error.

    Unique-key violations mean a concurrent writer got there first and
    surface as ConflictRetry; other database errors as StoreUnavailable.
    """
    try:
        yield db.session
        db.session.commit()
    except RotationError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.info(f"[conflict] integrity violation: {exc.orig}")
        raise ConflictRetry() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[store] transaction failed: {exc}")
        raise StoreUnavailable() from exc


def load_snapshot() -> Optional[TurnSnapshot]:
    row = TurnState.query.filter_by(id=TURN_STATE_ID).populate_existing().first()
    if row is None:
        return None
    return TurnSnapshot(
        active_member_id=row.active_member_id,
        turn_started_at=row.turn_started_at,
        marks_used=int(row.marks_used or 0),
        last_reason=row.last_reason,
        last_advanced_at=row.last_advanced_at,
    )


def _matches(column, value):
    return column.is_(None) if value is None else column == value


def turn_state_as_observed(snapshot: TurnSnapshot):
    """Query on the singleton row, filtered to match what the caller saw.

    ``update()`` on it is the compare-and-swap: one affected row means the
    caller won, zero means another caller changed the turn first.
    """
    return TurnState.query.filter(
        TurnState.id == TURN_STATE_ID,
        _matches(TurnState.active_member_id, snapshot.active_member_id),
        _matches(TurnState.turn_started_at, snapshot.turn_started_at),
    )


def setting(key: str, default: int) -> int:
    return int(current_app.config.get(key, default))
