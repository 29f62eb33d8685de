from typing import Optional

from volleyqueue import db
from volleyqueue.models import Heartbeat
from . import clock
from .errors import ConflictRetry
from .store import atomic, setting


def _touch(member_id: int, now: float) -> None:
    updated = Heartbeat.query.filter(
        Heartbeat.member_id == member_id,
        Heartbeat.last_heartbeat_at < now,
    ).update({'last_heartbeat_at': now}, synchronize_session=False)
    if not updated and not Heartbeat.query.filter_by(member_id=member_id).count():
        db.session.add(Heartbeat(member_id=member_id, last_heartbeat_at=now))


def heartbeat(member_id: int, now: Optional[float] = None) -> float:
    """Record that ``member_id`` is online. The newest timestamp wins."""
    now = clock.now() if now is None else now
    try:
        with atomic():
            _touch(member_id, now)
    except ConflictRetry:
        # Concurrent first beat inserted the row; the update path applies now
        with atomic():
            _touch(member_id, now)
    return now


def last_heartbeat(member_id: int) -> Optional[float]:
    row = Heartbeat.query.filter_by(member_id=member_id).populate_existing().first()
    return row.last_heartbeat_at if row else None


def is_stale(member_id: int, now: float) -> bool:
    """True when the member never beat or the last beat is past the threshold."""
    last = last_heartbeat(member_id)
    if last is None:
        return True
    return now - last > setting('HEARTBEAT_STALE_SEC', 30)
