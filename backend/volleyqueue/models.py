from datetime import datetime, timezone
from volleyqueue import db, bcrypt
from flask_login import UserMixin

MEMBER_PENDING = 'pending'
MEMBER_ACTIVE = 'active'
MEMBER_FINISHED = 'finished'

SKILL_BEGINNER = 'beginner'
SKILL_INTERMEDIATE = 'intermediate'
SKILL_ADVANCED = 'advanced'
SKILL_LEVELS = (SKILL_BEGINNER, SKILL_INTERMEDIATE, SKILL_ADVANCED)
SKILL_SCORES = {SKILL_BEGINNER: 1, SKILL_INTERMEDIATE: 2, SKILL_ADVANCED: 3}

TURN_STATE_ID = 1


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(64), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'display_name': self.display_name,
            'is_admin': self.is_admin,
        }


class QueueMember(db.Model):
    __tablename__ = 'queue_member'
    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), unique=True, nullable=False)
    display_name = db.Column(db.String(64), nullable=False)
    turn_order = db.Column(db.Integer, unique=True, nullable=False)
    status = db.Column(db.String(16), default=MEMBER_PENDING, nullable=False)  # pending, active, finished

    def to_dict(self):
        return {
            'member_id': self.member_id,
            'display_name': self.display_name,
            'order': self.turn_order,
            'status': self.status,
        }


class TurnState(db.Model):
    """Singleton row; only ever written through conditional updates."""
    __tablename__ = 'turn_state'
    id = db.Column(db.Integer, primary_key=True)
    active_member_id = db.Column(db.Integer, nullable=True)
    turn_started_at = db.Column(db.Float, nullable=True)  # epoch seconds
    marks_used = db.Column(db.Integer, default=0, nullable=False)
    last_reason = db.Column(db.String(16), nullable=True)  # started, timeout, offline, completed
    last_advanced_at = db.Column(db.Float, nullable=True)


class RosterEntry(db.Model):
    __tablename__ = 'roster_entry'
    id = db.Column(db.Integer, primary_key=True)
    player_name = db.Column(db.String(64), nullable=False)
    skill_level = db.Column(db.String(16), nullable=False)
    marked_by = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'), nullable=True, index=True)
    marked_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    position = db.Column(db.Integer, nullable=False)
    is_waiting = db.Column(db.Boolean, default=False, nullable=False, index=True)

    @property
    def skill_score(self):
        return SKILL_SCORES.get(self.skill_level, 1)

    def to_dict(self):
        return {
            'id': self.id,
            'player_name': self.player_name,
            'skill_level': self.skill_level,
            'marked_by': self.marked_by,
            'marked_at': self.marked_at.isoformat() if self.marked_at else None,
            'position': self.position,
            'is_waiting': self.is_waiting,
        }


class Heartbeat(db.Model):
    __tablename__ = 'heartbeat'
    member_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), primary_key=True)
    last_heartbeat_at = db.Column(db.Float, nullable=False)
