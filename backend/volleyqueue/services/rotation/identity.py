from typing import List, Optional

from flask import current_app
from flask_login import current_user

from volleyqueue import db
from volleyqueue.models import User


def list_members() -> List[User]:
    """Registered users in registration order."""
    return User.query.order_by(User.id.asc()).all()


def current_member_id() -> Optional[int]:
    if current_user and current_user.is_authenticated:
        return current_user.id
    return None


def is_admin(member_id: Optional[int]) -> bool:
    if member_id is None:
        return False
    user = db.session.get(User, member_id)
    if not user:
        return False
    return bool(user.is_admin) or user.username in current_app.config.get('ADMIN_USERNAMES', [])
