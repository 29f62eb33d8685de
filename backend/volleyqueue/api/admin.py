from functools import wraps

from flask import Blueprint, jsonify, current_app
from flask_login import login_required

from volleyqueue.services.rotation import engine, identity, roster
from volleyqueue.services.rotation.errors import Unauthorized
from volleyqueue.services.rotation.notify import broadcast_roster_change, broadcast_transition
from volleyqueue.services.rotation.teams import balance_teams

admin = Blueprint('admin', __name__)


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if not identity.is_admin(identity.current_member_id()):
            raise Unauthorized('Administrator access required')
        return view(*args, **kwargs)
    return wrapper


@admin.route('/reset-rotation', methods=['POST'])
@admin_required
def reset_rotation():
    """Restart the turn order from every registered user."""
    state = engine.reset_rotation()
    current_app.logger.info(f"[admin] reset-rotation by member={identity.current_member_id()}")
    broadcast_transition('reset', state)
    return jsonify(state.to_dict())


@admin.route('/clear-roster', methods=['POST'])
@admin_required
def clear_roster():
    removed = roster.clear_roster()
    current_app.logger.info(f"[admin] clear-roster by member={identity.current_member_id()} removed={removed}")
    broadcast_roster_change('cleared', None)
    return jsonify({'message': 'Roster cleared', 'removed': removed})


@admin.route('/teams', methods=['GET'])
@admin_required
def teams():
    team_a, team_b = balance_teams(roster.list_entries(waiting=False))
    return jsonify({
        'team_a': team_a.to_dict(),
        'team_b': team_b.to_dict(),
        'average_difference': round(abs(team_a.average_skill - team_b.average_skill), 2),
    })
