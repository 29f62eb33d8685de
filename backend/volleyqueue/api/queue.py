from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required

from volleyqueue.services.rotation import engine, identity, liveness, roster
from volleyqueue.services.rotation.errors import InvalidInput, NotYourTurn
from volleyqueue.services.rotation.notify import broadcast_roster_change, broadcast_transition
from volleyqueue.services.rotation.store import setting

queue = Blueprint('queue', __name__)


@queue.route('/state', methods=['GET'])
@login_required
def get_state():
    state = engine.get_current_state(viewer_id=identity.current_member_id())
    return jsonify(state.to_dict())


@queue.route('/advance', methods=['POST'])
@login_required
def advance():
    """Poll endpoint: advance the rotation if the active turn is over."""
    result = engine.advance_if_due(viewer_id=identity.current_member_id())
    if result.was_advanced:
        broadcast_transition(result.reason, result.state)
    return jsonify(result.to_dict())


@queue.route('/turn/complete', methods=['POST'])
@login_required
def complete_turn():
    result = engine.complete_turn(identity.current_member_id())
    broadcast_transition(result.reason, result.state)
    return jsonify(result.to_dict())


@queue.route('/marks', methods=['POST'])
@login_required
def mark_name():
    """Mark a player name during the caller's turn.

    Once the per-turn quota is used up the turn is handed over right away
    instead of waiting for the window to run out.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput('JSON body with player_name and skill_level is required')
    member_id = identity.current_member_id()
    entry = roster.mark_name(member_id, data.get('player_name'), data.get('skill_level'))
    payload = {'entry': entry.to_dict(), 'turn_completed': False}
    broadcast_roster_change('marked', entry.id)

    state = engine.get_current_state(viewer_id=member_id)
    if state.is_my_turn and state.marks_used >= setting('MAX_MARKS_PER_TURN', 2):
        try:
            result = engine.complete_turn(member_id)
        except NotYourTurn:
            # A poller timed the turn out in between; it is over either way
            state = engine.get_current_state(viewer_id=member_id)
        else:
            broadcast_transition(result.reason, result.state)
            state = result.state
        payload['turn_completed'] = True
    payload['state'] = state.to_dict()
    return jsonify(payload), 201


@queue.route('/marks/<int:entry_id>', methods=['DELETE'])
@login_required
def delete_mark(entry_id):
    roster.delete_entry(identity.current_member_id(), entry_id)
    broadcast_roster_change('unmarked', entry_id)
    return jsonify({'message': 'Entry removed', 'entry_id': entry_id})


@queue.route('/heartbeat', methods=['POST'])
@login_required
def heartbeat():
    at = liveness.heartbeat(identity.current_member_id())
    return jsonify({
        'ok': True,
        'at': at,
        'interval_seconds': int(current_app.config.get('HEARTBEAT_INTERVAL_SEC', 10)),
    })
