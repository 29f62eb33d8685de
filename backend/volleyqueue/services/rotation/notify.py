from volleyqueue import socketio

QUEUE_ROOM = 'queue'


def broadcast_transition(reason, state) -> None:
    """Tell connected clients the turn moved so they refresh before their next poll."""
    socketio.emit('state_update', {
        'reason': reason,
        'active_member_id': state.active_member_id,
        'active_display_name': state.active_display_name,
        'rotation_complete': state.rotation_complete,
    }, to=QUEUE_ROOM, namespace='/ws')


def broadcast_roster_change(action: str, entry_id=None) -> None:
    socketio.emit('state_update', {'reason': action, 'entry_id': entry_id}, to=QUEUE_ROOM, namespace='/ws')
