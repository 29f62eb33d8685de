from flask import current_app
from flask_socketio import join_room, leave_room, emit
from flask_login import current_user
from volleyqueue import socketio
from volleyqueue.services.rotation import liveness
from volleyqueue.services.rotation.errors import StoreUnavailable
from volleyqueue.services.rotation.notify import QUEUE_ROOM


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_queue(data=None):
    join_room(QUEUE_ROOM)
    emit('joined', {'room': QUEUE_ROOM})


def handle_leave_queue(data=None):
    leave_room(QUEUE_ROOM)
    emit('left', {'room': QUEUE_ROOM})


def handle_heartbeat(data=None):
    # Liveness for offline-skip; only signed-in members count
    if not current_user.is_authenticated:
        emit('error', {'message': 'Login required'})
        return
    try:
        at = liveness.heartbeat(current_user.id)
    except StoreUnavailable:
        current_app.logger.warning(f"[heartbeat] store unavailable for member={current_user.id}")
        emit('error', {'message': 'Heartbeat not recorded, retry on next beat'})
        return
    emit('heartbeat_ack', {'member_id': current_user.id, 'at': at})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_queue', handle_join_queue, namespace=namespace)
        socketio.on_event('leave_queue', handle_leave_queue, namespace=namespace)
        socketio.on_event('heartbeat', handle_heartbeat, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
