from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from checkers import socketio
from checkers.identity import IdentityError, fetch_profile
from checkers.services.match.results import persist_outcome
from checkers.services.match.rules import Coord
from checkers.services.match.scheduler import broadcast_state, state_payload
from checkers.services.match.sessions import Profile, SessionRegistry


def _get_sid() -> str:
    # request.sid only exists inside a Socket.IO handler
    return request.sid  # type: ignore


def _registry() -> SessionRegistry:
    return current_app.extensions['checkers_sessions']


def _room_id(data):
    room_id = (data or {}).get('room_id') or (data or {}).get('instanceId')
    return str(room_id) if room_id else None


def _publish(session, concluded=None) -> None:
    """Record a concluded match (outside the session lock) and broadcast state."""
    app = current_app._get_current_object()
    persist_outcome(app, session.room_id, concluded)
    # Emitting under the lock keeps broadcasts in the order the state changed.
    with session.lock:
        broadcast_state(app, session.room_id, state_payload(session))


def handle_connect():
    current_app.logger.debug(f"[connect] sid={_get_sid()}")


def handle_disconnect(*args):
    sid = _get_sid()
    torn_down = _registry().detach(sid)
    if torn_down:
        current_app.logger.info(f"[teardown] room={torn_down}")


def handle_join(data):
    room_id = _room_id(data)
    if not room_id:
        emit('error', {'message': 'instanceId is required'})
        return
    sid = _get_sid()
    cfg = current_app.config

    # Phase one: the socket enters the room before anyone knows who it is.
    previous = _registry().session_for(sid)
    if previous is not None and previous.room_id != room_id:
        leave_room(previous.room_id)
    join_room(room_id)
    _registry().attach(room_id, sid)

    # Phase two: confirm the identity without holding any session lock.
    access_token = (data or {}).get('access_token')
    if access_token:
        try:
            profile = fetch_profile(cfg, access_token)
        except IdentityError as exc:
            current_app.logger.warning(f"[join-rejected] room={room_id} sid={sid} reason={exc}")
            return
    elif not cfg.get('REQUIRE_VERIFIED_IDENTITY', True):
        profile = Profile.from_payload((data or {}).get('user'))
        if profile is None:
            current_app.logger.warning(f"[join-rejected] room={room_id} sid={sid} reason=no user id")
            return
    else:
        current_app.logger.warning(f"[join-rejected] room={room_id} sid={sid} reason=no access token")
        return

    # Phase three: back into the session for the roster change.
    participant = _registry().join(room_id, sid, profile)
    if participant is None:
        current_app.logger.info(f"[join-abandoned] room={room_id} sid={sid} left before identity resolved")
        return
    current_app.logger.info(
        f"[join] room={room_id} identity={participant.identity} role={participant.role.value}"
    )
    session = _registry().get(room_id)
    if session is not None:
        _publish(session)


def handle_move(data):
    session = _registry().get(_room_id(data))
    if session is None:
        return
    origin = Coord.parse((data or {}).get('from'))
    target = Coord.parse((data or {}).get('to'))
    if origin is None or target is None:
        return
    with session.lock:
        if not session.move(_get_sid(), origin, target):
            return
        concluded = session.take_outcome()
    _publish(session, concluded)


def handle_get_valid_moves(data):
    coord_data = (data or {}).get('coord') or {
        k: v for k, v in (data or {}).items() if k in ('row', 'col', 'r', 'c')
    }
    coord = Coord.parse(coord_data)
    session = _registry().get(_room_id(data))
    moves = []
    if session is not None and coord is not None:
        with session.lock:
            moves = [m.to_dict() for m in session.legal_moves(coord)]
    emit('validMoves', {
        'coord': coord.to_dict() if coord else coord_data,
        'moves': moves,
    })


def handle_cheer(data):
    session = _registry().get(_room_id(data))
    if session is None:
        return
    with session.lock:
        participant = session.participant_for(_get_sid())
        identity = participant.identity if participant else None
    if identity is None:
        return
    socketio.emit('cheer', {'identity': identity}, to=session.room_id,
                  namespace=current_app.config.get('SOCKETIO_NAMESPACE', '/'))


def handle_reset(data):
    session = _registry().get(_room_id(data))
    if session is None:
        return
    sid = _get_sid()
    with session.lock:
        if session.participant_for(sid) is None:
            return
        session.reset_match()
    current_app.logger.info(f"[reset] room={session.room_id} sid={sid}")
    _publish(session)


def handle_leave(data):
    room_id = _room_id(data)
    if not room_id:
        return
    leave_room(room_id)
    session = _registry().session_for(_get_sid())
    if session is not None and session.room_id == room_id:
        handle_disconnect()


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register the gateway's Socket.IO event handlers on `namespace`."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join', handle_join, namespace=namespace)
    socketio.on_event('leave', handle_leave, namespace=namespace)
    socketio.on_event('move', handle_move, namespace=namespace)
    socketio.on_event('getValidMoves', handle_get_valid_moves, namespace=namespace)
    socketio.on_event('cheer', handle_cheer, namespace=namespace)
    socketio.on_event('reset', handle_reset, namespace=namespace)
