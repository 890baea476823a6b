import weakref

from checkers import socketio
from .presence import status_text
from .results import persist_outcome
from .sessions import Session, TickOutcome


def state_payload(session: Session) -> dict:
    """Full room state; call with the session lock held."""
    return session.to_dict(status=status_text(session.match, session.participants.values()))


def broadcast_state(app, room_id: str, payload: dict) -> None:
    socketio.emit('state', payload, to=room_id, namespace=app.config.get('SOCKETIO_NAMESPACE', '/'))


def broadcast_timer(app, room_id: str, seconds_remaining: int) -> None:
    socketio.emit('timer', seconds_remaining, to=room_id, namespace=app.config.get('SOCKETIO_NAMESPACE', '/'))


def make_clock_scheduler(app):
    """Build the scheduler sessions call whenever their clock (re)starts.

    - No-ops in TESTING mode unless ENABLE_CLOCK_IN_TESTS is set; tests
      drive `Session.tick()` themselves
    - One background task per clock generation; a task exits as soon as its
      generation is superseded, the clock stops, or the session is gone
    """
    def schedule(session: Session, token: int) -> None:
        if app.config.get('TESTING') and not app.config.get('ENABLE_CLOCK_IN_TESTS'):
            return
        socketio.start_background_task(_clock_worker, app, weakref.ref(session), token)

    return schedule


def _clock_worker(app, session_ref, token: int) -> None:
    interval = float(app.config.get('CLOCK_TICK_SEC', 1.0))
    while True:
        socketio.sleep(interval)
        session = session_ref()
        if session is None:
            return
        concluded = None
        with session.lock:
            if not session.clock.is_current(token):
                return
            room_id = session.room_id
            turn = session.match.turn.value
            outcome = session.tick()
            if outcome is TickOutcome.COUNTDOWN:
                broadcast_timer(app, room_id, session.clock.seconds_remaining)
            elif outcome is TickOutcome.TIMEOUT:
                payload = state_payload(session)
                concluded = session.take_outcome()
                broadcast_state(app, room_id, payload)
        # Never keep the session alive between ticks.
        del session

        if outcome is TickOutcome.COUNTDOWN:
            continue
        if outcome is None:
            return

        app.logger.info(f"[clock-timeout] room={room_id} turn={turn} winner={payload['match']['winner']}")
        if concluded is not None:
            with app.app_context():
                persist_outcome(app, room_id, concluded)
        # The reset after a timeout scheduled a fresh worker for the new generation.
        return
