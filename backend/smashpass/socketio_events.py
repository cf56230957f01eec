from flask_socketio import join_room, leave_room, emit
from smashpass import socketio
from flask import current_app, request
from typing import Dict, Any
import time


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # On disconnect, if this socket owned a session and no other owner
    # remains, end the session after a grace period
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    code = ctx.get('session_code')
    if ctx.get('is_session_owner') and code:
        _owner_count[code] = max(0, _owner_count.get(code, 0) - 1)
        # In tests, end immediately for determinism; in prod, allow grace period
        if current_app.config.get('TESTING'):
            if _owner_count.get(code, 0) == 0:
                end_session(code)
            return
        _schedule_end_if_no_owner(current_app._get_current_object(), code)


def handle_join_session(data):
    code = (data or {}).get('session_code')
    is_session_owner = bool((data or {}).get('is_session_owner'))
    if not code:
        emit('error', {'message': 'session_code is required'})
        return
    code = code.upper()
    if code not in current_app.extensions['game_sessions']:
        emit('error', {'message': f'Unknown session {code}'})
        return
    room = f"session:{code}"
    join_room(room)
    _sid_to_ctx[_get_sid()] = {'session_code': code, 'is_session_owner': is_session_owner}
    if is_session_owner:
        _owner_count[code] = _owner_count.get(code, 0) + 1
        _cancel_scheduled_end(code)
    emit('joined', {'room': room})


def handle_leave_session(data):
    code = (data or {}).get('session_code')
    if not code:
        emit('error', {'message': 'session_code is required'})
        return
    code = code.upper()
    room = f"session:{code}"
    leave_room(room)
    emit('left', {'room': room})
    # An owner leaving explicitly means they navigated away: end immediately
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('is_session_owner') and ctx.get('session_code') == code:
        end_session(code)


def handle_ping(data):
    emit('pong', data or {})

# ---- Session owner lifecycle helpers ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_owner_count: Dict[str, int] = {}
_end_deadline: Dict[str, float] = {}

def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def end_session(code: str, registry=None) -> bool:
    """End the session: close its feed, drop it and notify clients."""
    if registry is None:
        registry = current_app.extensions['game_sessions']
    session = registry.end(code)
    _owner_count.pop(code, None)
    _end_deadline.pop(code, None)
    if session is None:
        return False
    # Use socketio.emit since this may be called from a background task
    socketio.emit('session_ended', {'session_code': code}, to=f"session:{code}", namespace='/ws')
    return True

def _schedule_end_if_no_owner(app, code: str) -> None:
    if _owner_count.get(code, 0) > 0:
        return
    delay_sec = float(app.config.get('OWNER_GRACE_SEC', 2.0))
    _end_deadline[code] = time.time() + delay_sec
    registry = app.extensions['game_sessions']

    def _runner(session_code: str, deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if _owner_count.get(session_code, 0) == 0 and _end_deadline.get(session_code) == deadline:
            app.logger.info(f"[owner-gone] session={session_code} ending after grace period")
            end_session(session_code, registry=registry)

    socketio.start_background_task(_runner, code, _end_deadline[code])

def _cancel_scheduled_end(code: str) -> None:
    _end_deadline.pop(code, None)

def sweep_idle_sessions(app, registry=None) -> list:
    """End every session with no activity for SESSION_IDLE_SEC seconds."""
    if registry is None:
        registry = app.extensions['game_sessions']
    max_idle = float(app.config.get('SESSION_IDLE_SEC', 1800))
    ended = []
    for code in registry.idle_codes(max_idle):
        if end_session(code, registry=registry):
            app.logger.info(f"[session-idle] session={code} ended after {max_idle:.0f}s idle")
            ended.append(code)
    return ended

def start_idle_sweeper(app) -> None:
    interval = float(app.config.get('SESSION_SWEEP_SEC', 60))
    if interval <= 0:
        return

    def _sweeper():
        while True:
            socketio.sleep(interval)
            try:
                sweep_idle_sessions(app)
            except Exception:
                app.logger.exception("[session-idle] sweep failed")

    socketio.start_background_task(_sweeper)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
