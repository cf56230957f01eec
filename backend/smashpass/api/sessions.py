from flask import Blueprint, jsonify, request, current_app
from smashpass.services.game import Decision, InvalidTransition
from smashpass.services.game.sources import (
    HttpDecisionSink,
    HttpFeedSource,
    LocalDecisionSink,
    LocalFeedSource,
)


sessions = Blueprint('sessions', __name__)


def _registry():
    return current_app.extensions['game_sessions']


def _sources():
    """Feed source and sink factory: remote store if configured, else this app's."""
    cfg = current_app.config
    base_url = cfg.get('FEED_BASE_URL')
    if base_url:
        timeout = float(cfg.get('FEED_TIMEOUT_SEC', 5))
        return (
            HttpFeedSource(base_url, timeout=timeout),
            lambda code: HttpDecisionSink(base_url, voter_id=code, timeout=timeout),
        )
    app = current_app._get_current_object()
    return LocalFeedSource(app), lambda code: LocalDecisionSink(app, voter_id=code)


def _run_event(session_code, handler):
    session = _registry().get(session_code)
    if session is None:
        return jsonify({'error': 'Session not found'}), 404
    try:
        handler(session)
    except InvalidTransition as exc:
        current_app.logger.info(f"[invalid] session={session.code} event={exc.event} screen={exc.screen.value}")
        payload = session.to_dict()
        payload['error'] = str(exc)
        return jsonify(payload), 409
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return jsonify(session.to_dict())


@sessions.route('', methods=['POST'])
def create_session():
    data = request.get_json(silent=True) or {}
    page_size = data.get('page_size')
    try:
        page_size = int(page_size) if page_size is not None else None
    except (TypeError, ValueError):
        return jsonify({'error': 'page_size must be an integer'}), 400
    if page_size is not None:
        max_size = int(current_app.config.get('MAX_PAGE_SIZE', 50))
        page_size = max(1, min(page_size, max_size))

    source, sink_factory = _sources()
    try:
        session = _registry().create(source, sink_factory, page_size=page_size)
    except Exception as exc:
        current_app.logger.warning(f"[create-failed] feed unavailable: {exc!r}")
        return jsonify({'error': 'feed unavailable'}), 503
    current_app.logger.info(f"[create] session={session.code} total={session.total}")
    return jsonify(session.to_dict()), 201


@sessions.route('/<string:session_code>/state', methods=['GET'])
def get_state(session_code):
    session = _registry().get(session_code)
    if session is None:
        return jsonify({'error': 'Session not found'}), 404
    return jsonify(session.to_dict())


@sessions.route('/<string:session_code>', methods=['DELETE'])
def end_session(session_code):
    from smashpass.socketio_events import end_session as _end_session
    if not _end_session(session_code.upper()):
        return jsonify({'error': 'Session not found'}), 404
    return jsonify({'message': 'Session ended'})


@sessions.route('/<string:session_code>/decision', methods=['POST'])
def decision_made(session_code):
    data = request.get_json(silent=True) or {}
    try:
        decision = Decision.parse(data.get('decision'))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    return _run_event(session_code, lambda s: s.decision_made(decision))


@sessions.route('/<string:session_code>/confirm', methods=['POST'])
def confirm(session_code):
    data = request.get_json(silent=True) or {}
    confirmed = data.get('confirmed')
    if not isinstance(confirmed, bool):
        return jsonify({'error': 'confirmed must be true or false'}), 400
    return _run_event(session_code, lambda s: s.confirm(confirmed))


@sessions.route('/<string:session_code>/advance', methods=['POST'])
def advance(session_code):
    return _run_event(session_code, lambda s: s.advance())


@sessions.route('/<string:session_code>/stats/open', methods=['POST'])
def open_stats(session_code):
    return _run_event(session_code, lambda s: s.open_stats())


@sessions.route('/<string:session_code>/stats/close', methods=['POST'])
def close_stats(session_code):
    return _run_event(session_code, lambda s: s.close_stats())


@sessions.route('/<string:session_code>/retry', methods=['POST'])
def retry(session_code):
    return _run_event(session_code, lambda s: s.retry())
