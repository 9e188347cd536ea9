from flask import Blueprint, current_app, jsonify, request
from scorekeeper.services import store
from scorekeeper.services.scoring.templates import coerce_int

sessions = Blueprint('sessions', __name__)


@sessions.route('', methods=['POST'])
def save_session():
    data = request.get_json(silent=True)
    session_id = store.save_session(data)
    return jsonify({'id': session_id}), 201


@sessions.route('/recent', methods=['GET'])
def recent_sessions():
    limit = request.args.get('limit')
    if limit is None:
        limit = current_app.config.get('RECENT_SESSIONS_LIMIT', 5)
    return jsonify(store.get_recent_sessions(coerce_int(limit, 'limit', 1)))


@sessions.route('/<string:session_id>', methods=['GET'])
def get_session(session_id):
    session = store.get_session(session_id)
    if not session:
        return jsonify({'error': 'Session not found'}), 404
    return jsonify(session.to_dict())
