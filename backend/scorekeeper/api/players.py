from flask import Blueprint, jsonify, request
from scorekeeper.services import store

players = Blueprint('players', __name__)


@players.route('', methods=['GET'])
def list_players():
    return jsonify([p.to_dict() for p in store.list_players()])


@players.route('', methods=['POST'])
def create_player():
    data = request.get_json(silent=True) or {}
    player = store.create_player(data.get('name'))
    return jsonify(player.to_dict()), 201


@players.route('/by-ids', methods=['POST'])
def players_by_ids():
    data = request.get_json(silent=True) or {}
    return jsonify([p.to_dict() for p in store.get_players_by_ids(data.get('ids'))])


@players.route('/stats', methods=['GET'])
def player_stats():
    return jsonify(store.get_player_stats())


@players.route('/<string:player_id>/details', methods=['GET'])
def player_details(player_id):
    details = store.get_player_details(player_id)
    if not details:
        return jsonify({'error': 'Player not found'}), 404
    return jsonify(details)


@players.route('/<string:player_id>/sessions', methods=['GET'])
def player_sessions(player_id):
    if not store.get_player(player_id):
        return jsonify({'error': 'Player not found'}), 404
    return jsonify(store.get_player_sessions(player_id))
