from flask import Blueprint, jsonify, request
from scorekeeper.services import store

games = Blueprint('games', __name__)


@games.route('', methods=['GET'])
def list_games():
    return jsonify([g.to_dict() for g in store.list_games()])


@games.route('', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}
    game = store.create_game(data.get('name'), data.get('template'))
    return jsonify(game.to_dict()), 201


@games.route('/popular', methods=['GET'])
def popular_games():
    return jsonify(store.get_popular_games())


@games.route('/<string:game_id>', methods=['GET'])
def get_game(game_id):
    game = store.get_game(game_id)
    if not game:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(game.to_dict())


@games.route('/<string:game_id>/details', methods=['GET'])
def game_details(game_id):
    details = store.get_game_details(game_id)
    if not details:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(details)


@games.route('/<string:game_id>/sessions', methods=['GET'])
def game_sessions(game_id):
    if not store.get_game(game_id):
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(store.get_game_sessions(game_id))
