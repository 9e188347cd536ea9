from flask import Blueprint, jsonify, request, current_app
from typing import Dict
from scorekeeper.errors import ValidationError
from scorekeeper.services import store
from scorekeeper.services.scoring.finalize import SessionFinalizer
from scorekeeper.services.scoring.play import Play

plays = Blueprint('plays', __name__)

# In-progress plays for this process, keyed by play id. Rounds and settings
# live only here until the play is saved; a saved play is dropped.
_plays: Dict[str, Play] = {}


def _close_margin() -> int:
    return int(current_app.config.get('CLOSE_GAME_MARGIN', 5))


def _play_or_404(play_id):
    play = _plays.get(play_id)
    if not play:
        return None, (jsonify({'error': 'Play not found'}), 404)
    return play, None


@plays.route('', methods=['POST'])
def open_play():
    data = request.get_json(silent=True) or {}
    game_id = data.get('game_id')
    player_ids = data.get('player_ids')
    if not game_id or not player_ids:
        return jsonify({'error': 'Game ID and player IDs are required'}), 400

    game = store.get_game(game_id) if isinstance(game_id, str) else None
    if not game:
        return jsonify({'error': 'Game not found'}), 404
    found = store.get_players_by_ids(player_ids)
    found_ids = {p.id for p in found}
    missing = [pid for pid in player_ids if pid not in found_ids]
    if missing:
        raise ValidationError(f'Unknown player(s): {", ".join(missing)}', field='player_ids')

    play = Play(game.id, game.name, game.template, [(p.id, p.name) for p in found])
    if data.get('settings') is not None:
        play.update_settings(data['settings'])
    _plays[play.id] = play
    current_app.logger.info(f"[play-open] play={play.id} game={game.id} template={play.template.template_id} players={len(found)}")
    return jsonify(play.to_dict(_close_margin())), 201


@plays.route('/<string:play_id>', methods=['GET'])
def get_play(play_id):
    play, error = _play_or_404(play_id)
    if error:
        return error
    return jsonify(play.to_dict(_close_margin()))


@plays.route('/<string:play_id>', methods=['DELETE'])
def discard_play(play_id):
    play = _plays.pop(play_id, None)
    if not play:
        return jsonify({'error': 'Play not found'}), 404
    current_app.logger.info(f"[play-discard] play={play_id} state={play.state}")
    return jsonify({'message': 'Play discarded'})


@plays.route('/<string:play_id>/settings', methods=['PUT'])
def update_settings(play_id):
    play, error = _play_or_404(play_id)
    if error:
        return error
    play.update_settings(request.get_json(silent=True) or {})
    current_app.logger.info(f"[play-settings] play={play.id} settings={play.engine.settings.to_dict()}")
    return jsonify(play.to_dict(_close_margin()))


@plays.route('/<string:play_id>/start', methods=['POST'])
def start_play(play_id):
    play, error = _play_or_404(play_id)
    if error:
        return error
    play.start()
    return jsonify(play.to_dict(_close_margin()))


@plays.route('/<string:play_id>/rounds', methods=['POST'])
def complete_round(play_id):
    play, error = _play_or_404(play_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    outcome = play.complete_round(data.get('scores'))
    if outcome:
        current_app.logger.info(f"[play-over] play={play.id} winner={outcome.winner_id} reason={outcome.reason}")
    return jsonify(play.to_dict(_close_margin()))


@plays.route('/<string:play_id>/end', methods=['POST'])
def end_play(play_id):
    play, error = _play_or_404(play_id)
    if error:
        return error
    outcome = play.end_game()
    current_app.logger.info(f"[play-over] play={play.id} winner={outcome.winner_id} reason={outcome.reason}")
    return jsonify(play.to_dict(_close_margin()))


@plays.route('/<string:play_id>/preview', methods=['POST'])
def preview_scores(play_id):
    play, error = _play_or_404(play_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    return jsonify(play.preview(data.get('fields'), _close_margin()))


@plays.route('/<string:play_id>/finalize', methods=['POST'])
def finalize_play(play_id):
    play, error = _play_or_404(play_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    finalizer = SessionFinalizer(store.save_session)
    session_id = play.finalize(finalizer, data.get('fields'))
    # Saved plays are read back as sessions from here on
    _plays.pop(play.id, None)
    current_app.logger.info(f"[play-saved] play={play.id} session={session_id}")
    return jsonify({'session_id': session_id, 'play': play.to_dict(_close_margin())}), 201
