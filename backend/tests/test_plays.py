from sqlalchemy.exc import SQLAlchemyError

from scorekeeper import db


def setup_table(client, template='generic', names=('Alice', 'Bob')):
    players = [client.post('/api/players', json={'name': n}).get_json() for n in names]
    game = client.post('/api/games', json={'name': 'Table Game', 'template': template}).get_json()
    return game, players


def open_play(client, game, players, **extra):
    body = {'game_id': game['id'], 'player_ids': [p['id'] for p in players]}
    body.update(extra)
    res = client.post('/api/plays', json=body)
    assert res.status_code == 201
    return res.get_json()


def test_open_play_validation(client):
    game, players = setup_table(client)
    assert client.post('/api/plays', json={}).status_code == 400
    res = client.post('/api/plays', json={'game_id': 'missing', 'player_ids': [players[0]['id']]})
    assert res.status_code == 404
    res = client.post('/api/plays', json={'game_id': game['id'], 'player_ids': ['ghost']})
    assert res.status_code == 400
    assert client.get('/api/plays/missing').status_code == 404


def test_generic_play_to_target(client):
    game, (alice, bob) = setup_table(client)
    play = open_play(client, game, [alice, bob])
    assert play['state'] == 'configuring'
    assert play['uses_rounds'] is True
    assert play['settings']['score_to_win'] == 100

    res = client.put(f"/api/plays/{play['id']}/settings", json={'score_to_win': 50})
    assert res.get_json()['settings']['score_to_win'] == 50
    assert client.post(f"/api/plays/{play['id']}/start").get_json()['state'] == 'playing'

    res = client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: 20, bob['id']: 30}})
    state = res.get_json()
    assert state['state'] == 'playing'
    assert state['standings'][0] == {'player_id': bob['id'], 'total': 30, 'points_to_target': 20}
    assert state['stats']['rounds_played'] == 1

    # settings are locked after the first round
    res = client.put(f"/api/plays/{play['id']}/settings", json={'score_to_win': 500})
    assert res.status_code == 409

    res = client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: 35, bob['id']: 5}})
    state = res.get_json()
    assert state['state'] == 'finished'
    assert state['outcome'] == {'winner_id': alice['id'], 'reason': 'target_score'}

    res = client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: 1, bob['id']: 1}})
    assert res.status_code == 409

    res = client.post(f"/api/plays/{play['id']}/finalize")
    assert res.status_code == 201
    session_id = res.get_json()['session_id']

    session = client.get(f'/api/sessions/{session_id}').get_json()
    assert res.get_json()['play']['result'] == session['players']
    assert [(p['player_name'], p['score'], p['rank']) for p in session['players']] == [('Alice', 55, 1), ('Bob', 35, 2)]
    assert session['players'][0]['details']['rounds'] == [20, 35]
    assert session['players'][0]['details']['total_rounds'] == 2
    assert session['players'][0]['details']['game_settings']['score_to_win'] == 50


def test_manual_end_requires_rounds(client):
    game, (alice, bob) = setup_table(client)
    play = open_play(client, game, [alice, bob], settings={'has_target_score': False, 'win_condition': 'lowest'})
    client.post(f"/api/plays/{play['id']}/start")

    assert client.post(f"/api/plays/{play['id']}/end").status_code == 409

    client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: 9, bob['id']: 2}})
    res = client.post(f"/api/plays/{play['id']}/end")
    assert res.status_code == 200
    assert res.get_json()['outcome'] == {'winner_id': bob['id'], 'reason': 'manual'}


def test_round_validation_keeps_state(client):
    game, (alice, bob) = setup_table(client)
    play = open_play(client, game, [alice, bob])
    client.post(f"/api/plays/{play['id']}/start")
    res = client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: 'ten'}})
    assert res.status_code == 400
    assert client.get(f"/api/plays/{play['id']}").get_json()['rounds'] == []


def test_template_play_preview_and_finalize(client):
    game, (alice, bob) = setup_table(client, template='seven-wonders')
    play = open_play(client, game, [alice, bob])
    assert play['uses_rounds'] is False
    assert play['state'] == 'playing'
    assert client.post(f"/api/plays/{play['id']}/start").status_code == 409

    base = {'civilian': 5, 'science': 5, 'commercial': 5, 'guilds': 5, 'military': 0, 'wonder': 5}
    fields = {
        alice['id']: dict(base, coins=21),
        bob['id']: dict(base, coins=20, military=1),
    }
    preview = client.post(f"/api/plays/{play['id']}/preview", json={'fields': fields}).get_json()
    assert preview['scores'] == {alice['id']: 32, bob['id']: 32}
    assert preview['stats']['leader'] is None

    bad = dict(fields)
    bad[bob['id']] = dict(base, coins=-3)
    res = client.post(f"/api/plays/{play['id']}/finalize", json={'fields': bad})
    assert res.status_code == 400
    assert res.get_json()['field'] == f"fields.{bob['id']}.coins"

    res = client.post(f"/api/plays/{play['id']}/finalize", json={'fields': fields})
    assert res.status_code == 201
    session = client.get(f"/api/sessions/{res.get_json()['session_id']}").get_json()
    assert [p['rank'] for p in session['players']] == [1, 1]
    assert session['players'][0]['details']['coins'] == 21


def test_failed_save_can_be_retried(client, monkeypatch):
    game, (alice, bob) = setup_table(client, template='catan')
    play = open_play(client, game, [alice, bob])
    fields = {alice['id']: {'victory_points': 10}, bob['id']: {'victory_points': 7}}

    def broken_commit():
        raise SQLAlchemyError('database is locked')

    monkeypatch.setattr(db.session, 'commit', broken_commit)
    res = client.post(f"/api/plays/{play['id']}/finalize", json={'fields': fields})
    assert res.status_code == 503
    monkeypatch.undo()

    state = client.get(f"/api/plays/{play['id']}").get_json()
    assert state['state'] == 'finished'
    assert state['session_id'] is None

    res = client.post(f"/api/plays/{play['id']}/finalize")
    assert res.status_code == 201
    session_id = res.get_json()['session_id']
    assert res.get_json()['play']['session_id'] == session_id
    assert len(client.get('/api/sessions/recent').get_json()) == 1


def test_saved_play_is_dropped_from_registry(client):
    from scorekeeper.api.plays import _plays
    game, (alice, bob) = setup_table(client, template='catan')
    play = open_play(client, game, [alice, bob])
    fields = {alice['id']: {'victory_points': 10}, bob['id']: {'victory_points': 7}}

    res = client.post(f"/api/plays/{play['id']}/finalize", json={'fields': fields})
    assert res.status_code == 201
    assert play['id'] not in _plays
    assert client.get(f"/api/plays/{play['id']}").status_code == 404
    assert client.post(f"/api/plays/{play['id']}/finalize").status_code == 404
    assert len(client.get('/api/sessions/recent').get_json()) == 1


def test_oversized_round_score_is_rejected(client):
    game, (alice, bob) = setup_table(client)
    play = open_play(client, game, [alice, bob], settings={'has_target_score': False})
    client.post(f"/api/plays/{play['id']}/start")

    res = client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: 10 ** 20, bob['id']: 1}})
    assert res.status_code == 400
    assert res.get_json()['field'] == f"scores.{alice['id']}"

    near_max = 2 ** 63 - 1
    res = client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: near_max, bob['id']: 1}})
    assert res.status_code == 200
    # a second round would push the total past what can be stored
    res = client.post(f"/api/plays/{play['id']}/rounds", json={'scores': {alice['id']: 1, bob['id']: 1}})
    assert res.status_code == 400
    assert len(client.get(f"/api/plays/{play['id']}").get_json()['rounds']) == 1

    res = client.post(f"/api/plays/{play['id']}/finalize")
    assert res.status_code == 201


def test_unknown_template_scores_as_generic(flask_app, client):
    from scorekeeper.models import Game, Player
    legacy = Game(name='Old Game', template='retired-template')
    player = Player(name='Alice')
    db.session.add_all([legacy, player])
    db.session.commit()

    res = client.post('/api/plays', json={'game_id': legacy.id, 'player_ids': [player.id]})
    assert res.status_code == 201
    assert res.get_json()['game']['template'] == 'generic'
    assert res.get_json()['uses_rounds'] is True


def test_discard_play(client):
    game, players = setup_table(client)
    play = open_play(client, game, players)
    assert client.delete(f"/api/plays/{play['id']}").status_code == 200
    assert client.get(f"/api/plays/{play['id']}").status_code == 404
