from datetime import timedelta

from heart_hunt import db
from heart_hunt.models import GameScore, GameSession, User, utcnow


def _save(client, **overrides):
    payload = {'userId': 'u1', 'username': 'finn', 'score': 50, 'difficulty': 'Easy',
               'correctAnswers': 5, 'totalQuestions': 5}
    payload.update(overrides)
    return client.post('/api/games/save-score', json=payload)


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert res.get_json()['success'] is True


def test_private_routes_require_login(client):
    res = client.post('/api/games/save-score', json={'userId': 'u1', 'username': 'finn', 'score': 1})
    assert res.status_code == 401
    assert res.get_json() == {'success': False, 'message': 'Authentication required'}
    assert client.get('/api/games/stats').status_code == 401


def test_save_score_then_user_stats(auth_client):
    res = _save(auth_client)
    assert res.status_code == 201
    body = res.get_json()
    assert body['success'] is True
    assert body['data']['finalScore'] == 50
    assert body['data']['status'] == 'completed'
    assert body['data']['gameType'] == 'main'

    stats = auth_client.get('/api/games/user-stats/u1').get_json()
    assert stats['success'] is True
    overall = stats['data']['overallStats']
    assert overall['totalScore'] == 50
    assert overall['totalGames'] == 1
    assert overall['accuracy'] == 100
    assert stats['data']['rank'] == 1
    assert stats['data']['user']['username'] == 'finn'


def test_save_score_increments_user_aggregates(auth_client):
    _save(auth_client, score=30, correctAnswers=3, totalQuestions=4)
    _save(auth_client, score=20, correctAnswers=2, totalQuestions=2)
    user = db.session.get(User, 'u1')
    db.session.refresh(user)
    assert user.total_score == 50
    assert user.games_played == 2
    assert user.correct_answers == 5


def test_save_score_defaults(auth_client):
    res = auth_client.post('/api/games/save-score', json={'userId': 'u1', 'username': 'finn', 'score': 0})
    assert res.status_code == 201
    data = res.get_json()['data']
    assert data['difficulty'] == 'Easy'
    assert data['status'] == 'completed'
    assert data['correctAnswers'] == 0
    assert data['totalQuestions'] == 0
    assert data['sessionId'] is None


def test_save_score_validation(auth_client):
    res = auth_client.post('/api/games/save-score', json={'userId': 'u1', 'username': 'finn'})
    assert res.status_code == 400
    body = res.get_json()
    assert body['success'] is False
    assert 'required' in body['message']

    assert _save(auth_client, difficulty='Impossible').status_code == 400
    assert _save(auth_client, score=-5).status_code == 400
    assert _save(auth_client, correctAnswers=6, totalQuestions=5).status_code == 400
    assert GameScore.query.count() == 0


def test_save_mini_game_forces_type(auth_client):
    res = auth_client.post('/api/games/save-mini-game', json={
        'userId': 'u1', 'username': 'finn', 'score': 15, 'difficulty': 'Expert', 'status': 'abandoned',
    })
    assert res.status_code == 201
    data = res.get_json()['data']
    assert data['gameType'] == 'mini'
    assert data['difficulty'] == 'Easy'
    assert data['status'] == 'completed'


def test_session_lifecycle(auth_client):
    res = auth_client.post('/api/games/save-session', json={'userId': 'u1', 'username': 'finn', 'difficulty': 'Hard'})
    assert res.status_code == 201
    body = res.get_json()
    session_id = body['sessionId']
    assert session_id.startswith('session_')
    assert body['data']['status'] == 'active'
    assert body['data']['difficulty'] == 'Hard'

    active = auth_client.get('/api/games/active-sessions/u1').get_json()['data']
    assert [s['sessionId'] for s in active] == [session_id]

    res = auth_client.put(f'/api/games/session/{session_id}', json={
        'endTime': '2026-01-01T10:00:00Z', 'status': 'completed', 'finalScore': 70,
        'correctAnswers': 7, 'totalQuestions': 8,
    })
    assert res.status_code == 200
    data = res.get_json()['data']
    assert data['status'] == 'completed'
    assert data['finalScore'] == 70
    assert data['endTime'].startswith('2026-01-01T10:00:00')

    assert auth_client.get('/api/games/active-sessions/u1').get_json()['data'] == []


def test_session_update_applies_only_present_fields(auth_client):
    session_id = auth_client.post('/api/games/save-session', json={'userId': 'u1', 'username': 'finn'}).get_json()['sessionId']
    auth_client.put(f'/api/games/session/{session_id}', json={'finalScore': 40})
    data = auth_client.put(f'/api/games/session/{session_id}', json={'status': 'timeout'}).get_json()['data']
    assert data['finalScore'] == 40
    assert data['status'] == 'timeout'
    assert data['endTime'] is None


def test_session_update_unknown_id(auth_client):
    res = auth_client.put('/api/games/session/session_missing', json={'status': 'completed'})
    assert res.status_code == 404
    assert res.get_json() == {'success': False, 'message': 'Game session not found'}
    assert GameSession.query.count() == 0


def test_session_requires_user(auth_client):
    res = auth_client.post('/api/games/save-session', json={'userId': 'u1'})
    assert res.status_code == 400


def test_user_scores_pagination(auth_client):
    for score in range(5):
        _save(auth_client, score=score * 10)
    res = auth_client.get('/api/games/user-scores/u1?limit=2&page=2')
    body = res.get_json()
    assert res.status_code == 200
    assert body['pagination'] == {'page': 2, 'limit': 2, 'total': 5, 'pages': 3}
    assert [s['score'] for s in body['data']] == [20, 10]

    assert auth_client.get('/api/games/user-scores/u1?limit=0').status_code == 400


def test_leaderboard_ranks_and_filters(auth_client, make_user):
    make_user('pearl', user_id='u2')
    _save(auth_client, score=40)
    _save(auth_client, userId='u2', username='pearl', score=70, difficulty='Hard')
    _save(auth_client, userId='u2', username='pearl', score=10, status='abandoned')

    body = auth_client.get('/api/games/leaderboard').get_json()
    assert body['success'] is True
    assert body['timeFrame'] == 'all'
    assert body['difficulty'] == 'all'
    assert [(e['rank'], e['userId'], e['totalScore']) for e in body['data']] == [(1, 'u2', 70), (2, 'u1', 40)]

    hard = auth_client.get('/api/games/leaderboard?difficulty=Hard').get_json()
    assert [e['userId'] for e in hard['data']] == ['u2']
    assert hard['difficulty'] == 'Hard'

    assert auth_client.get('/api/games/leaderboard?timeFrame=yearly').status_code == 400


def test_leaderboard_daily_excludes_old_scores(auth_client):
    db.session.add(GameScore(user_id='u1', username='finn', score=90, final_score=90,
                             created_at=utcnow() - timedelta(days=2)))
    db.session.commit()
    assert auth_client.get('/api/games/leaderboard?timeFrame=daily').get_json()['data'] == []
    everything = auth_client.get('/api/games/leaderboard?timeFrame=all').get_json()['data']
    assert everything[0]['totalScore'] == 90


def test_leaderboard_is_public(client):
    res = client.get('/api/games/leaderboard')
    assert res.status_code == 200
    assert res.get_json()['data'] == []


def test_user_stats_without_scores(auth_client):
    data = auth_client.get('/api/games/user-stats/u1').get_json()['data']
    assert data['rank'] is None
    assert data['overallStats']['totalGames'] == 0
    assert data['overallStats']['accuracy'] == 0
    assert data['difficultyStats'] == []


def test_global_stats(auth_client, make_user):
    make_user('pearl', user_id='u2')
    _save(auth_client, score=40)
    _save(auth_client, userId='u2', username='pearl', score=60, difficulty='Medium')
    data = auth_client.get('/api/games/stats').get_json()['data']
    assert data['totalGames'] == 2
    assert data['totalPlayers'] == 2
    assert data['totalScore'] == 100
    assert sorted((d['difficulty'], d['count']) for d in data['gamesByDifficulty']) == [('Easy', 1), ('Medium', 1)]
    assert len(data['recentGames']) == 2
    assert data['recentGames'][0]['user']['username'] == 'pearl'


def test_identity_fields_must_be_scalar(auth_client):
    assert _save(auth_client, username=['finn']).status_code == 400
    assert _save(auth_client, userId={'id': 'u1'}).status_code == 400
    assert _save(auth_client, username=True).status_code == 400
    res = auth_client.post('/api/games/save-session', json={'userId': 'u1', 'username': ['finn']})
    assert res.status_code == 400
    assert GameScore.query.count() == 0
    assert GameSession.query.count() == 0


def test_numeric_user_id_is_stored_as_text(auth_client):
    res = _save(auth_client, userId=0, username='zero')
    assert res.status_code == 201
    assert res.get_json()['data']['userId'] == '0'
