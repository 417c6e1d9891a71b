def _events(sio_client, name):
    return [pkt for pkt in sio_client.get_received('/ws') if pkt['name'] == name]


def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    # Flush any initial events
    sio_client.get_received('/ws')

    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    joined = _events(sio_client, 'joined')
    assert joined
    assert joined[0]['args'][0] == {'room': 'leaderboard'}


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    pong = _events(sio_client, 'pong')
    assert pong[0]['args'][0] == {'n': 1}


def test_score_broadcast_reaches_leaderboard_room(sio_client, auth_client):
    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    sio_client.get_received('/ws')

    res = auth_client.post('/api/games/save-score', json={
        'userId': 'u1', 'username': 'finn', 'score': 30, 'difficulty': 'Medium',
    })
    assert res.status_code == 201

    updates = _events(sio_client, 'leaderboard_update')
    assert len(updates) == 1
    assert updates[0]['args'][0] == {
        'userId': 'u1',
        'username': 'finn',
        'score': 30,
        'difficulty': 'Medium',
        'gameType': 'main',
    }


def test_left_room_gets_no_updates(sio_client, auth_client):
    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    sio_client.emit('leave_leaderboard', {}, namespace='/ws')
    assert _events(sio_client, 'left')

    auth_client.post('/api/games/save-mini-game', json={'userId': 'u1', 'username': 'finn', 'score': 10})
    assert _events(sio_client, 'leaderboard_update') == []


def test_rejected_score_is_not_broadcast(sio_client, auth_client):
    sio_client.emit('join_leaderboard', {}, namespace='/ws')
    sio_client.get_received('/ws')
    res = auth_client.post('/api/games/save-score', json={'userId': 'u1'})
    assert res.status_code == 400
    assert _events(sio_client, 'leaderboard_update') == []
