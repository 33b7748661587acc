from conftest import socket_payloads


def _login(sio, name, password='pw'):
    sio.emit('message', {'type': 'auth', 'name': name, 'password': password}, namespace='/ws')
    return socket_payloads(sio.get_received('/ws'))


def test_socket_connect_receives_initial_status(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'connected' for pkt in received)
    initial = socket_payloads(received, 'initialStatus')
    assert initial == [{'type': 'initialStatus', 'status': 'closed', 'buzzedIn': None}]


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' for pkt in received)


def test_login_over_socket(seeded, sio_client):
    sio_client.get_received('/ws')
    messages = _login(sio_client, 'Alice')
    response = [m for m in messages if m['type'] == 'authResponse'][0]
    assert response['success'] is True
    assert response['name'] == 'Alice'
    scores = [m for m in messages if m['type'] == 'updateScores'][-1]
    assert scores['activePlayers'] == ['Alice']

    failed = _login(sio_client, 'Bob', 'wrong')
    assert failed == [{'type': 'authResponse', 'success': False, 'reason': 'alreadyAuthenticated'}]


def test_buzz_and_adjudicate_round(seeded, make_sio):
    host = make_sio()
    alice = make_sio()
    bob = make_sio()
    _login(host, 'host', 'hostpw')
    _login(alice, 'Alice')
    _login(bob, 'Bob')
    for sio in (host, alice, bob):
        sio.get_received('/ws')

    host.emit('message', {'type': 'openBuzzer'}, namespace='/ws')
    alice.emit('message', {'type': 'buzz'}, namespace='/ws')
    bob.emit('message', {'type': 'buzz'}, namespace='/ws')

    notices = socket_payloads(bob.get_received('/ws'), 'buzzedIn')
    assert notices == [{'type': 'buzzedIn', 'name': 'Alice', 'status': 'closed'}]

    host.emit('message', {'type': 'updatePoints', 'points': 0, 'isCorrect': False}, namespace='/ws')
    received = socket_payloads(alice.get_received('/ws'))
    assert {'type': 'wrongAnswer', 'name': 'Alice', 'awarded': {'Alice': 0, 'Bob': 1}} in received
    scores = [m for m in received if m['type'] == 'updateScores'][-1]
    assert scores['scores'] == {'Bob': 1, 'Alice': 0}
    status = [m for m in received if m['type'] == 'buzzerStatusUpdate'][-1]
    assert status['status'] == 'open'
    assert status['buzzedIn'] is None

    host_stats = socket_payloads(host.get_received('/ws'), 'updateStats')
    assert host_stats[-1]['stats']['Alice']['incorrectAnswers'] == 1
    assert not socket_payloads(bob.get_received('/ws'), 'updateStats')


def test_non_host_cannot_reset_stats(seeded, make_sio):
    alice = make_sio()
    _login(alice, 'Alice')
    seeded.player_store.upsert('Alice', total_score=3)
    alice.get_received('/ws')
    alice.emit('message', {'type': 'resetAllPlayerStats'}, namespace='/ws')
    assert socket_payloads(alice.get_received('/ws')) == []
    assert seeded.player_store.get('Alice')['totalScore'] == 3


def test_disconnect_refreshes_active_players(seeded, make_sio):
    alice = make_sio()
    bob = make_sio()
    _login(alice, 'Alice')
    _login(bob, 'Bob')
    bob.get_received('/ws')

    alice.disconnect(namespace='/ws')
    scores = socket_payloads(bob.get_received('/ws'), 'updateScores')
    assert scores[-1]['activePlayers'] == ['Bob']
