from conftest import headers


def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    # Flush any initial events
    sio_client.get_received('/ws')

    sio_client.emit('join_session', {'session_id': 'abc'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'joined' and pkt['args'][0]['room'] == 'session:abc' for pkt in received)


def test_join_requires_session_id(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_session', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_roll_notifies_session_room(sio_client, client, game, rng):
    sio_client.emit('join_session', {'session_id': game.session_id}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    rng.dice = [1]
    res = client.post(f'/api/sessions/{game.session_id}/roll', headers=headers('alice'))
    assert res.status_code == 200

    events = sio_client.get_received('/ws')
    updates = [e for e in events if e['name'] == 'state_update']
    assert updates and updates[0]['args'][0] == {'session_id': game.session_id}
