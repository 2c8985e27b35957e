import random

import simulator
from server import app, socketio


def envelopes(received):
    """{type, data} payloads from the test client's 'message' packets."""
    found = []
    for packet in received:
        if packet['name'] != 'message':
            continue
        args = packet['args']
        found.append(args[0] if isinstance(args, list) else args)
    return found


def test_connect_sends_initial_data(db_path):
    client = socketio.test_client(app)
    assert client.is_connected()

    messages = envelopes(client.get_received())
    assert messages[0]['type'] == 'initial_data'
    assert len(messages[0]['data']['districts']) == 10
    assert 'hotspots' in messages[0]['data']
    client.disconnect()


def test_request_update_gets_data_update(db_path):
    client = socketio.test_client(app)
    client.get_received()

    client.emit('message', {'type': 'request_update'})
    messages = envelopes(client.get_received())
    assert [m['type'] for m in messages] == ['data_update']
    client.disconnect()


def test_malformed_messages_are_ignored(db_path):
    client = socketio.test_client(app)
    client.get_received()

    client.emit('message', 'not json at all')
    client.emit('message', {'type': 'something_else'})
    client.emit('message', '{"type": "request_update"}')

    messages = envelopes(client.get_received())
    assert [m['type'] for m in messages] == ['data_update']
    assert client.is_connected()
    client.disconnect()


def test_tick_broadcasts_to_every_client(db_path):
    first = socketio.test_client(app)
    second = socketio.test_client(app)
    first.get_received()
    second.get_received()

    assert simulator.simulate_tick(socketio, rng=random.Random(3))

    expected = simulator.get_snapshot()
    for client in (first, second):
        messages = envelopes(client.get_received())
        assert messages[-1]['type'] == 'data_update'
        assert messages[-1]['data']['activeHotspots'] == expected['activeHotspots']
        client.disconnect()
