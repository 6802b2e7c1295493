import pytest

from taxrunner.game_manager import GameServer
from taxrunner.websocket.hub import BroadcastHub


@pytest.fixture
def hub(emitter):
    return BroadcastHub(emitter)


def test_register_and_send(hub, emitter):
    hub.register('p1', 'sid-1')

    assert hub.is_connected('p1')
    assert hub.send_to('p1', 'hello', {'ok': True}) is True
    assert emitter.sent == [('hello', {'ok': True}, 'sid-1')]


def test_send_to_absent_player_is_dropped(hub, emitter):
    assert hub.send_to('ghost', 'youWon', {'day': '2026-03-10'}) is False
    assert emitter.sent == []


def test_reconnect_replaces_previous_sink(hub, emitter):
    hub.register('p1', 'sid-old')
    hub.register('p1', 'sid-new')

    hub.send_to('p1', 'ping')
    assert emitter.sent == [('ping', {}, 'sid-new')]
    assert len(hub) == 1


def test_stale_disconnect_keeps_newer_connection(hub):
    hub.register('p1', 'sid-old')
    hub.register('p1', 'sid-new')

    assert hub.unregister('p1', 'sid-old') is False
    assert hub.is_connected('p1')
    assert hub.unregister('p1', 'sid-new') is True
    assert not hub.is_connected('p1')


def test_broadcast_reaches_every_sink(hub, emitter):
    for n in range(3):
        hub.register(f'p{n}', f'sid-{n}')

    assert hub.broadcast('forceReset', {'newDay': '2026-03-11'}) == 3
    assert sorted(sid for _, _, sid in emitter.sent) == ['sid-0', 'sid-1', 'sid-2']


def test_failing_sink_does_not_affect_others(hub, emitter):
    hub.register('p1', 'sid-1')
    hub.register('p2', 'sid-2')
    emitter.fail_for.add('sid-1')

    assert hub.broadcast('leaderboardUpdated', {'score': 5}) == 1
    assert emitter.events('leaderboardUpdated', to='sid-2') == [{'score': 5}]
    assert hub.send_to('p1', 'ping') is False


def test_hub_without_emitter_delivers_nothing():
    hub = BroadcastHub()
    hub.register('p1', 'sid-1')
    assert hub.broadcast('ping') == 0


def test_game_server_keeps_an_empty_hub(config, emitter):
    hub = BroadcastHub(emitter)
    assert len(hub) == 0

    server = GameServer(config, hub=hub)
    assert server.hub is hub
    assert server.shop.hub is hub

    hub.register('p1', 'sid-1')
    server.shop.queue_grant('p1', 'FLASHBANG')
    assert emitter.events('purchaseCompleted', to='sid-1') == [{'item': 'FLASHBANG', 'count': 1}]
