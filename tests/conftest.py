import random
from datetime import datetime

import pytest
import pytz

from app import create_app
from config import Config
from taxrunner.database.snapshot import JsonSnapshotStore
from taxrunner.game_manager import GameServer
from taxrunner.tasks.scheduled import EpochRollover
from taxrunner.websocket.hub import BroadcastHub

ADMIN_KEY = 'test-admin'
TEST_OVERRIDES = {
    'START_SCHEDULER': False,
    'ADMIN_KEY': ADMIN_KEY,
    'TIMEZONE': 'Europe/Zagreb',
    'ENV': 'test',
}


def zagreb_ts(year, month, day, hour=0, minute=0, second=0):
    tz = pytz.timezone('Europe/Zagreb')
    return tz.localize(datetime(year, month, day, hour, minute, second)).timestamp()


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


class RecordingEmitter:
    """Stands in for SocketIO.emit and records what was sent"""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def emit(self, event, data, to=None):
        if to in self.fail_for:
            raise RuntimeError("connection closed")
        self.sent.append((event, data, to))

    def events(self, name, to=None):
        return [data for event, data, sid in self.sent if event == name and (to is None or sid == to)]


@pytest.fixture
def clock():
    # Noon on 2026-03-10 in Zagreb
    return FakeClock(zagreb_ts(2026, 3, 10, 12, 0))


@pytest.fixture
def config():
    return Config(dict(TEST_OVERRIDES))


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def game(config, clock, emitter):
    return GameServer(config, hub=BroadcastHub(emitter), clock=clock, rng=random.Random(1))


@pytest.fixture
def rollover(game):
    return EpochRollover(game)


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / 'players.json'


@pytest.fixture
def app(clock, snapshot_path):
    return create_app(
        dict(TEST_OVERRIDES, SNAPSHOT_PATH=str(snapshot_path)),
        clock=clock,
        snapshot_store=JsonSnapshotStore(str(snapshot_path)),
        rng=random.Random(3),
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def server(app):
    return app.extensions['taxrunner']


@pytest.fixture
def register(client):
    def _register(name='runner', admin_key=None):
        body = {'name': name}
        if admin_key:
            body['adminKey'] = admin_key
        response = client.post('/register', json=body)
        assert response.status_code == 200, response.get_json()
        return response.get_json()
    return _register


@pytest.fixture
def socket_client(app):
    clients = []

    def _connect(player_id=None):
        query = f'playerId={player_id}' if player_id else None
        sc = app.socketio.test_client(app, query_string=query)
        clients.append(sc)
        return sc

    yield _connect

    for sc in clients:
        if sc.is_connected():
            sc.disconnect()
